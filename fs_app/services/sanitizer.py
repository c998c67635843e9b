# fs_app/services/sanitizer.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from fs_app.errors import ErrorKind, McpError


@dataclass(frozen=True)
class SanitizedPath:
    sanitized_path: str
    original_input: str
    was_absolute: bool
    root_dir: Optional[str] = None
    converted_to_posix: bool = False

    def __str__(self) -> str:
        return self.sanitized_path


def _fail(message: str, path: object, **extra) -> McpError:
    return McpError(ErrorKind.VALIDATION, message, {"path": path, **extra})


def is_within(path: str, root: str) -> bool:
    """Lexical containment check; both arguments must be normalized absolute paths."""
    try:
        return os.path.commonpath([root, path]) == root
    except ValueError:
        # different drives on Windows
        return False


def sanitize_path(
    input_path: str,
    root_dir: Optional[str] = None,
    allow_absolute: bool = False,
    to_posix: bool = False,
) -> SanitizedPath:
    """
    Normalize input_path lexically and check it against root_dir.

    - relative input is anchored at root_dir and may not climb out of it
    - absolute input needs allow_absolute, or must already be inside root_dir
    - without root_dir, relative input may not start with '..'

    Never touches the filesystem. Raises McpError(VALIDATION) on rejection.
    """
    if not isinstance(input_path, str) or not input_path.strip():
        raise _fail("Path must be a non-empty string", input_path)
    if "\x00" in input_path:
        raise _fail("Path contains a null byte", input_path)

    normalized = os.path.normpath(input_path)
    was_absolute = os.path.isabs(normalized)
    root: Optional[str] = None

    if root_dir is not None:
        if not isinstance(root_dir, str) or not root_dir.strip() or "\x00" in root_dir:
            raise _fail("Root directory is malformed", input_path, root_dir=root_dir)
        root = os.path.normpath(os.path.abspath(root_dir))

        if was_absolute:
            if not allow_absolute and not is_within(normalized, root):
                raise _fail(
                    "Absolute path is outside the permitted root directory",
                    input_path,
                    root_dir=root,
                )
            result = normalized
        else:
            result = os.path.normpath(os.path.join(root, normalized))
            if not is_within(result, root):
                raise _fail("Path traversal outside the root directory", input_path, root_dir=root)
    else:
        if was_absolute and not allow_absolute:
            raise _fail("Absolute paths are not allowed", input_path)
        if not was_absolute and (normalized == os.pardir or normalized.startswith(os.pardir + os.sep)):
            raise _fail("Relative path may not traverse upwards", input_path)
        result = normalized

    converted = False
    if to_posix and os.sep != "/":
        result = result.replace(os.sep, "/")
        converted = True

    return SanitizedPath(
        sanitized_path=result,
        original_input=input_path,
        was_absolute=was_absolute,
        root_dir=root,
        converted_to_posix=converted,
    )
