# fs_app/errors.py
from __future__ import annotations

import errno
import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not-found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"
    RATE_LIMITED = "rate-limited"
    CONFIGURATION = "configuration"


class McpError(Exception):
    """
    Classified failure returned at the tool boundary.

    kind/message/context are fixed at construction; context is a read-only
    shallow copy of what the caller passed in.
    """

    def __init__(self, kind: ErrorKind, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self._kind = ErrorKind(kind)
        self._message = message
        self._context = MappingProxyType(dict(context or {}))

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def context(self) -> Mapping[str, Any]:
        return self._context

    def with_context(self, **extra: Any) -> "McpError":
        # Caller-supplied keys never override what the raiser recorded
        merged = {**extra, **self._context}
        err = McpError(self._kind, self._message, merged)
        err.__cause__ = self.__cause__
        return err

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self._kind.value, "message": self._message, "context": dict(self._context)}

    def __repr__(self) -> str:
        return f"McpError({self._kind.value!r}, {self._message!r})"


_ERRNO_KINDS = {
    errno.ENOENT: ErrorKind.NOT_FOUND,
    errno.EACCES: ErrorKind.FORBIDDEN,
    errno.EPERM: ErrorKind.FORBIDDEN,
    errno.EROFS: ErrorKind.FORBIDDEN,
    errno.EEXIST: ErrorKind.VALIDATION,
    errno.EISDIR: ErrorKind.VALIDATION,
    errno.ENOTDIR: ErrorKind.VALIDATION,
    errno.ENOTEMPTY: ErrorKind.VALIDATION,
    errno.EINVAL: ErrorKind.VALIDATION,
    errno.ENAMETOOLONG: ErrorKind.VALIDATION,
}

# Checked in order against the lower-cased message when nothing else matched
_MESSAGE_PATTERNS = [
    (re.compile(r"not found|no such file|does not exist"), ErrorKind.NOT_FOUND),
    (re.compile(r"unauthori[sz]ed|invalid token|missing token"), ErrorKind.UNAUTHORIZED),
    (re.compile(r"permission|access denied|forbidden"), ErrorKind.FORBIDDEN),
    (re.compile(r"rate limit|too many requests"), ErrorKind.RATE_LIMITED),
    (re.compile(r"config"), ErrorKind.CONFIGURATION),
    (re.compile(r"invalid|validation|malformed"), ErrorKind.VALIDATION),
]


def validation_issues(exc: ValidationError) -> List[Dict[str, str]]:
    """Flatten a pydantic ValidationError into [{field, reason}] entries."""
    issues = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        issues.append({"field": field, "reason": err.get("msg", "invalid value")})
    return issues


def _safe_str(exc: BaseException) -> str:
    try:
        text = str(exc)
    except Exception:
        text = ""
    return text or exc.__class__.__name__


def _kind_for(exc: BaseException) -> ErrorKind:
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, PermissionError):
        return ErrorKind.FORBIDDEN
    if isinstance(exc, (FileExistsError, IsADirectoryError, NotADirectoryError)):
        return ErrorKind.VALIDATION
    if isinstance(exc, OSError) and exc.errno in _ERRNO_KINDS:
        return _ERRNO_KINDS[exc.errno]
    if isinstance(exc, (ValueError, TypeError, re.error)):
        return ErrorKind.VALIDATION
    message = _safe_str(exc).lower()
    for pattern, kind in _MESSAGE_PATTERNS:
        if pattern.search(message):
            return kind
    return ErrorKind.INTERNAL


def classify_error(
    exc: BaseException,
    operation: Optional[str] = None,
    context: Optional[Mapping[str, Any]] = None,
) -> McpError:
    """
    Map any exception to a classified McpError.

    Never raises: unknown failures become ErrorKind.INTERNAL. OSError details
    (errno, filename) are recorded in the context; the original exception is
    kept as __cause__ for logging only.
    """
    extra: Dict[str, Any] = dict(context or {})
    if operation:
        extra.setdefault("operation", operation)

    if isinstance(exc, McpError):
        return exc.with_context(**extra)

    if isinstance(exc, ValidationError):
        issues = validation_issues(exc)
        extra["errors"] = issues
        summary = "; ".join(f"{i['field']}: {i['reason']}" for i in issues)
        err = McpError(ErrorKind.VALIDATION, f"Invalid input: {summary}", extra)
        err.__cause__ = exc
        return err

    try:
        kind = _kind_for(exc)
    except Exception:
        kind = ErrorKind.INTERNAL

    if isinstance(exc, OSError):
        if exc.errno is not None:
            extra.setdefault("errno", exc.errno)
        message = exc.strerror or _safe_str(exc)
        if exc.filename is not None:
            message = f"{message}: {exc.filename}"
    else:
        message = _safe_str(exc)

    if operation:
        message = f"{operation} failed: {message}"

    err = McpError(kind, message, extra)
    err.__cause__ = exc
    return err


def error_response(err: McpError) -> Dict[str, Any]:
    """
    MCP tool-result envelope for a failed call. `content` and `isError` are
    the CallToolResult fields; `error` is an extra member for HTTP clients
    that want the kind without parsing text. The stdio host sends only the
    message (as ToolError). Context and traceback stay in the logs.
    """
    return {
        "content": [{"type": "text", "text": f"Error: {err.message}"}],
        "isError": True,
        "error": {"kind": err.kind.value, "message": err.message},
    }
