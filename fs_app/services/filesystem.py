# fs_app/services/filesystem.py
from __future__ import annotations

import logging
import os
import re
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from fs_app.context import RequestContext
from fs_app.errors import ErrorKind, McpError, classify_error
from fs_app.services.sanitizer import is_within
from fs_app.services.session import SessionState

logger = logging.getLogger(__name__)


class FileSystemService:
    """
    Filesystem operations behind the tools. Every path argument goes through
    SessionState.resolve_path; native OSErrors come back classified.
    """

    def __init__(self, session: SessionState):
        self.session = session

    # ---------- Path handling ----------

    def _resolve(self, path: str, ctx: Optional[RequestContext] = None) -> Path:
        resolved = self.session.resolve_path(path, ctx)
        base = self.session.base_directory
        if base:
            # Prevent symlink escape from the base directory
            real = os.path.realpath(resolved)
            if not is_within(real, os.path.realpath(base)):
                raise McpError(
                    ErrorKind.FORBIDDEN,
                    "Access denied: path resolves outside the configured base directory",
                    {"path": path, "resolved_path": resolved, "real_path": real},
                )
        return Path(resolved)

    @contextmanager
    def _classified(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except McpError as e:
            raise e.with_context(operation=operation, **context) from e.__cause__
        except OSError as e:
            raise classify_error(e, operation, context) from e

    # ---------- Files ----------

    def read_text(self, path: str, ctx: Optional[RequestContext] = None) -> Dict[str, Any]:
        p = self._resolve(path, ctx)
        with self._classified("read_file", path=path, resolved_path=str(p)):
            if p.is_dir():
                raise McpError(ErrorKind.VALIDATION, f"Path is a directory, not a file: {p}")
            content = p.read_text(encoding="utf-8")
        return {"path": str(p), "content": content}

    def write_text(self, path: str, content: str, ctx: Optional[RequestContext] = None) -> Dict[str, Any]:
        p = self._resolve(path, ctx)
        with self._classified("write_file", path=path, resolved_path=str(p)):
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(content, encoding="utf-8")
        logger.info("wrote %s (%d chars)", p, len(content))
        return {"path": str(p), "bytes": len(content.encode("utf-8"))}

    def update_text(
        self,
        path: str,
        blocks: Sequence[Dict[str, str]],
        use_regex: bool = False,
        replace_all: bool = False,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """
        Apply search/replace blocks in order. A block that matches nothing is
        reported in failed_blocks; the file is only rewritten when at least
        one replacement happened.
        """
        p = self._resolve(path, ctx)
        with self._classified("update_file", path=path, resolved_path=str(p)):
            if not p.is_file():
                if p.exists():
                    raise McpError(ErrorKind.VALIDATION, f"Path is not a file: {p}")
                raise McpError(ErrorKind.NOT_FOUND, f"File not found: {p}")
            text = p.read_text(encoding="utf-8")

            applied = 0
            replacements = 0
            failed: List[str] = []
            for block in blocks:
                search, replace = block["search"], block["replace"]
                text, n = self._apply_block(text, search, replace, use_regex, replace_all)
                if n:
                    applied += 1
                    replacements += n
                else:
                    failed.append(search)

            if replacements:
                p.write_text(text, encoding="utf-8")

        logger.info("updated %s: %d/%d blocks, %d replacements", p, applied, len(blocks), replacements)
        return {
            "path": str(p),
            "blocks_applied": applied,
            "total_blocks": len(blocks),
            "replacements": replacements,
            "failed_blocks": failed,
        }

    @staticmethod
    def _apply_block(text: str, search: str, replace: str, use_regex: bool, replace_all: bool):
        if use_regex:
            try:
                pattern = re.compile(search, re.MULTILINE)
            except re.error as e:
                raise McpError(ErrorKind.VALIDATION, f"Invalid regex {search!r}: {e}") from e
            return pattern.subn(replace, text, count=0 if replace_all else 1)
        if search not in text:
            return text, 0
        if replace_all:
            return text.replace(search, replace), text.count(search)
        return text.replace(search, replace, 1), 1

    def delete_file(self, path: str, ctx: Optional[RequestContext] = None) -> Dict[str, Any]:
        p = self._resolve(path, ctx)
        with self._classified("delete_file", path=path, resolved_path=str(p)):
            if p.is_dir():
                raise McpError(ErrorKind.VALIDATION, f"Path is a directory; use delete_directory: {p}")
            p.unlink()
        logger.info("deleted file %s", p)
        return {"path": str(p), "deleted": True}

    # ---------- Directories ----------

    def list_tree(
        self,
        path: str,
        include_nested: bool = False,
        max_entries: int = 50,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        p = self._resolve(path, ctx)
        lines: List[str] = []
        with self._classified("list_files", path=path, resolved_path=str(p)):
            if not p.exists():
                raise McpError(ErrorKind.NOT_FOUND, f"Directory not found: {p}")
            if not p.is_dir():
                raise McpError(ErrorKind.VALIDATION, f"Path is not a directory: {p}")
            truncated = self._walk(p, 0, include_nested, max_entries, lines)

        tree = "\n".join([f"{p}/"] + lines)
        if truncated:
            tree += f"\n... (truncated at {max_entries} entries)"
        return {"path": str(p), "tree": tree, "entries": len(lines), "truncated": truncated}

    def _walk(self, directory: Path, depth: int, nested: bool, limit: int, lines: List[str]) -> bool:
        """Append tree lines; returns True when the limit cut the listing short."""
        children = sorted(directory.iterdir(), key=lambda c: (not c.is_dir(), c.name.lower()))
        for child in children:
            if len(lines) >= limit:
                return True
            indent = "  " * depth
            if child.is_dir() and not child.is_symlink():
                lines.append(f"{indent}{child.name}/")
                if nested and self._walk(child, depth + 1, nested, limit, lines):
                    return True
            else:
                lines.append(f"{indent}{child.name}")
        return False

    def create_directory(
        self, path: str, create_parents: bool = True, ctx: Optional[RequestContext] = None
    ) -> Dict[str, Any]:
        p = self._resolve(path, ctx)
        with self._classified("create_directory", path=path, resolved_path=str(p)):
            p.mkdir(parents=create_parents, exist_ok=create_parents)
            if not p.is_dir():
                raise McpError(ErrorKind.VALIDATION, f"Path exists and is not a directory: {p}")
        logger.info("created directory %s", p)
        return {"path": str(p), "created": True}

    def delete_directory(
        self, path: str, recursive: bool = False, ctx: Optional[RequestContext] = None
    ) -> Dict[str, Any]:
        p = self._resolve(path, ctx)
        with self._classified("delete_directory", path=path, resolved_path=str(p)):
            if not p.exists():
                raise McpError(ErrorKind.NOT_FOUND, f"Directory not found: {p}")
            if not p.is_dir() or p.is_symlink():
                raise McpError(ErrorKind.VALIDATION, f"Path is not a directory: {p}")
            if recursive:
                shutil.rmtree(p)
            elif any(p.iterdir()):
                raise McpError(
                    ErrorKind.VALIDATION,
                    f"Directory is not empty; set recursive=true to delete it: {p}",
                )
            else:
                p.rmdir()
        logger.info("deleted directory %s (recursive=%s)", p, recursive)
        return {"path": str(p), "deleted": True, "recursive": recursive}

    # ---------- Move / copy ----------

    def move_path(
        self, source: str, destination: str, ctx: Optional[RequestContext] = None
    ) -> Dict[str, Any]:
        src = self._resolve(source, ctx)
        dst = self._resolve(destination, ctx)
        with self._classified(
            "move_path",
            source_path=source,
            destination_path=destination,
            resolved_source=str(src),
            resolved_destination=str(dst),
        ):
            self._check_transfer(src, dst)
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(src), str(dst))
        logger.info("moved %s -> %s", src, dst)
        return {"source": str(src), "destination": str(dst)}

    def copy_path(
        self,
        source: str,
        destination: str,
        recursive: bool = True,
        ctx: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        src = self._resolve(source, ctx)
        dst = self._resolve(destination, ctx)
        with self._classified(
            "copy_path",
            source_path=source,
            destination_path=destination,
            resolved_source=str(src),
            resolved_destination=str(dst),
        ):
            self._check_transfer(src, dst)
            dst.parent.mkdir(parents=True, exist_ok=True)
            if src.is_dir():
                if not recursive:
                    raise McpError(
                        ErrorKind.VALIDATION,
                        f"Source is a directory; set recursive=true to copy it: {src}",
                    )
                shutil.copytree(src, dst)
            else:
                shutil.copy2(src, dst)
        logger.info("copied %s -> %s", src, dst)
        return {"source": str(src), "destination": str(dst)}

    @staticmethod
    def _check_transfer(src: Path, dst: Path) -> None:
        if not src.exists() and not src.is_symlink():
            raise McpError(ErrorKind.NOT_FOUND, f"Source not found: {src}")
        if dst.exists() or dst.is_symlink():
            raise McpError(ErrorKind.VALIDATION, f"Destination already exists: {dst}")
        if src.is_dir() and is_within(str(dst), str(src)):
            raise McpError(ErrorKind.VALIDATION, f"Cannot place a directory inside itself: {dst}")
