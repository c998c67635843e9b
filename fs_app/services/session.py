# fs_app/services/session.py
from __future__ import annotations

import logging
import os
from typing import Optional

from fs_app.context import RequestContext
from fs_app.errors import ErrorKind, McpError
from fs_app.services.sanitizer import is_within, sanitize_path

logger = logging.getLogger(__name__)


class SessionState:
    """
    Session-scoped default directory used to resolve relative tool paths.

    One instance per server process, owned by the DI container. The default
    is a plain attribute: concurrent set/clear/resolve calls see whatever
    was written last, with no isolation between them.

    When base_directory is given, every resolved path (and the default
    itself) must stay inside it.
    """

    def __init__(self, base_directory: Optional[str] = None):
        self.base_directory = os.path.normpath(base_directory) if base_directory else None
        self._default_path: Optional[str] = None

    def get_default_path(self) -> Optional[str]:
        return self._default_path

    def check_default_path(self, path: str) -> str:
        """Sanitized form of a would-be default; raises if it is not acceptable."""
        if isinstance(path, str) and path.strip() and not os.path.isabs(path):
            raise McpError(
                ErrorKind.VALIDATION,
                "Default filesystem path must be absolute",
                {"path": path},
            )
        sanitized = sanitize_path(path, allow_absolute=True).sanitized_path
        self._check_base(sanitized, path)
        return sanitized

    def set_default_path(self, path: str, ctx: Optional[RequestContext] = None) -> str:
        sanitized = self.check_default_path(path)
        previous, self._default_path = self._default_path, sanitized
        logger.info(
            "default filesystem path set %s (was %s)%s", sanitized, previous, _ctx_suffix(ctx)
        )
        return sanitized

    def clear_default_path(self, ctx: Optional[RequestContext] = None) -> None:
        if self._default_path is not None:
            logger.info("default filesystem path cleared (was %s)%s", self._default_path, _ctx_suffix(ctx))
        self._default_path = None

    def resolve_path(self, path: str, ctx: Optional[RequestContext] = None) -> str:
        """
        Absolute input is returned sanitized. Relative input is anchored at
        the session default, which must be set.
        """
        if isinstance(path, str) and os.path.isabs(path):
            resolved = sanitize_path(path, allow_absolute=True).sanitized_path
        else:
            default = self._default_path
            if default is None:
                # non-strings still fail validation the same way
                sanitize_path(path, allow_absolute=True)
                raise McpError(
                    ErrorKind.VALIDATION,
                    "No default filesystem path set; use an absolute path or call "
                    "set_filesystem_default first",
                    {"path": path, "reason": "no_default_path"},
                )
            resolved = sanitize_path(path, root_dir=default).sanitized_path

        self._check_base(resolved, path)
        logger.debug("resolved %s -> %s%s", path, resolved, _ctx_suffix(ctx))
        return resolved

    def _check_base(self, resolved: str, requested: str) -> None:
        if self.base_directory and not is_within(resolved, self.base_directory):
            raise McpError(
                ErrorKind.FORBIDDEN,
                "Access denied: path is outside the configured base directory",
                {
                    "path": requested,
                    "resolved_path": resolved,
                    "base_directory": self.base_directory,
                },
            )


def _ctx_suffix(ctx: Optional[RequestContext]) -> str:
    return f" op={ctx.operation}" if ctx else ""
