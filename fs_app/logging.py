# fs_app/logging.py
import copy
import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from fs_app.context import current_request_context

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"
REDACTED = "[REDACTED]"

SENSITIVE_KEYS = (
    "password",
    "passwd",
    "token",
    "secret",
    "apikey",
    "api_key",
    "authorization",
    "auth",
    "credential",
    "jwt",
    "cookie",
    "session_key",
    "private_key",
)

# syslog-style names accepted in MCP_LOG_LEVEL
_LEVEL_ALIASES = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emerg": logging.CRITICAL,
}


class RequestIdFilter(logging.Filter):
    """Stamp every record with the id of the tool call being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = current_request_context()
        record.request_id = ctx.request_id if ctx else "-"
        return True


def parse_level(level: str) -> int:
    try:
        return _LEVEL_ALIASES[level.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


def configure_logging(level: str = "info", logs_dir: Optional[Path] = None):
    """
    Root logger setup. Console output goes to stderr because stdout carries
    the stdio transport. When logs_dir is given, combined.log and error.log
    are written there.
    """
    formatter = logging.Formatter(LOG_FORMAT)
    request_filter = RequestIdFilter()

    handlers = [logging.StreamHandler(sys.stderr)]
    if logs_dir:
        logs_dir.mkdir(parents=True, exist_ok=True)
        combined = RotatingFileHandler(logs_dir / "combined.log", maxBytes=5 * 1024 * 1024, backupCount=5)
        errors = RotatingFileHandler(logs_dir / "error.log", maxBytes=5 * 1024 * 1024, backupCount=5)
        errors.setLevel(logging.ERROR)
        handlers += [combined, errors]

    for h in handlers:
        h.setFormatter(formatter)
        h.addFilter(request_filter)

    logging.basicConfig(level=parse_level(level), handlers=handlers, force=True)


def redact_str(s: str) -> str:
    return PII_RE.sub("[redacted-email]", s)


def _is_sensitive(key: Any) -> bool:
    k = str(key).lower().replace("-", "_")
    return any(s in k for s in SENSITIVE_KEYS)


def sanitize_for_logging(obj: Any) -> Any:
    """
    Copy of obj safe to log: values under sensitive keys are replaced,
    emails in strings are redacted. The input is never mutated.
    """
    if isinstance(obj, dict):
        return {
            k: REDACTED if _is_sensitive(k) else sanitize_for_logging(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [sanitize_for_logging(x) for x in obj]
    if isinstance(obj, str):
        return redact_str(obj)
    if isinstance(obj, (int, float, bool)) or obj is None:
        return obj
    return copy.copy(obj)


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    return sanitize_for_logging(dict(args))


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("tool_call %s %s", name, redact_args(args))
