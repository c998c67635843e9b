# fs_app/context.py
from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

_current: ContextVar[Optional["RequestContext"]] = ContextVar("fs_request_context", default=None)


@dataclass(frozen=True)
class RequestContext:
    """Correlation data for one tool invocation; threaded through logging."""
    request_id: str
    timestamp: str
    operation: str
    tool_name: Optional[str] = None
    client: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def as_log_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "timestamp": self.timestamp,
            "operation": self.operation,
            **({"tool_name": self.tool_name} if self.tool_name else {}),
            **({"client": self.client} if self.client else {}),
            **self.extra,
        }


def generate_request_id() -> str:
    return uuid.uuid4().hex


def create_request_context(
    operation: str,
    *,
    tool_name: Optional[str] = None,
    client: Optional[str] = None,
    **extra: Any,
) -> RequestContext:
    return RequestContext(
        request_id=generate_request_id(),
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        operation=operation,
        tool_name=tool_name,
        client=client,
        extra=extra,
    )


def current_request_context() -> Optional[RequestContext]:
    return _current.get()


@contextmanager
def request_scope(ctx: RequestContext) -> Iterator[RequestContext]:
    """Bind ctx as the current request for the duration of the block."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)

