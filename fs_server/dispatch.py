# fs_server/dispatch.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from fs_app.context import create_request_context, request_scope
from fs_app.errors import ErrorKind, McpError, classify_error, error_response
from fs_app.logging import log_tool_call, sanitize_for_logging
from fs_app.services.ratelimit import RateLimiter
from fs_server.registry import ToolRegistry

logger = logging.getLogger(__name__)


def success_response(result: Any) -> Dict[str, Any]:
    if isinstance(result, (dict, list)):
        text = json.dumps(result, ensure_ascii=False, indent=2)
    else:
        text = "" if result is None else str(result)
    return {"content": [{"type": "text", "text": text}], "isError": False}


class ToolDispatcher:
    """
    One path for every tool call regardless of transport:
    validate -> new request context -> rate limit -> handler -> classify.
    """

    def __init__(self, registry: ToolRegistry, rate_limiter: Optional[RateLimiter] = None):
        self.registry = registry
        self.rate_limiter = rate_limiter

    def call(self, name: str, arguments: Optional[Mapping[str, Any]], client: str = "anonymous") -> Any:
        """
        Run a tool and return its raw result. Raises KeyError for unknown
        tools and McpError for everything else that goes wrong.
        """
        spec = self.registry.get(name)
        ctx = create_request_context(f"tool:{name}", tool_name=name, client=client)

        with request_scope(ctx):
            logger.debug("call start %s", ctx.as_log_dict())
            try:
                if arguments is None:
                    arguments = {}
                if not isinstance(arguments, Mapping):
                    raise McpError(
                        ErrorKind.VALIDATION,
                        "Invalid input: tool arguments must be an object",
                        {"errors": [{"field": "<root>", "reason": f"expected object, got {type(arguments).__name__}"}]},
                    )
                log_tool_call(logger, name, dict(arguments))
                args = spec.input_model.model_validate(dict(arguments))
                if self.rate_limiter is not None:
                    self.rate_limiter.check(f"{client}:{name}")
                result = spec.handler(args, ctx)
            except ValidationError as e:
                err = classify_error(e, name, {"tool": name})
                logger.warning("invalid input for %s: %s", name, sanitize_for_logging(err.to_dict()))
                raise err from e
            except McpError as e:
                err = classify_error(e, name, {"tool": name})
                logger.warning("%s failed [%s]: %s %s", name, err.kind.value, err.message,
                               sanitize_for_logging(dict(err.context)), exc_info=e.__cause__ is not None)
                raise err from e.__cause__
            except Exception as e:
                err = classify_error(e, name, {"tool": name})
                logger.exception("%s failed [%s]: %s %s", name, err.kind.value, err.message,
                                 sanitize_for_logging(dict(err.context)))
                raise err from e

            logger.debug("%s succeeded", name)
            return result

    def invoke(self, name: str, arguments: Optional[Dict[str, Any]], client: str = "anonymous") -> Dict[str, Any]:
        """Like call(), but serialized into the MCP tool-result envelope."""
        try:
            result = self.call(name, arguments, client=client)
        except McpError as e:
            return error_response(e)
        return success_response(result)
