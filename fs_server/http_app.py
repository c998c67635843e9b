# fs_server/http_app.py
from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse

from fs_app.config import Settings
from fs_app.di import Container, build_container
from fs_server.dispatch import ToolDispatcher
from fs_server.registry import build_tool_registry, list_tools_payload

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"
SERVER_NAME = "filesystem-mcp-server"
SERVER_VERSION = "0.1.0"

# ---------- Security: Origin validation & Bearer token ----------

def _origin_allowed(settings: Settings, req: Request) -> bool:
    origin = req.headers.get("origin")
    if not origin:
        return settings.MCP_HTTP_ALLOW_NO_ORIGIN
    allowed = {o.strip().lower() for o in settings.MCP_HTTP_ALLOWED_ORIGINS.split(",") if o.strip()}
    return origin.lower() in allowed


def _require_auth(settings: Settings, req: Request):
    auth = req.headers.get("authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Bearer token")
    token = auth.split(" ", 1)[1]
    if not secrets.compare_digest(token, settings.MCP_HTTP_BEARER_TOKEN):
        raise HTTPException(status_code=401, detail="Invalid Bearer token")


def _jsonrpc_error(id_: Any, code: int, message: str, data: Any | None = None) -> JSONResponse:
    body: Dict[str, Any] = {"jsonrpc": "2.0", "id": id_, "error": {"code": code, "message": message}}
    if data is not None:
        body["error"]["data"] = data
    return JSONResponse(body)


def _jsonrpc_result(id_: Any, result: Any) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": id_, "result": result})


def create_http_app(container: Optional[Container] = None) -> FastAPI:
    container = container or build_container()
    settings = container.settings
    dispatcher = ToolDispatcher(build_tool_registry(container), container.rate_limiter)

    app = FastAPI(title="Filesystem MCP HTTP Server", version=SERVER_VERSION)
    app.state.container = container
    app.state.dispatcher = dispatcher

    @app.middleware("http")
    async def origin_validation_mw(request: Request, call_next):
        # MCP spec requires Origin validation to prevent DNS rebinding
        if not _origin_allowed(settings, request):
            return JSONResponse({"error": {"code": 403, "message": "Forbidden origin"}}, status_code=403)
        return await call_next(request)

    # ---------- MCP JSON-RPC endpoint ----------

    @app.post(settings.MCP_HTTP_PATH)
    async def mcp_endpoint(request: Request):
        _require_auth(settings, request)

        try:
            payload = await request.json()
        except ValueError:
            return _jsonrpc_error(None, -32700, "Parse error")
        if not isinstance(payload, dict):
            return _jsonrpc_error(None, -32600, "Invalid Request")

        id_ = payload.get("id")
        method = payload.get("method")
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            return _jsonrpc_error(id_, -32602, "Invalid params: expected an object")

        if method == "initialize":
            return _jsonrpc_result(id_, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
            })

        if method == "tools/list":
            return _jsonrpc_result(id_, list_tools_payload(dispatcher.registry))

        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                return _jsonrpc_error(id_, -32602, "Invalid params: tool name must be a string")
            args = params.get("arguments")
            client = f"http:{request.client.host}" if request.client else "http"
            try:
                result = dispatcher.invoke(name, args, client=client)
            except KeyError as ke:
                return _jsonrpc_error(id_, -32601, str(ke.args[0]) if ke.args else "Tool not found")
            return _jsonrpc_result(id_, result)

        return _jsonrpc_error(id_, -32601, f"Method not found: {method}")

    return app


def run_http(container: Container) -> None:
    import uvicorn

    settings = container.settings
    logger.info("serving MCP over HTTP on %s:%s%s", settings.MCP_HTTP_HOST, settings.MCP_HTTP_PORT,
                settings.MCP_HTTP_PATH)
    uvicorn.run(
        create_http_app(container),
        host=settings.MCP_HTTP_HOST,
        port=settings.MCP_HTTP_PORT,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    from fs_server.main import main

    main(transport="http")
