# fs_server/main.py
import logging
from typing import Optional

from fastmcp import FastMCP

from fs_app.di import Container, build_container
from fs_app.logging import configure_logging
from fs_server.dispatch import ToolDispatcher
from fs_server.registry import build_tool_registry, register_into_fastmcp

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> FastMCP:
    """FastMCP host for the stdio transport, sharing one dispatcher with HTTP."""
    container = container or build_container()
    dispatcher = ToolDispatcher(build_tool_registry(container), container.rate_limiter)

    mcp = FastMCP("filesystem-mcp-server", version="0.1.0")

    register_into_fastmcp(mcp, dispatcher)
    return mcp


def main(transport: Optional[str] = None) -> None:
    container = build_container()
    s = container.settings
    configure_logging(s.MCP_LOG_LEVEL, s.LOGS_DIR)
    if s.FS_BASE_DIRECTORY:
        logger.info("filesystem operations restricted to %s", s.FS_BASE_DIRECTORY)

    transport = transport or s.MCP_TRANSPORT_TYPE
    if transport == "http":
        from fs_server.http_app import run_http

        run_http(container)
        return

    app = create_app(container)
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")


if __name__ == "__main__":
    main()
