# fs_server/registry.py
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Type, get_type_hints

from pydantic import BaseModel

from fs_app.context import RequestContext
from fs_app.di import Container
from fs_app.errors import McpError


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel, RequestContext], Any]


class ToolRegistry:
    """
    Name -> ToolSpec map with a FastMCP-style decorator, so tool modules
    declare handlers once and every transport reads from here.
    """

    def __init__(self):
        self._specs: Dict[str, ToolSpec] = {}

    def tool(self, *, name: str, description: str, input_model: Optional[Type[BaseModel]] = None):
        def decorator(fn: Callable[[BaseModel, RequestContext], Any]):
            model = input_model or get_type_hints(fn).get("input")
            if model is None or not issubclass(model, BaseModel):
                raise TypeError(f"Tool {name} needs a pydantic model for its 'input' parameter")
            if name in self._specs:
                raise ValueError(f"Tool already registered: {name}")
            self._specs[name] = ToolSpec(name, description, model, fn)
            return fn
        return decorator

    def get(self, name: str) -> ToolSpec:
        if not isinstance(name, str) or name not in self._specs:
            raise KeyError(f"Tool not found: {name}")
        return self._specs[name]

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._specs.values())


def _schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    return model.model_json_schema()


def build_tool_registry(container: Container) -> ToolRegistry:
    """
    All filesystem and session tools, bound to the container's services.
    Both transports expose exactly this set.
    """
    from fs_server.tools.directories import register_directory_tools
    from fs_server.tools.files import register_file_tools
    from fs_server.tools.session import register_session_tools
    from fs_server.tools.transfer import register_transfer_tools

    reg = ToolRegistry()
    register_file_tools(reg, container.fs_service)
    register_directory_tools(reg, container.fs_service)
    register_transfer_tools(reg, container.fs_service)
    register_session_tools(reg, container.session)
    return reg


def list_tools_payload(registry: ToolRegistry) -> Dict[str, Any]:
    """Body of a `tools/list` response; input schemas come from the pydantic models."""
    tools = []
    for spec in registry:
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": _schema_from_model(spec.input_model),
        })
    return {"tools": tools}


def register_into_fastmcp(mcp, dispatcher) -> None:
    """
    Mirror the dispatcher's tools into a FastMCP host. A classified
    failure reaches the client as ToolError carrying only its message.
    """
    from fastmcp.exceptions import ToolError

    for spec in dispatcher.registry:
        # one closure per tool, each bound to its own spec
        def make_tool(spec: ToolSpec):
            def tool_handler(input: spec.input_model):
                try:
                    return dispatcher.call(spec.name, input.model_dump(), client="stdio")
                except McpError as e:
                    raise ToolError(e.message) from e
            tool_handler.__name__ = spec.name
            return tool_handler

        mcp.tool(name=spec.name, description=spec.description)(make_tool(spec))
