# fs_server/tools/session.py
import os
from typing import Any, Dict

from pydantic import BaseModel, Field

from fs_app.context import RequestContext
from fs_app.errors import ErrorKind, McpError
from fs_app.services.session import SessionState


class SetDefaultIn(BaseModel):
    path: str = Field(..., min_length=1, description="Absolute path of an existing directory")


class NoArgsIn(BaseModel):
    pass


def register_session_tools(registry, session: SessionState):
    @registry.tool(
        name="set_filesystem_default",
        description="Set the session default directory that relative paths resolve against",
    )
    def set_filesystem_default(input: SetDefaultIn, ctx: RequestContext) -> Dict[str, Any]:
        # Lexical checks first so relative input fails before any stat
        resolved = session.check_default_path(input.path)
        if not os.path.exists(resolved):
            raise McpError(ErrorKind.NOT_FOUND, f"Directory not found: {resolved}", {"path": input.path})
        if not os.path.isdir(resolved):
            raise McpError(ErrorKind.VALIDATION, f"Path is not a directory: {resolved}", {"path": input.path})
        current = session.set_default_path(resolved, ctx)
        return {"message": f"Default filesystem path set to {current}", "default_path": current}

    @registry.tool(name="get_filesystem_default", description="Show the current session default directory")
    def get_filesystem_default(input: NoArgsIn, ctx: RequestContext) -> Dict[str, Any]:
        return {"default_path": session.get_default_path()}

    @registry.tool(name="clear_filesystem_default", description="Clear the session default directory")
    def clear_filesystem_default(input: NoArgsIn, ctx: RequestContext) -> Dict[str, Any]:
        session.clear_default_path(ctx)
        return {"message": "Default filesystem path cleared", "default_path": None}
