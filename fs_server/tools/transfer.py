# fs_server/tools/transfer.py
from typing import Any, Dict

from pydantic import BaseModel, Field

from fs_app.context import RequestContext
from fs_app.services.filesystem import FileSystemService
from fs_server.tools.files import PATH_HELP


class MovePathIn(BaseModel):
    source_path: str = Field(..., min_length=1, description=PATH_HELP)
    destination_path: str = Field(..., min_length=1, description="Target path; must not exist yet")


class CopyPathIn(BaseModel):
    source_path: str = Field(..., min_length=1, description=PATH_HELP)
    destination_path: str = Field(..., min_length=1, description="Target path; must not exist yet")
    recursive: bool = Field(True, description="Required to copy a directory")


def register_transfer_tools(registry, fs_service: FileSystemService):
    @registry.tool(name="move_path", description="Move or rename a file or directory")
    def move_path(input: MovePathIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.move_path(input.source_path, input.destination_path, ctx=ctx)

    @registry.tool(name="copy_path", description="Copy a file or directory")
    def copy_path(input: CopyPathIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.copy_path(
            input.source_path, input.destination_path, recursive=input.recursive, ctx=ctx
        )
