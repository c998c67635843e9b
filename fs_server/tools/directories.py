# fs_server/tools/directories.py
from typing import Any, Dict

from pydantic import BaseModel, Field

from fs_app.context import RequestContext
from fs_app.services.filesystem import FileSystemService
from fs_server.tools.files import PATH_HELP


class ListFilesIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)
    includeNested: bool = Field(False, description="Recurse into subdirectories")
    maxEntries: int = Field(50, ge=1, le=10_000, description="Stop listing after this many entries")


class CreateDirectoryIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)
    create_parents: bool = Field(True, description="Create missing parents (mkdir -p); existing directory is fine")


class DeleteDirectoryIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)
    recursive: bool = Field(False, description="Delete contents too; required for non-empty directories")


def register_directory_tools(registry, fs_service: FileSystemService):
    @registry.tool(
        name="list_files",
        description="List a directory as an indented tree (directories first), optionally recursive",
    )
    def list_files(input: ListFilesIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.list_tree(
            input.path, include_nested=input.includeNested, max_entries=input.maxEntries, ctx=ctx
        )

    @registry.tool(name="create_directory", description="Create a directory")
    def create_directory(input: CreateDirectoryIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.create_directory(input.path, create_parents=input.create_parents, ctx=ctx)

    @registry.tool(name="delete_directory", description="Delete a directory (recursive=true for non-empty)")
    def delete_directory(input: DeleteDirectoryIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.delete_directory(input.path, recursive=input.recursive, ctx=ctx)
