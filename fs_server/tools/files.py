# fs_server/tools/files.py
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from fs_app.context import RequestContext
from fs_app.services.filesystem import FileSystemService

PATH_HELP = "Absolute path, or relative to the session default set via set_filesystem_default"


class ReadFileIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)


class WriteFileIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)
    content: str = Field(..., description="UTF-8 text content to write")


class DiffBlock(BaseModel):
    search: str = Field(..., min_length=1, description="Exact text (or regex) to find")
    replace: str = Field(..., description="Replacement text")


class UpdateFileIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)
    blocks: List[DiffBlock] = Field(..., min_length=1, description="Search/replace blocks, applied in order")
    useRegex: bool = Field(False, description="Treat each 'search' as a regular expression")
    replaceAll: bool = Field(False, description="Replace every occurrence instead of the first")


class DeleteFileIn(BaseModel):
    path: str = Field(..., min_length=1, description=PATH_HELP)


def register_file_tools(registry, fs_service: FileSystemService):
    """
    Very thin tool adapters:
    - inputs arrive validated (Pydantic) from the dispatcher
    - call the service (business logic + security)
    - return the result
    """

    @registry.tool(name="read_file", description="Read the full UTF-8 content of a file")
    def read_file(input: ReadFileIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.read_text(input.path, ctx=ctx)

    @registry.tool(
        name="write_file",
        description="Write text to a file, creating parent directories and overwriting existing content",
    )
    def write_file(input: WriteFileIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.write_text(input.path, input.content, ctx=ctx)

    @registry.tool(
        name="update_file",
        description="Apply targeted search/replace blocks to an existing file (literal or regex)",
    )
    def update_file(input: UpdateFileIn, ctx: RequestContext) -> Dict[str, Any]:
        blocks = [b.model_dump() for b in input.blocks]
        return fs_service.update_text(
            input.path, blocks, use_regex=input.useRegex, replace_all=input.replaceAll, ctx=ctx
        )

    @registry.tool(name="delete_file", description="Delete a single file")
    def delete_file(input: DeleteFileIn, ctx: RequestContext) -> Dict[str, Any]:
        return fs_service.delete_file(input.path, ctx=ctx)
