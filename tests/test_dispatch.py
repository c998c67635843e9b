# tests/test_dispatch.py
import json
from pathlib import Path

import pytest
from pydantic import BaseModel

from fs_app.context import RequestContext
from fs_app.di import build_container
from fs_app.errors import ErrorKind, McpError
from fs_server.dispatch import ToolDispatcher
from fs_server.registry import ToolRegistry, build_tool_registry, list_tools_payload

from conftest import make_settings

ALL_TOOLS = {
    "read_file", "write_file", "update_file", "delete_file",
    "list_files", "create_directory", "delete_directory",
    "move_path", "copy_path",
    "set_filesystem_default", "get_filesystem_default", "clear_filesystem_default",
}


@pytest.fixture
def dispatcher(container) -> ToolDispatcher:
    return ToolDispatcher(build_tool_registry(container), container.rate_limiter)


def _payload(resp):
    assert resp["isError"] is False, resp
    return json.loads(resp["content"][0]["text"])


def test_registry_lists_every_tool_with_schema(dispatcher: ToolDispatcher):
    tools = list_tools_payload(dispatcher.registry)["tools"]
    assert {t["name"] for t in tools} == ALL_TOOLS
    update = next(t for t in tools if t["name"] == "update_file")
    assert {"path", "blocks", "useRegex", "replaceAll"} <= set(update["inputSchema"]["properties"])


def test_unknown_tool_raises_key_error(dispatcher: ToolDispatcher):
    with pytest.raises(KeyError):
        dispatcher.invoke("format_disk", {})


def test_invalid_input_lists_every_violation(dispatcher: ToolDispatcher):
    with pytest.raises(McpError) as exc:
        dispatcher.call("write_file", {"path": ""})
    err = exc.value
    assert err.kind is ErrorKind.VALIDATION
    assert {e["field"] for e in err.context["errors"]} == {"path", "content"}

    resp = dispatcher.invoke("list_files", {"path": "/tmp", "maxEntries": 0})
    assert resp["isError"] is True
    assert resp["error"]["kind"] == "validation"
    assert "maxEntries" in resp["content"][0]["text"]


def test_non_object_arguments_are_validation_errors(dispatcher: ToolDispatcher):
    for bad in ([1, 2], "abc", 7):
        resp = dispatcher.invoke("read_file", bad)
        assert resp["isError"] is True
        assert resp["error"]["kind"] == "validation"
    with pytest.raises(McpError) as exc:
        dispatcher.call("read_file", [1, 2])
    assert exc.value.context["errors"][0]["field"] == "<root>"
    # missing arguments are treated as an empty object
    assert dispatcher.invoke("get_filesystem_default", None)["isError"] is False


def test_non_string_tool_name_is_unknown(dispatcher: ToolDispatcher):
    with pytest.raises(KeyError):
        dispatcher.invoke(["read_file"], {})


def test_write_then_read_roundtrip(dispatcher: ToolDispatcher, workdir: Path):
    target = str(workdir / "notes.txt")
    _payload(dispatcher.invoke("write_file", {"path": target, "content": "hello"}))
    assert _payload(dispatcher.invoke("read_file", {"path": target}))["content"] == "hello"


def test_relative_path_needs_default(dispatcher: ToolDispatcher, workdir: Path):
    resp = dispatcher.invoke("read_file", {"path": "notes.txt"})
    assert resp["isError"] is True
    assert "No default filesystem path" in resp["content"][0]["text"]

    out = _payload(dispatcher.invoke("set_filesystem_default", {"path": str(workdir)}))
    assert out["default_path"] == str(workdir)
    assert _payload(dispatcher.invoke("get_filesystem_default", {}))["default_path"] == str(workdir)

    _payload(dispatcher.invoke("write_file", {"path": "notes.txt", "content": "rel"}))
    assert (workdir / "notes.txt").read_text() == "rel"

    _payload(dispatcher.invoke("clear_filesystem_default", {}))
    assert _payload(dispatcher.invoke("get_filesystem_default", {}))["default_path"] is None


def test_set_default_requires_existing_absolute_directory(dispatcher: ToolDispatcher, workdir: Path):
    assert dispatcher.invoke("set_filesystem_default", {"path": "rel/dir"})["error"]["kind"] == "validation"
    missing = dispatcher.invoke("set_filesystem_default", {"path": str(workdir / "nope")})
    assert missing["error"]["kind"] == "not-found"
    (workdir / "file.txt").write_text("x")
    not_dir = dispatcher.invoke("set_filesystem_default", {"path": str(workdir / "file.txt")})
    assert not_dir["error"]["kind"] == "validation"


def test_filesystem_failures_are_classified(dispatcher: ToolDispatcher, workdir: Path):
    resp = dispatcher.invoke("read_file", {"path": str(workdir / "missing.txt")})
    assert resp["error"]["kind"] == "not-found"
    assert "Traceback" not in resp["content"][0]["text"]


def test_rate_limit_gate(workdir: Path):
    container = build_container(make_settings(RATE_LIMIT_MAX_REQUESTS=2))
    d = ToolDispatcher(build_tool_registry(container), container.rate_limiter)
    args = {"path": str(workdir)}
    assert d.invoke("list_files", args, client="c1")["isError"] is False
    assert d.invoke("list_files", args, client="c1")["isError"] is False
    blocked = d.invoke("list_files", args, client="c1")
    assert blocked["error"]["kind"] == "rate-limited"
    assert d.invoke("list_files", args, client="c2")["isError"] is False


class EchoIn(BaseModel):
    value: int


def test_each_call_gets_a_fresh_request_context():
    seen = []
    reg = ToolRegistry()

    @reg.tool(name="echo", description="echo")
    def echo(input: EchoIn, ctx: RequestContext):
        seen.append(ctx)
        return input.value

    d = ToolDispatcher(reg)
    assert d.invoke("echo", {"value": 1}) == {"content": [{"type": "text", "text": "1"}], "isError": False}
    d.invoke("echo", {"value": 2}, client="http:127.0.0.1")
    assert seen[0].request_id != seen[1].request_id
    assert seen[1].tool_name == "echo"
    assert seen[1].client == "http:127.0.0.1"


def test_unexpected_handler_errors_become_internal():
    reg = ToolRegistry()

    @reg.tool(name="boom", description="fails")
    def boom(input: EchoIn, ctx: RequestContext):
        raise RuntimeError("kaput")

    resp = ToolDispatcher(reg).invoke("boom", {"value": 1})
    assert resp["error"] == {"kind": "internal", "message": "boom failed: kaput"}


def test_registry_requires_input_model():
    reg = ToolRegistry()
    with pytest.raises(TypeError):
        @reg.tool(name="bad", description="no model")
        def bad(input: dict, ctx: RequestContext):
            return None
