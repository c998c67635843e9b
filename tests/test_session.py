# tests/test_session.py
import os

import pytest

from fs_app.context import create_request_context
from fs_app.errors import ErrorKind, McpError
from fs_app.services.session import SessionState

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX path fixtures")


def test_relative_without_default_fails():
    s = SessionState()
    with pytest.raises(McpError) as exc:
        s.resolve_path("a/b")
    assert exc.value.kind is ErrorKind.VALIDATION
    assert exc.value.context["reason"] == "no_default_path"


def test_relative_resolves_against_default():
    s = SessionState()
    s.set_default_path("/base", create_request_context("test"))
    assert s.resolve_path("a/b") == "/base/a/b"


def test_absolute_resolution_is_idempotent():
    s = SessionState()
    once = s.resolve_path("/x/./y//z")
    assert once == "/x/y/z"
    assert s.resolve_path(once) == once


def test_set_get_roundtrip_returns_sanitized_form():
    s = SessionState()
    assert s.get_default_path() is None
    assert s.set_default_path("/base//dir/") == "/base/dir"
    assert s.get_default_path() == "/base/dir"


def test_set_overwrites_and_clear_is_idempotent():
    s = SessionState()
    s.set_default_path("/one")
    s.set_default_path("/two")
    assert s.get_default_path() == "/two"
    s.clear_default_path()
    s.clear_default_path()
    assert s.get_default_path() is None


@pytest.mark.parametrize("bad", ["relative/dir", "", "/a\x00b"])
def test_set_rejects_relative_or_malformed(bad):
    s = SessionState()
    with pytest.raises(McpError) as exc:
        s.set_default_path(bad)
    assert exc.value.kind is ErrorKind.VALIDATION
    assert s.get_default_path() is None


def test_relative_traversal_out_of_default_fails():
    s = SessionState()
    s.set_default_path("/base")
    with pytest.raises(McpError) as exc:
        s.resolve_path("sub/../../etc/passwd")
    assert exc.value.kind is ErrorKind.VALIDATION


def test_base_directory_is_enforced():
    s = SessionState(base_directory="/srv/data")
    with pytest.raises(McpError) as exc:
        s.resolve_path("/etc/passwd")
    assert exc.value.kind is ErrorKind.FORBIDDEN
    assert exc.value.context["resolved_path"] == "/etc/passwd"

    with pytest.raises(McpError) as exc:
        s.set_default_path("/tmp")
    assert exc.value.kind is ErrorKind.FORBIDDEN

    s.set_default_path("/srv/data/project")
    assert s.resolve_path("src/main.py") == "/srv/data/project/src/main.py"
    assert s.resolve_path("/srv/data") == "/srv/data"
