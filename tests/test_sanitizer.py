# tests/test_sanitizer.py
import os

import pytest

from fs_app.errors import ErrorKind, McpError
from fs_app.services.sanitizer import sanitize_path

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX path fixtures")


def _rejects(*args, **kwargs) -> McpError:
    with pytest.raises(McpError) as exc:
        sanitize_path(*args, **kwargs)
    assert exc.value.kind is ErrorKind.VALIDATION
    return exc.value


def test_relative_input_is_anchored_at_root():
    res = sanitize_path("sub/./y", root_dir="/sandbox")
    assert res.sanitized_path == "/sandbox/sub/y"
    assert res.was_absolute is False
    assert res.root_dir == "/sandbox"
    assert res.original_input == "sub/./y"


def test_redundant_separators_collapse():
    assert sanitize_path("a//b///c/", root_dir="/sandbox").sanitized_path == "/sandbox/a/b/c"


def test_traversal_out_of_root_rejected():
    err = _rejects("sub/../../x", root_dir="/sandbox")
    assert err.context["path"] == "sub/../../x"
    _rejects("../sandbox2/x", root_dir="/sandbox")
    _rejects("..", root_dir="/sandbox")


def test_traversal_that_stays_inside_root_is_fine():
    assert sanitize_path("a/../b", root_dir="/sandbox").sanitized_path == "/sandbox/b"
    assert sanitize_path(".", root_dir="/sandbox").sanitized_path == "/sandbox"


def test_absolute_outside_root_rejected_without_allow_absolute():
    _rejects("/etc/passwd", root_dir="/sandbox", allow_absolute=False)


def test_sibling_with_common_prefix_is_outside_root():
    _rejects("/sandboxed/file", root_dir="/sandbox")


def test_absolute_inside_root_accepted():
    res = sanitize_path("/sandbox/a/../b", root_dir="/sandbox")
    assert res.sanitized_path == "/sandbox/b"
    assert res.was_absolute is True


def test_absolute_allowed_bypasses_root():
    assert sanitize_path("/etc/passwd", root_dir="/sandbox", allow_absolute=True).sanitized_path == "/etc/passwd"


def test_empty_and_null_byte_rejected():
    _rejects("")
    _rejects("   ")
    _rejects("a\x00b", root_dir="/sandbox")
    _rejects(None)


def test_no_root_rules():
    assert sanitize_path("a/../b").sanitized_path == "b"
    assert sanitize_path("/a//b/./c", allow_absolute=True).sanitized_path == "/a/b/c"
    _rejects("../x")
    _rejects("/abs/path")


def test_to_posix_is_noop_on_posix():
    res = sanitize_path("a/b", root_dir="/sandbox", to_posix=True)
    assert res.sanitized_path == "/sandbox/a/b"
    assert res.converted_to_posix is False
