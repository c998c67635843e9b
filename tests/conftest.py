# tests/conftest.py
from pathlib import Path

import pytest

from fs_app.config import Settings
from fs_app.di import build_container


def make_settings(**overrides) -> Settings:
    values = dict(
        FS_BASE_DIRECTORY=None,
        LOGS_DIR=None,
        REDIS_URL=None,
        MCP_LOG_LEVEL="debug",
        MCP_HTTP_BEARER_TOKEN="test-token",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def container(settings):
    return build_container(settings)


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    d = tmp_path / "work"
    d.mkdir()
    return d
