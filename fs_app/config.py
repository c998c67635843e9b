# fs_app/config.py
from pathlib import Path
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from fs_app.logging import parse_level


class Settings(BaseSettings):
    # Filesystem: optional hard root for every operation (absolute)
    FS_BASE_DIRECTORY: Optional[Path] = None

    # Transport selection
    MCP_TRANSPORT_TYPE: Literal["stdio", "http"] = "stdio"

    # HTTP MCP transport
    MCP_HTTP_HOST: str = "127.0.0.1"
    MCP_HTTP_PORT: int = 3010
    MCP_HTTP_PATH: str = "/mcp"

    # Security: Bearer token and allowed origins
    MCP_HTTP_BEARER_TOKEN: str = "change-me"         # set in .env for prod
    MCP_HTTP_ALLOWED_ORIGINS: str = "http://localhost, http://127.0.0.1"
    MCP_HTTP_ALLOW_NO_ORIGIN: bool = True            # allow non-browser clients

    # Logging
    MCP_LOG_LEVEL: str = "debug"
    LOGS_DIR: Optional[Path] = Path("./logs")

    ENVIRONMENT: str = "development"

    # Rate limiting (fixed window, per client)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SEC: float = 900.0
    RATE_LIMIT_MAX_REQUESTS: int = 1000
    RATE_LIMIT_SKIP_IN_DEVELOPMENT: bool = False

    # Redis (optional) backs the rate limiter when set
    REDIS_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("FS_BASE_DIRECTORY", "LOGS_DIR", "REDIS_URL", mode="before")
    @classmethod
    def _blank_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("FS_BASE_DIRECTORY")
    @classmethod
    def _base_dir_absolute(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.is_absolute():
            raise ValueError("FS_BASE_DIRECTORY must be an absolute path")
        return v

    @field_validator("MCP_LOG_LEVEL")
    @classmethod
    def _known_level(cls, v: str) -> str:
        parse_level(v)
        return v.strip().lower()

    @field_validator("RATE_LIMIT_WINDOW_SEC", "RATE_LIMIT_MAX_REQUESTS")
    @classmethod
    def _positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v
