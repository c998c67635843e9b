# fs_app/di.py
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from fs_app.config import Settings
from fs_app.errors import ErrorKind, McpError, validation_issues
from fs_app.services.filesystem import FileSystemService
from fs_app.services.ratelimit import MemoryRateBackend, RateLimiter, RedisRateBackend
from fs_app.services.session import SessionState


@dataclass
class Container:
    settings: Settings
    session: SessionState
    fs_service: FileSystemService
    rate_limiter: RateLimiter


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        raise McpError(
            ErrorKind.CONFIGURATION,
            "Invalid server configuration",
            {"errors": validation_issues(e)},
        ) from e


def build_container(settings: Optional[Settings] = None) -> Container:
    s = settings or load_settings()

    base = str(s.FS_BASE_DIRECTORY) if s.FS_BASE_DIRECTORY else None
    session = SessionState(base_directory=base)
    fs = FileSystemService(session)

    backend = RedisRateBackend(s.REDIS_URL) if s.REDIS_URL else MemoryRateBackend()
    skip = not s.RATE_LIMIT_ENABLED or (
        s.RATE_LIMIT_SKIP_IN_DEVELOPMENT and s.ENVIRONMENT == "development"
    )
    limiter = RateLimiter(
        window_sec=s.RATE_LIMIT_WINDOW_SEC,
        max_requests=s.RATE_LIMIT_MAX_REQUESTS,
        backend=backend,
        skip=skip,
    )

    return Container(s, session, fs, limiter)
