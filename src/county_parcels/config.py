from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple


DEFAULT_DB_PATH = "./parcels.sqlite"
DEFAULT_API_URL = "http://localhost:3001/api/v1"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return max(minimum, value)


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    items = [part.strip().rstrip("/") for part in str(raw).split(",")]
    return tuple(item for item in items if item)


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the API server, CLI and map viewer client.

    Every value comes from a ``PARCELS_*`` environment variable; defaults
    match a local development setup.
    """

    db_path: str
    environment: str
    cors_origins: Tuple[str, ...]
    rate_limit_enabled: bool
    rate_limit_per_minute: int
    rate_limit_burst: int
    search_limit: int
    api_url: str
    log_level: str
    log_json: bool

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=(os.getenv("PARCELS_DB_PATH") or "").strip() or DEFAULT_DB_PATH,
            environment=(os.getenv("PARCELS_ENV") or "development").strip().lower(),
            cors_origins=_env_list("PARCELS_CORS_ORIGINS", ("http://localhost:5173",)),
            rate_limit_enabled=_env_bool("PARCELS_RATE_LIMIT", True),
            rate_limit_per_minute=_env_int("PARCELS_RATE_LIMIT_PER_MIN", 300, minimum=1),
            rate_limit_burst=_env_int("PARCELS_RATE_LIMIT_BURST", 60, minimum=1),
            search_limit=_env_int("PARCELS_SEARCH_LIMIT", 100, minimum=1),
            api_url=((os.getenv("PARCELS_API_URL") or "").strip() or DEFAULT_API_URL).rstrip("/"),
            log_level=(os.getenv("PARCELS_LOG_LEVEL") or "INFO").strip().upper(),
            log_json=_env_bool("PARCELS_LOG_JSON", False),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
