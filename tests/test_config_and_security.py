import json
import logging

import pytest

from county_parcels.api.ratelimit import RateLimiter, TokenBucket
from county_parcels.config import Settings, get_settings, reset_settings_cache
from county_parcels.logs import JsonLineFormatter, log_event
from county_parcels.security import collapse_whitespace, like_pattern, sanitize_text


_ENV_KEYS = [
    "PARCELS_DB_PATH",
    "PARCELS_ENV",
    "PARCELS_CORS_ORIGINS",
    "PARCELS_RATE_LIMIT",
    "PARCELS_RATE_LIMIT_PER_MIN",
    "PARCELS_RATE_LIMIT_BURST",
    "PARCELS_SEARCH_LIMIT",
    "PARCELS_API_URL",
    "PARCELS_LOG_LEVEL",
    "PARCELS_LOG_JSON",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_settings_cache()
    yield monkeypatch
    reset_settings_cache()


def test_settings_defaults(clean_env):
    s = Settings.from_env()
    assert s.db_path == "./parcels.sqlite"
    assert s.environment == "development"
    assert s.is_development
    assert s.cors_origins == ("http://localhost:5173",)
    assert s.rate_limit_enabled is True
    assert (s.rate_limit_per_minute, s.rate_limit_burst) == (300, 60)
    assert s.search_limit == 100
    assert s.api_url == "http://localhost:3001/api/v1"
    assert s.log_json is False


def test_settings_from_env(clean_env):
    clean_env.setenv("PARCELS_ENV", "Production")
    clean_env.setenv("PARCELS_CORS_ORIGINS", "https://a.example/, ,https://b.example")
    clean_env.setenv("PARCELS_RATE_LIMIT", "off")
    clean_env.setenv("PARCELS_RATE_LIMIT_PER_MIN", "not-a-number")
    clean_env.setenv("PARCELS_SEARCH_LIMIT", "0")
    clean_env.setenv("PARCELS_LOG_JSON", "yes")
    s = Settings.from_env()
    assert s.environment == "production"
    assert not s.is_development
    assert s.cors_origins == ("https://a.example", "https://b.example")
    assert s.rate_limit_enabled is False
    assert s.rate_limit_per_minute == 300
    assert s.search_limit == 1
    assert s.log_json is True


def test_get_settings_is_cached_until_reset(clean_env):
    first = get_settings()
    clean_env.setenv("PARCELS_DB_PATH", "/tmp/other.sqlite")
    assert get_settings() is first
    reset_settings_cache()
    assert get_settings().db_path == "/tmp/other.sqlite"


def test_sanitize_text():
    assert sanitize_text("  <b>Main</b> St\x00 ") == "bMain/b St"
    assert sanitize_text("ＭＡＩＮ") == "ＭＡＩＮ"
    assert sanitize_text(42) == 42
    assert like_pattern(" oak ") == "%oak%"
    assert collapse_whitespace("  77  PINE \t ST ") == "77 PINE ST"
    assert collapse_whitespace(None) is None


def test_token_bucket_refills_over_time():
    now = [0.0]
    bucket = TokenBucket(rate_per_sec=1.0, capacity=2.0, clock=lambda: now[0])
    assert bucket.take() == 0.0
    assert bucket.take() == 0.0
    assert bucket.take() == pytest.approx(1.0)
    now[0] = 1.0
    assert bucket.take() == 0.0


def test_rate_limiter_is_per_client():
    now = [0.0]
    limiter = RateLimiter(per_minute=60, burst=1, clock=lambda: now[0])
    assert limiter.applies_to("/api/v1/parcels/search")
    assert not limiter.applies_to("/health")
    assert limiter.check("a") == 0.0
    assert limiter.check("a") > 0.0
    assert limiter.check("b") == 0.0


def test_json_line_formatter_merges_event_fields():
    logger = logging.getLogger("parcels.test")
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = _Collect()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    try:
        log_event(logger, "keyword_search", mode="parno", results=3)
    finally:
        logger.removeHandler(handler)

    assert json.loads(records[0].getMessage()) == {"event": "keyword_search", "mode": "parno", "results": 3}
    line = json.loads(JsonLineFormatter().format(records[0]))
    assert line["event"] == "keyword_search"
    assert line["logger"] == "parcels.test"
    assert line["level"] == "INFO"
    assert "message" not in line
