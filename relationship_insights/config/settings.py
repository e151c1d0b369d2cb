"""
Runtime settings loaded from environment variables and the project .env.

- INSIGHTS_DB_URL / DATABASE_URL: SQLAlchemy URL for the rating store
- INSIGHTS_DB_PATH: SQLite file when no URL is set (default: insights.db)
- NARRATIVE_API_URL: text-generation endpoint (unset disables enrichment)
- NARRATIVE_API_KEY: optional bearer token for the endpoint
- NARRATIVE_TEMPERATURE, NARRATIVE_MAX_CONCURRENCY, NARRATIVE_TIMEOUT_SEC,
  NARRATIVE_MAX_RETRIES, NARRATIVE_RETRY_BACKOFF_SEC, NARRATIVE_DEADLINE_SEC
- RECOMPUTE_INTERVAL_SEC, RECOMPUTE_BATCH_SIZE, RECOMPUTE_CONCURRENCY,
  RECOMPUTE_MAX_ATTEMPTS: queue worker tuning
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_SQLITE_PATH = "insights.db"
DEFAULT_NARRATIVE_TEMPERATURE = 0.7
DEFAULT_NARRATIVE_CONCURRENCY = 4
DEFAULT_NARRATIVE_TIMEOUT_SEC = 20.0
DEFAULT_NARRATIVE_MAX_RETRIES = 2
DEFAULT_NARRATIVE_BACKOFF_SEC = 0.5
DEFAULT_NARRATIVE_DEADLINE_SEC = 60.0
DEFAULT_RECOMPUTE_INTERVAL_SEC = 300.0
DEFAULT_RECOMPUTE_BATCH_SIZE = 50
DEFAULT_RECOMPUTE_CONCURRENCY = 4
DEFAULT_RECOMPUTE_MAX_ATTEMPTS = 3


def load_insights_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    load_dotenv(_ENV_PATH)


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_database_url() -> str:
    """Return INSIGHTS_DB_URL or DATABASE_URL if set; else SQLite from INSIGHTS_DB_PATH or default."""
    load_insights_env()
    url = (os.getenv("INSIGHTS_DB_URL") or os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("INSIGHTS_DB_PATH") or "").strip() or DEFAULT_SQLITE_PATH
    return f"sqlite:///{path}"


@dataclass(frozen=True)
class Settings:
    """Typed view of the environment for the store, narrative client and worker."""

    database_url: str
    narrative_api_url: str | None = None
    narrative_api_key: str | None = None
    narrative_temperature: float = DEFAULT_NARRATIVE_TEMPERATURE
    narrative_max_concurrency: int = DEFAULT_NARRATIVE_CONCURRENCY
    narrative_timeout_sec: float = DEFAULT_NARRATIVE_TIMEOUT_SEC
    narrative_max_retries: int = DEFAULT_NARRATIVE_MAX_RETRIES
    narrative_retry_backoff_sec: float = DEFAULT_NARRATIVE_BACKOFF_SEC
    narrative_deadline_sec: float = DEFAULT_NARRATIVE_DEADLINE_SEC
    recompute_interval_sec: float = DEFAULT_RECOMPUTE_INTERVAL_SEC
    recompute_batch_size: int = DEFAULT_RECOMPUTE_BATCH_SIZE
    recompute_concurrency: int = DEFAULT_RECOMPUTE_CONCURRENCY
    recompute_max_attempts: int = DEFAULT_RECOMPUTE_MAX_ATTEMPTS

    @property
    def narrative_enabled(self) -> bool:
        return bool(self.narrative_api_url)


def load_settings() -> Settings:
    """Build Settings from the environment (after loading .env)."""
    load_insights_env()
    return Settings(
        database_url=get_database_url(),
        narrative_api_url=(os.getenv("NARRATIVE_API_URL") or "").strip() or None,
        narrative_api_key=(os.getenv("NARRATIVE_API_KEY") or "").strip() or None,
        narrative_temperature=_env_float("NARRATIVE_TEMPERATURE", DEFAULT_NARRATIVE_TEMPERATURE),
        narrative_max_concurrency=_env_int("NARRATIVE_MAX_CONCURRENCY", DEFAULT_NARRATIVE_CONCURRENCY),
        narrative_timeout_sec=_env_float("NARRATIVE_TIMEOUT_SEC", DEFAULT_NARRATIVE_TIMEOUT_SEC),
        narrative_max_retries=_env_int("NARRATIVE_MAX_RETRIES", DEFAULT_NARRATIVE_MAX_RETRIES),
        narrative_retry_backoff_sec=_env_float("NARRATIVE_RETRY_BACKOFF_SEC", DEFAULT_NARRATIVE_BACKOFF_SEC),
        narrative_deadline_sec=_env_float("NARRATIVE_DEADLINE_SEC", DEFAULT_NARRATIVE_DEADLINE_SEC),
        recompute_interval_sec=_env_float("RECOMPUTE_INTERVAL_SEC", DEFAULT_RECOMPUTE_INTERVAL_SEC),
        recompute_batch_size=_env_int("RECOMPUTE_BATCH_SIZE", DEFAULT_RECOMPUTE_BATCH_SIZE),
        recompute_concurrency=_env_int("RECOMPUTE_CONCURRENCY", DEFAULT_RECOMPUTE_CONCURRENCY),
        recompute_max_attempts=_env_int("RECOMPUTE_MAX_ATTEMPTS", DEFAULT_RECOMPUTE_MAX_ATTEMPTS),
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the cached application settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings_for_test() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
