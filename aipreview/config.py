from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


DEFAULT_MODEL_ID = "gemini-2.0-flash"
PRO_MODEL_ID = "gemini-2.5-pro"


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or "").strip()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except (TypeError, ValueError):
        return default


class Settings(BaseModel):
    """Snapshot of the environment used to wire the gateway, cache and service."""

    model_config = ConfigDict(frozen=True)

    project_id: str = ""
    location: str = "us-central1"
    credentials_path: Optional[str] = None
    default_model: str = DEFAULT_MODEL_ID
    cache_ttl_seconds: int = 3600
    cache_check_period_seconds: int = 600
    cache_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    retry_delay_seconds: float = 2.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from the process environment.

        ``env_file`` (default ``./.env``, skipped while pytest runs) only fills
        variables that are not already set.
        """
        if env_file is None and not os.getenv("PYTEST_CURRENT_TEST"):
            env_file = ".env"
        if env_file:
            load_dotenv(env_file, override=False)
        creds = _env_str("GOOGLE_APPLICATION_CREDENTIALS") or _env_str("SERVICE_ACCOUNT_PATH")
        return cls(
            project_id=_env_str("GCP_PROJECT_ID"),
            location=_env_str("GCP_LOCATION", "us-central1") or "us-central1",
            credentials_path=creds or None,
            default_model=_env_str("VERTEX_AI_MODEL", DEFAULT_MODEL_ID) or DEFAULT_MODEL_ID,
            cache_ttl_seconds=_env_int("CACHE_TTL_SECONDS", 3600),
            cache_check_period_seconds=_env_int("CACHE_CHECK_PERIOD_SECONDS", 600),
            cache_backend=(_env_str("CACHE_BACKEND", "memory") or "memory").lower(),
            redis_url=_env_str("REDIS_URL", "redis://localhost:6379/0"),
            retry_delay_seconds=_env_float("RATE_LIMIT_RETRY_DELAY_SECS", 2.0),
            log_level=_env_str("LOG_LEVEL", "INFO").upper() or "INFO",
        )


def configure_logging(level: str = "INFO") -> None:
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
