"""
config.py

Responsibility: Loads runtime settings for the DNS core from environment
variables into one immutable Settings object.
Does NOT: read credentials, touch the database, or make HTTP calls.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings consulted by the application lifespan and services.

    Loaded once at startup via load_settings(); tests build their own
    instance directly instead of touching the environment.
    """

    # SQLite file holding stored credentials. /config is the Docker volume.
    db_path: str = "/config/dns.db"

    # Per-call timeout applied to the shared httpx.AsyncClient
    http_timeout: float = 15.0

    # Seconds a resolved adapter stays in the AdapterCache
    adapter_cache_ttl: float = 300.0

    # Exponential backoff schedule used by with_retry
    retry_base_delay: float = 0.5
    retry_max_delay: float = 8.0

    log_level: str = "INFO"


def _float_env(name: str, default: float) -> float:
    """
    Reads a float from the environment, falling back to the default.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset or not a number.

    Returns:
        The parsed value, or the default.
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid value for %s=%r; using default %s.", name, raw, default)
        return default
    if value < 0:
        logger.warning("Negative value for %s=%r; using default %s.", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    """
    Builds a Settings instance from the current environment.

    Returns:
        A frozen Settings object.
    """
    defaults = Settings()
    return Settings(
        db_path=os.getenv("DB_PATH", defaults.db_path),
        http_timeout=_float_env("DNS_HTTP_TIMEOUT", defaults.http_timeout),
        adapter_cache_ttl=_float_env("DNS_ADAPTER_CACHE_TTL", defaults.adapter_cache_ttl),
        retry_base_delay=_float_env("DNS_RETRY_BASE_DELAY", defaults.retry_base_delay),
        retry_max_delay=_float_env("DNS_RETRY_MAX_DELAY", defaults.retry_max_delay),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
    )
