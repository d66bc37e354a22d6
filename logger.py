"""
logger.py

Responsibility: Configures the process-wide logging format and provides the
only sanctioned way to render secrets in log lines.
Does NOT: write log files, store audit entries, or ship logs anywhere.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """
    Installs the application log format on the root logger.

    Safe to call more than once; later calls only adjust the level.

    Args:
        level: A logging level name such as "DEBUG" or "INFO".

    Returns:
        None
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # httpx logs every request line at INFO, which includes signed query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask_secret(value: str | None) -> str:
    """
    Renders a secret for logging, keeping only its first and last characters.

    Args:
        value: The secret string (may be None or empty).

    Returns:
        A masked representation, e.g. "AK***9z", or "<empty>".
    """
    if not value:
        return "<empty>"
    if len(value) <= 6:
        return "***"
    return f"{value[:2]}***{value[-2:]}"


def describe_secrets(secrets: Mapping[str, str]) -> str:
    """
    Renders a secrets mapping with every value masked.

    Args:
        secrets: Mapping of secret field name to value.

    Returns:
        A string like "{secretId=AK***9z, secretKey=ab***cd}".
    """
    parts = [f"{key}={mask_secret(val)}" for key, val in sorted(secrets.items())]
    return "{" + ", ".join(parts) + "}"
