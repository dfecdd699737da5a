"""Process-wide logging setup."""

from __future__ import annotations

import logging
import os

# Per-request INFO lines from the HTTP client drown out ingestion logs.
_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str | None = None) -> None:
    if logging.getLogger().handlers:
        return

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level_name,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
