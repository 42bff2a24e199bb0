"""
Logging setup for the cart and wishlist engines.

Modules obtain loggers with get_logger(__name__). Anything the shopper
typed (line item ids carry size and color, coupon codes) goes through
the sanitize helpers before it reaches a log line.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Both remote backends (Supabase, Upstash) log every request through these
_NOISY_LOGGERS = ("httpx", "httpcore")

_CONTROL_CHARS = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": ""})


def configure_logging(level: str | None = None, production: bool | None = None) -> bool:
    """
    Attach a stdout handler to the root logger.

    Level defaults to LOG_LEVEL, format to the short one when
    BOUTIQUE_ENV=production. Host applications that already configured
    logging are left alone; returns whether a handler was installed.
    """
    root = logging.getLogger()
    if root.handlers:
        return False

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    if production is None:
        production = os.environ.get("BOUTIQUE_ENV") == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if production else LOG_FORMAT))
    root.setLevel(log_level)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return True


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _sanitize(value, max_length: int, suffix: str) -> str:
    if not value:
        return "N/A"
    safe_value = str(value).translate(_CONTROL_CHARS)  # CWE-117
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + suffix


def sanitize_id_for_logging(id_value: str | None, max_length: int = 24) -> str:
    """Escape and cut a line item or product id ("N/A" when empty)."""
    return _sanitize(id_value, max_length, "")


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Escape and cut free text such as coupon codes, marking the cut with "..."."""
    return _sanitize(value, max_length, "...")


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
