"""Tests for logging helpers"""
import logging

from boutique.logging import (
    LOG_FORMAT_SIMPLE,
    configure_logging,
    get_logger,
    sanitize_id_for_logging,
    sanitize_string_for_logging,
)


def test_get_logger_is_cached():
    assert get_logger("boutique.cart") is get_logger("boutique.cart")
    assert isinstance(get_logger("boutique.cart"), logging.Logger)


def test_sanitize_id_escapes_newlines():
    assert sanitize_id_for_logging("p1-M\nFAKE") == "p1-M\\nFAKE"


def test_sanitize_id_truncates():
    assert sanitize_id_for_logging("x" * 40) == "x" * 24


def test_sanitize_empty():
    assert sanitize_id_for_logging(None) == "N/A"
    assert sanitize_string_for_logging("") == "N/A"


def test_sanitize_string_truncates_with_ellipsis():
    assert sanitize_string_for_logging("a" * 60, max_length=10) == "a" * 10 + "..."


def test_sanitize_id_strips_null_bytes():
    assert sanitize_id_for_logging("p1\x00\r") == "p1\\r"


def test_configure_logging_respects_existing_handlers(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])

    assert configure_logging() is False
    assert len(root.handlers) == 1


def test_configure_logging_production_format(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    previous_level = root.level

    try:
        assert configure_logging(level="debug", production=True) is True
        assert root.level == logging.DEBUG
        assert root.handlers[0].formatter._fmt == LOG_FORMAT_SIMPLE
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.setLevel(previous_level)
