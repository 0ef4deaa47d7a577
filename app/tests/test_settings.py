from __future__ import annotations

import logging

import pytest

from app.config import settings as settings_module
from app.config.settings import Settings, parse_int_csv
from app.utils.logging_conf import setup_logging


def test_defaults(monkeypatch):
    for name in ("COINGECKO_BASE_URL", "PAGE_SIZE_OPTIONS", "DEFAULT_PAGE_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.COINGECKO_BASE_URL == "https://api.coingecko.com/api/v3"
    assert s.PAGE_SIZE_OPTIONS == [10, 20, 50]
    assert s.DEFAULT_PAGE_SIZE == 10
    assert s.LOG_LEVEL == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("COINGECKO_BASE_URL", "https://pro-api.coingecko.com/api/v3")
    monkeypatch.setenv("PAGE_SIZE_OPTIONS", "25, 100,25")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "3")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = Settings.from_env()
    assert s.COINGECKO_BASE_URL.startswith("https://pro-api")
    assert s.PAGE_SIZE_OPTIONS == [25, 100]
    assert s.HTTP_TIMEOUT_SECONDS == 3
    assert s.LOG_LEVEL == "DEBUG"


def test_bad_page_size_option():
    with pytest.raises(ValueError):
        parse_int_csv("10,-5", [10])


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setattr(settings_module, "_settings", None)
    assert settings_module.get_settings() is settings_module.get_settings()


def test_setup_logging_is_idempotent():
    setup_logging("debug")
    setup_logging(logging.WARNING)
    logger = logging.getLogger("coin_markets")
    assert logger.level == logging.WARNING
    assert sum(1 for h in logger.handlers if getattr(h, "_coin_markets", False)) == 1
