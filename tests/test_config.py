"""
Unit tests for carbon_footprint/config.py
"""
import pytest

from carbon_footprint.config import get_config

_VARS = (
    "DATABASE_URL",
    "FOOTPRINT_DEFAULT_LOCATION",
    "FOOTPRINT_LOG_LEVEL",
    "FOOTPRINT_API_HOST",
    "FOOTPRINT_API_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults_need_no_variables():
    cfg = get_config()
    assert cfg.database_url is None
    assert cfg.default_location == "global"
    assert cfg.log_level == "INFO"
    assert (cfg.api_host, cfg.api_port) == ("127.0.0.1", 8000)


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/footprint")
    monkeypatch.setenv("FOOTPRINT_DEFAULT_LOCATION", " UK ")
    monkeypatch.setenv("FOOTPRINT_LOG_LEVEL", "debug")
    monkeypatch.setenv("FOOTPRINT_API_PORT", "9000")
    cfg = get_config()
    assert cfg.database_url == "postgresql://localhost/footprint"
    assert cfg.default_location == "uk"
    assert cfg.log_level == "DEBUG"
    assert cfg.api_port == 9000


def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("FOOTPRINT_LOG_LEVEL", "chatty")
    monkeypatch.setenv("FOOTPRINT_API_PORT", "eighty")
    cfg = get_config()
    assert cfg.log_level == "INFO"
    assert cfg.api_port == 8000
