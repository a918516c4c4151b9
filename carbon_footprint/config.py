"""
config.py – Load runtime settings from environment variables.

All configuration is loaded from environment variables (or a .env file
at the project root).  Nothing is required: without ``DATABASE_URL`` the
application runs on the built-in seed factors and an in-memory
submission store.  Call `get_config()` once at startup.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from carbon_footprint.constants import GLOBAL_LOCATION

# Project root: the directory holding carbon_footprint/
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# override=True ensures .env values always win over stale OS-level env vars.
_env_file = _PROJECT_ROOT / ".env"
if _env_file.exists():
    load_dotenv(_env_file, override=True)

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(message)s"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Config:
    """Runtime configuration."""

    database_url: str | None = None
    default_location: str = GLOBAL_LOCATION
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000


def _parse_port(raw: str | None, default: int) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def get_config() -> Config:
    """
    Read environment variables and return a Config.

    Unknown log levels fall back to INFO; an unparsable port falls back to 8000.
    """
    log_level = (os.environ.get("FOOTPRINT_LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        log_level = "INFO"

    location = (os.environ.get("FOOTPRINT_DEFAULT_LOCATION") or "").strip().lower()

    return Config(
        database_url=os.environ.get("DATABASE_URL") or None,
        default_location=location or GLOBAL_LOCATION,
        log_level=log_level,
        api_host=os.environ.get("FOOTPRINT_API_HOST") or "127.0.0.1",
        api_port=_parse_port(os.environ.get("FOOTPRINT_API_PORT"), 8000),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
