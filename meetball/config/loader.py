from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml

_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

_DEFAULT_DATABASE_URL = "sqlite:///./meetball.db"
_DEFAULT_SQLITE = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "busy_timeout_ms": 30000,
    "write_retries": 5,
    "retry_backoff_ms": 200,
}
_DEFAULT_STORE = {
    "base_url": "http://127.0.0.1:8000",
    "timeout_seconds": 10,
}
_DEFAULT_LOCAL_STORAGE_PATH = "~/.meetball/local_storage.json"
_DEFAULT_MEETING_DEFAULTS = {
    "time_zone": "UTC",
    "window_start": "09:00",
    "window_end": "17:00",
    "duration_minutes": 30,
    "duration_options": [15, 30, 45, 60],
}


def load_config() -> Dict[str, Any]:
    """Load the application config from YAML, returning an empty mapping on error."""
    try:
        with _CONFIG_PATH.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
            if isinstance(data, dict):
                return data
            logging.warning(
                "Config file %s is not a mapping; using defaults.", _CONFIG_PATH
            )
            return {}
    except FileNotFoundError:
        logging.warning(
            "Configuration file %s not found; using defaults.", _CONFIG_PATH
        )
        return {}
    except Exception as exc:  # noqa: BLE001
        logging.error("Failed to load configuration from %s: %s", _CONFIG_PATH, exc)
        return {}


def _coerce_positive_int(value: Any, fallback: int) -> int:
    try:
        candidate = int(value)
        return candidate if candidate > 0 else fallback
    except Exception:  # noqa: BLE001
        return fallback


def _coerce_positive_float(value: Any, fallback: float) -> float:
    try:
        candidate = float(value)
        return candidate if candidate > 0 else fallback
    except Exception:  # noqa: BLE001
        return fallback


def _coerce_text(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def get_database_url() -> str:
    """Return the SQLAlchemy database URL, honouring MEETBALL_DATABASE_URL."""
    env_value = os.getenv("MEETBALL_DATABASE_URL")
    if env_value and env_value.strip():
        return env_value.strip()
    config = load_config()
    return _coerce_text(config.get("database_url"), _DEFAULT_DATABASE_URL)


def get_sqlite_settings() -> Dict[str, Any]:
    """Return SQLite pragma and write-retry settings with safe defaults."""
    config = load_config()
    section = config.get("sqlite") or {}
    defaults = dict(_DEFAULT_SQLITE)
    return {
        "journal_mode": _coerce_text(
            section.get("journal_mode"), defaults["journal_mode"]
        ),
        "synchronous": _coerce_text(section.get("synchronous"), defaults["synchronous"]),
        "busy_timeout_ms": _coerce_positive_int(
            section.get("busy_timeout_ms"), defaults["busy_timeout_ms"]
        ),
        "write_retries": _coerce_positive_int(
            section.get("write_retries"), defaults["write_retries"]
        ),
        "retry_backoff_ms": _coerce_positive_int(
            section.get("retry_backoff_ms"), defaults["retry_backoff_ms"]
        ),
    }


def get_store_settings() -> Dict[str, Any]:
    """
    Return the remote store client settings.

    Priority:
    1) MEETBALL_STORE_URL / MEETBALL_STORE_TIMEOUT_SECONDS env vars
    2) config.yaml store section
    3) defaults (local development server)
    """
    config = load_config()
    section = config.get("store") or {}
    defaults = dict(_DEFAULT_STORE)

    base_url = os.getenv("MEETBALL_STORE_URL")
    if base_url is None:
        base_url = section.get("base_url")
    timeout = os.getenv("MEETBALL_STORE_TIMEOUT_SECONDS")
    if timeout is None:
        timeout = section.get("timeout_seconds")

    return {
        "base_url": _coerce_text(base_url, defaults["base_url"]).rstrip("/"),
        "timeout_seconds": _coerce_positive_float(
            timeout, float(defaults["timeout_seconds"])
        ),
    }


def get_local_storage_path() -> Path:
    """Return the file backing the per-device key-value storage."""
    env_value = os.getenv("MEETBALL_LOCAL_STORAGE_PATH")
    if env_value and env_value.strip():
        return Path(env_value.strip()).expanduser()
    config = load_config()
    section = config.get("device_identity") or {}
    raw = _coerce_text(section.get("storage_path"), _DEFAULT_LOCAL_STORAGE_PATH)
    return Path(raw).expanduser()


def get_meeting_defaults() -> Dict[str, Any]:
    """Return the organizer form defaults sourced from config."""
    config = load_config()
    section = config.get("meeting_defaults") or {}
    defaults = dict(_DEFAULT_MEETING_DEFAULTS)

    raw_options = section.get("duration_options")
    options: List[int] = []
    if isinstance(raw_options, list):
        for value in raw_options:
            candidate = _coerce_positive_int(value, 0)
            if candidate and candidate not in options:
                options.append(candidate)
    if not options:
        options = list(defaults["duration_options"])

    return {
        "time_zone": _coerce_text(section.get("time_zone"), defaults["time_zone"]),
        "window_start": _coerce_text(
            section.get("window_start"), defaults["window_start"]
        ),
        "window_end": _coerce_text(section.get("window_end"), defaults["window_end"]),
        "duration_minutes": _coerce_positive_int(
            section.get("duration_minutes"), defaults["duration_minutes"]
        ),
        "duration_options": options,
    }
