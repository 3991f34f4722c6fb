import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except ValueError:
        return fallback


def _drop_stale_backups(log_dir: Path, base_name: str, keep: int) -> None:
    """Delete rotated files beyond ``keep``, newest first, e.g. after lowering the count."""
    if keep < 1:
        return
    rotated = sorted(
        log_dir.glob(f"{base_name}.*"),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    for stale in rotated[keep:]:
        try:
            stale.unlink()
        except OSError:
            continue


def _rotating_handler(path: Path, level: str, max_bytes: int, backups: int) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "default",
        "filename": str(path),
        "maxBytes": max_bytes,
        "backupCount": backups,
        "level": level,
        "encoding": "utf8",
    }


def setup_logging(log_dir: str = "logs") -> None:
    """
    Route Meetball, uvicorn and root logging to the console and to
    ``app.log``/``error.log`` under ``MEETBALL_LOG_DIR`` (default ``logs``).
    """
    log_path = Path(os.getenv("MEETBALL_LOG_DIR", log_dir))
    log_path.mkdir(parents=True, exist_ok=True)
    max_bytes = _env_int("LOG_MAX_BYTES", DEFAULT_MAX_BYTES)
    backups = _env_int("LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)
    level = os.getenv("MEETBALL_LOG_LEVEL", "INFO").upper()
    for name in ("app.log", "error.log"):
        _drop_stale_backups(log_path, name, backups)

    everywhere = ["console", "file_app", "file_error"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
            "file_app": _rotating_handler(log_path / "app.log", "INFO", max_bytes, backups),
            "file_error": _rotating_handler(log_path / "error.log", "ERROR", max_bytes, backups),
        },
        "root": {"handlers": everywhere, "level": "INFO"},
        "loggers": {
            "meetball": {"handlers": everywhere, "level": level, "propagate": False},
            "uvicorn": {"handlers": ["console", "file_app"], "level": "INFO", "propagate": False},
            "uvicorn.access": {
                "handlers": ["console", "file_app"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console", "file_error"],
                "level": "INFO",
                "propagate": False,
            },
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }

    logging.config.dictConfig(config)
    logging.getLogger("meetball").info("Logging configured in %s", log_path)
