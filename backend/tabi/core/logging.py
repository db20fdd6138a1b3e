from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

from tabi.core.settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _file_handler(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "standard",
        "filename": str(path),
        "maxBytes": settings.log_max_bytes,
        "backupCount": settings.log_backup_count,
        "encoding": "utf-8",
    }


def _build_logging_config(log_dir: Path | None) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "standard",
        },
    }
    if log_dir is not None:
        handlers["app_file"] = _file_handler(log_dir / "app.log", settings.log_level)
        handlers["error_file"] = _file_handler(log_dir / "errors.log", "ERROR")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "loggers": {
            # SQL echo is opt-in, statements are noisy at INFO.
            "sqlalchemy.engine": {
                "level": "INFO" if settings.log_sql else "WARNING",
            },
            "uvicorn.access": {"level": "WARNING"},
        },
        "root": {
            "level": settings.log_level,
            "handlers": list(handlers),
        },
    }


def setup_logging() -> None:
    """Configure logging once at application start."""

    log_dir: Path | None = None
    if settings.log_to_file:
        log_dir = Path(settings.log_directory).resolve()
        log_dir.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(_build_logging_config(log_dir))


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or "tabi")
