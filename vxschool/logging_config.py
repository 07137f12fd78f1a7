"""
Настройка логирования сайта и админ-API.
"""

from __future__ import annotations

import logging
import logging.config
import time
from pathlib import Path

LOG_FILE_NAME = "app.log"
MAX_FILE_AGE_DAYS = 30


class SuppressWatchFilesFilter(logging.Filter):
    """
    Фильтр удаляет шумные сообщения вида «1 change detected»,
    которые возникают при работе hot-reload.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        message = record.getMessage().lower()
        return "change detected" not in message


def setup_logging(level: str = "INFO", log_dir: str | Path = "logs") -> None:
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = level.upper()

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "suppress_watchfiles": {
                "()": "vxschool.logging_config.SuppressWatchFilesFilter",
            },
        },
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
            "short": {
                "format": "%(levelname)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "short",
                "filters": ["suppress_watchfiles"],
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "standard",
                "filename": str(log_dir / LOG_FILE_NAME),
                "maxBytes": 5 * 1024 * 1024,  # 5 МБ на файл
                "backupCount": 10,
                "encoding": "utf-8",
                "delay": True,
                "filters": ["suppress_watchfiles"],
            },
        },
        "root": {
            "handlers": ["console", "file"],
            "level": level,
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["console", "file"],
                "level": level,
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console", "file"],
                "level": level,
                "propagate": False,
            },
            # access-лог пишем только в файл, в консоли он слишком шумный
            "uvicorn.access": {
                "handlers": ["file"],
                "level": level,
                "propagate": False,
            },
            "aiogram": {
                "handlers": ["console", "file"],
                "level": "WARNING",
                "propagate": False,
            },
            "httpx": {
                "handlers": ["file"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(config)
    cleanup_logs(log_dir)


def cleanup_logs(log_dir: Path) -> None:
    """Удаляет файлы логов старше MAX_FILE_AGE_DAYS."""
    now = time.time()
    max_age_seconds = MAX_FILE_AGE_DAYS * 24 * 60 * 60

    for file in log_dir.glob(f"{LOG_FILE_NAME}*"):
        try:
            stat = file.stat()
        except FileNotFoundError:
            continue

        if now - stat.st_mtime > max_age_seconds:
            file.unlink(missing_ok=True)
