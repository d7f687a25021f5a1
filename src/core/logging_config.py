"""Logging setup for the API process."""

import logging
import logging.config

from config import LOG_DIR, LOG_LEVEL


def setup_logging() -> None:
    """Configure console and rotating file logging.

    Safe to call more than once; the dictConfig call replaces any handlers
    installed by a previous call.
    """
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
                "file": {
                    "class": "logging.handlers.RotatingFileHandler",
                    "formatter": "default",
                    "filename": str(LOG_DIR / "evolvere.log"),
                    "maxBytes": 5 * 1024 * 1024,
                    "backupCount": 3,
                    "encoding": "utf-8",
                },
            },
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console", "file"],
            },
            "loggers": {
                # SQL echo is noisy; raise explicitly when debugging queries.
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
