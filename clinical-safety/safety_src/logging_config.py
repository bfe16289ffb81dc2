"""Logging setup for the clinical safety service."""

import logging.config

from common.clinical_safety.redaction import set_salt

from .config import config


def build_logging_config(level: str | None = None, json_format: bool | None = None) -> dict:
    level = (level or config.LOG_LEVEL).upper()
    json_format = config.LOG_JSON if json_format is None else json_format

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "filters": {
            "phi_redaction": {
                "()": "common.clinical_safety.redaction.PHIRedactionFilter",
            },
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "json" if json_format else "simple",
                "filters": ["phi_redaction"],
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
        "loggers": {
            "urllib3": {"level": "WARNING"},
            "werkzeug": {"level": "WARNING"},
        },
    }


def configure_logging(
    level: str | None = None, json_format: bool | None = None, salt: str | None = None
) -> None:
    """Install console logging with PHI redaction."""
    set_salt(salt or config.LOG_SALT)
    logging.config.dictConfig(build_logging_config(level, json_format))
