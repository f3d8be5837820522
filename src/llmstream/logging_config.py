"""Logging configuration helpers."""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict


def build_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Return a dictionary config for logging."""

    level = str(level).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level '{level}'")
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "level": level,
            },
        },
        "loggers": {
            "llmstream": {"handlers": ["default"], "level": level, "propagate": False},
            "httpx": {"handlers": ["default"], "level": "WARNING", "propagate": False},
        },
    }


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for applications embedding the client."""

    dictConfig(build_logging_config(level))


__all__ = ["setup_logging", "build_logging_config"]
