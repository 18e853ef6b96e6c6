"""
Shared logging configuration helpers.

Reads the ``logging`` section of config.yaml (level, format, file) and the
LOG_LEVEL environment variable, then configures the root logger with a
console handler and, when a file is given, a file handler.
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

from src.common.config import CONFIG_PATH, get_section, load_config

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_logging_config(logging_cfg: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build a ``logging.config.dictConfig`` mapping.

    LOG_LEVEL from the environment takes precedence over ``logging_cfg["level"]``.
    """
    logging_cfg = logging_cfg or {}
    level_name = (os.getenv("LOG_LEVEL") or logging_cfg.get("level") or "INFO").upper()
    log_file = logging_cfg.get("file")

    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level_name,
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "level": level_name,
            "filename": log_file,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": logging_cfg.get("format", DEFAULT_FORMAT)}},
        "handlers": handlers,
        "root": {"level": level_name, "handlers": list(handlers)},
    }


def setup_logging(config_path: str = CONFIG_PATH) -> None:
    """Initialize application-wide logging from config.yaml."""
    logging_cfg = get_section(load_config(config_path), "logging")
    dict_config = build_logging_config(logging_cfg)

    file_handler = dict_config["handlers"].get("file")
    if file_handler:
        Path(file_handler["filename"]).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(dict_config)
