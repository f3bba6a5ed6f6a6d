"""Logging configuration for the ``na`` logger hierarchy."""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER_NAME = "na"


def configure_logging(config: dict[str, Any], log_dir: Path | None = None) -> logging.Logger:
    """Install console and daily-rotating file handlers on the ``na`` logger.

    Calling it again replaces the handlers it installed before.
    """
    logging_cfg = config.get("logging", {})
    level_name = str(logging_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir is not None and logging_cfg.get("file_logging", True):
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_dir / "assistant.log",
            when="midnight",
            interval=1,
            backupCount=int(logging_cfg.get("backup_count", 14)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging configured at %s", level_name)
    return logger
