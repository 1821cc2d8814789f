"""Logging helpers for the ticker runtime."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "quoteticker",
    level: int = logging.INFO,
    log_dir: Path | str | None = None,
) -> logging.Logger:
    """Attach console (and optional dated file) handlers to a logger.

    Args:
        name: Logger name. The package logger by default, so every module
            logger under ``quoteticker.*`` inherits the handlers.
        level: Logging level.
        log_dir: Directory for ``{name}_{YYYYMMDD}.log``. No file when None.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        module_name = name.split(".")[-1]
        log_filepath = Path(log_dir) / f"{module_name}_{datetime.now():%Y%m%d}.log"

        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info("Logging to file: %s", log_filepath)

    return logger
