# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Logging setup for Inventory Metrics.

Library modules only create child loggers (``logging.getLogger(__name__)``);
handlers are installed by ``configure_logging()``, called from the CLI.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "inventory_metrics"

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the package logger with console and optional file handlers.

    Calling this function again replaces the handlers it installed
    previously, so the level and the log file can be changed at runtime.

    Parameters
    ----------
    level:
        Logging level name ("INFO", "DEBUG", ...) or numeric value.
    log_file:
        Optional path of a rotating log file (1 MB, 5 backups).

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    for handler in list(logger.handlers):
        if getattr(handler, "_inventory_metrics", False):
            logger.removeHandler(handler)
            handler.close()

    logger.setLevel(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if log_file is not None:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=1_000_000,
                backupCount=5,
                encoding="utf-8",
            )
        except OSError as exc:
            print(
                f"Warning: unable to initialize log file at '{log_file}': {exc}",
                file=sys.stderr,
            )
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler._inventory_metrics = True  # type: ignore[attr-defined]
            logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler._inventory_metrics = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    return logger
