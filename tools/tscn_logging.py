#!/usr/bin/env python3
"""
tscn_logging.py - Console logging for tscnc.py.
"""

from __future__ import annotations

import logging
import sys
from typing import Union


class ColoredFormatter(logging.Formatter):
    """Colors the level name only."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset = self.COLORS["RESET"]
        formatted = super().format(record)
        if record.levelname in formatted:
            formatted = formatted.replace(
                record.levelname, f"{color}{record.levelname}{reset}", 1
            )
        return formatted


def setup_logging(level: Union[int, str] = logging.WARNING, use_colors: bool = True) -> None:
    """Route all converter logging to stderr, replacing earlier handlers."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.WARNING)

    fmt = "%(asctime)s : %(levelname)-8s : %(message)s"
    datefmt = "%H:%M:%S"
    if use_colors:
        formatter: logging.Formatter = ColoredFormatter(fmt=fmt, datefmt=datefmt)
    else:
        formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    # Pillow logs PNG chunk details at DEBUG
    logging.getLogger("PIL").setLevel(logging.INFO)
