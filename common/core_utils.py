#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Core utility functions for the project.

This module provides the logging setup shared by every bootstrap run: a
console handler plus a persisted run log, both with timestamped lines tagged
by level.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from labstack.config_models import SYMBOLS_DEFAULT

module_logger = logging.getLogger(__name__)

BOOTSTRAP_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(symbol)s%(message)s"
DETAILED_LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(symbol)s%(name)s:%(lineno)d - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SymbolFormatter(logging.Formatter):
    """
    A custom formatter that adds symbols to log messages based on the log level.

    Messages that already start with a symbol keep theirs and get no second one.
    """

    def __init__(
        self, fmt=None, datefmt=None, style="%", validate=True, symbols=None
    ):
        super().__init__(fmt, datefmt, style, validate)
        self.symbols: Dict[str, str] = symbols or SYMBOLS_DEFAULT

    def _symbol_for(self, record) -> str:
        message = record.getMessage()
        if message and not message[0].isascii():
            return ""
        if record.levelno == logging.DEBUG:
            return self.symbols.get("debug", "🐛")
        if record.levelno == logging.INFO:
            return self.symbols.get("info", "ℹ️")
        if record.levelno == logging.WARNING:
            return self.symbols.get("warning", "⚠️")
        if record.levelno == logging.ERROR:
            return self.symbols.get("error", "❌")
        if record.levelno == logging.CRITICAL:
            return self.symbols.get("critical", "🔥")
        return ""

    def format(self, record):
        symbol = self._symbol_for(record)
        record.symbol = f"{symbol} " if symbol else ""
        return super().format(record)


def setup_logging(
    log_level: int = logging.INFO,
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    symbols: Optional[Dict[str, str]] = None,
) -> None:
    """
    Configures root logging for a bootstrap run.

    Parameters:
    log_level: int
        The logging level to configure. DEBUG also adds logger names and line numbers.
    log_file: Optional[Path]
        Run log path. Its parent directory is created if needed.
    log_to_console: bool
        Whether to log to the console (stdout).
    symbols: Optional[Dict[str, str]]
        Level symbols, usually `AppSettings.symbols`.

    Returns:
    None
    """
    logging.addLevelName(logging.WARNING, "WARN")

    handlers: List[logging.Handler] = []
    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
        except OSError as e:
            print(
                f"Warning: Could not create file handler for log file {log_file}: {e}",
                file=sys.stderr,
            )

    if log_to_console or not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))

    formatter = SymbolFormatter(
        fmt=DETAILED_LOG_FORMAT if log_level <= logging.DEBUG else BOOTSTRAP_LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        symbols=symbols,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    module_logger.debug(
        f"Logging configured. Level: {logging.getLevelName(log_level)}. Run log: {log_file or '-'}"
    )
