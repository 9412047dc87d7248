# src/utils/logger.py
import logging
import os
import sys
from datetime import datetime
from typing import Optional, TextIO

# ANSI colors for log levels
COLORS = {
    'DEBUG': '\033[90m',    # Grey
    'INFO': '\033[32m',     # Green
    'WARNING': '\033[33m',  # Yellow
    'ERROR': '\033[31m',    # Red
    'CRITICAL': '\033[41m', # Red background
    'RESET': '\033[0m'
}

# HTTP and event-loop chatter; only shown when running at DEBUG
NOISY_LOGGERS = ("aiohttp", "aiohttp.access", "aiohttp.client", "urllib3", "asyncio")


class ColoredFormatter(logging.Formatter):
    """[time] [file] [LEVEL] message, colored by level unless use_color is off."""

    def __init__(self, fmt: str = '%(message)s', use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        current_file_name = os.path.basename(record.pathname)
        message = super().format(record)
        line = f"[{timestamp}] [{current_file_name}] [{record.levelname}] {message}"
        if not self.use_color:
            return line

        level_color = COLORS.get(record.levelname, COLORS['RESET'])
        return f"{level_color}{line}{COLORS['RESET']}"


def setup_logging(level: str = 'INFO', stream: Optional[TextIO] = None, color: Optional[bool] = None) -> logging.Logger:
    """
    Route the root logger to a single colored handler.

    Safe to call again (the CLI does once LOG_LEVEL is known); earlier handlers are replaced.
    Color defaults to on only when the stream is a terminal.
    """
    stream = stream or sys.stdout
    if color is None:
        color = hasattr(stream, "isatty") and stream.isatty()

    logger = logging.getLogger()
    logger.setLevel(level.upper())
    logger.handlers.clear()

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(ColoredFormatter(use_color=color))
    logger.addHandler(console_handler)

    library_level = logging.DEBUG if level.upper() == 'DEBUG' else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return logger
