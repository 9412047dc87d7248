import io
import logging

import pytest

from src.utils.logger import COLORS, ColoredFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(level=logging.WARNING, msg="Polling timed out"):
    return logging.LogRecord("indx", level, "/app/src/indx_loader/orchestration/polling.py", 10, msg, None, None)


def test_plain_format_has_file_and_level():
    line = ColoredFormatter(use_color=False).format(make_record())

    assert "[polling.py] [WARNING] Polling timed out" in line
    assert "\033[" not in line


def test_colored_format_wraps_line_in_level_color():
    line = ColoredFormatter(use_color=True).format(make_record(logging.ERROR))

    assert line.startswith(COLORS['ERROR'])
    assert line.endswith(COLORS['RESET'])


def test_setup_logging_replaces_handlers_and_skips_color_off_tty():
    stream = io.StringIO()

    setup_logging('info', stream=stream)
    setup_logging('INFO', stream=stream)
    logging.getLogger("indx.test").info("Dataset opened")

    assert len(logging.getLogger().handlers) == 1
    assert "[INFO] Dataset opened" in stream.getvalue()
    assert "\033[" not in stream.getvalue()


def test_library_loggers_follow_debug_level():
    setup_logging('INFO', stream=io.StringIO())
    assert logging.getLogger("aiohttp").level == logging.WARNING

    setup_logging('DEBUG', stream=io.StringIO())
    assert logging.getLogger("aiohttp").level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.DEBUG
