"""Tests for setup_logging."""

import json
import logging

import pytest

from marketstream.common.logging import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_file_handler_writes_daily_log(tmp_path, restore_root_logger):
    setup_logging(level=logging.DEBUG, log_dir=str(tmp_path), console=False)

    logging.getLogger("marketstream.test").debug("hello %s", "world")
    for handler in restore_root_logger.handlers:
        handler.flush()

    (log_file,) = tmp_path.glob("marketstream_*.log")
    content = log_file.read_text()
    assert "Logging initialized" in content
    assert "DEBUG:marketstream.test:" in content
    assert "hello world" in content


def test_json_format(tmp_path, restore_root_logger):
    setup_logging(
        log_dir=str(tmp_path), filename_prefix="json", console=False, json_format=True
    )

    logging.getLogger("marketstream.test").warning("disk %d%% full", 90)
    for handler in restore_root_logger.handlers:
        handler.flush()

    (log_file,) = tmp_path.glob("json_*.log")
    records = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert records[-1]["message"] == "disk 90% full"
    assert records[-1]["levelname"] == "WARNING"
    assert records[-1]["name"] == "marketstream.test"


def test_console_only(restore_root_logger):
    setup_logging(level=logging.WARNING, file=False)

    assert restore_root_logger.level == logging.WARNING
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0], logging.StreamHandler)
