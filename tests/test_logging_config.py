"""Tests for structlog setup."""

import json
import logging

import pytest
import structlog

from ssekit.logging_config import setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    def test_writes_json_lines(self, tmp_path, restore_logging):
        setup_logging(str(tmp_path), "info")
        structlog.get_logger("test").info("stream_opened", url="http://x.test/")
        structlog.get_logger("test").debug("filtered_out")

        lines = (tmp_path / "ssekit.jsonl").read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["event"] == "stream_opened"
        assert entry["url"] == "http://x.test/"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_no_file_without_log_dir(self, tmp_path, restore_logging):
        setup_logging(None, "DEBUG", json_logs=False)
        structlog.get_logger("test").debug("console_only")
        assert list(tmp_path.iterdir()) == []
