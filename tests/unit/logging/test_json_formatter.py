"""Tests for JSON log output and handler setup."""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from vidmeta.config import LoggingConfig
from vidmeta.logging import (
    JSONFormatter,
    WorkerContextFilter,
    configure_logging,
    worker_context,
)


@pytest.fixture
def restore_root_logger():
    """Drop handlers installed by the test and restore the root level."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _format(record: logging.LogRecord) -> dict:
    WorkerContextFilter().filter(record)
    return json.loads(JSONFormatter().format(record))


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self) -> None:
        record = logging.LogRecord(
            "vidmeta.test", logging.WARNING, __file__, 1, "hello %s", ("x",), None
        )
        entry = _format(record)

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "vidmeta.test"
        assert entry["message"] == "hello x"
        assert entry["timestamp"].endswith("+00:00")
        assert "context" not in entry

    def test_worker_context_and_extras(self) -> None:
        record = logging.LogRecord(
            "vidmeta.test", logging.INFO, __file__, 1, "msg", None, None
        )
        record.field = "title"
        with worker_context("01", "F002", "/v/a.mp4"):
            entry = _format(record)

        assert entry["context"] == {
            "field": "title",
            "worker_id": "01",
            "record_id": "F002",
            "video_path": "/v/a.mp4",
        }

    def test_exception(self) -> None:
        try:
            raise ValueError("bad")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            "vidmeta.test", logging.ERROR, __file__, 1, "failed", None, exc_info
        )
        entry = _format(record)
        assert "ValueError: bad" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_stderr_by_default(self, restore_root_logger) -> None:
        configure_logging(LoggingConfig(level="debug"))

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], logging.StreamHandler)

    def test_json_file(self, restore_root_logger, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "vidmeta.log"
        configure_logging(LoggingConfig(file=path, format="json"))

        logging.getLogger("vidmeta.test").info("to file")
        for handler in restore_root_logger.handlers:
            handler.flush()

        handlers = restore_root_logger.handlers
        assert [type(h) for h in handlers] == [RotatingFileHandler]
        line = path.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "to file"

    def test_file_and_stderr(self, restore_root_logger, tmp_path: Path) -> None:
        configure_logging(
            LoggingConfig(file=tmp_path / "v.log", include_stderr=True)
        )
        assert len(restore_root_logger.handlers) == 2

    def test_unwritable_file_falls_back_to_stderr(
        self, restore_root_logger, tmp_path: Path, capsys
    ) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        configure_logging(LoggingConfig(file=blocker / "v.log"))

        assert "Could not open log file" in capsys.readouterr().err
        assert [type(h) for h in restore_root_logger.handlers] == [
            logging.StreamHandler
        ]
