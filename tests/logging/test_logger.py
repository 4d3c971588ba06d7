# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the structured JSON logger.

  - output is valid single-line JSON with ts, level, module, msg
  - extra fields are merged, including non-ASCII token text
  - levels filter, and re-levelling doesn't stack handlers
"""

import json
import logging
from pathlib import Path

import pytest

from bertprep.logging.logger import get_logger


@pytest.fixture(autouse=True)
def _reset_loggers() -> None:
    yield  # type: ignore[misc]
    for name in list(logging.Logger.manager.loggerDict):
        if name.startswith("bertprep.test"):
            logging.getLogger(name).handlers.clear()


class TestJsonOutput:
    def test_mandatory_fields_are_present(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("bertprep.test.fields", log_level="INFO")
        logger.info("test message")

        parsed = json.loads(capsys.readouterr().out.strip())
        assert parsed["level"] == "INFO"
        assert parsed["module"] == "bertprep.test.fields"
        assert parsed["msg"] == "test message"
        assert "ts" in parsed

    def test_extra_fields_are_included(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("bertprep.test.extra", log_level="DEBUG")
        logger.info("batch built", extra={"batch_size": 2, "tokens": ["你", "好"]})

        parsed = json.loads(capsys.readouterr().out.strip())
        assert parsed["batch_size"] == 2
        assert parsed["tokens"] == ["你", "好"]

    def test_exception_is_rendered_on_one_line(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("bertprep.test.exc", log_level="INFO")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.error("failed", exc_info=True)

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert "RuntimeError: boom" in json.loads(lines[0])["exc"]


class TestLogLevelFiltering:
    def test_debug_hidden_at_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = get_logger("bertprep.test.level_filter", log_level="INFO")
        logger.debug("this should not appear")
        assert capsys.readouterr().out.strip() == ""

    def test_relevel_does_not_duplicate_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        get_logger("bertprep.test.relevel", log_level="INFO")
        logger = get_logger("bertprep.test.relevel", log_level="DEBUG")
        logger.debug("once")

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1


class TestFileOutput:
    def test_logs_are_written_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "bertprep.log"
        logger = get_logger("bertprep.test.file_output", log_level="INFO", log_file=log_file)
        logger.info("file log test")

        parsed = json.loads(log_file.read_text(encoding="utf-8").strip())
        assert parsed["msg"] == "file log test"

    def test_file_added_to_existing_logger_once(self, tmp_path: Path) -> None:
        log_file = tmp_path / "late.log"
        get_logger("bertprep.test.late_file", log_level="INFO")
        get_logger("bertprep.test.late_file", log_level="INFO", log_file=log_file)
        logger = get_logger("bertprep.test.late_file", log_level="INFO", log_file=log_file)
        logger.info("late")

        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["msg"] == "late"


class TestInvalidLogLevel:
    def test_invalid_level_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            get_logger("bertprep.test.invalid", log_level="LOUD")
