"""Tests for logging module."""

import json
from datetime import date

from minfreectl.core.logging import RunLogger, get_log_path


class TestGetLogPath:
    """Tests for get_log_path function."""

    def test_returns_path_with_date(self, isolated_home):
        """Returns path in format {base}/{date}/minfreectl.jsonl."""
        path = get_log_path()

        today = date.today().isoformat()
        assert path == isolated_home / "var" / "log" / "minfreectl" / today / "minfreectl.jsonl"

    def test_custom_base_path(self, tmp_path):
        """Accepts custom base path."""
        path = get_log_path(tmp_path / "logs")

        today = date.today().isoformat()
        assert path == tmp_path / "logs" / today / "minfreectl.jsonl"


class TestRunLogger:
    """Tests for RunLogger class."""

    def test_logs_to_file(self, tmp_path):
        """Writes log entries to JSONL file."""
        log_path = tmp_path / "test.jsonl"
        logger = RunLogger("apply", log_path=log_path)

        logger.info("Policy evaluated", verdict="approved")
        logger.close()

        entry = json.loads(log_path.read_text().strip())
        assert entry["level"] == "info"
        assert entry["message"] == "Policy evaluated"
        assert entry["command"] == "apply"
        assert entry["verdict"] == "approved"
        assert "timestamp" in entry

    def test_logs_multiple_levels(self, tmp_path):
        """Logs debug, info, warning, error levels."""
        log_path = tmp_path / "test.jsonl"
        logger = RunLogger("check", log_path=log_path)

        logger.debug("Debug msg")
        logger.info("Info msg")
        logger.warning("Warning msg")
        logger.error("Error msg")
        logger.close()

        lines = log_path.read_text().strip().split("\n")
        levels = [json.loads(line)["level"] for line in lines]
        assert levels == ["debug", "info", "warning", "error"]

    def test_appends_to_existing_log(self, tmp_path):
        """Later runs append rather than truncate."""
        log_path = tmp_path / "test.jsonl"
        with RunLogger("apply", log_path=log_path) as logger:
            logger.info("first run")
        with RunLogger("apply", log_path=log_path) as logger:
            logger.info("second run")

        assert len(log_path.read_text().strip().split("\n")) == 2

    def test_creates_parent_directories(self, tmp_path):
        """Creates the dated directory on first write."""
        log_path = tmp_path / "a" / "b" / "test.jsonl"
        with RunLogger("apply", log_path=log_path) as logger:
            logger.info("hello")

        assert log_path.exists()

    def test_disabled_logger_writes_nothing(self, tmp_path):
        """enabled=False never creates the file."""
        log_path = tmp_path / "test.jsonl"
        with RunLogger("apply", log_path=log_path, enabled=False) as logger:
            logger.error("ignored")

        assert not log_path.exists()

    def test_unwritable_location_disables_logger(self, tmp_path):
        """An OSError on first write is kept and later calls are no-ops."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory\n")
        with RunLogger("apply", log_path=blocker / "day" / "test.jsonl") as logger:
            logger.info("first")
            logger.error("second")

        assert logger.enabled is False
        assert isinstance(logger.failure, OSError)
        assert blocker.read_text() == "not a directory\n"
