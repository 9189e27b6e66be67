"""JSONL run log."""

import json
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any


LOG_NAME = "minfreectl"


def get_log_path(base_path: Path | None = None, name: str = LOG_NAME) -> Path:
    """
    Get the log file path for today's runs.

    Args:
        base_path: Base directory for logs (default: ~/var/log/minfreectl)
        name: Log file stem

    Returns:
        Path to the log file: {base}/{date}/{name}.jsonl
    """
    if base_path is None:
        home = Path(os.environ.get("HOME", "/tmp"))
        base_path = home / "var" / "log" / "minfreectl"

    today = date.today().isoformat()
    return base_path / today / f"{name}.jsonl"


class RunLogger:
    """
    JSONL logger for check-and-apply runs.

    Writes structured log entries to a JSONL file. A logger created with
    enabled=False accepts every call and writes nothing. The first OSError
    while opening or writing the file disables the logger and is kept in
    `failure`; the run itself carries on.
    """

    def __init__(
        self,
        command: str,
        log_path: Path | None = None,
        enabled: bool = True,
    ):
        """
        Initialize logger.

        Args:
            command: Name recorded in every entry (e.g. "apply", "check")
            log_path: Path to log file (default: auto-generated)
            enabled: Write entries when True
        """
        self.command = command
        self.log_path = log_path or get_log_path()
        self.enabled = enabled
        self.failure: OSError | None = None
        self._file = None

    def _ensure_file(self) -> None:
        """Ensure log file is open."""
        if self._file is None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.log_path, "a")

    def _log(self, level: str, message: str, **extra: Any) -> None:
        """Write a log entry."""
        if not self.enabled:
            return
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "command": self.command,
            "message": message,
            **extra,
        }
        try:
            self._ensure_file()
            self._file.write(json.dumps(entry, default=str) + "\n")
            self._file.flush()
        except OSError as e:
            self.enabled = False
            self.failure = e
            self._discard_file()

    def debug(self, message: str, **extra: Any) -> None:
        """Log debug message."""
        self._log("debug", message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        """Log info message."""
        self._log("info", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        """Log warning message."""
        self._log("warning", message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        """Log error message."""
        self._log("error", message, **extra)

    def _discard_file(self) -> None:
        """Drop a broken log file without raising."""
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
            self._file = None

    def close(self) -> None:
        """Close the log file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "RunLogger":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
