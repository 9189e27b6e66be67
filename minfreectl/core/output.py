"""Report output helper."""

import json
import sys
from typing import Any


class Output:
    """Collects the report, structured data and messages for one run."""

    def __init__(self):
        self.data: dict[str, Any] = {}
        self.lines: list[str] = []
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self._summary: str | None = None
        self._printed: bool = False

    def emit(self, data: dict[str, Any]) -> None:
        """Store structured output data."""
        self.data.update(data)

    def report(self, *lines: str) -> None:
        """Append lines to the human-readable report."""
        self.lines.extend(lines)

    def error(self, message: str) -> None:
        """Record an error message."""
        self.errors.append(message)

    def warning(self, message: str) -> None:
        """Record a warning message."""
        self.warnings.append(message)

    def set_summary(self, summary: str) -> None:
        """Set a one-line summary."""
        self._summary = summary

    @property
    def summary(self) -> str:
        """Get summary or generate from messages."""
        if self._summary:
            return self._summary
        if self.errors:
            return f"Error: {self.errors[0]}"
        if self.warnings:
            return f"Warning: {self.warnings[0]}"
        return "ok"

    def to_json(self) -> str:
        """Return data, report and messages as a JSON string."""
        payload = {
            **self.data,
            "report": self.lines,
            "warnings": self.warnings,
            "errors": self.errors,
        }
        return json.dumps(payload, indent=2, default=str)

    def to_plain(self, title: str | None = None) -> str:
        """Return the report as plain text."""
        lines = []

        if title:
            lines.append(title)
            lines.append("=" * len(title))
            lines.append("")

        lines.extend(self.lines)

        if self.warnings:
            lines.append("")
            for warning in self.warnings:
                lines.append(f"[WARNING] {warning}")

        return "\n".join(lines)

    def render(self, format: str = "plain", title: str | None = None) -> None:
        """Print output in the specified format.

        Errors go to stderr in plain format and into the document in JSON.

        Args:
            format: Output format - "json" or "plain"
            title: Optional title for plain text output
        """
        if self._printed:
            return
        self._printed = True

        if format == "json":
            print(self.to_json())
            return

        if self.lines or self.warnings:
            print(self.to_plain(title))
        for error in self.errors:
            print(error, file=sys.stderr)
