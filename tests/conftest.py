"""Shared test fixtures."""

import subprocess
import sys
from pathlib import Path

import pytest

# Add project root to path for package imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SYSCTL_READ = ("sysctl", "-n", "vm.min_free_kbytes")


def sysctl_write(value: int) -> tuple:
    """Command tuple used to set vm.min_free_kbytes."""
    return ("sysctl", "-w", f"vm.min_free_kbytes={value}")


class MockContext:
    """Mock Context for testing without real system access."""

    def __init__(
        self,
        tools_available: list[str] | None = None,
        command_outputs: dict[tuple, str | subprocess.CompletedProcess | Exception] | None = None,
        file_contents: dict[str, str] | None = None,
        env: dict[str, str] | None = None,
        euid: int = 0,
    ):
        self.tools_available = set(tools_available or [])
        self.command_outputs = command_outputs or {}
        self.file_contents = file_contents or {}
        self.env = env or {}
        self.euid = euid
        self.commands_run: list[list[str]] = []
        self.files_read: list[str] = []

    def check_tool(self, name: str) -> bool:
        """Check if tool is in mocked available list."""
        return name in self.tools_available

    def run(
        self,
        cmd: list[str],
        check: bool = False,
        **kwargs,
    ) -> subprocess.CompletedProcess:
        """Return mocked command output."""
        self.commands_run.append(cmd)
        key = tuple(cmd)
        if key not in self.command_outputs:
            raise KeyError(f"No mock output for command: {cmd}")

        output = self.command_outputs[key]
        if isinstance(output, Exception):
            raise output

        # Allow passing CompletedProcess directly for non-zero return codes
        if isinstance(output, subprocess.CompletedProcess):
            return output

        return subprocess.CompletedProcess(
            cmd,
            returncode=0,
            stdout=output,
            stderr="",
        )

    def read_file(self, path: str) -> str:
        """Return mocked file content."""
        self.files_read.append(path)
        if path not in self.file_contents:
            raise FileNotFoundError(f"No mock content for: {path}")
        return self.file_contents[path]

    def get_env(self, key: str, default: str | None = None) -> str | None:
        """Return mocked environment variable."""
        return self.env.get(key, default)

    def geteuid(self) -> int:
        """Return mocked effective user ID."""
        return self.euid

    def wrote(self) -> bool:
        """True if any sysctl -w command was run."""
        return any(cmd[:2] == ["sysctl", "-w"] for cmd in self.commands_run)


def load_fixture(category: str, name: str) -> str:
    """Load a fixture file by category and name."""
    fixture_path = FIXTURES_DIR / category / name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture not found: {fixture_path}")
    return fixture_path.read_text()


def host_context(
    meminfo: str | None,
    current_value: int | str | subprocess.CompletedProcess | Exception = 65536,
    write_result: str | subprocess.CompletedProcess | Exception = "",
    write_value: int = 262144,
    **kwargs,
) -> MockContext:
    """
    Build a MockContext for a host with sysctl available.

    Args:
        meminfo: /proc/meminfo content, or None for an unreadable file
        current_value: Output of sysctl -n (or a CompletedProcess/exception)
        write_result: Result of sysctl -w for write_value
        write_value: Value the write mock answers for
    """
    if isinstance(current_value, int):
        current_value = f"{current_value}\n"

    file_contents = {}
    if meminfo is not None:
        file_contents["/proc/meminfo"] = meminfo

    return MockContext(
        tools_available=["sysctl"],
        command_outputs={
            SYSCTL_READ: current_value,
            sysctl_write(write_value): write_result,
        },
        file_contents=file_contents,
        **kwargs,
    )


@pytest.fixture
def mock_context():
    """Factory fixture for creating MockContext instances."""
    def _create(**kwargs) -> MockContext:
        return MockContext(**kwargs)
    return _create


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config lookups and run logs inside a temporary home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.chdir(tmp_path)
    return home
