"""Read and write vm.min_free_kbytes through sysctl."""

import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from minfreectl.core.context import Context


TUNABLE = "vm.min_free_kbytes"


class SysctlError(Exception):
    """Error reading or writing a kernel tunable."""

    pass


class KernelValueStore:
    """Current and new values of a single integer sysctl."""

    def __init__(
        self,
        key: str = TUNABLE,
        context: "Context | None" = None,
        timeout: int = 60,
    ):
        if context is None:
            from minfreectl.core.context import Context
            context = Context()
        self.key = key
        self.context = context
        self.timeout = timeout

    def write_command(self, value: int) -> list[str]:
        """Command line used to set the tunable to value."""
        return ["sysctl", "-w", f"{self.key}={value}"]

    def _run(self, cmd: list[str]) -> subprocess.CompletedProcess:
        if not self.context.check_tool("sysctl"):
            raise SysctlError("Required tool not found: sysctl")
        try:
            return self.context.run(cmd, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise SysctlError(f"Command timed out after {self.timeout}s: {' '.join(cmd)}") from e
        except OSError as e:
            raise SysctlError(f"Command failed: {' '.join(cmd)}: {e}") from e

    def read(self) -> int:
        """
        Read the current value.

        Returns:
            Current integer value of the tunable

        Raises:
            SysctlError: If sysctl fails or prints a non-integer
        """
        result = self._run(["sysctl", "-n", self.key])
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise SysctlError(f"Unable to read {self.key}: {detail}")

        raw = result.stdout.strip()
        try:
            return int(raw)
        except ValueError:
            raise SysctlError(f"Unexpected value for {self.key}: {raw!r}")

    def write(self, value: int) -> None:
        """
        Set the tunable to value.

        Raises:
            SysctlError: If sysctl exits non-zero or cannot be run
        """
        result = self._run(self.write_command(value))
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise SysctlError(f"sysctl -w {self.key}={value} failed: {detail}")
