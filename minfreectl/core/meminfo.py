"""Memory statistics from /proc/meminfo."""

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from minfreectl.core.context import Context


MEMINFO_PATH = "/proc/meminfo"

# meminfo label -> snapshot field, for the fields every kernel must expose
REQUIRED_FIELDS = {
    "MemTotal": "mem_total_kb",
    "MemFree": "mem_free_kb",
    "Buffers": "buffers_kb",
    "Cached": "cached_kb",
    "SwapTotal": "swap_total_kb",
    "SwapFree": "swap_free_kb",
}

AVAILABLE_FIELD = "MemAvailable"


class MeminfoError(Exception):
    """Error reading or parsing memory statistics."""

    pass


class AvailableSource(enum.Enum):
    """Where the available-memory figure of a snapshot came from."""

    REPORTED = "reported"
    DERIVED = "derived"


@dataclass(frozen=True)
class MemorySnapshot:
    """Memory statistics read once per run, all values in KB."""

    mem_total_kb: int
    mem_free_kb: int
    buffers_kb: int
    cached_kb: int
    swap_total_kb: int
    swap_free_kb: int
    mem_available_kb: int
    available_source: AvailableSource = AvailableSource.REPORTED

    @classmethod
    def from_fields(
        cls,
        mem_total_kb: int,
        mem_free_kb: int,
        buffers_kb: int,
        cached_kb: int,
        swap_total_kb: int,
        swap_free_kb: int,
        mem_available_kb: int | None = None,
    ) -> "MemorySnapshot":
        """
        Build a snapshot, deriving available memory when it is not reported.

        Args:
            mem_available_kb: Reported MemAvailable, or None if the kernel
                does not expose it

        Returns:
            MemorySnapshot tagged with the source of mem_available_kb
        """
        if mem_available_kb is None:
            return cls(
                mem_total_kb=mem_total_kb,
                mem_free_kb=mem_free_kb,
                buffers_kb=buffers_kb,
                cached_kb=cached_kb,
                swap_total_kb=swap_total_kb,
                swap_free_kb=swap_free_kb,
                mem_available_kb=mem_free_kb + buffers_kb + cached_kb,
                available_source=AvailableSource.DERIVED,
            )
        return cls(
            mem_total_kb=mem_total_kb,
            mem_free_kb=mem_free_kb,
            buffers_kb=buffers_kb,
            cached_kb=cached_kb,
            swap_total_kb=swap_total_kb,
            swap_free_kb=swap_free_kb,
            mem_available_kb=mem_available_kb,
            available_source=AvailableSource.REPORTED,
        )

    @property
    def swap_utilization_pct(self) -> int:
        """Percentage of swap in use, truncated; 0 when swap is disabled."""
        if self.swap_total_kb == 0:
            return 0
        return 100 - 100 * self.swap_free_kb // self.swap_total_kb

    def to_dict(self) -> dict:
        """Return snapshot as a JSON-friendly dict."""
        return {
            "mem_total_kb": self.mem_total_kb,
            "mem_free_kb": self.mem_free_kb,
            "buffers_kb": self.buffers_kb,
            "cached_kb": self.cached_kb,
            "swap_total_kb": self.swap_total_kb,
            "swap_free_kb": self.swap_free_kb,
            "mem_available_kb": self.mem_available_kb,
            "available_source": self.available_source.value,
        }


def parse_meminfo(content: str) -> dict[str, str]:
    """
    Parse /proc/meminfo content into a label -> first value token dict.

    Labels are lower-cased so lookups are case-insensitive. The first
    occurrence of a label wins.
    """
    meminfo: dict[str, str] = {}
    for line in content.splitlines():
        if ":" not in line:
            continue
        label, value = line.split(":", 1)
        label = label.strip().lower()
        parts = value.split()
        if label and parts and label not in meminfo:
            meminfo[label] = parts[0]
    return meminfo


def _to_kb(meminfo: dict[str, str], label: str) -> int:
    """Convert one parsed field to a non-negative integer."""
    raw = meminfo[label.lower()]
    try:
        value = int(raw)
    except ValueError:
        raise MeminfoError(f"Malformed {label} value in {MEMINFO_PATH}: {raw!r}")
    if value < 0:
        raise MeminfoError(f"Negative {label} value in {MEMINFO_PATH}: {value}")
    return value


def snapshot_from_meminfo(content: str) -> MemorySnapshot:
    """
    Build a MemorySnapshot from raw /proc/meminfo content.

    Args:
        content: Full /proc/meminfo text

    Returns:
        MemorySnapshot; mem_available_kb is derived when MemAvailable is absent

    Raises:
        MeminfoError: If a required field is missing or malformed
    """
    meminfo = parse_meminfo(content)

    missing = [label for label in REQUIRED_FIELDS if label.lower() not in meminfo]
    if missing:
        raise MeminfoError(
            f"Missing required fields in {MEMINFO_PATH}: {', '.join(missing)}"
        )

    values = {field: _to_kb(meminfo, label) for label, field in REQUIRED_FIELDS.items()}

    mem_available = None
    if AVAILABLE_FIELD.lower() in meminfo:
        mem_available = _to_kb(meminfo, AVAILABLE_FIELD)

    return MemorySnapshot.from_fields(mem_available_kb=mem_available, **values)


def read_snapshot(context: "Context | None" = None) -> MemorySnapshot:
    """
    Read /proc/meminfo and build a MemorySnapshot.

    Args:
        context: Execution context (for testing)

    Raises:
        MeminfoError: If the file cannot be read or parsed
    """
    if context is None:
        from minfreectl.core.context import Context
        context = Context()

    try:
        content = context.read_file(MEMINFO_PATH)
    except (FileNotFoundError, IOError) as e:
        raise MeminfoError(f"Unable to read {MEMINFO_PATH}: {e}") from e

    return snapshot_from_meminfo(content)
