"""
Safety policy for changing vm.min_free_kbytes.

The evaluator is a pure function: it takes the requested configuration, a
memory snapshot and the tunable's current value, and returns a verdict with a
report. It never touches the system. Rules are checked in the order listed in
RULES and the first one that matches decides the verdict.
"""

import enum
from dataclasses import dataclass, field
from typing import Callable

from minfreectl.core.config import (
    KERNEL_DEFAULT_MIN_FREE_KBYTES,
    MAX_MEM_PERCENT,
    MAX_SWAP_UTILIZATION_PCT,
    PolicyConfig,
    max_allowed_kb,
)
from minfreectl.core.meminfo import MemorySnapshot
from minfreectl.core.sysctl import TUNABLE


class Verdict(enum.Enum):
    """Outcome of a policy evaluation."""

    TOO_LOW_REQUEST = "too_low_request"
    ALREADY_SET = "already_set"
    TOO_HIGH_REQUEST = "too_high_request"
    CONDITIONS_NOT_MET = "conditions_not_met"
    APPROVED = "approved"

    @property
    def is_success(self) -> bool:
        """True for verdicts that end the run successfully."""
        return self in (Verdict.ALREADY_SET, Verdict.APPROVED)


@dataclass(frozen=True)
class PolicyInput:
    """Everything a rule may look at."""

    config: PolicyConfig
    snapshot: MemorySnapshot
    current_value_kb: int

    @property
    def desired(self) -> int:
        return self.config.desired_value_kb

    @property
    def max_allowed_kb(self) -> int:
        return max_allowed_kb(self.snapshot.mem_total_kb)

    @property
    def swap_utilization_pct(self) -> int:
        return self.snapshot.swap_utilization_pct

    @property
    def required_mem_kb(self) -> int:
        return self.config.required_mem_kb


@dataclass(frozen=True)
class Evaluation:
    """Verdict plus the report explaining it."""

    verdict: Verdict
    report: list[str]
    swap_utilization_pct: int
    required_mem_kb: int
    max_allowed_kb: int
    value_to_write: int | None = None

    def derived(self) -> dict[str, int]:
        return {
            "swap_utilization_pct": self.swap_utilization_pct,
            "required_mem_kb": self.required_mem_kb,
            "max_allowed_kb": self.max_allowed_kb,
        }


@dataclass(frozen=True)
class Rule:
    """A predicate and the verdict it produces when it matches."""

    name: str
    verdict: Verdict
    applies: Callable[[PolicyInput], bool]
    report: Callable[[PolicyInput], list[str]] = field(repr=False)


def below_kernel_default(p: PolicyInput) -> bool:
    return p.desired < KERNEL_DEFAULT_MIN_FREE_KBYTES


def already_set(p: PolicyInput) -> bool:
    return p.current_value_kb == p.desired


def above_memory_ceiling(p: PolicyInput) -> bool:
    return p.desired > p.max_allowed_kb


def unsafe_memory_state(p: PolicyInput) -> bool:
    return (
        p.swap_utilization_pct >= MAX_SWAP_UTILIZATION_PCT
        or p.snapshot.mem_available_kb < p.required_mem_kb
    )


def always(p: PolicyInput) -> bool:
    return True


def _too_low_report(p: PolicyInput) -> list[str]:
    return [
        f"The new value of {TUNABLE} ({p.desired}) is less than the kernel "
        f"default ({KERNEL_DEFAULT_MIN_FREE_KBYTES}). If you really want to set "
        "such value, please do so manually.",
    ]


def _already_set_report(p: PolicyInput) -> list[str]:
    return [
        f"The current value of {TUNABLE} is already set to {p.desired}.",
        "No changes made.",
    ]


def _too_high_report(p: PolicyInput) -> list[str]:
    return [
        f"The new value of {TUNABLE} ({p.desired}) is greater than "
        f"{p.max_allowed_kb}, which is more than {MAX_MEM_PERCENT}% of the total "
        f"memory ({p.snapshot.mem_total_kb} KB).",
        "If you really want to set such value, please do so manually.",
    ]


def _conditions(p: PolicyInput) -> list[str]:
    return [
        f"The following conditions must be met in order to change the {TUNABLE} value:",
        f"1. Less than {MAX_SWAP_UTILIZATION_PCT}% of swap is utilized "
        f"(currently: {p.swap_utilization_pct}%).",
        f"2. Total available memory (currently: {p.snapshot.mem_available_kb} KB) "
        f"is at least {p.config.required_mem_factor} times the new {TUNABLE} "
        f"value ({p.desired} KB).",
        "",
    ]


def _not_met_report(p: PolicyInput) -> list[str]:
    s = p.snapshot
    return _conditions(p) + [
        "WARNING: Conditions are not met. Please check the following:",
        f"  MemTotal: {s.mem_total_kb} KB",
        f"  MemFree: {s.mem_free_kb} KB",
        f"  Buffers: {s.buffers_kb} KB",
        f"  Cached: {s.cached_kb} KB",
        f"  Available Memory: {s.mem_available_kb} KB",
        f"  SwapTotal: {s.swap_total_kb} KB",
        f"  SwapFree: {s.swap_free_kb} KB",
        f"  Swap Utilization-%: {p.swap_utilization_pct}%",
        f"  Required available memory: {p.required_mem_kb} KB",
        "No changes made.",
    ]


def _approved_report(p: PolicyInput) -> list[str]:
    return _conditions(p) + ["Conditions are met."]


RULES: tuple[Rule, ...] = (
    Rule("floor", Verdict.TOO_LOW_REQUEST, below_kernel_default, _too_low_report),
    Rule("no-op", Verdict.ALREADY_SET, already_set, _already_set_report),
    Rule("ceiling", Verdict.TOO_HIGH_REQUEST, above_memory_ceiling, _too_high_report),
    Rule("safety", Verdict.CONDITIONS_NOT_MET, unsafe_memory_state, _not_met_report),
    Rule("approve", Verdict.APPROVED, always, _approved_report),
)


def evaluate(
    config: PolicyConfig,
    snapshot: MemorySnapshot,
    current_value_kb: int,
) -> Evaluation:
    """
    Decide whether the tunable may be changed.

    Args:
        config: Requested value and required-memory factor
        snapshot: Memory statistics for this run
        current_value_kb: Live value of the tunable

    Returns:
        Evaluation from the first rule that matches
    """
    p = PolicyInput(config=config, snapshot=snapshot, current_value_kb=current_value_kb)

    for rule in RULES:
        if rule.applies(p):
            return Evaluation(
                verdict=rule.verdict,
                report=rule.report(p),
                swap_utilization_pct=p.swap_utilization_pct,
                required_mem_kb=p.required_mem_kb,
                max_allowed_kb=p.max_allowed_kb,
                value_to_write=p.desired if rule.verdict is Verdict.APPROVED else None,
            )

    # The last rule always matches
    raise AssertionError("no policy rule matched")
