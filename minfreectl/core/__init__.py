"""Core minfreectl functionality."""

from minfreectl.core.config import ConfigError, PolicyConfig, resolve_policy_config
from minfreectl.core.context import Context
from minfreectl.core.meminfo import (
    AvailableSource,
    MeminfoError,
    MemorySnapshot,
    read_snapshot,
)
from minfreectl.core.output import Output
from minfreectl.core.policy import RULES, Evaluation, Verdict, evaluate
from minfreectl.core.sysctl import KernelValueStore, SysctlError

__all__ = [
    "AvailableSource",
    "ConfigError",
    "Context",
    "Evaluation",
    "KernelValueStore",
    "MeminfoError",
    "MemorySnapshot",
    "Output",
    "PolicyConfig",
    "RULES",
    "SysctlError",
    "Verdict",
    "evaluate",
    "read_snapshot",
    "resolve_policy_config",
]
