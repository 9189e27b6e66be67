"""Policy configuration with layered overrides."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from minfreectl.core.context import Context


# Value written when nothing overrides it (256MB)
DEFAULT_MIN_FREE_KBYTES = 262144

# Available memory must be at least this multiple of the new value
DEFAULT_REQUIRED_MEM_FACTOR = 7
RECOMMENDED_FACTOR_RANGE = (3, 7)

# Kernel default; anything lower has to be set by hand
KERNEL_DEFAULT_MIN_FREE_KBYTES = 67584

# Upper bound for the new value, as a share of MemTotal
MAX_MEM_PERCENT = 20

# Swap utilization at or above this blocks the change
MAX_SWAP_UTILIZATION_PCT = 50

ENV_MIN_FREE_KBYTES = "NEW_MIN_FREE_KBYTES_VALUE"
ENV_REQUIRED_MEM_FACTOR = "REQUIRED_MEM_FACTOR"

PROJECT_CONFIG = Path(".minfreectl.yaml")

INT_PATTERN = re.compile(r"^-?\d+$")


class ConfigError(Exception):
    """Invalid configuration value."""

    pass


@dataclass(frozen=True)
class PolicyConfig:
    """Requested value and the memory factor it is checked against."""

    desired_value_kb: int = DEFAULT_MIN_FREE_KBYTES
    required_mem_factor: int = DEFAULT_REQUIRED_MEM_FACTOR

    @property
    def required_mem_kb(self) -> int:
        """Available memory needed before the new value may be applied."""
        return self.desired_value_kb * self.required_mem_factor

    @property
    def factor_in_recommended_range(self) -> bool:
        low, high = RECOMMENDED_FACTOR_RANGE
        return low <= self.required_mem_factor <= high

    def to_dict(self) -> dict[str, int]:
        return {
            "desired_value_kb": self.desired_value_kb,
            "required_mem_factor": self.required_mem_factor,
        }


def max_allowed_kb(mem_total_kb: int) -> int:
    """Largest value allowed for a host with mem_total_kb of memory."""
    return mem_total_kb * MAX_MEM_PERCENT // 100


def user_config_path() -> Path:
    return Path.home() / ".config" / "minfreectl" / "config.yaml"


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a YAML config file if it exists."""
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return data


def get_config_value(key: str) -> Any:
    """Get config value with project -> user -> None precedence."""
    # Project config
    data = load_config_file(PROJECT_CONFIG)
    if key in data:
        return data[key]

    # User config
    data = load_config_file(user_config_path())
    if key in data:
        return data[key]

    return None


def parse_int(value: Any, name: str) -> int:
    """
    Coerce a setting to a non-negative integer.

    Args:
        value: Raw value from a flag, the environment or a config file
        name: Setting name used in error messages

    Raises:
        ConfigError: If value is not a non-negative integer
    """
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and INT_PATTERN.match(value.strip()):
        result = int(value.strip())
    else:
        raise ConfigError(f"{name} must be an integer, got {value!r}")

    if result < 0:
        raise ConfigError(f"{name} must not be negative, got {result}")
    return result


def _resolve(
    name: str,
    cli_value: int | None,
    env_key: str,
    config_key: str,
    default: int,
    context: "Context",
) -> int:
    """Pick one setting using flag -> env -> config file -> default."""
    if cli_value is not None:
        return parse_int(cli_value, name)

    env_value = context.get_env(env_key)
    if env_value:
        return parse_int(env_value, env_key)

    file_value = get_config_value(config_key)
    if file_value is not None:
        return parse_int(file_value, config_key)

    return default


def resolve_policy_config(
    value: int | None = None,
    factor: int | None = None,
    context: "Context | None" = None,
) -> PolicyConfig:
    """
    Build the PolicyConfig for this run.

    Args:
        value: --value from the command line, if given
        factor: --factor from the command line, if given
        context: Execution context (for testing)

    Returns:
        PolicyConfig with every setting resolved

    Raises:
        ConfigError: If any resolved setting is invalid
    """
    if context is None:
        from minfreectl.core.context import Context
        context = Context()

    return PolicyConfig(
        desired_value_kb=_resolve(
            "--value",
            value,
            ENV_MIN_FREE_KBYTES,
            "min_free_kbytes",
            DEFAULT_MIN_FREE_KBYTES,
            context,
        ),
        required_mem_factor=_resolve(
            "--factor",
            factor,
            ENV_REQUIRED_MEM_FACTOR,
            "required_mem_factor",
            DEFAULT_REQUIRED_MEM_FACTOR,
            context,
        ),
    )


def resolve_log_dir(log_dir: Path | None = None) -> Path | None:
    """Run log directory from --log-dir or the config file, if set."""
    if log_dir is not None:
        return log_dir
    configured = get_config_value("log_dir")
    if configured:
        return Path(str(configured)).expanduser()
    return None
