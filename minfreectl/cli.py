"""Command-line interface for minfreectl.

Exit codes:
    0: Success (value already set, changed, or would be changed with --check)
    1: Failure in execution (not root, statistics or sysctl unavailable,
       write failed)
    2: Conditions not met (request out of bounds, unsafe memory state,
       invalid configuration)
"""

import argparse
import sys
from pathlib import Path
from typing import Any

from minfreectl import __version__
from minfreectl.core.config import ConfigError, resolve_log_dir, resolve_policy_config
from minfreectl.core.context import Context
from minfreectl.core.logging import RunLogger, get_log_path
from minfreectl.core.meminfo import AvailableSource, MeminfoError, read_snapshot
from minfreectl.core.output import Output
from minfreectl.core.policy import Verdict, evaluate
from minfreectl.core.sysctl import TUNABLE, KernelValueStore, SysctlError


EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONDITIONS_NOT_MET = 2

TITLE = f"{TUNABLE} check"


class PrivilegeError(Exception):
    """Caller lacks the privilege needed to change kernel tunables."""

    pass


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="minfreectl",
        description=(
            f"Verify that the system can take a higher {TUNABLE} "
            "and set the new value if it can"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"minfreectl {__version__}",
    )
    parser.add_argument(
        "--value",
        type=int,
        metavar="KB",
        help="New value in KB (env: NEW_MIN_FREE_KBYTES_VALUE, default: 262144)",
    )
    parser.add_argument(
        "--factor",
        type=int,
        metavar="N",
        help=(
            "Available memory must be at least N times the new value; "
            "3-7 recommended (env: REQUIRED_MEM_FACTOR, default: 7)"
        ),
    )
    parser.add_argument(
        "--check",
        "--dry-run",
        dest="check",
        action="store_true",
        help="Evaluate only, never change the tunable",
    )
    parser.add_argument(
        "--format",
        choices=["plain", "json"],
        default="plain",
        help="Output format (default: plain)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Directory for the JSONL run log (default: ~/var/log/minfreectl)",
    )
    parser.add_argument(
        "--no-log",
        action="store_true",
        help="Do not write the run log",
    )
    return parser


def require_root(context: Context) -> None:
    """Raise PrivilegeError unless running as root."""
    if context.geteuid() != 0:
        raise PrivilegeError("This command must be run as root.")


def _fail(
    output: Output,
    logger: RunLogger,
    message: str,
    exit_code: int,
    **extra: Any,
) -> int:
    """Record a terminal error and return its exit code."""
    output.error(message)
    logger.error(message, exit_code=exit_code, **extra)
    return exit_code


def check_and_apply(
    opts: argparse.Namespace,
    output: Output,
    context: Context,
    logger: RunLogger,
) -> int:
    """
    Evaluate the policy and set the tunable if it is approved.

    Args:
        opts: Parsed command-line options
        output: Output helper
        context: Execution context
        logger: Run log

    Returns:
        Exit code
    """
    try:
        require_root(context)
    except PrivilegeError as e:
        return _fail(output, logger, str(e), EXIT_FAILURE)

    try:
        config = resolve_policy_config(opts.value, opts.factor, context)
    except ConfigError as e:
        return _fail(output, logger, f"Invalid configuration: {e}", EXIT_CONDITIONS_NOT_MET)

    output.emit({"config": config.to_dict()})
    if not config.factor_in_recommended_range:
        message = (
            f"Required memory factor {config.required_mem_factor} is outside "
            "the recommended range of 3 to 7"
        )
        output.warning(message)
        logger.warning(message, required_mem_factor=config.required_mem_factor)

    try:
        snapshot = read_snapshot(context)
    except MeminfoError as e:
        return _fail(output, logger, str(e), EXIT_FAILURE)

    output.emit({"snapshot": snapshot.to_dict()})
    if snapshot.available_source is AvailableSource.DERIVED:
        output.report("MemAvailable not defined in /proc/meminfo, calculating manually.")

    store = KernelValueStore(context=context)
    try:
        current = store.read()
    except SysctlError as e:
        return _fail(output, logger, str(e), EXIT_FAILURE)

    evaluation = evaluate(config, snapshot, current)
    output.emit({
        "verdict": evaluation.verdict.value,
        "current_value_kb": current,
        "derived": evaluation.derived(),
    })
    output.report(*evaluation.report)
    logger.info(
        "Policy evaluated",
        verdict=evaluation.verdict.value,
        current_value_kb=current,
        config=config.to_dict(),
        snapshot=snapshot.to_dict(),
        derived=evaluation.derived(),
    )

    if evaluation.verdict is not Verdict.APPROVED:
        if evaluation.verdict.is_success:
            return EXIT_SUCCESS
        return EXIT_CONDITIONS_NOT_MET

    value = evaluation.value_to_write
    command = " ".join(store.write_command(value))

    if opts.check:
        output.report(
            "Check only, the following would set the new value:",
            f"  {command}",
            "No changes made.",
        )
        return EXIT_SUCCESS

    output.report("Running the following to set the new value:", f"  {command}")
    try:
        store.write(value)
    except SysctlError as e:
        output.error(str(e))
        return _fail(output, logger, f"Failed to set {TUNABLE}.", EXIT_FAILURE, detail=str(e))

    output.emit({"applied": True})
    logger.info(f"Set {TUNABLE}", previous_value_kb=current, new_value_kb=value)
    return EXIT_SUCCESS


def run(args: list[str], output: Output, context: Context) -> int:
    """
    Main entry point.

    Args:
        args: Command-line arguments
        output: Output helper
        context: Execution context

    Returns:
        0 = success, 1 = execution failure, 2 = conditions not met
    """
    opts = create_parser().parse_args(args)
    output.emit({"applied": False})

    log_path = get_log_path(resolve_log_dir(opts.log_dir))
    command = "check" if opts.check else "apply"
    with RunLogger(command, log_path=log_path, enabled=not opts.no_log) as logger:
        exit_code = check_and_apply(opts, output, context, logger)
        output.emit({"exit_code": exit_code})
        output.set_summary(f"verdict={output.data.get('verdict', 'none')}, exit={exit_code}")
        logger.debug("Run finished", summary=output.summary)

    if logger.failure is not None:
        output.warning(f"Run log disabled: {logger.failure}")
    output.render(opts.format, TITLE)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Console script entry point."""
    if argv is None:
        argv = sys.argv[1:]
    return run(argv, Output(), Context())


if __name__ == "__main__":
    sys.exit(main())
