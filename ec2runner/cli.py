"""Command line entry point.

    ec2runner start [--config ec2runner.toml]
    ec2runner stop  [--config ec2runner.toml]

Inside a GitHub Actions step the mode and every other input come from the
``INPUT_*`` variables, so plain ``ec2runner`` is enough there.
"""

from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path

from ec2runner.config import load_inputs
from ec2runner.constants import Mode
from ec2runner.observability import LogConfig, logger, setup_logging, teardown_logging
from ec2runner.runner import build_injector, start_runner, stop_runner
from ec2runner.state_store import store_for_environment


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ec2runner",
        description="Start or stop an ephemeral EC2 instance acting as a GitHub self-hosted runner",
    )
    parser.add_argument(
        "mode", nargs="?", choices=[m.value for m in Mode],
        help="Lifecycle phase. Defaults to the 'mode' input (INPUT_MODE)",
    )
    parser.add_argument("--config", type=Path, default=None, help="TOML file with a [runner] table")
    parser.add_argument(
        "--state-file", type=Path, default=None,
        help="JSON file holding the runner handle between start and stop",
    )
    parser.add_argument(
        "--log-level", default="DEBUG", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    return parser


async def _run(mode: Mode, injector) -> None:
    match mode:
        case Mode.START:
            await start_runner(injector)
        case Mode.STOP:
            await stop_runner(injector)


def main(argv: list[str] | None = None) -> int:
    """Run one lifecycle phase. Any failure exits non-zero."""
    args = _parser().parse_args(argv)
    handler_ids = setup_logging(LogConfig(level=args.log_level, file=args.log_file))

    try:
        inputs = load_inputs(config_path=args.config, mode=args.mode)
        store = store_for_environment(os.environ, args.state_file)
        asyncio.run(_run(inputs.mode, build_injector(inputs, store)))
    except Exception as e:
        logger.error("ec2runner failed: {error}", error=e)
        logger.debug("Failure details", exc_info=True)
        return 1
    finally:
        teardown_logging(handler_ids)

    return 0
