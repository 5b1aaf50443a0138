"""Logging configuration for ec2runner.

Inside a GitHub Actions job records are written as workflow commands on
stdout so that errors are annotated on the run. Locally they go to a rich
console on stderr.

Example:
    from ec2runner.observability import LogConfig, setup_logging

    handler_ids = setup_logging(LogConfig(level="DEBUG"))
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeAlias

from .logger import logger

LogLevel: TypeAlias = Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"]


def _running_in_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        github_actions: Emit workflow commands instead of rich console output.
            Defaults to True when running inside GitHub Actions.
        file: Optional path to an additional plain-text log file.
    """

    level: LogLevel = "DEBUG"
    github_actions: bool = field(default_factory=_running_in_actions)
    file: str | None = None


def setup_logging(config: LogConfig) -> list[int]:
    """Configure logging and return handler IDs for cleanup.

    Args:
        config: Logging configuration.

    Returns:
        List of handler IDs that were added (for later removal).
    """
    logger.remove()
    handler_ids: list[int] = []

    if config.github_actions:
        handler_ids.append(logger.add(sys.stdout, level=config.level, github_actions=True))
    else:
        handler_ids.append(logger.add(sys.stderr, level=config.level))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(config.file, level="DEBUG"))

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers added by setup_logging."""
    for hid in handler_ids:
        logger.remove(hid)
