"""Observability for ec2runner: the logger facade and its sinks."""

from .logger import GitHubActionsHandler, logger
from .logging import LogConfig, LogLevel, setup_logging, teardown_logging

__all__ = [
    "GitHubActionsHandler",
    "LogConfig",
    "LogLevel",
    "logger",
    "setup_logging",
    "teardown_logging",
]
