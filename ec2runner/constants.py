"""Centralized constants and enums for ec2runner.

All magic strings, versions and timing defaults are defined here
to ensure consistency and enable type-safe usage throughout the codebase.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# EC2 Instance States
# =============================================================================


class InstanceState(StrEnum):
    """EC2 instance state names."""

    PENDING = "pending"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"
    STOPPING = "stopping"
    STOPPED = "stopped"


# States from which an instance never reaches running on its own.
TERMINAL_STATES: Final = frozenset({
    InstanceState.SHUTTING_DOWN,
    InstanceState.TERMINATED,
    InstanceState.STOPPING,
    InstanceState.STOPPED,
})


# =============================================================================
# Runner Bootstrap
# =============================================================================


class BootMode(StrEnum):
    """How the user-data script obtains the runner software."""

    PREINSTALLED = "preinstalled"
    FRESH = "fresh"


class Mode(StrEnum):
    """Phase of the runner lifecycle handled by one invocation."""

    START = "start"
    STOP = "stop"


RUNNER_VERSION: Final = "2.313.0"
RUNNER_DIR: Final = "actions-runner"
RUNNER_RELEASES_URL: Final = "https://github.com/actions/runner/releases/download"

# `uname -m` output -> runner release architecture.
RUNNER_ARCHITECTURES: Final = {
    "aarch64": "arm64",
    "amd64": "x64",
    "x86_64": "x64",
}

LABEL_LENGTH: Final = 5


# =============================================================================
# AWS
# =============================================================================

DEFAULT_REGION: Final = "us-east-1"
MAX_ATTEMPTS: Final = 5

# Timeouts (in seconds)
RUNNING_TIMEOUT: Final = 300
POLL_INTERVAL: Final = 10


# =============================================================================
# GitHub
# =============================================================================

GITHUB_URL: Final = "https://github.com"
GITHUB_API_URL: Final = "https://api.github.com"
REGISTRATION_TIMEOUT: Final = 300
REGISTRATION_QUIET_PERIOD: Final = 30
