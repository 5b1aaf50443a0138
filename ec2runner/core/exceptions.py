"""Custom exception hierarchy for ec2runner.

All ec2runner-specific exceptions inherit from Ec2RunnerError, enabling
callers to catch all of them with a single except clause. Errors raised
by the AWS SDK are never wrapped; they reach the caller unchanged.
"""

from __future__ import annotations


class Ec2RunnerError(Exception):
    """Base exception for all ec2runner errors."""


class ConfigurationError(Ec2RunnerError):
    """Raised for invalid configuration or missing required settings."""


class ProvisioningError(Ec2RunnerError):
    """Raised when the runner lifecycle cannot make progress."""


class InstanceStartTimeoutError(ProvisioningError):
    """Raised when an instance does not reach running within the deadline."""

    def __init__(self, instance_id: str, timeout: float) -> None:
        self.instance_id = instance_id
        self.timeout = timeout
        super().__init__(
            f"Instance {instance_id} not running after {timeout:.0f}s"
        )


class InstanceTerminatedError(ProvisioningError):
    """Raised when instance was terminated - do not retry."""

    def __init__(self, instance_id: str, reason: str = "unknown") -> None:
        self.instance_id = instance_id
        self.reason = reason
        super().__init__(f"Instance {instance_id} terminated: {reason}")


class RunnerRegistrationTimeoutError(ProvisioningError):
    """Raised when the runner never shows up online on GitHub.

    The label is kept as an attribute only; messages never carry it.
    """

    def __init__(self, label: str, timeout: float) -> None:
        self.label = label
        self.timeout = timeout
        super().__init__(
            f"Runner not registered after {timeout:.0f}s"
        )
