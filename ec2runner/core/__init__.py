from .exceptions import (
    ConfigurationError,
    Ec2RunnerError,
    InstanceStartTimeoutError,
    InstanceTerminatedError,
    ProvisioningError,
    RunnerRegistrationTimeoutError,
)

__all__ = [
    "ConfigurationError",
    "Ec2RunnerError",
    "InstanceStartTimeoutError",
    "InstanceTerminatedError",
    "ProvisioningError",
    "RunnerRegistrationTimeoutError",
]
