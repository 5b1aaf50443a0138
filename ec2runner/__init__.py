"""ec2runner - ephemeral EC2 instances as GitHub Actions self-hosted runners.

Example:

    from ec2runner import build_injector, load_inputs, start_runner
    from ec2runner.state_store import FileStateStore

    inputs = load_inputs(mode="start")
    handle = await start_runner(build_injector(inputs, FileStateStore()))
"""

from ec2runner.config import Inputs, load_inputs
from ec2runner.constants import BootMode, InstanceState, Mode
from ec2runner.core.exceptions import (
    ConfigurationError,
    Ec2RunnerError,
    InstanceStartTimeoutError,
    InstanceTerminatedError,
    ProvisioningError,
    RunnerRegistrationTimeoutError,
)
from ec2runner.runner import build_injector, start_runner, stop_runner
from ec2runner.state_store import RunnerHandle, StateStore

__all__ = [
    "BootMode",
    "ConfigurationError",
    "Ec2RunnerError",
    "InstanceStartTimeoutError",
    "InstanceState",
    "InstanceTerminatedError",
    "Inputs",
    "Mode",
    "ProvisioningError",
    "RunnerHandle",
    "RunnerRegistrationTimeoutError",
    "StateStore",
    "build_injector",
    "load_inputs",
    "start_runner",
    "stop_runner",
]
