"""AWS provider configuration.

Immutable configuration dataclass for the EC2 client and its waits.
"""

from __future__ import annotations

from dataclasses import dataclass

from ec2runner.constants import DEFAULT_REGION, MAX_ATTEMPTS, POLL_INTERVAL, RUNNING_TIMEOUT


@dataclass(frozen=True, slots=True)
class AWS:
    """AWS provider configuration.

    Example:
        >>> from ec2runner.providers.aws import AWS
        >>> config = AWS(region="eu-west-1")

    Args:
        region: AWS region for the runner instance. Default: us-east-1
        max_attempts: Attempts per EC2 API call, retried by botocore itself.
        running_timeout: Seconds to wait for the instance to reach running.
        poll_interval: Seconds between instance state polls.
    """

    region: str = DEFAULT_REGION
    max_attempts: int = MAX_ATTEMPTS
    running_timeout: float = RUNNING_TIMEOUT
    poll_interval: float = POLL_INTERVAL
