"""AWS EC2 provider for ec2runner.

Example:
    from injector import Injector

    from ec2runner.providers.aws import AWS, AWSModule, EC2Lifecycle

    injector = Injector([AWSModule()])
    injector.binder.bind(AWS, to=AWS(region="us-east-1"))
    lifecycle = injector.get(EC2Lifecycle)
"""

from ec2runner.providers.aws.clients import AWSModule, EC2ClientFactory
from ec2runner.providers.aws.config import AWS
from ec2runner.providers.aws.lifecycle import EC2Lifecycle
from ec2runner.providers.aws.state import InstanceId, LaunchRequest, StateTransition
from ec2runner.providers.aws.userdata import encode_user_data, render_user_data

__all__ = [
    "AWS",
    "AWSModule",
    "EC2ClientFactory",
    "EC2Lifecycle",
    "InstanceId",
    "LaunchRequest",
    "StateTransition",
    "encode_user_data",
    "render_user_data",
]
