"""EC2 launch request and lifecycle records.

Immutable values passed between the launch, wait and terminate phases.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

InstanceId: TypeAlias = str
"""Opaque EC2 instance id, e.g. ``i-0abc``."""

# =============================================================================
# Launch Request
# =============================================================================


def tag_specifications(tags: tuple[tuple[str, str], ...]) -> list[dict[str, Any]]:
    """Tag both the instance and its volumes with the same tags."""
    if not tags:
        return []
    tag_list = [{"Key": key, "Value": value} for key, value in tags]
    return [
        {"ResourceType": "instance", "Tags": tag_list},
        {"ResourceType": "volume", "Tags": tag_list},
    ]


@dataclass(frozen=True, slots=True)
class LaunchRequest:
    """Everything needed for a single RunInstances call.

    Built once per launch. ``user_data`` is already base64-encoded.
    """

    image_id: str
    instance_type: str
    subnet_id: str
    security_group_ids: tuple[str, ...]
    user_data: str
    iam_role_name: str | None = None
    monitoring: bool = True
    ebs_optimized: bool = True
    tags: tuple[tuple[str, str], ...] = ()

    def to_run_instances(self) -> dict[str, Any]:
        """Keyword arguments for ``ec2.run_instances``.

        Exactly one instance is requested; the count bounds are not configurable.
        """
        params: dict[str, Any] = {
            "ImageId": self.image_id,
            "InstanceType": self.instance_type,
            "MinCount": 1,
            "MaxCount": 1,
            "Monitoring": {"Enabled": self.monitoring},
            "SecurityGroupIds": list(self.security_group_ids),
            "SubnetId": self.subnet_id,
            "UserData": self.user_data,
            "DisableApiTermination": False,
            "DryRun": False,
            "EbsOptimized": self.ebs_optimized,
            "InstanceInitiatedShutdownBehavior": "terminate",
            "MaintenanceOptions": {"AutoRecovery": "disabled"},
        }

        if self.iam_role_name:
            params["IamInstanceProfile"] = {"Name": self.iam_role_name}

        if specs := tag_specifications(self.tags):
            params["TagSpecifications"] = specs

        return params


# =============================================================================
# Termination Record
# =============================================================================


@dataclass(frozen=True, slots=True)
class StateTransition:
    """Instance state change reported by TerminateInstances."""

    instance_id: str
    previous: str
    current: str

    @classmethod
    def from_response(cls, instance_id: str, response: Mapping[str, Any]) -> StateTransition:
        """Pick the entry for ``instance_id`` out of a TerminateInstances response."""
        for entry in response.get("TerminatingInstances", []):
            if entry.get("InstanceId") == instance_id:
                return cls(
                    instance_id=instance_id,
                    previous=entry["PreviousState"]["Name"],
                    current=entry["CurrentState"]["Name"],
                )
        raise KeyError(f"Instance {instance_id} missing from TerminateInstances response")
