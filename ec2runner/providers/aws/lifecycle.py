"""Lifecycle operations (launch, wait, terminate) for the runner EC2 instance.

Each operation is one EC2 round trip or one bounded poll loop. Launch and
terminate usually run in different processes; the instance id is the only
thing that links them, and it is always passed in explicitly.

State machine::

    absent -> launch -> pending -> wait_running -> running -> terminate -> terminated
                           \\-> (timeout, terminal state, API error) -> failed

Failures are logged and re-raised; nothing here terminates an instance
on its own.
"""

from __future__ import annotations

import asyncio
from typing import Any

from botocore.exceptions import ClientError
from injector import inject

from ec2runner.constants import TERMINAL_STATES, InstanceState
from ec2runner.core.exceptions import InstanceStartTimeoutError, InstanceTerminatedError
from ec2runner.observability.logger import logger
from ec2runner.wait import Clock, Sleep, TerminalStateError, WaitTimeoutError, wait_for_ready

from .clients import EC2ClientFactory
from .config import AWS
from .state import InstanceId, LaunchRequest, StateTransition

log = logger.bind(component="aws-lifecycle")


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _instance_state(response: dict[str, Any], instance_id: str) -> str | None:
    for reservation in response.get("Reservations", []):
        for inst in reservation.get("Instances", []):
            if inst.get("InstanceId") == instance_id:
                return inst["State"]["Name"]
    return None


class EC2Lifecycle:
    """Launches, waits for and terminates a single runner instance."""

    @inject
    def __init__(self, ec2: EC2ClientFactory, config: AWS) -> None:
        self._ec2 = ec2
        self._config = config

    async def launch(self, request: LaunchRequest) -> InstanceId:
        """Create exactly one instance and return its id.

        The caller owns the instance from here on and must terminate it.
        """
        try:
            async with self._ec2() as ec2:
                response = await ec2.run_instances(**request.to_run_instances())
            instance_id: str = response["Instances"][0]["InstanceId"]
        except Exception as e:
            log.error("EC2 instance launch failed: {error}", error=e)
            raise

        log.info("EC2 instance {id} is started", id=instance_id)
        return instance_id

    async def wait_running(
        self,
        instance_id: InstanceId,
        *,
        timeout: float | None = None,
        interval: float | None = None,
        clock: Clock | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Block until the instance reports ``running``.

        Raises:
            InstanceStartTimeoutError: The deadline passed first.
            InstanceTerminatedError: The instance entered a state it cannot
                leave (e.g. shutting-down after a failed boot).
            botocore.exceptions.ClientError: Polling failed; raised unchanged.
        """
        timeout = self._config.running_timeout if timeout is None else timeout
        interval = self._config.poll_interval if interval is None else interval

        async def poll_state() -> str | None:
            async with self._ec2() as ec2:
                try:
                    response = await ec2.describe_instances(InstanceIds=[instance_id])
                except ClientError as e:
                    # EC2 is eventually consistent; a fresh id may not be visible yet
                    if _error_code(e) == "InvalidInstanceID.NotFound":
                        log.debug("EC2 instance {id} not visible yet", id=instance_id)
                        return None
                    raise
            state = _instance_state(response, instance_id)
            log.debug("EC2 instance {id} state: {state}", id=instance_id, state=state)
            return state

        try:
            await wait_for_ready(
                poll_fn=poll_state,
                ready_check=lambda state: state == InstanceState.RUNNING,
                terminal_check=lambda state: state in TERMINAL_STATES,
                timeout=timeout,
                interval=interval,
                description=f"EC2 instance {instance_id}",
                clock=clock,
                sleep=sleep,
            )
        except WaitTimeoutError as e:
            log.error(
                "EC2 instance {id} initialization error: not running after {timeout}s",
                id=instance_id, timeout=timeout,
            )
            raise InstanceStartTimeoutError(instance_id, timeout) from e
        except TerminalStateError as e:
            log.error(
                "EC2 instance {id} initialization error: entered {state}",
                id=instance_id, state=e.state,
            )
            raise InstanceTerminatedError(instance_id, f"entered {e.state}") from e
        except Exception as e:
            log.error("EC2 instance {id} initialization error: {error}", id=instance_id, error=e)
            raise

        log.info("EC2 instance {id} is up and running", id=instance_id)

    async def terminate(self, instance_id: InstanceId) -> StateTransition:
        """Terminate exactly ``instance_id``.

        An instance that is already gone surfaces as the platform's error;
        deciding whether that is acceptable is up to the caller.
        """
        try:
            async with self._ec2() as ec2:
                response = await ec2.terminate_instances(InstanceIds=[instance_id], DryRun=False)
            transition = StateTransition.from_response(instance_id, response)
        except Exception as e:
            log.error("EC2 instance {id} termination error: {error}", id=instance_id, error=e)
            raise

        log.debug(
            "EC2 instance {id} transitioned from {previous} to {current}",
            id=instance_id, previous=transition.previous, current=transition.current,
        )
        log.info("EC2 instance {id} is terminated", id=instance_id)
        return transition


__all__ = ["EC2Lifecycle"]
