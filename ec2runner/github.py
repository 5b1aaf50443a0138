"""GitHub side of the runner lifecycle.

Fetches the short-lived registration token the instance uses to join the
repository, waits for the new runner to come online and removes it again
when the job is done.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from ec2runner.constants import POLL_INTERVAL, REGISTRATION_QUIET_PERIOD, REGISTRATION_TIMEOUT
from ec2runner.core.exceptions import RunnerRegistrationTimeoutError
from ec2runner.infra.http import HttpClient
from ec2runner.observability.logger import logger
from ec2runner.wait import Clock, Sleep, WaitTimeoutError, wait_for_ready

log = logger.bind(component="github")

GITHUB_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class Runner:
    """A self-hosted runner as listed by the GitHub API."""

    id: int
    name: str
    status: str
    labels: tuple[str, ...] = ()

    @property
    def online(self) -> bool:
        return self.status == "online"

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Runner:
        return cls(
            id=raw["id"],
            name=raw["name"],
            status=raw.get("status", "offline"),
            labels=tuple(label["name"] for label in raw.get("labels", [])),
        )


class GitHub:
    """Repository-scoped client for the self-hosted runner API."""

    def __init__(
        self,
        http: HttpClient,
        repository: str,
        *,
        quiet_period: float = REGISTRATION_QUIET_PERIOD,
    ) -> None:
        self._http = http
        self._repository = repository
        self._quiet_period = quiet_period

    @property
    def repository(self) -> str:
        return self._repository

    def _path(self, suffix: str) -> str:
        return f"/repos/{self._repository}/actions/runners{suffix}"

    async def registration_token(self) -> str:
        try:
            data = await self._http.post(self._path("/registration-token"))
        except Exception as e:
            log.error("GitHub registration token receiving error: {error}", error=e)
            raise
        log.info("GitHub registration token is received")
        return data["token"]

    async def list_runners(self) -> list[Runner]:
        runners: list[Runner] = []
        page = 1
        while True:
            data = await self._http.get(
                self._path(""), params={"per_page": _PAGE_SIZE, "page": page},
            )
            batch = data.get("runners", []) if data else []
            runners.extend(Runner.from_api(raw) for raw in batch)
            if len(batch) < _PAGE_SIZE:
                return runners
            page += 1

    async def get_runner(self, label: str) -> Runner | None:
        """First runner carrying ``label``, or None."""
        for runner in await self.list_runners():
            if label in runner.labels:
                return runner
        return None

    async def remove_runner(self, label: str) -> None:
        """Deregister the runner carrying ``label``; a missing runner is skipped."""
        runner = await self.get_runner(label)
        if runner is None:
            log.warning("GitHub self-hosted runner is not found, so the removal is skipped")
            return

        try:
            await self._http.delete(self._path(f"/{runner.id}"))
        except Exception as e:
            log.error("GitHub self-hosted runner {name} removal error: {error}", name=runner.name, error=e)
            raise
        log.info("GitHub self-hosted runner {name} is removed", name=runner.name)

    async def wait_for_runner_registered(
        self,
        label: str,
        *,
        timeout: float = REGISTRATION_TIMEOUT,
        interval: float = POLL_INTERVAL,
        quiet_period: float | None = None,
        clock: Clock | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> Runner:
        """Wait until a runner with ``label`` reports online.

        Nothing is polled during ``quiet_period``; the instance needs that
        long to boot and download the runner anyway.
        """
        quiet_period = self._quiet_period if quiet_period is None else quiet_period
        log.info(
            "Waiting {quiet}s for the EC2 instance to be registered in GitHub as a new self-hosted runner",
            quiet=quiet_period,
        )
        await sleep(quiet_period)
        log.info(
            "Checking every {interval}s if the GitHub self-hosted runner is registered",
            interval=interval,
        )

        try:
            runner = await wait_for_ready(
                poll_fn=lambda: self.get_runner(label),
                ready_check=lambda r: r.online,
                timeout=timeout,
                interval=interval,
                description="GitHub self-hosted runner",
                clock=clock,
                sleep=sleep,
            )
        except WaitTimeoutError as e:
            log.error("GitHub self-hosted runner registration error: not online after {timeout}s", timeout=timeout)
            raise RunnerRegistrationTimeoutError(label, timeout) from e
        except Exception as e:
            log.error("GitHub self-hosted runner registration error: {error}", error=e)
            raise

        log.info("GitHub self-hosted runner {name} is registered and ready to use", name=runner.name)
        return runner


__all__ = ["GITHUB_HEADERS", "GitHub", "Runner"]
