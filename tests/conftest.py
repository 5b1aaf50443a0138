from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from botocore.exceptions import ClientError

from ec2runner.providers.aws import AWS, EC2ClientFactory, EC2Lifecycle


def client_error(operation: str, code: str, message: str = "boom") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeEC2:
    """In-memory EC2 client.

    ``states`` are returned by successive DescribeInstances calls, the last
    one repeating forever. An exception in the list is raised instead.
    """

    def __init__(
        self,
        *,
        instance_id: str = "i-0abc",
        states: list[str | Exception] | None = None,
        clock: FakeClock | None = None,
    ) -> None:
        self.instance_id = instance_id
        self.states: list[str | Exception] = states or ["running"]
        self.clock = clock
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.errors: dict[str, Exception] = {}
        self.poll_times: list[float] = []

    def fail(self, operation: str, code: str, message: str = "boom") -> ClientError:
        error = client_error(operation, code, message)
        self.errors[operation] = error
        return error

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == operation]

    def _record(self, operation: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((operation, kwargs))
        if error := self.errors.get(operation):
            raise error

    async def run_instances(self, **kwargs: Any) -> dict[str, Any]:
        self._record("RunInstances", kwargs)
        return {"Instances": [{"InstanceId": self.instance_id, "State": {"Name": "pending"}}]}

    async def describe_instances(self, **kwargs: Any) -> dict[str, Any]:
        self._record("DescribeInstances", kwargs)
        if self.clock is not None:
            self.poll_times.append(self.clock.now)
        state = self.states.pop(0) if len(self.states) > 1 else self.states[0]
        if isinstance(state, Exception):
            raise state
        instances = [{"InstanceId": iid, "State": {"Name": state}} for iid in kwargs["InstanceIds"]]
        return {"Reservations": [{"Instances": instances}]}

    async def terminate_instances(self, **kwargs: Any) -> dict[str, Any]:
        self._record("TerminateInstances", kwargs)
        return {
            "TerminatingInstances": [
                {
                    "InstanceId": iid,
                    "PreviousState": {"Name": "running"},
                    "CurrentState": {"Name": "shutting-down"},
                }
                for iid in kwargs["InstanceIds"]
            ]
        }

    def factory(self) -> EC2ClientFactory:
        @asynccontextmanager
        async def client() -> AsyncIterator[FakeEC2]:
            yield self

        return EC2ClientFactory(client)


# ─── GitHub API ──────────────────────────────────────────────────────

TOKEN = web.AppKey("token", str)
RUNNERS = web.AppKey("runners", list)
DELETED = web.AppKey("deleted", list)
REQUESTS = web.AppKey("requests", list)


def make_github_app(*, repository: str = "octo/repo", token: str = "TOK123") -> web.Application:
    """Minimal self-hosted runner API for one repository."""
    app = web.Application()
    app[TOKEN] = token
    app[RUNNERS] = []
    app[DELETED] = []
    app[REQUESTS] = []
    base = f"/repos/{repository}/actions/runners"

    @web.middleware
    async def record(request: web.Request, handler: Any) -> web.StreamResponse:
        request.app[REQUESTS].append((request.method, request.path, request.headers.copy()))
        if request.headers.get("Authorization") != "Bearer gh-secret":
            return web.json_response({"message": "Bad credentials"}, status=401)
        return await handler(request)

    async def registration_token(request: web.Request) -> web.Response:
        return web.json_response({"token": request.app[TOKEN]}, status=201)

    async def list_runners(request: web.Request) -> web.Response:
        runners = request.app[RUNNERS]
        return web.json_response({"total_count": len(runners), "runners": runners})

    async def delete_runner(request: web.Request) -> web.Response:
        runner_id = int(request.match_info["runner_id"])
        request.app[DELETED].append(runner_id)
        request.app[RUNNERS][:] = [r for r in request.app[RUNNERS] if r["id"] != runner_id]
        return web.Response(status=204)

    app.middlewares.append(record)
    app.router.add_post(f"{base}/registration-token", registration_token)
    app.router.add_get(base, list_runners)
    app.router.add_delete(f"{base}/{{runner_id}}", delete_runner)
    return app


def runner_payload(runner_id: int, label: str, status: str = "online") -> dict[str, Any]:
    return {
        "id": runner_id,
        "name": f"ip-10-0-0-{runner_id}",
        "status": status,
        "busy": False,
        "labels": [{"id": 1, "name": "self-hosted", "type": "read-only"}, {"id": 2, "name": label}],
    }


@pytest.fixture
async def github_server() -> AsyncIterator[TestServer]:
    srv = TestServer(make_github_app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def github_url(github_server: TestServer) -> str:
    return f"http://{github_server.host}:{github_server.port}"


# ─── EC2 ─────────────────────────────────────────────────────────────


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ec2(clock: FakeClock) -> FakeEC2:
    return FakeEC2(clock=clock)


@pytest.fixture
def lifecycle(ec2: FakeEC2) -> EC2Lifecycle:
    return EC2Lifecycle(ec2.factory(), AWS(region="us-east-1"))


# ─── Logs ────────────────────────────────────────────────────────────


class Events(logging.Handler):
    """Collects records from the package logger, which does not propagate to root."""

    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def at(self, level: int) -> list[str]:
        return [r.getMessage() for r in self.records if r.levelno == level]


@pytest.fixture
def events() -> Iterator[Events]:
    handler = Events()
    root = logging.getLogger("ec2runner")
    root.addHandler(handler)
    yield handler
    root.removeHandler(handler)
