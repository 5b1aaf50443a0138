"""Start and stop phases of an ephemeral GitHub runner on EC2.

Flow:
    start: registration token -> user data -> launch -> save handle
           -> wait running -> wait for runner online
    stop:  resolve handle -> terminate instance -> remove runner

The two phases share no memory. Whatever stop needs comes from its inputs
or from the StateStore that start wrote to.
"""

from __future__ import annotations

import random
import string

from injector import Injector, InstanceProvider, Module, provider, singleton

from ec2runner.config import Inputs
from ec2runner.constants import GITHUB_API_URL, LABEL_LENGTH
from ec2runner.core.exceptions import ConfigurationError
from ec2runner.github import GITHUB_HEADERS, GitHub
from ec2runner.infra.http import BearerAuth, HttpClient
from ec2runner.observability.logger import logger
from ec2runner.providers.aws import (
    AWS,
    AWSModule,
    EC2Lifecycle,
    LaunchRequest,
    StateTransition,
    encode_user_data,
    render_user_data,
)
from ec2runner.state_store import RunnerHandle, StateStore

log = logger.bind(component="runner")


class RunnerModule(Module):
    """DI module binding the invocation's inputs, GitHub client and state store."""

    def __init__(self, inputs: Inputs, store: StateStore, *, api_url: str = GITHUB_API_URL) -> None:
        self._inputs = inputs
        self._store = store
        self._api_url = api_url

    def configure(self, binder) -> None:
        binder.bind(Inputs, to=self._inputs)
        binder.bind(AWS, to=self._inputs.aws())
        binder.bind(StateStore, to=InstanceProvider(self._store))

    @singleton
    @provider
    def provide_http(self) -> HttpClient:
        return HttpClient(
            self._api_url,
            BearerAuth(self._inputs.github_token),
            default_headers=GITHUB_HEADERS,
        )

    @singleton
    @provider
    def provide_github(self, http: HttpClient) -> GitHub:
        return GitHub(http, self._inputs.repository)


def build_injector(inputs: Inputs, store: StateStore, *modules: Module) -> Injector:
    """Injector for one invocation. Extra modules override the defaults."""
    return Injector([AWSModule(), RunnerModule(inputs, store), *modules])


def generate_label() -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choices(alphabet, k=LABEL_LENGTH))


def build_launch_request(inputs: Inputs, label: str, token: str) -> LaunchRequest:
    """Render the boot script and wrap it with the placement inputs."""
    if not (inputs.image_id and inputs.instance_type and inputs.subnet_id and inputs.security_group_id):
        raise ConfigurationError("Launch inputs are incomplete; call Inputs.validate() first")

    script = render_user_data(
        token,
        label,
        repository=inputs.repository,
        runner_home_dir=inputs.runner_home_dir,
        pre_runner_script=inputs.pre_runner_script,
        runner_version=inputs.runner_version,
    )
    return LaunchRequest(
        image_id=inputs.image_id,
        instance_type=inputs.instance_type,
        subnet_id=inputs.subnet_id,
        security_group_ids=(inputs.security_group_id,),
        user_data=encode_user_data(script),
        iam_role_name=inputs.iam_role_name,
        tags=inputs.resource_tags,
    )


async def start_runner(injector: Injector) -> RunnerHandle:
    """Launch an instance that registers itself as a runner for a new label.

    The handle is saved as soon as the instance exists, so a failure while
    waiting still leaves the stop phase something to terminate.
    """
    inputs = injector.get(Inputs).validate()
    lifecycle = injector.get(EC2Lifecycle)
    github = injector.get(GitHub)
    store = injector.get(StateStore)

    label = inputs.label or generate_label()

    async with injector.get(HttpClient):
        token = await github.registration_token()
        request = build_launch_request(inputs, label, token)

        instance_id = await lifecycle.launch(request)
        handle = RunnerHandle(label=label, instance_id=instance_id)
        store.save(handle)

        await lifecycle.wait_running(instance_id)
        await github.wait_for_runner_registered(
            label, timeout=inputs.startup_timeout, interval=inputs.poll_interval,
        )

    log.info("GitHub self-hosted runner is ready on EC2 instance {id}", id=instance_id)
    return handle


def _resolve_handle(inputs: Inputs, store: StateStore) -> RunnerHandle:
    stored = store.load()
    label = inputs.label or (stored.label if stored else None)
    instance_id = inputs.instance_id or (stored.instance_id if stored else None)
    if not instance_id:
        raise ConfigurationError("Missing required input for stop mode: ec2-instance-id")
    if not label:
        raise ConfigurationError("Missing required input for stop mode: label")
    return RunnerHandle(label=label, instance_id=instance_id)


async def stop_runner(injector: Injector) -> StateTransition:
    """Terminate the runner's instance, then deregister the runner."""
    inputs = injector.get(Inputs).validate()
    lifecycle = injector.get(EC2Lifecycle)
    github = injector.get(GitHub)
    store = injector.get(StateStore)

    handle = _resolve_handle(inputs, store)
    transition = await lifecycle.terminate(handle.instance_id)

    async with injector.get(HttpClient):
        await github.remove_runner(handle.label)

    store.clear()
    return transition
