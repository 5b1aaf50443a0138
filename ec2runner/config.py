"""Runner inputs: TOML file plus GitHub Actions input variables.

Inside a workflow step GitHub exposes each action input as an
``INPUT_<NAME>`` environment variable (name upper-cased, dashes kept).
For local runs the same inputs can live in the ``[runner]`` table of a
TOML file; environment variables win over the file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeAlias

from ec2runner.constants import DEFAULT_REGION, POLL_INTERVAL, RUNNER_VERSION, RUNNING_TIMEOUT, Mode
from ec2runner.core.exceptions import ConfigurationError
from ec2runner.providers.aws.config import AWS

RawConfig: TypeAlias = dict[str, Any]

PROJECT_CONFIG_NAME = "ec2runner.toml"

# action input name -> Inputs field
INPUT_NAMES: dict[str, str] = {
    "mode": "mode",
    "github-token": "github_token",
    "repository": "repository",
    "aws-region": "region",
    "ec2-image-id": "image_id",
    "ec2-instance-type": "instance_type",
    "subnet-id": "subnet_id",
    "security-group-id": "security_group_id",
    "iam-role-name": "iam_role_name",
    "label": "label",
    "ec2-instance-id": "instance_id",
    "runner-home-dir": "runner_home_dir",
    "pre-runner-script": "pre_runner_script",
    "aws-resource-tags": "resource_tags",
    "runner-version": "runner_version",
    "startup-timeout": "startup_timeout",
    "poll-interval": "poll_interval",
}

_START_REQUIRED = ("github_token", "image_id", "instance_type", "subnet_id", "security_group_id")
_STOP_REQUIRED = ("github_token",)


@dataclass(frozen=True, slots=True)
class Inputs:
    """Everything one invocation needs, already parsed.

    Unset optional values are None rather than empty strings.
    """

    mode: Mode
    repository: str = ""
    github_token: str = field(default="", repr=False)
    region: str = DEFAULT_REGION
    image_id: str | None = None
    instance_type: str | None = None
    subnet_id: str | None = None
    security_group_id: str | None = None
    iam_role_name: str | None = None
    label: str | None = None
    instance_id: str | None = None
    runner_home_dir: str | None = None
    pre_runner_script: str | None = None
    resource_tags: tuple[tuple[str, str], ...] = ()
    runner_version: str = RUNNER_VERSION
    startup_timeout: float = RUNNING_TIMEOUT
    poll_interval: float = POLL_INTERVAL

    def validate(self) -> Inputs:
        """Check the inputs required by ``mode``; returns self for chaining."""
        required = _START_REQUIRED if self.mode == Mode.START else _STOP_REQUIRED
        missing = [name for name in required if not getattr(self, name)]
        if missing:
            names = ", ".join(_input_name(m) for m in missing)
            raise ConfigurationError(f"Missing required inputs for {self.mode} mode: {names}")
        if "/" not in self.repository:
            raise ConfigurationError(
                f"Repository must be 'owner/repo', got {self.repository!r}"
            )
        return self

    def aws(self) -> AWS:
        return AWS(
            region=self.region,
            running_timeout=self.startup_timeout,
            poll_interval=self.poll_interval,
        )


def _input_name(field_name: str) -> str:
    for name, target in INPUT_NAMES.items():
        if target == field_name:
            return name
    return field_name


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def _from_file(path: Path) -> RawConfig:
    table = _read_toml(path).get("runner", {})
    fields = set(INPUT_NAMES.values())
    raw: RawConfig = {}
    for key, value in table.items():
        target = INPUT_NAMES.get(key, key)
        if target not in fields:
            raise ConfigurationError(f"Unknown key {key!r} in [runner] of {path}")
        raw[target] = value
    return raw


def _from_env(env: Mapping[str, str]) -> RawConfig:
    raw: RawConfig = {}
    for name, target in INPUT_NAMES.items():
        upper = name.upper()
        for key in (f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}"):
            if value := env.get(key, "").strip():
                raw[target] = value
                break
    return raw


def parse_resource_tags(value: str | list[Any] | None) -> tuple[tuple[str, str], ...]:
    """Parse ``[{"Key": "...", "Value": "..."}]`` given as JSON text or a list."""
    if not value:
        return ()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"aws-resource-tags is not valid JSON: {e}") from e
    if not isinstance(value, list):
        raise ConfigurationError("aws-resource-tags must be a JSON array")

    tags: list[tuple[str, str]] = []
    for item in value:
        match item:
            case {"Key": str() as key, "Value": value_}:
                tags.append((key, str(value_)))
            case _:
                raise ConfigurationError(
                    f"aws-resource-tags entries need 'Key' and 'Value', got {item!r}"
                )
    return tuple(tags)


def _parse_mode(value: str | None) -> Mode:
    try:
        return Mode((value or "").strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in Mode)
        raise ConfigurationError(f"Unknown mode {value!r}. Valid: {valid}") from None


def _parse_seconds(name: str, value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number of seconds, got {value!r}") from None


def load_inputs(
    env: Mapping[str, str] | None = None,
    *,
    config_path: Path | None = None,
    mode: str | None = None,
) -> Inputs:
    """Merge file and environment inputs into an ``Inputs``.

    Args:
        env: Environment to read. Defaults to ``os.environ``.
        config_path: TOML file to read first. Defaults to ``ec2runner.toml``
            in the working directory, when present.
        mode: Overrides the ``mode`` input (e.g. from the command line).

    Raises:
        ConfigurationError: On malformed values. Missing required values are
            only reported by ``Inputs.validate``.
    """
    env = os.environ if env is None else env
    if config_path is not None and not config_path.is_file():
        raise ConfigurationError(f"Config file {config_path} not found")
    raw = _from_file(config_path or Path.cwd() / PROJECT_CONFIG_NAME)
    raw.update(_from_env(env))
    if mode:
        raw["mode"] = mode

    def opt(key: str) -> str | None:
        value = raw.get(key)
        return str(value) if value not in (None, "") else None

    return Inputs(
        mode=_parse_mode(opt("mode")),
        repository=opt("repository") or env.get("GITHUB_REPOSITORY", ""),
        github_token=opt("github_token") or "",
        region=opt("region") or env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
        image_id=opt("image_id"),
        instance_type=opt("instance_type"),
        subnet_id=opt("subnet_id"),
        security_group_id=opt("security_group_id"),
        iam_role_name=opt("iam_role_name"),
        label=opt("label"),
        instance_id=opt("instance_id"),
        runner_home_dir=opt("runner_home_dir"),
        pre_runner_script=opt("pre_runner_script"),
        resource_tags=parse_resource_tags(raw.get("resource_tags")),
        runner_version=opt("runner_version") or RUNNER_VERSION,
        startup_timeout=_parse_seconds("startup-timeout", raw.get("startup_timeout"), RUNNING_TIMEOUT),
        poll_interval=_parse_seconds("poll-interval", raw.get("poll_interval"), POLL_INTERVAL),
    )
