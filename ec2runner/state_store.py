"""Persistence of the runner handle between the start and stop phases.

Start and stop run in different jobs (or processes), so the instance id
never lives in memory across them. The start phase saves a RunnerHandle,
the stop phase gets it back from its inputs or from the same store.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from ec2runner.core.exceptions import ConfigurationError
from ec2runner.observability.logger import logger

log = logger.bind(component="state-store")

DEFAULT_STATE_FILE = Path(".ec2runner") / "state.json"


@dataclass(frozen=True, slots=True)
class RunnerHandle:
    """What the stop phase needs to tear a runner down."""

    label: str
    instance_id: str


@runtime_checkable
class StateStore(Protocol):
    def save(self, handle: RunnerHandle) -> None: ...
    def load(self) -> RunnerHandle | None: ...
    def clear(self) -> None: ...


class GitHubOutputStore:
    """Publishes the handle as step outputs (``label``, ``ec2-instance-id``).

    Later jobs receive the values through ``needs.<job>.outputs``, so there
    is nothing to load back from here.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def save(self, handle: RunnerHandle) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(f"label={handle.label}\n")
            f.write(f"ec2-instance-id={handle.instance_id}\n")
        log.debug("Step outputs written to {path}", path=self._path)

    def load(self) -> RunnerHandle | None:
        return None

    def clear(self) -> None:
        pass


class FileStateStore:
    """Keeps the handle in a small JSON file, for runs outside GitHub Actions."""

    def __init__(self, path: Path = DEFAULT_STATE_FILE) -> None:
        self._path = path

    def save(self, handle: RunnerHandle) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(asdict(handle)), encoding="utf-8")
        log.debug("Runner handle saved to {path}", path=self._path)

    def load(self) -> RunnerHandle | None:
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return RunnerHandle(label=data["label"], instance_id=data["instance_id"])
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ConfigurationError(f"Corrupt runner state file {self._path}: {e}") from e

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


def store_for_environment(
    env: Mapping[str, str],
    state_file: Path | None = None,
) -> StateStore:
    """Step outputs inside GitHub Actions, a local JSON file elsewhere."""
    if state_file is None and (output := env.get("GITHUB_OUTPUT")):
        return GitHubOutputStore(Path(output))
    return FileStateStore(state_file or DEFAULT_STATE_FILE)
