from __future__ import annotations

from pathlib import Path

import pytest

from ec2runner.core.exceptions import ConfigurationError
from ec2runner.state_store import (
    DEFAULT_STATE_FILE,
    FileStateStore,
    GitHubOutputStore,
    RunnerHandle,
    StateStore,
    store_for_environment,
)

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

HANDLE = RunnerHandle(label="ci-7", instance_id="i-0abc")


class TestGitHubOutputStore:
    def test_appends_step_outputs(self, tmp_path: Path):
        output = tmp_path / "github_output"
        output.write_text("previous=value\n")

        GitHubOutputStore(output).save(HANDLE)

        assert output.read_text() == "previous=value\nlabel=ci-7\nec2-instance-id=i-0abc\n"

    def test_nothing_to_load(self, tmp_path: Path):
        store = GitHubOutputStore(tmp_path / "github_output")
        store.save(HANDLE)
        assert store.load() is None


class TestFileStateStore:
    def test_save_then_load(self, tmp_path: Path):
        path = tmp_path / "state" / "runner.json"
        FileStateStore(path).save(HANDLE)

        assert FileStateStore(path).load() == HANDLE

    def test_load_without_file(self, tmp_path: Path):
        assert FileStateStore(tmp_path / "missing.json").load() is None

    def test_clear(self, tmp_path: Path):
        path = tmp_path / "runner.json"
        store = FileStateStore(path)
        store.save(HANDLE)

        store.clear()
        store.clear()

        assert not path.exists()
        assert store.load() is None

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "runner.json"
        path.write_text('{"label": "ci-7"}')

        with pytest.raises(ConfigurationError, match="Corrupt runner state"):
            FileStateStore(path).load()


class TestStoreForEnvironment:
    def test_github_actions(self, tmp_path: Path):
        store = store_for_environment({"GITHUB_OUTPUT": str(tmp_path / "out")})

        assert isinstance(store, GitHubOutputStore)
        assert isinstance(store, StateStore)

    def test_local_default(self):
        store = store_for_environment({})

        assert isinstance(store, FileStateStore)
        assert store._path == DEFAULT_STATE_FILE

    def test_explicit_state_file_wins(self, tmp_path: Path):
        store = store_for_environment({"GITHUB_OUTPUT": str(tmp_path / "out")}, tmp_path / "s.json")
        assert isinstance(store, FileStateStore)
