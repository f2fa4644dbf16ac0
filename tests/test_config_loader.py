"""
Unit tests for configuration loader.

Tests multi-layer config merging, environment variable overrides,
caching, and .env loading.
"""

import json
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from devledger.core.config import LedgerConfig, clear_cache, load_config, load_layered_env
from devledger.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_json_file,
)


def write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root


# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    def test_nested_merge(self):
        base = {"backend": "files", "catchup": {"parallel": 5, "model": "haiku"}}
        override = {"catchup": {"parallel": 2}}
        assert deep_merge(base, override) == {
            "backend": "files",
            "catchup": {"parallel": 2, "model": "haiku"},
        }

    def test_does_not_mutate_inputs(self):
        base = {"catchup": {"parallel": 5}}
        deep_merge(base, {"catchup": {"parallel": 1}})
        assert base == {"catchup": {"parallel": 5}}


class TestPaths:
    def test_xdg_config_home(self, tmp_path: Path):
        assert get_xdg_config_home() == tmp_path / "xdg"
        assert get_user_config_path() == tmp_path / "xdg" / "devledger" / "config.json"

    def test_xdg_default(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("XDG_CONFIG_HOME")
        assert get_xdg_config_home() == Path.home() / ".config"

    def test_project_config_path(self, project: Path):
        assert get_project_config_path(project) == project / ".devledger.json"


class TestLoadJsonFile:
    def test_missing(self, tmp_path: Path):
        assert load_json_file(tmp_path / "nope.json") is None

    def test_invalid_json_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_non_object_ignored(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None


class TestEnvOverrides:
    def test_all_overrides(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DEVLEDGER_BACKEND", " Notes ")
        monkeypatch.setenv("DEVLEDGER_DIR", "docs/ledger")
        monkeypatch.setenv("DEVLEDGER_REMOTE", "upstream")
        monkeypatch.setenv("DEVLEDGER_PARALLEL", "3")
        monkeypatch.setenv("DEVLEDGER_MODEL", "sonnet")
        result = apply_env_overrides({"catchup": {"timeout_seconds": 30}})
        assert result == {
            "backend": "notes",
            "ledger_dir": "docs/ledger",
            "remote": "upstream",
            "catchup": {"timeout_seconds": 30, "parallel": 3, "model": "sonnet"},
        }

    @pytest.mark.parametrize("value", ["many", "0", "-2"])
    def test_invalid_parallel_ignored(self, monkeypatch: pytest.MonkeyPatch, value: str):
        monkeypatch.setenv("DEVLEDGER_PARALLEL", value)
        assert apply_env_overrides({}) == {}


# ==============================================================================
# load_config
# ==============================================================================


class TestLoadConfig:
    def test_defaults(self, project: Path):
        config = load_config(project)
        assert config == LedgerConfig()
        assert config.backend == "files"
        assert config.ledger_dir == ".devledger"
        assert config.notes_ref == "refs/notes/devledger"
        assert config.catchup.parallel == 5
        assert config.catchup.model == "haiku"
        assert config.catchup.strategy == "auto"

    def test_precedence(self, project: Path, monkeypatch: pytest.MonkeyPatch):
        write_json(
            get_user_config_path(),
            {"backend": "notes", "remote": "user-remote", "catchup": {"parallel": 8}},
        )
        write_json(
            project / ".devledger.json",
            {"remote": "project-remote", "catchup": {"model": "sonnet"}},
        )
        monkeypatch.setenv("DEVLEDGER_PARALLEL", "2")

        config = load_config(project)
        assert config.backend == "notes"
        assert config.remote == "project-remote"
        assert config.catchup.model == "sonnet"
        assert config.catchup.parallel == 2

    def test_unknown_keys_ignored(self, project: Path):
        write_json(project / ".devledger.json", {"future_option": True})
        assert load_config(project) == LedgerConfig()

    def test_broken_project_file_falls_back(self, project: Path):
        (project / ".devledger.json").write_text("{")
        assert load_config(project) == LedgerConfig()

    def test_invalid_values_raise(self, project: Path):
        write_json(project / ".devledger.json", {"backend": "sqlite"})
        with pytest.raises(ValidationError):
            load_config(project)

    def test_cache(self, project: Path):
        first = load_config(project)
        write_json(project / ".devledger.json", {"remote": "changed"})
        assert load_config(project) is first
        assert load_config(project, use_cache=False).remote == "changed"
        clear_cache()
        assert load_config(project).remote == "changed"

    def test_cache_is_per_project(self, project: Path, tmp_path: Path):
        other = tmp_path / "other"
        other.mkdir()
        write_json(other / ".devledger.json", {"backend": "notes"})

        assert load_config(project).backend == "files"
        assert load_config(other).backend == "notes"
        assert load_config(project).backend == "files"


class TestModels:
    def test_notes_ref_must_be_under_refs_notes(self):
        with pytest.raises(ValidationError):
            LedgerConfig(notes_ref="refs/heads/devledger")

    def test_parallel_must_be_positive(self):
        with pytest.raises(ValidationError):
            LedgerConfig(catchup={"parallel": 0})


# ==============================================================================
# .env loading
# ==============================================================================


@pytest.fixture
def clean_env_keys():
    keys = ["DEVLEDGER_TEST_A", "DEVLEDGER_TEST_B", "DEVLEDGER_TEST_C"]
    saved = {k: os.environ.pop(k) for k in keys if k in os.environ}
    yield keys
    for k in keys:
        os.environ.pop(k, None)
    os.environ.update(saved)


class TestLayeredEnv:
    def test_project_overrides_user_but_not_process(
        self, tmp_path: Path, project: Path, clean_env_keys
    ):
        user_env = tmp_path / "user.env"
        user_env.write_text("DEVLEDGER_TEST_A=user\nDEVLEDGER_TEST_B=user\n")
        (project / ".env").write_text("DEVLEDGER_TEST_B=project\nDEVLEDGER_TEST_C=project\n")
        os.environ["DEVLEDGER_TEST_C"] = "shell"

        exported = load_layered_env(project_dir=project, user_env_paths=[user_env])

        assert os.environ["DEVLEDGER_TEST_A"] == "user"
        assert os.environ["DEVLEDGER_TEST_B"] == "project"
        assert os.environ["DEVLEDGER_TEST_C"] == "shell"
        assert exported == {"DEVLEDGER_TEST_A": "user", "DEVLEDGER_TEST_B": "project"}

    def test_missing_files_are_fine(self, tmp_path: Path, clean_env_keys):
        load_layered_env(project_dir=tmp_path, user_env_paths=[tmp_path / "absent.env"])
        assert "DEVLEDGER_TEST_A" not in os.environ

    def test_env_file_feeds_config(
        self, tmp_path: Path, project: Path, monkeypatch: pytest.MonkeyPatch
    ):
        # Record DEVLEDGER_MODEL so monkeypatch removes it after the test
        monkeypatch.setenv("DEVLEDGER_MODEL", "")
        monkeypatch.delenv("DEVLEDGER_MODEL")
        (project / ".env.local").write_text("DEVLEDGER_MODEL=opus\n")
        load_layered_env(project_dir=project, user_env_paths=[])
        assert load_config(project).catchup.model == "opus"
