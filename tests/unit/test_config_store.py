"""Tests for ConfigStore and the config value helpers."""

from unittest.mock import patch

import pytest
import yaml

from taskpilot.core.config import DebugLevel, load_config
from taskpilot.core.config_store import (
    ConfigStore,
    flatten_config,
    get_config_value,
    key_to_label,
    merge_config,
    parse_config_value,
    unflatten_config,
)
from taskpilot.errors import ConfigError


class TestValueHelpers:

    def test_parse_with_type_hints(self):
        assert parse_config_value("true", "boolean") is True
        assert parse_config_value("yes", "boolean") is False
        assert parse_config_value("42", "number") == 42
        assert parse_config_value("1.5", "number") == 1.5
        assert parse_config_value("007", "string") == "007"

    def test_parse_infers_without_hint(self):
        assert parse_config_value("false") is False
        assert parse_config_value("8080") == 8080
        assert parse_config_value("/srv/app") == "/srv/app"

    def test_unflatten_groups_by_section(self):
        result = unflatten_config(
            {"project.alpha.repo": "/src/a", "project.alpha.release": "true", "env.name": "prod"},
            {"project.alpha.release": "boolean"},
        )

        assert result == {
            "project": {"alpha": {"repo": "/src/a", "release": True}},
            "env": {"name": "prod"},
        }

    def test_unflatten_rejects_text_for_number(self):
        with pytest.raises(ConfigError, match="app.port"):
            unflatten_config({"app.port": "eighty"}, {"app.port": "number"})

    def test_unflatten_requires_section(self):
        with pytest.raises(ConfigError):
            unflatten_config({"name": "x"})

    def test_flatten_is_inverse_for_scalars(self):
        config = {"env": {"name": "prod", "port": 80}, "debug": True}

        assert flatten_config(config) == {"env.name": "prod", "env.port": 80, "debug": True}

    def test_get_config_value_requires_scalar_leaf(self):
        config = {"env": {"name": "prod"}}

        assert get_config_value(config, "env.name") == "prod"
        assert get_config_value(config, "env") is None
        assert get_config_value(config, "env.name.more") is None

    def test_merge_sorts_sections_and_keeps_siblings(self):
        existing = {"zeta": {"a": 1}, "env": {"name": "dev", "region": "eu"}}

        merged = merge_config(existing, "env", {"name": "prod"})

        assert list(merged) == ["env", "zeta"]
        assert merged["env"] == {"name": "prod", "region": "eu"}

    def test_merge_does_not_touch_existing_nested_values(self):
        existing = {"project": {"alpha": {"repo": "x"}}}

        merged = merge_config(existing, "project", {"alpha": {"path": "/tmp/y"}})

        assert merged["project"]["alpha"] == {"repo": "x", "path": "/tmp/y"}
        assert existing == {"project": {"alpha": {"repo": "x"}}}

    def test_key_to_label(self):
        assert key_to_label("project.alpha.repo_path") == "Project Alpha Repo Path"


class TestConfigStore:

    def test_missing_file_loads_empty(self, tmp_path):
        store = ConfigStore(tmp_path / "missing.yaml")

        assert store.load() == {}
        assert not store.has_path("env.name")

    def test_save_flat_writes_yaml(self, tmp_path):
        path = tmp_path / "rc.yaml"
        store = ConfigStore(path)

        store.save_flat({"env.name": "prod", "env.debug": "false"}, {"env.debug": "boolean"})

        assert yaml.safe_load(path.read_text()) == {"env": {"name": "prod", "debug": False}}
        assert store.get_value("env.debug") is False
        assert store.missing_paths(["env.name", "env.region"]) == ["env.region"]

    def test_save_preserves_engine_settings(self, tmp_path):
        path = tmp_path / "rc.yaml"
        path.write_text("settings:\n  debug: info\nllm:\n  model: openai/gpt-4o-mini\n")
        store = ConfigStore(path)

        store.save_flat({"project.alpha.repo": "/src/a"})

        data = yaml.safe_load(path.read_text())
        assert data["settings"] == {"debug": "info"}
        assert data["project"] == {"alpha": {"repo": "/src/a"}}
        assert list(data) == ["llm", "project", "settings"]

    def test_failed_write_leaves_loaded_config_unchanged(self, tmp_path):
        path = tmp_path / "rc.yaml"
        path.write_text("project:\n  alpha:\n    repo: x\n")
        store = ConfigStore(path)
        assert store.get_value("project.alpha.repo") == "x"

        with patch("taskpilot.core.config_store.atomic_write_text", side_effect=OSError("disk full")):
            with pytest.raises(ConfigError, match="disk full"):
                store.save_flat({"project.alpha.path": "/tmp/y"})

        assert store.get_value("project.alpha.path") is None
        assert not store.has_path("project.alpha.path")
        assert yaml.safe_load(path.read_text()) == {"project": {"alpha": {"repo": "x"}}}

    def test_invalid_yaml_loads_empty(self, tmp_path):
        path = tmp_path / "rc.yaml"
        path.write_text("env: [unclosed\n")

        assert ConfigStore(path).load() == {}


class TestLoadConfig:

    def test_defaults_when_file_missing(self, tmp_path):
        config = load_config(tmp_path / "none.yaml")

        assert config.settings.debug == DebugLevel.NONE
        assert config.llm.max_tokens > 0

    def test_reads_sections_and_expands_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TASKPILOT_TEST_KEY", "sk-test")
        path = tmp_path / "rc.yaml"
        path.write_text(
            "llm:\n  model: openai/gpt-4o-mini\n  api_key: ${TASKPILOT_TEST_KEY}\n"
            "settings:\n  debug: verbose\n"
        )

        config = load_config(path)

        assert config.llm.model == "openai/gpt-4o-mini"
        assert config.llm.api_key == "sk-test"
        assert config.settings.debug == DebugLevel.VERBOSE
