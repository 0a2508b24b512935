"""Tests for configuration loading and protected path management."""

import json

import pytest
from conftest import FakeSource

from devsweep.config import (
    Config,
    add_protected_path,
    config_file,
    load_config,
    parse_config,
    remove_protected_path,
    save_config,
)
from devsweep.errors import ConfigError
from devsweep.models import CacheType


class TestConfigFile:
    def test_env_override(self, isolated_config):
        assert config_file() == isolated_config

    def test_default_location(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DEVSWEEP_CONFIG", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert config_file() == tmp_path / ".devsweep" / "config.json"


class TestLoadSave:
    def test_missing_file_gives_defaults(self, isolated_config):
        config = load_config()
        assert config == Config()
        assert config.safety.require_confirmation
        assert not config.safety.dry_run_default

    def test_round_trip(self, isolated_config):
        config = Config(
            tools={"npm": False},
            enabled_types={CacheType.BROWSER: False},
            protected_paths=["~/.m2"],
        )
        assert save_config(config)
        assert load_config() == config

    def test_corrupt_file_gives_defaults(self, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text("{not json")
        assert load_config() == Config()

    def test_invalid_values_give_defaults(self, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text(json.dumps({"tools": {"npm": "sometimes"}}))
        assert load_config() == Config()

    def test_parse_config_raises(self):
        with pytest.raises(ConfigError):
            parse_config({"safety": {"require_confirmation": "maybe"}})

    def test_save_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        assert not save_config(Config(), blocker / "config.json")


class TestPolicies:
    def test_defaults(self):
        config = Config()
        assert config.policies.preserve_critical_priority
        assert config.policies.auto_clean_older_than is None
        assert config.project_roots == []

    def test_parsed_from_file(self, isolated_config):
        isolated_config.parent.mkdir(parents=True)
        isolated_config.write_text(
            json.dumps({"policies": {"preserve_recently_used": 14}, "project_roots": ["~/code"]})
        )
        config = load_config()
        assert config.policies.to_criteria().older_than_days == 14
        assert config.project_roots == ["~/code"]

    def test_negative_age_rejected(self):
        with pytest.raises(ConfigError):
            parse_config({"policies": {"auto_clean_older_than": -1}})


class TestEnabled:
    def test_tool_switch_wins_over_type(self):
        config = Config(tools={"chrome": True}, enabled_types={CacheType.BROWSER: False})
        assert config.is_tool_enabled("chrome", CacheType.BROWSER)
        assert not config.is_tool_enabled("firefox", CacheType.BROWSER)

    def test_default_enabled(self):
        assert Config().is_tool_enabled("npm", CacheType.PACKAGE_MANAGER)

    def test_enabled_map(self):
        config = Config(tools={"yarn": False})
        sources = [FakeSource("npm"), FakeSource("yarn")]
        assert config.enabled_map(sources) == {"npm": True, "yarn": False}


class TestProtectedPaths:
    def test_add_existing_path(self, isolated_config, tmp_path):
        target = tmp_path / "keep"
        target.mkdir()
        result = add_protected_path(str(target))

        assert result["success"]
        assert load_config().protected_paths == [str(target)]

    def test_add_twice_is_single_entry(self, isolated_config, tmp_path):
        target = tmp_path / "keep"
        target.mkdir()
        add_protected_path(str(target))
        add_protected_path(str(target))
        assert load_config().protected_paths == [str(target)]

    def test_add_missing_path_fails(self, isolated_config, tmp_path):
        result = add_protected_path(str(tmp_path / "missing"))
        assert not result["success"]
        assert "does not exist" in result["error"]

    def test_add_glob_without_existence_check(self, isolated_config):
        result = add_protected_path("~/projects/*/node_modules/.cache")
        assert result["success"]
        assert load_config().protected_paths == ["~/projects/*/node_modules/.cache"]

    def test_remove(self, isolated_config, tmp_path):
        target = tmp_path / "keep"
        target.mkdir()
        add_protected_path(str(target))

        result = remove_protected_path(str(target))
        assert result["success"]
        assert load_config().protected_paths == []

    def test_remove_unknown(self, isolated_config):
        result = remove_protected_path("/not/protected")
        assert not result["success"]
