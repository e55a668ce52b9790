"""Tests for the foundry-tools CLI configuration layer and shell parsing."""

import os
from unittest.mock import patch

import pytest
import yaml

from foundry_cli.config import (
    DEFAULT_CONFIG,
    apply_config_to_env,
    deep_merge,
    get_config_path,
    get_env_path,
    load_config,
    load_env,
    parse_config_value,
    set_config_value,
)
from foundry_cli.main import parse_tool_line


@pytest.fixture
def tools_home(tmp_path, monkeypatch):
    """Point FOUNDRY_TOOLS_HOME at a temporary directory."""
    home = tmp_path / "home"
    monkeypatch.setenv("FOUNDRY_TOOLS_HOME", str(home))
    return home


class TestConfigFile:
    """Loading, merging and saving config.yaml."""

    def test_missing_file_gives_defaults(self, tools_home):
        """No config file means the defaults, as an independent copy."""
        config = load_config()
        assert config == DEFAULT_CONFIG
        config["timeouts"]["command"] = 1
        assert DEFAULT_CONFIG["timeouts"]["command"] == 300

    def test_partial_file_is_merged(self, tools_home):
        """Nested sections merge key by key with the defaults."""
        tools_home.mkdir()
        get_config_path().write_text(yaml.dump({"timeouts": {"chisel": 30}}))

        config = load_config()

        assert config["timeouts"] == {"command": 300, "chisel": 30}
        assert config["anvil"]["startup_grace"] == 0.5

    def test_invalid_yaml_falls_back(self, tools_home, capsys):
        """A broken file warns and falls back to defaults."""
        tools_home.mkdir()
        get_config_path().write_text("timeouts: [unclosed\n")
        assert load_config() == DEFAULT_CONFIG
        assert "Warning" in capsys.readouterr().out

    def test_deep_merge_does_not_mutate(self):
        """deep_merge leaves both inputs untouched."""
        base = {"a": {"b": 1, "c": 2}}
        merged = deep_merge(base, {"a": {"b": 5}})
        assert merged == {"a": {"b": 5, "c": 2}}
        assert base == {"a": {"b": 1, "c": 2}}

    def test_set_nested_value(self, tools_home):
        """config set writes nested keys with parsed types."""
        set_config_value("timeouts.chisel", "45")
        assert load_config()["timeouts"]["chisel"] == 45

    def test_secrets_go_to_env_file(self, tools_home):
        """Secret keys are written to .env, not config.yaml."""
        set_config_value("foundry_private_key", "0xabc")

        assert load_env() == {"FOUNDRY_PRIVATE_KEY": "0xabc"}
        assert not get_config_path().exists()
        assert get_env_path().exists()

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("off", False),
        ("12", 12),
        ("0.25", 0.25),
        ("http://127.0.0.1:8545", "http://127.0.0.1:8545"),
    ])
    def test_parse_config_value(self, raw, expected):
        """Command-line strings become bools and numbers where they look like one."""
        assert parse_config_value(raw) == expected


@pytest.fixture
def isolated_environ():
    """Restore os.environ after apply_config_to_env writes to it."""
    with patch.dict(os.environ):
        for var in ("PROJECT_ROOT", "CHISEL_TIMEOUT", "ETH_RPC_URL"):
            os.environ.pop(var, None)
        yield os.environ


class TestApplyConfigToEnv:
    """Exporting config into the variables the tools read."""

    def test_exports_values(self, isolated_environ):
        """Set config values become environment variables."""
        config = deep_merge(DEFAULT_CONFIG, {"project_root": "/work/counter", "timeouts": {"chisel": 30}})

        apply_config_to_env(config)

        assert isolated_environ["PROJECT_ROOT"] == "/work/counter"
        assert isolated_environ["CHISEL_TIMEOUT"] == "30"
        assert "ETH_RPC_URL" not in isolated_environ

    def test_environment_wins(self, isolated_environ):
        """Variables already set are not overridden."""
        isolated_environ["CHISEL_TIMEOUT"] = "5"
        apply_config_to_env(deep_merge(DEFAULT_CONFIG, {"timeouts": {"chisel": 30}}))
        assert isolated_environ["CHISEL_TIMEOUT"] == "5"


class TestParseToolLine:
    """Shell input parsing."""

    def test_name_only(self):
        """A bare name has no arguments."""
        assert parse_tool_line("anvil_status") == ("anvil_status", {})

    def test_json_arguments(self):
        """A JSON object follows the name."""
        assert parse_tool_line('cast_balance {"address": "0xabc"}') == ("cast_balance", {"address": "0xabc"})

    def test_key_value_arguments(self):
        """key=value pairs are JSON-decoded when possible."""
        name, args = parse_tool_line('anvil_start port=8546 fork_url=https://x extra_args=\'["--steps-tracing"]\'')
        assert name == "anvil_start"
        assert args == {"port": 8546, "fork_url": "https://x", "extra_args": ["--steps-tracing"]}

    @pytest.mark.parametrize("line", ["cast_call [1, 2]", "cast_call address"])
    def test_invalid_arguments(self, line):
        """Non-object JSON and bare tokens are rejected."""
        with pytest.raises(ValueError):
            parse_tool_line(line)
