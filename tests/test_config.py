"""Tests for RelayConfig environment loading and the YAML loader."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from agentrelay.engine.config import RelayConfig, default_home
from agentrelay.engine.yaml_config import load_yaml_config

RELAY_VARS = (
    "RELAY_COMMAND",
    "RELAY_TIMEOUT_SECONDS",
    "RELAY_SKIP_PERMISSIONS",
    "RELAY_MCP_CONFIG",
    "RELAY_LOG_LEVEL",
    "RELAY_LOG_FILE",
    "RELAY_WORKSPACE_ROOT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in RELAY_VARS:
        monkeypatch.delenv(name, raising=False)


def _write_yaml(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


# ── Environment ──


def test_defaults() -> None:
    config = RelayConfig.from_env()

    assert config.command == "claude"
    assert config.timeout_seconds is None
    assert config.skip_permissions is False
    assert config.mcp_config_path is None
    assert config.system_prompt is None
    assert config.workspace_root == str(default_home() / "workspaces")
    assert config.log_level == "INFO"
    assert config.resolved_log_file() == default_home() / "logs" / "agentrelay.log"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RELAY_COMMAND", "/opt/bin/claude")
    monkeypatch.setenv("RELAY_TIMEOUT_SECONDS", "90")
    monkeypatch.setenv("RELAY_SKIP_PERMISSIONS", "true")
    monkeypatch.setenv("RELAY_MCP_CONFIG", "/etc/mcp.json")
    monkeypatch.setenv("RELAY_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("RELAY_LOG_FILE", str(tmp_path / "relay.log"))
    monkeypatch.setenv("RELAY_WORKSPACE_ROOT", str(tmp_path / "ws"))

    config = RelayConfig.from_env()

    assert config.command == "/opt/bin/claude"
    assert config.timeout_seconds == 90.0
    assert config.skip_permissions is True
    assert config.mcp_config_path == "/etc/mcp.json"
    assert config.log_level == "DEBUG"
    assert config.resolved_log_file() == tmp_path / "relay.log"
    assert config.workspace_root == str(tmp_path / "ws")


@pytest.mark.parametrize("value,expected", [
    ("1", True), ("YES", True), ("true", True), ("0", False), ("no", False), ("", False),
])
def test_skip_permissions_parsing(
    monkeypatch: pytest.MonkeyPatch, value: str, expected: bool,
) -> None:
    monkeypatch.setenv("RELAY_SKIP_PERMISSIONS", value)
    assert RelayConfig.from_env().skip_permissions is expected


def test_agent_config_projection() -> None:
    config = RelayConfig(
        timeout_seconds=5.0, skip_permissions=True, mcp_config_path="/m.json",
    )

    agent = config.agent_config()

    assert agent.timeout_seconds == 5.0
    assert agent.skip_permissions is True
    assert agent.mcp_config_path == "/m.json"
    assert agent.working_directory is None


# ── YAML ──


def test_yaml_overrides_base(tmp_path: Path) -> None:
    path = _write_yaml(tmp_path / "relay.yaml", {
        "agent": {
            "command": "claude-beta",
            "timeout_seconds": 600,
            "skip_permissions": True,
            "mcp_config_path": "/srv/mcp.json",
        },
        "workspace": {"root": str(tmp_path / "ws")},
        "logging": {"level": "debug", "file": str(tmp_path / "a.log")},
    })

    config = load_yaml_config(path, base=RelayConfig())

    assert config.command == "claude-beta"
    assert config.timeout_seconds == 600.0
    assert config.skip_permissions is True
    assert config.mcp_config_path == "/srv/mcp.json"
    assert config.workspace_root == str(tmp_path / "ws")
    assert config.log_level == "DEBUG"
    assert config.log_file == str(tmp_path / "a.log")


def test_yaml_missing_keys_keep_base(tmp_path: Path) -> None:
    path = _write_yaml(tmp_path / "relay.yaml", {"agent": {"command": "other"}})
    base = RelayConfig(timeout_seconds=42.0, log_level="WARNING")

    config = load_yaml_config(path, base=base)

    assert config.command == "other"
    assert config.timeout_seconds == 42.0
    assert config.log_level == "WARNING"


def test_yaml_defaults_to_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RELAY_COMMAND", "from-env")
    path = tmp_path / "empty.yaml"
    path.write_text("")

    config = load_yaml_config(path)

    assert config.command == "from-env"


def test_yaml_system_prompt_file_relative(tmp_path: Path) -> None:
    (tmp_path / "prompts").mkdir()
    (tmp_path / "prompts" / "relay.md").write_text("You are a relay.")
    path = _write_yaml(tmp_path / "relay.yaml", {
        "agent": {"system_prompt_file": "prompts/relay.md"},
    })

    config = load_yaml_config(path, base=RelayConfig())

    assert config.system_prompt == "You are a relay."


def test_yaml_inline_system_prompt(tmp_path: Path) -> None:
    path = _write_yaml(tmp_path / "relay.yaml", {
        "agent": {"system_prompt": "Inline prompt"},
    })
    assert load_yaml_config(path, base=RelayConfig()).system_prompt == "Inline prompt"


def test_yaml_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_yaml_config(tmp_path / "nope.yaml", base=RelayConfig())


def test_yaml_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("agent: [unclosed")
    with pytest.raises(yaml.YAMLError):
        load_yaml_config(path, base=RelayConfig())


@pytest.mark.parametrize("content", ["- a\n- b\n", "agent: just-a-string\n"])
def test_yaml_wrong_shape(tmp_path: Path, content: str) -> None:
    path = tmp_path / "shape.yaml"
    path.write_text(content)
    with pytest.raises(ValueError, match="mapping"):
        load_yaml_config(path, base=RelayConfig())
