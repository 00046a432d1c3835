"""YAML configuration loader.

Loads a single YAML file on top of the RELAY_* environment defaults.
Keys absent from the file keep their environment/default value.

Example YAML:
    agent:
      command: claude
      timeout_seconds: 1800
      skip_permissions: false
      mcp_config_path: ~/.agentrelay/mcp.json
      system_prompt_file: prompts/relay.md   # or inline system_prompt: |

    workspace:
      root: ~/relay-workspaces

    logging:
      level: DEBUG
      file: ~/.agentrelay/logs/agentrelay.log
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .config import RelayConfig

logger = logging.getLogger(__name__)


def _section(raw: dict[str, Any], name: str, path: Path) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{path}: section '{name}' must be a mapping")
    return value


def _expand(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(Path(str(value)).expanduser())


def load_yaml_config(
    path: str | Path,
    base: RelayConfig | None = None,
) -> RelayConfig:
    """Load and parse a YAML config file into a RelayConfig.

    *base* supplies the values for keys missing from the file
    (defaults to RelayConfig.from_env()). A relative
    ``system_prompt_file`` is resolved against the YAML file's directory.
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: attempting to load config from %s (exists=%s)",
        path, path.exists(),
    )
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute(),
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    config = base if base is not None else RelayConfig.from_env()

    agent = _section(raw, "agent", path)
    if "command" in agent:
        config.command = str(agent["command"])
    if "timeout_seconds" in agent:
        timeout = agent["timeout_seconds"]
        config.timeout_seconds = float(timeout) if timeout is not None else None
    if "skip_permissions" in agent:
        config.skip_permissions = bool(agent["skip_permissions"])
    if "mcp_config_path" in agent:
        config.mcp_config_path = _expand(agent["mcp_config_path"])
    if agent.get("system_prompt_file"):
        prompt_path = Path(str(agent["system_prompt_file"])).expanduser()
        if not prompt_path.is_absolute():
            prompt_path = path.parent / prompt_path
        config.system_prompt = prompt_path.read_text(encoding="utf-8")
    elif agent.get("system_prompt"):
        config.system_prompt = str(agent["system_prompt"])

    workspace = _section(raw, "workspace", path)
    if workspace.get("root"):
        config.workspace_root = _expand(workspace["root"]) or config.workspace_root

    log_section = _section(raw, "logging", path)
    if log_section.get("level"):
        config.log_level = str(log_section["level"]).upper()
    if "file" in log_section:
        config.log_file = _expand(log_section["file"])

    logger.info(
        "Parsed YAML config %s, sections: %s",
        path.name, ", ".join(sorted(raw.keys())) or "(empty)",
    )
    return config
