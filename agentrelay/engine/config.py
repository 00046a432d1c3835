"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via RELAY_* env vars,
or load a YAML file with yaml_config.load_yaml_config().
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import AgentConfig

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes"}


def default_home() -> Path:
    """Return the per-user state directory (~/.agentrelay)."""
    return Path.home() / ".agentrelay"


@dataclass
class RelayConfig:
    """Relay configuration."""

    # Agent CLI
    command: str = "claude"
    # None selects the executor default (30 minutes).
    # Zero or a negative value disables the timeout.
    timeout_seconds: float | None = None
    skip_permissions: bool = False
    mcp_config_path: str | None = None
    # None selects the built-in prompt with the approval instructions.
    system_prompt: str | None = None

    # Workspaces
    workspace_root: str = field(
        default_factory=lambda: str(default_home() / "workspaces")
    )

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    def agent_config(self) -> AgentConfig:
        """Per-execution settings handed to the orchestrator."""
        return AgentConfig(
            mcp_config_path=self.mcp_config_path,
            skip_permissions=self.skip_permissions,
            timeout_seconds=self.timeout_seconds,
        )

    def resolved_log_file(self) -> Path:
        if self.log_file:
            return Path(self.log_file).expanduser()
        return default_home() / "logs" / "agentrelay.log"

    @classmethod
    def from_env(cls) -> RelayConfig:
        """Load configuration from RELAY_* environment variables."""
        relay_vars = {
            k: v for k, v in os.environ.items() if k.startswith("RELAY_")
        }
        if relay_vars:
            logger.info(
                "RelayConfig.from_env: RELAY_* env overrides: %s",
                ", ".join(sorted(relay_vars)),
            )
        else:
            logger.debug("RelayConfig.from_env: no RELAY_* env vars set, using defaults")

        timeout_raw = os.getenv("RELAY_TIMEOUT_SECONDS")
        config = cls(
            command=os.getenv("RELAY_COMMAND", cls.command),
            timeout_seconds=float(timeout_raw) if timeout_raw else None,
            skip_permissions=(
                os.getenv("RELAY_SKIP_PERMISSIONS", "").lower() in _TRUE_VALUES
            ),
            mcp_config_path=os.getenv("RELAY_MCP_CONFIG") or None,
            log_level=os.getenv("RELAY_LOG_LEVEL", cls.log_level),
            log_file=os.getenv("RELAY_LOG_FILE") or None,
        )
        workspace_root = os.getenv("RELAY_WORKSPACE_ROOT")
        if workspace_root:
            config.workspace_root = workspace_root

        logger.info(
            "RelayConfig.from_env: command=%s workspace_root=%s timeout=%s skip_permissions=%s",
            config.command, config.workspace_root,
            config.timeout_seconds, config.skip_permissions,
        )
        return config
