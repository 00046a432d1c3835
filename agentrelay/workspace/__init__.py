"""Workspace package - the directories the agent runs in."""
from __future__ import annotations

__all__ = [
    "Workspace",
    "WorkspaceInitWarning",
    "WorkspaceManager",
    "WorkspaceStateStore",
    "handle_workspace_command",
]

from agentrelay.workspace.commands import handle_workspace_command
from agentrelay.workspace.manager import (
    Workspace,
    WorkspaceInitWarning,
    WorkspaceManager,
)
from agentrelay.workspace.persistence import WorkspaceStateStore
