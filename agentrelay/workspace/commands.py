"""Workspace commands shared by every chat front-end.

    /workspace                 show the current workspace
    /workspace current         same
    /workspace list            list workspaces
    /workspace create <name>   create and switch
    /workspace switch <name>   switch
    /workspace <name>          switch, if <name> exists
"""
from __future__ import annotations

import logging

from agentrelay.engine.errors import WorkspaceError

from .manager import WorkspaceManager

logger = logging.getLogger(__name__)

SUBCOMMANDS = ("create", "switch", "list", "current")


def _describe_current(manager: WorkspaceManager) -> str:
    current = manager.get_current_workspace()
    return f"Current workspace: {current.name}\nPath: {current.path}"


def _describe_list(manager: WorkspaceManager) -> str:
    workspaces = manager.list_workspaces()
    if not workspaces:
        return "No workspaces available."
    current = manager.get_current_workspace().name
    lines = [
        f"{'→' if ws.name == current else ' '} {ws.name} - {ws.path}"
        for ws in workspaces
    ]
    return "Workspaces:\n" + "\n".join(lines)


def handle_workspace_command(manager: WorkspaceManager, text: str) -> str:
    """Run a workspace command and return the reply text."""
    parts = text.strip().split()
    if len(parts) < 2:
        return _describe_current(manager)

    subcommand = parts[1].lower()
    argument = parts[2] if len(parts) > 2 else ""

    try:
        if subcommand == "create":
            if not argument:
                return "Usage: /workspace create <name>"
            manager.create_workspace(argument)
            workspace = manager.switch_workspace(argument)
            return f"✅ Created and switched workspace {workspace.name}\nPath: {workspace.path}"
        if subcommand == "switch":
            if not argument:
                return "Usage: /workspace switch <name>"
            workspace = manager.switch_workspace(argument)
            return f"✅ Switched to workspace {workspace.name}\nPath: {workspace.path}"
        if subcommand == "list":
            return _describe_list(manager)
        if subcommand == "current":
            return _describe_current(manager)

        # Bare workspace name
        name = parts[1]
        if manager.has_workspace(name):
            workspace = manager.switch_workspace(name)
            return f"✅ Switched to workspace {workspace.name}\nPath: {workspace.path}"
        return (
            f"Unknown subcommand or workspace: {name}\n"
            f"Available commands: {', '.join(SUBCOMMANDS)}"
        )
    except (WorkspaceError, OSError) as exc:
        logger.error("Error handling workspace command %r: %s", text, exc)
        return f"❌ Error: {exc}"
