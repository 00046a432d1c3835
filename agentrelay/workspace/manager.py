"""Directory-based workspace manager.

Each workspace is a sub-directory of a single root. The current
workspace is the agent's working directory; switching it notifies
listeners so the orchestrator can drop the active agent session.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from agentrelay.engine.errors import WorkspaceError

from .persistence import WorkspaceStateStore

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = "default"
MAX_NAME_LENGTH = 255
_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class Workspace:
    name: str
    path: Path


@dataclass(frozen=True)
class WorkspaceInitWarning:
    """Notice returned by initialize() when the saved workspace is unusable.

    kind is "not_found" or "invalid_name".
    """
    kind: str
    saved_name: str
    fallback_name: str = DEFAULT_WORKSPACE


SwitchedListener = Callable[[Workspace], None]


def validate_workspace_name(name: str) -> None:
    """Raise WorkspaceError unless *name* is a safe directory name."""
    if not name:
        raise WorkspaceError("Workspace name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise WorkspaceError(
            f"Workspace name is too long (max {MAX_NAME_LENGTH} characters)"
        )
    if not _NAME_RE.match(name):
        raise WorkspaceError(
            "Workspace name can only contain alphanumeric characters, "
            "hyphens, and underscores"
        )


class WorkspaceManager:
    """Manages the workspaces under one root directory."""

    def __init__(
        self,
        root_directory: str | Path,
        state_store: WorkspaceStateStore | None = None,
    ) -> None:
        self._root = Path(root_directory).expanduser()
        self._state = state_store or WorkspaceStateStore()
        self._current = DEFAULT_WORKSPACE
        self._listeners: list[SwitchedListener] = []

    @property
    def root_directory(self) -> Path:
        return self._root

    def on_switched(self, listener: SwitchedListener) -> None:
        self._listeners.append(listener)

    def initialize(self) -> list[WorkspaceInitWarning]:
        """Create the root and default workspace, restore the last one used."""
        warnings: list[WorkspaceInitWarning] = []
        self._root.mkdir(parents=True, exist_ok=True)
        (self._root / DEFAULT_WORKSPACE).mkdir(exist_ok=True)

        saved = self._state.load()
        if saved is None:
            self._current = DEFAULT_WORKSPACE
            self._state.save(DEFAULT_WORKSPACE)
            return warnings

        try:
            validate_workspace_name(saved)
        except WorkspaceError as exc:
            logger.warning(
                'Saved workspace "%s" has invalid name (%s). Falling back to "%s".',
                saved, exc, DEFAULT_WORKSPACE,
            )
            warnings.append(WorkspaceInitWarning("invalid_name", saved))
        else:
            if self.has_workspace(saved):
                self._current = saved
                return warnings
            logger.warning(
                'Saved workspace "%s" no longer exists. Falling back to "%s".',
                saved, DEFAULT_WORKSPACE,
            )
            warnings.append(WorkspaceInitWarning("not_found", saved))

        self._current = DEFAULT_WORKSPACE
        self._state.save(DEFAULT_WORKSPACE)
        return warnings

    def create_workspace(self, name: str, switch_to: bool = False) -> Workspace:
        validate_workspace_name(name)
        path = self._root / name
        if path.exists():
            raise WorkspaceError(f'Workspace "{name}" already exists')
        path.mkdir(parents=True)
        logger.info("Created workspace %s at %s", name, path)
        workspace = Workspace(name=name, path=path)
        if switch_to:
            return self.switch_workspace(name)
        return workspace

    def switch_workspace(self, name: str) -> Workspace:
        validate_workspace_name(name)
        path = self._root / name
        if not path.exists():
            raise WorkspaceError(f'Workspace "{name}" does not exist')
        if not path.is_dir():
            raise WorkspaceError(f'"{name}" exists but is not a directory')

        previous = self._current
        self._state.save(name)
        self._current = name
        workspace = Workspace(name=name, path=path)

        if previous != name:
            logger.info("Switched workspace %s -> %s", previous, name)
            for listener in list(self._listeners):
                listener(workspace)
        return workspace

    def get_current_workspace(self) -> Workspace:
        return Workspace(name=self._current, path=self._root / self._current)

    def get_current_workspace_directory(self) -> str:
        return str(self.get_current_workspace().path)

    def list_workspaces(self) -> list[Workspace]:
        if not self._root.is_dir():
            return []
        return [
            Workspace(name=entry.name, path=entry)
            for entry in sorted(self._root.iterdir())
            if entry.is_dir()
        ]

    def has_workspace(self, name: str) -> bool:
        return (self._root / name).is_dir()
