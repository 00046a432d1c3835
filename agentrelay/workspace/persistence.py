"""Last-used workspace, persisted in ~/.agentrelay/state.json."""
from __future__ import annotations

import json
import logging
from pathlib import Path

from agentrelay.engine.config import default_home

logger = logging.getLogger(__name__)


def default_state_path() -> Path:
    return default_home() / "state.json"


class WorkspaceStateStore:
    """Reads and writes ``{"current_workspace": "<name>"}``."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or default_state_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> str | None:
        """Return the saved workspace name, or None if missing/corrupt."""
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("Workspace state file not found at %s", self._path)
            return None
        except (OSError, ValueError):
            logger.warning(
                "Failed to load workspace state from %s", self._path,
                exc_info=True,
            )
            return None

        name = data.get("current_workspace") if isinstance(data, dict) else None
        if not isinstance(name, str) or not name:
            logger.warning("Invalid workspace state format in %s", self._path)
            return None
        return name

    def save(self, name: str) -> None:
        """Persist *name*. Failures are logged, never raised."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps({"current_workspace": name}, indent=2),
                encoding="utf-8",
            )
        except OSError:
            logger.warning(
                "Failed to save workspace state to %s", self._path,
                exc_info=True,
            )
