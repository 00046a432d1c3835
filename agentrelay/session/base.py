"""Chat session capability interface.

Each chat front-end implements ChatSession to show progress, final
results, failures, and approval requests for one user turn. The core
only ever talks to this interface.
"""
from __future__ import annotations

import abc


class ChatSession(abc.ABC):
    """UI surface for a single conversation turn."""

    @abc.abstractmethod
    async def update_progress(self, text: str, title: str | None = None) -> None:
        """Show intermediate progress.

        Platforms may edit an existing message in place. Failures here
        are logged by the caller and never abort the agent run.
        """

    @abc.abstractmethod
    async def complete(self, text: str) -> None:
        """Replace progress with the final result."""

    @abc.abstractmethod
    async def fail(self, error: Exception | str) -> None:
        """Show an error and clean up any progress display."""

    @abc.abstractmethod
    async def awaiting_input(self, text: str) -> None:
        """Ask the user to approve before the agent continues.

        The user either confirms ("continue") or replies with new
        instructions; both trigger a new turn resuming this session.
        """
