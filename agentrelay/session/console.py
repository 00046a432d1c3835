"""Terminal ChatSession rendered with rich."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from agentrelay.engine.errors import ExecuteFailedError

from .approvals import PendingApprovals
from .base import ChatSession

logger = logging.getLogger(__name__)

CONTINUE_HINT = 'Type "continue" to proceed, or reply with instructions'


class ConsoleSession(ChatSession):
    """Shows one turn in the terminal.

    Progress lines are printed dimmed as they arrive; the terminal
    message of the turn is printed as a bordered panel.
    """

    def __init__(
        self,
        turn_id: str,
        *,
        console: Console | None = None,
        approvals: PendingApprovals | None = None,
        conversation_ref: str = "console",
    ) -> None:
        self._turn_id = turn_id
        self._console = console or Console()
        self._approvals = approvals
        self._conversation_ref = conversation_ref
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    async def update_progress(self, text: str, title: str | None = None) -> None:
        if self._finished:
            return
        line = Text(f"{title or 'Working'} ", style="bold cyan")
        line.append(text, style="dim")
        self._console.print(line)

    async def complete(self, text: str) -> None:
        self._finished = True
        self._console.print(Panel(
            Markdown(text),
            title="✅ Completed",
            border_style="green",
        ))

    async def fail(self, error: Exception | str) -> None:
        self._finished = True
        message = str(error)
        if isinstance(error, ExecuteFailedError) and error.error_output:
            message = f"{message}\n\n{error.error_output}"
        self._console.print(Panel(
            Text(message),
            title="❌ Error",
            border_style="red",
        ))

    async def awaiting_input(self, text: str) -> None:
        self._finished = True
        self._console.print(Panel(
            Markdown(text),
            title="⏳ Awaiting approval",
            subtitle=CONTINUE_HINT,
            border_style="yellow",
        ))
        if self._approvals is not None:
            self._approvals.register(self._turn_id, self._conversation_ref)
