"""Bridges the agent executor and a ChatSession.

Responsibilities:
- Forward assistant events to the session as short progress text
- Detect the approval marker and switch the session into awaiting-input
- Report completion or failure exactly once per turn
"""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from agentrelay.engine.executor import Executor
from agentrelay.engine.models import (
    AssistantEvent,
    ConversationOutcome,
    ExecutionRequest,
    MessageContentPart,
    TextPart,
    ToolUsePart,
)
from agentrelay.engine.system_prompt import APPROVAL_MARKER

from .base import ChatSession

logger = logging.getLogger(__name__)

PROGRESS_PLACEHOLDER = "Processing..."
MAX_PROGRESS_CHARS = 300
MAX_COMMAND_CHARS = 50
TOOL_ICON = "🔧"

# Tool name → input key shown next to the tool tag
TOOL_DISPLAY_PARAM: dict[str, str] = {
    "Read": "file_path",
    "Edit": "file_path",
    "Write": "file_path",
    "Bash": "command",
    "Glob": "pattern",
    "Grep": "pattern",
}


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def format_tool_use(part: ToolUsePart) -> str:
    """Render a tool invocation as ``🔧 [Name] <param>``."""
    param = ""
    key = TOOL_DISPLAY_PARAM.get(part.name)
    if key is not None:
        value = part.input.get(key)
        if isinstance(value, str):
            param = value
            if part.name == "Bash":
                param = _truncate(param, MAX_COMMAND_CHARS)
    tag = f"{TOOL_ICON} [{part.name}]"
    return f"{tag} {param}" if param else tag


def format_message_content(parts: Sequence[MessageContentPart]) -> str:
    """Render assistant content parts into a bounded progress string."""
    rendered: list[str] = []
    for part in parts:
        if isinstance(part, TextPart):
            rendered.append(part.text)
        elif isinstance(part, ToolUsePart):
            rendered.append(format_tool_use(part))
        # tool results are not shown as progress

    text = "\n\n".join(rendered).strip() or PROGRESS_PLACEHOLDER
    return _truncate(text, MAX_PROGRESS_CHARS)


async def _forward_progress(session: ChatSession, text: str) -> None:
    try:
        await session.update_progress(text)
    except Exception:
        logger.warning("Progress update failed", exc_info=True)


class SessionHandler:
    """Runs one turn through the executor and drives the session UI."""

    def __init__(self, executor: Executor) -> None:
        self._executor = executor

    async def execute(
        self,
        session: ChatSession,
        request: ExecutionRequest,
    ) -> ConversationOutcome:
        pending: list[asyncio.Task[None]] = []

        def on_assistant(event: AssistantEvent) -> None:
            text = format_message_content(event.content)
            # The executor calls us synchronously; the UI update runs on its own.
            pending.append(asyncio.ensure_future(_forward_progress(session, text)))

        try:
            result = await self._executor.execute(request, on_assistant)
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            raise
        except Exception as exc:
            await _settle(pending)
            await session.fail(exc)
            raise

        # No progress message may land after the terminal one.
        await _settle(pending)

        is_awaiting_approval = APPROVAL_MARKER in result.response
        # The marker wins over is_error; see DESIGN.md.
        if is_awaiting_approval:
            prompt = result.response.replace(APPROVAL_MARKER, "", 1).strip()
            await session.awaiting_input(prompt)
        elif result.is_error:
            await session.fail(result.response)
        else:
            await session.complete(result.response)

        return ConversationOutcome(
            session_id=result.session_id,
            response=result.response,
            is_error=result.is_error,
            is_awaiting_approval=is_awaiting_approval,
        )


async def _settle(tasks: list[asyncio.Task[None]]) -> None:
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
