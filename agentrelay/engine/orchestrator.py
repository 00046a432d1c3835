"""Conversation orchestrator and its session state machine.

Holds the conversation state (idle / processing / awaiting approval)
and the active agent session id, and turns each user prompt into one
agent execution. At most one execution is in flight per instance;
overlapping turns are rejected with SessionBusyError, never queued.

State transitions:
    IDLE ──turn──► PROCESSING ──ok──► IDLE | AWAITING_APPROVAL
    AWAITING_APPROVAL ──turn──► PROCESSING
    PROCESSING ──error──► IDLE
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agentrelay.session.handler import SessionHandler

from .errors import SessionBusyError
from .executor import AgentExecutor, Executor, WorkspaceDirectoryProvider
from .models import AgentConfig, ExecutionRequest, SessionState
from .system_prompt import DEFAULT_SYSTEM_PROMPT

if TYPE_CHECKING:
    from agentrelay.session.base import ChatSession
    from agentrelay.workspace.manager import WorkspaceManager

logger = logging.getLogger(__name__)


class Orchestrator:
    """Single entry point between chat front-ends and the agent CLI.

    Constructed explicitly with its collaborators; there is no
    process-wide instance.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        executor: Executor | None = None,
        workspace: WorkspaceDirectoryProvider | None = None,
        command: str = "claude",
        system_prompt: str | None = None,
        session_id: str | None = None,
    ) -> None:
        self._config = config
        self._executor = executor or AgentExecutor(workspace, command=command)
        self._handler = SessionHandler(self._executor)
        self._system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
        self._session_id = session_id
        self._state = SessionState.IDLE

    def bind_workspace(self, workspace: WorkspaceManager) -> None:
        """Forget the active session whenever the workspace changes."""
        workspace.on_switched(lambda _ws: self.clear_session())

    async def handle_turn(
        self,
        session: ChatSession,
        prompt: str,
        session_id: str | None = None,
        new_session: bool = False,
    ) -> str:
        """Run one user turn and return the agent session id.

        With an explicit *session_id* that session is resumed. Otherwise
        the most recent session is continued unless *new_session* is set.

        Raises:
            SessionBusyError: A previous turn is still processing. No
                session capability is invoked in that case.
        """
        if self._state is SessionState.PROCESSING:
            logger.info("Rejecting turn: orchestrator is busy")
            raise SessionBusyError()

        request = ExecutionRequest(
            prompt=prompt,
            system_prompt=self._system_prompt,
            config=self._config,
        )
        if session_id:
            request.session_id = session_id
        elif not new_session:
            request.continue_session = True

        # Set before the first await so a concurrent turn sees PROCESSING.
        self._transition(SessionState.PROCESSING)
        try:
            outcome = await self._handler.execute(session, request)
        except BaseException:
            # Includes cancellation: never stay stuck in PROCESSING.
            self._transition(SessionState.IDLE)
            raise

        self._transition(
            SessionState.AWAITING_APPROVAL
            if outcome.is_awaiting_approval
            else SessionState.IDLE
        )
        if outcome.session_id:
            self._session_id = outcome.session_id
        return outcome.session_id

    def clear_session(self) -> None:
        logger.info("Clearing session %s", self._session_id or "<none>")
        self._session_id = None
        self._state = SessionState.IDLE

    def get_session_id(self) -> str | None:
        return self._session_id

    def get_state(self) -> SessionState:
        return self._state

    def _transition(self, new_state: SessionState) -> None:
        if new_state is not self._state:
            logger.debug("Session state %s -> %s", self._state.value, new_state.value)
        self._state = new_state
