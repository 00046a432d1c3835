"""Pending approval requests awaiting a user "continue".

Maps an approval handle (the id of the message that asked for
approval) to the conversation it came from, so the follow-up turn
resumes the right agent session. Lives for one approval cycle.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingApproval:
    handle: str
    conversation_ref: str
    session_id: str | None = None


class PendingApprovals:
    """Handle → PendingApproval map, mutated only from the message loop."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingApproval] = {}

    def register(
        self,
        handle: str,
        conversation_ref: str,
        session_id: str | None = None,
    ) -> PendingApproval:
        approval = PendingApproval(handle, conversation_ref, session_id)
        self._pending[handle] = approval
        logger.debug("Approval pending: %s -> %s", handle, conversation_ref)
        return approval

    def get(self, handle: str) -> PendingApproval | None:
        return self._pending.get(handle)

    def pop(self, handle: str) -> PendingApproval | None:
        return self._pending.pop(handle, None)

    def latest(self) -> PendingApproval | None:
        """Most recently registered approval, if any."""
        if not self._pending:
            return None
        return next(reversed(self._pending.values()))

    def clear(self) -> None:
        if self._pending:
            logger.debug("Dropping %d pending approval(s)", len(self._pending))
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, handle: object) -> bool:
        return handle in self._pending
