"""Session package - bridge between the agent executor and chat front-ends."""
from __future__ import annotations

__all__ = [
    "ChatSession",
    "ConsoleSession",
    "PendingApproval",
    "PendingApprovals",
    "SessionHandler",
    "format_message_content",
]

from agentrelay.session.approvals import PendingApproval, PendingApprovals
from agentrelay.session.base import ChatSession
from agentrelay.session.console import ConsoleSession
from agentrelay.session.handler import SessionHandler, format_message_content
