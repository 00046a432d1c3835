"""Core data models for the relay engine.

All dataclasses, enums, and type aliases. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class SessionState(str, Enum):
    """Conversation state owned by the Orchestrator."""
    IDLE = "idle"
    PROCESSING = "processing"
    AWAITING_APPROVAL = "awaiting_approval"


@dataclass
class AgentConfig:
    """Per-orchestrator settings applied to every agent invocation.

    Attributes:
        working_directory: Directory the agent runs in. When None the
            current workspace directory is used.
        mcp_config_path: Optional tool (MCP) configuration file.
        skip_permissions: Let the agent run tools without prompting.
        timeout_seconds: Wall-clock budget per execution. None selects
            the executor default (30 minutes).
    """
    working_directory: str | None = None
    mcp_config_path: str | None = None
    skip_permissions: bool = False
    timeout_seconds: float | None = None


@dataclass
class ExecutionRequest:
    """One user turn handed to the executor.

    ``session_id`` and ``continue_session`` are mutually exclusive;
    when both are set the explicit session id wins.
    """
    prompt: str
    system_prompt: str
    config: AgentConfig = field(default_factory=AgentConfig)
    session_id: str | None = None
    continue_session: bool = False


# ── Message content parts ──


@dataclass(frozen=True)
class TextPart:
    text: str
    type: str = "text"


@dataclass(frozen=True)
class ToolUsePart:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)
    type: str = "tool_use"


@dataclass(frozen=True)
class ToolResultPart:
    tool_use_id: str
    content: str
    type: str = "tool_result"


MessageContentPart = Union[TextPart, ToolUsePart, ToolResultPart]


# ── Stream events (one per stdout line) ──


@dataclass(frozen=True)
class SystemEvent:
    session_id: str
    subtype: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)
    type: str = "system"


@dataclass(frozen=True)
class UserEvent:
    session_id: str
    content: tuple[MessageContentPart, ...] = ()
    type: str = "user"


@dataclass(frozen=True)
class AssistantEvent:
    session_id: str
    content: tuple[MessageContentPart, ...] = ()
    message_id: str = ""
    model: str = ""
    type: str = "assistant"


@dataclass(frozen=True)
class ResultEvent:
    """Terminal event of an agent run.

    Usage and cost fields are carried through untouched.
    """
    session_id: str
    subtype: str = "success"
    is_error: bool = False
    result: str = ""
    usage: dict[str, Any] = field(default_factory=dict, repr=False)
    total_cost_usd: float | None = None
    duration_ms: int | None = None
    num_turns: int | None = None
    type: str = "result"


StreamEvent = Union[SystemEvent, UserEvent, AssistantEvent, ResultEvent]


# ── Results ──


@dataclass(frozen=True)
class ExecutionResult:
    """Executor output for one request."""
    session_id: str
    response: str
    is_error: bool = False


@dataclass(frozen=True)
class ConversationOutcome:
    """ExecutionResult plus the approval-gate decision."""
    session_id: str
    response: str
    is_error: bool = False
    is_awaiting_approval: bool = False
