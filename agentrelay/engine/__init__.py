"""Agent relay engine: runs an agent CLI per chat turn and tracks session state."""
from .models import (
    AgentConfig,
    AssistantEvent,
    ConversationOutcome,
    ExecutionRequest,
    ExecutionResult,
    MessageContentPart,
    ResultEvent,
    SessionState,
    StreamEvent,
    SystemEvent,
    TextPart,
    ToolResultPart,
    ToolUsePart,
    UserEvent,
)
from .config import RelayConfig
from .errors import (
    AgentNotFoundError,
    AgentRelayError,
    ExecuteFailedError,
    ExecutionTimeoutError,
    SessionBusyError,
    StreamDecodeError,
    WorkspaceError,
)
from .protocol import decode_line
from .executor import AgentExecutor, Executor, build_cli_arguments
from .system_prompt import APPROVAL_MARKER, DEFAULT_SYSTEM_PROMPT
from .orchestrator import Orchestrator

__all__ = [
    # Orchestration
    "Orchestrator",
    "AgentExecutor",
    "Executor",
    "build_cli_arguments",
    "decode_line",
    # Models
    "AgentConfig",
    "AssistantEvent",
    "ConversationOutcome",
    "ExecutionRequest",
    "ExecutionResult",
    "MessageContentPart",
    "ResultEvent",
    "SessionState",
    "StreamEvent",
    "SystemEvent",
    "TextPart",
    "ToolResultPart",
    "ToolUsePart",
    "UserEvent",
    # Config
    "RelayConfig",
    "APPROVAL_MARKER",
    "DEFAULT_SYSTEM_PROMPT",
    # Errors
    "AgentNotFoundError",
    "AgentRelayError",
    "ExecuteFailedError",
    "ExecutionTimeoutError",
    "SessionBusyError",
    "StreamDecodeError",
    "WorkspaceError",
]
