"""Exception hierarchy for the relay engine.

Every error raised by the engine derives from AgentRelayError, so
front-ends can catch one type and show the message.
"""
from __future__ import annotations


class AgentRelayError(Exception):
    """Base exception for all relay errors."""


class ExecuteFailedError(AgentRelayError):
    """The agent process exited with a non-zero exit code."""
    def __init__(self, exit_code: int, error_output: str):
        self.exit_code = exit_code
        self.error_output = error_output
        super().__init__(f"Agent execution failed: exit code {exit_code}")


class ExecutionTimeoutError(AgentRelayError, TimeoutError):
    """The agent process exceeded its wall-clock budget and was terminated."""
    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Agent CLI execution timed out after {timeout_seconds}s"
        )


class SessionBusyError(AgentRelayError):
    """A turn was requested while another one is still processing."""
    def __init__(self) -> None:
        super().__init__("Session is currently processing another request")


class AgentNotFoundError(AgentRelayError):
    """The agent CLI binary could not be started."""
    def __init__(self, command: str):
        self.command = command
        super().__init__(
            f"Agent CLI '{command}' not found. "
            f"Install it or point RELAY_COMMAND at it."
        )


class StreamDecodeError(AgentRelayError):
    """A stdout line could not be decoded into a stream event."""
    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f"Cannot decode stream line ({reason}): {line[:200]}")


class WorkspaceError(AgentRelayError):
    """Invalid workspace name or a workspace operation failed."""
