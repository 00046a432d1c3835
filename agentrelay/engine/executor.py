"""Agent CLI executor.

Spawns the agent command-line process in headless stream-json mode,
decodes its stdout line by line, and turns the run into a single
ExecutionResult. Enforces a wall-clock timeout with SIGTERM followed
by SIGKILL after a short grace period.
"""
from __future__ import annotations

import abc
import asyncio
import logging
import shlex
from dataclasses import dataclass
from typing import Callable, Protocol

from .errors import (
    AgentNotFoundError,
    ExecuteFailedError,
    ExecutionTimeoutError,
    StreamDecodeError,
)
from .models import (
    AssistantEvent,
    ExecutionRequest,
    ExecutionResult,
    ResultEvent,
    StreamEvent,
    SystemEvent,
    UserEvent,
)
from .protocol import decode_line

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30 * 60.0
FORCE_KILL_GRACE_SECONDS = 5.0

# Called synchronously for every assistant event, in arrival order.
# Must return quickly; schedule slow work instead of awaiting it.
AssistantCallback = Callable[[AssistantEvent], None]


class WorkspaceDirectoryProvider(Protocol):
    """Anything that can tell the executor where the agent should run."""

    def get_current_workspace_directory(self) -> str: ...


class Executor(abc.ABC):
    """Public contract consumed by the session handler."""

    @abc.abstractmethod
    async def execute(
        self,
        request: ExecutionRequest,
        on_assistant: AssistantCallback | None = None,
    ) -> ExecutionResult:
        """Run one request to completion.

        Raises ExecuteFailedError on non-zero exit and
        ExecutionTimeoutError when the time budget is exceeded.
        """


def build_cli_arguments(request: ExecutionRequest) -> list[str]:
    """Build the agent CLI argument vector for *request*."""
    args: list[str] = []

    # Headless mode
    args.extend(["-p", request.prompt])
    args.extend(["--output-format", "stream-json"])
    args.append("--verbose")

    args.extend(["--append-system-prompt", request.system_prompt])

    if request.session_id:
        args.extend(["--resume", request.session_id])
    elif request.continue_session:
        args.append("-c")

    config = request.config
    if config.mcp_config_path:
        args.extend(["--mcp-config", config.mcp_config_path])

    if config.skip_permissions:
        args.append("--dangerously-skip-permissions")

    return args


class TimeoutEscalation:
    """Two-deadline termination token for a single agent process.

    The primary deadline sends SIGTERM and arms the grace deadline,
    which sends SIGKILL if the process is still alive when it fires.
    A timeout of zero or less disables the token.
    """

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        timeout_seconds: float,
        grace_seconds: float = FORCE_KILL_GRACE_SECONDS,
    ) -> None:
        self._proc = proc
        self._timeout_seconds = timeout_seconds
        self._grace_seconds = grace_seconds
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._kill_handle: asyncio.TimerHandle | None = None
        self.timed_out = False

    def start(self) -> None:
        if self._timeout_seconds <= 0:
            return
        loop = asyncio.get_running_loop()
        self._timeout_handle = loop.call_later(
            self._timeout_seconds, self._on_timeout,
        )

    @property
    def kill_pending(self) -> bool:
        return self._kill_handle is not None

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        if self._proc.returncode is not None:
            return
        self.timed_out = True
        logger.error(
            "Killing agent process pid=%s after %ss timeout",
            self._proc.pid, self._timeout_seconds,
        )
        _signal_quietly(self._proc.terminate)
        loop = asyncio.get_running_loop()
        self._kill_handle = loop.call_later(
            self._grace_seconds, self._on_grace_expired,
        )

    def _on_grace_expired(self) -> None:
        self._kill_handle = None
        if self._proc.returncode is None:
            logger.error(
                "Agent process pid=%s ignored SIGTERM for %ss; sending SIGKILL",
                self._proc.pid, self._grace_seconds,
            )
            _signal_quietly(self._proc.kill)

    def process_exited(self) -> None:
        """Drop the pending SIGKILL once the process is gone."""
        if self._kill_handle is not None:
            self._kill_handle.cancel()
            self._kill_handle = None

    def cancel(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        self.process_exited()


def _signal_quietly(send: Callable[[], None]) -> None:
    try:
        send()
    except ProcessLookupError:
        pass


@dataclass
class _RunState:
    """What the stdout drain has learned so far."""
    session_id: str = ""
    response: str = ""
    is_error: bool = False


class AgentExecutor(Executor):
    """Executor backed by the agent CLI (``claude`` by default).

    One child process per call; nothing is reused across turns.
    """

    def __init__(
        self,
        workspace: WorkspaceDirectoryProvider | None = None,
        command: str = "claude",
        force_kill_grace_seconds: float = FORCE_KILL_GRACE_SECONDS,
    ) -> None:
        self._workspace = workspace
        self._command = command
        self._force_kill_grace_seconds = force_kill_grace_seconds

    @property
    def command(self) -> str:
        return self._command

    def _resolve_cwd(self, request: ExecutionRequest) -> str | None:
        if request.config.working_directory:
            return request.config.working_directory
        if self._workspace is not None:
            return self._workspace.get_current_workspace_directory()
        return None

    async def execute(
        self,
        request: ExecutionRequest,
        on_assistant: AssistantCallback | None = None,
    ) -> ExecutionResult:
        args = build_cli_arguments(request)
        timeout = request.config.timeout_seconds
        if timeout is None:
            timeout = DEFAULT_TIMEOUT_SECONDS
        cwd = self._resolve_cwd(request)

        logger.debug(
            "Executing command: %s %s (cwd=%s)",
            self._command, shlex.join(args), cwd,
        )

        try:
            # Array-based exec, no shell. stdin is closed so the CLI never
            # waits for interactive input.
            proc = await asyncio.create_subprocess_exec(
                self._command,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise AgentNotFoundError(self._command) from exc

        escalation = TimeoutEscalation(
            proc, timeout, self._force_kill_grace_seconds,
        )
        escalation.start()
        stderr_lines: list[str] = []
        state = _RunState()

        try:
            stderr_task = asyncio.create_task(
                self._drain_stderr(proc.stderr, stderr_lines)
            )
            try:
                await self._drain_stdout(proc.stdout, state, on_assistant)
                await stderr_task
            except BaseException:
                stderr_task.cancel()
                raise
            # Exit status is only inspected after both streams hit EOF.
            exit_code = await proc.wait()
            escalation.process_exited()
        except BaseException:
            if proc.returncode is None:
                logger.warning(
                    "Agent run aborted; killing process pid=%s", proc.pid,
                )
                _signal_quietly(proc.kill)
            raise
        finally:
            escalation.cancel()

        if escalation.timed_out:
            raise ExecutionTimeoutError(timeout)

        if exit_code != 0:
            raise ExecuteFailedError(exit_code, "\n".join(stderr_lines))

        return ExecutionResult(
            session_id=state.session_id,
            response=state.response,
            is_error=state.is_error,
        )

    async def _drain_stdout(
        self,
        stream: asyncio.StreamReader,
        state: _RunState,
        on_assistant: AssistantCallback | None,
    ) -> None:
        while True:
            raw = await _read_line_unbounded(stream)
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace")
            if not line.strip():
                continue

            try:
                event = decode_line(line)
            except StreamDecodeError as exc:
                logger.warning("Failed to parse line (%s): %s", exc.reason, line.rstrip()[:500])
                continue

            self._log_event(event)

            if event.session_id:
                state.session_id = event.session_id

            if isinstance(event, ResultEvent):
                state.response = event.result
                state.is_error = event.is_error
            elif isinstance(event, AssistantEvent) and on_assistant is not None:
                try:
                    on_assistant(event)
                except Exception:
                    logger.exception("Assistant event callback failed")

    @staticmethod
    async def _drain_stderr(
        stream: asyncio.StreamReader, lines: list[str],
    ) -> None:
        while True:
            raw = await _read_line_unbounded(stream)
            if not raw:
                break
            lines.append(raw.decode("utf-8", errors="replace").rstrip("\r\n"))

    @staticmethod
    def _log_event(event: StreamEvent) -> None:
        if isinstance(event, SystemEvent):
            logger.debug("System: %s session=%s", event.subtype, event.session_id)
        elif isinstance(event, UserEvent):
            logger.debug("User: %d content part(s)", len(event.content))
        elif isinstance(event, AssistantEvent):
            logger.debug(
                "Assistant: %s",
                ", ".join(part.type for part in event.content) or "(empty)",
            )
        elif isinstance(event, ResultEvent):
            logger.debug(
                "Result: subtype=%s is_error=%s cost=%s",
                event.subtype, event.is_error, event.total_cost_usd,
            )


async def _read_line_unbounded(stream: asyncio.StreamReader) -> bytes:
    """Read a full line from *stream* with no size limit.

    Unlike ``StreamReader.readline()``, this never raises
    ``LimitOverrunError``: a single stream-json event (a tool result
    carrying a large file, say) can exceed the default 64 KiB limit.
    """
    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await stream.readuntil(b"\n"))
            return b"".join(chunks)
        except asyncio.LimitOverrunError as exc:
            # Buffer full without a newline; take what is there and keep going.
            chunks.append(await stream.read(exc.consumed))
        except asyncio.IncompleteReadError as exc:
            # EOF before newline
            chunks.append(exc.partial)
            return b"".join(chunks)
