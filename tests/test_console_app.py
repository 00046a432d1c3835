"""Tests for the rich console session, approvals and the interactive relay."""
from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from agentrelay.app import ConsoleRelay, build_parser, load_config
from agentrelay.engine.config import RelayConfig
from agentrelay.engine.errors import ExecuteFailedError, SessionBusyError
from agentrelay.engine.models import AgentConfig, ExecutionResult, SessionState
from agentrelay.engine.orchestrator import Orchestrator
from agentrelay.session.approvals import PendingApprovals
from agentrelay.session.console import ConsoleSession
from agentrelay.workspace.manager import WorkspaceManager
from agentrelay.workspace.persistence import WorkspaceStateStore


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=100, force_terminal=False, color_system=None), buffer


class FakeOrchestrator:
    """Records handle_turn calls and plays a scripted session reaction."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.session_id: str | None = "sess-1"
        self.reply = "done"
        self.awaiting = False
        self.error: Exception | None = None
        self.state = SessionState.IDLE

    async def handle_turn(self, session, prompt, session_id=None, new_session=False):
        self.calls.append({
            "prompt": prompt, "session_id": session_id, "new_session": new_session,
        })
        if isinstance(self.error, SessionBusyError):
            raise self.error
        if self.error is not None:
            await session.fail(self.error)
            raise self.error
        if self.awaiting:
            self.state = SessionState.AWAITING_APPROVAL
            await session.awaiting_input(self.reply)
        else:
            self.state = SessionState.IDLE
            await session.complete(self.reply)
        return self.session_id

    def get_session_id(self):
        return self.session_id

    def get_state(self):
        return self.state


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceManager:
    mgr = WorkspaceManager(
        tmp_path / "ws", state_store=WorkspaceStateStore(tmp_path / "state.json"),
    )
    mgr.initialize()
    return mgr


@pytest.fixture
def relay(workspace: WorkspaceManager):
    console, buffer = _console()
    orchestrator = FakeOrchestrator()
    return ConsoleRelay(orchestrator, workspace, console), orchestrator, buffer


# ── ConsoleSession ──


@pytest.mark.asyncio
async def test_console_session_progress_and_complete() -> None:
    console, buffer = _console()
    session = ConsoleSession("t1", console=console)

    await session.update_progress("🔧 [Read] /src/app.py")
    await session.complete("All done")
    await session.update_progress("late progress")

    output = buffer.getvalue()
    assert "Working" in output
    assert "/src/app.py" in output
    assert "Completed" in output
    assert "All done" in output
    assert "late progress" not in output
    assert session.finished is True


@pytest.mark.asyncio
async def test_console_session_fail_shows_stderr() -> None:
    console, buffer = _console()
    session = ConsoleSession("t1", console=console)

    await session.fail(ExecuteFailedError(2, "auth expired"))

    output = buffer.getvalue()
    assert "Error" in output
    assert "auth expired" in output


@pytest.mark.asyncio
async def test_console_session_awaiting_registers_approval() -> None:
    console, buffer = _console()
    approvals = PendingApprovals()
    session = ConsoleSession("t42", console=console, approvals=approvals)

    await session.awaiting_input("Delete the build dir?")

    assert "Awaiting approval" in buffer.getvalue()
    assert "Delete the build dir?" in buffer.getvalue()
    assert "t42" in approvals
    assert approvals.latest().conversation_ref == "console"


# ── PendingApprovals ──


def test_pending_approvals_latest_and_pop() -> None:
    approvals = PendingApprovals()
    assert approvals.latest() is None

    approvals.register("a", "chan-1")
    approvals.register("b", "chan-2", session_id="s-2")

    assert len(approvals) == 2
    assert approvals.latest().handle == "b"
    assert approvals.get("b").session_id == "s-2"
    assert approvals.pop("b").conversation_ref == "chan-2"
    assert approvals.pop("b") is None
    assert approvals.latest().handle == "a"

    approvals.clear()
    assert len(approvals) == 0


# ── ConsoleRelay ──


@pytest.mark.asyncio
async def test_relay_plain_turn(relay) -> None:
    console_relay, orchestrator, buffer = relay

    assert await console_relay.handle_line("fix the tests") is True

    assert orchestrator.calls == [
        {"prompt": "fix the tests", "session_id": None, "new_session": False},
    ]
    assert "done" in buffer.getvalue()


@pytest.mark.asyncio
@pytest.mark.parametrize("line", ["/quit", "/EXIT"])
async def test_relay_quit(relay, line: str) -> None:
    console_relay, orchestrator, _ = relay
    assert await console_relay.handle_line(line) is False
    assert orchestrator.calls == []


@pytest.mark.asyncio
async def test_relay_blank_line_ignored(relay) -> None:
    console_relay, orchestrator, _ = relay
    assert await console_relay.handle_line("   ") is True
    assert orchestrator.calls == []


@pytest.mark.asyncio
async def test_relay_new_session(relay) -> None:
    console_relay, orchestrator, _ = relay

    await console_relay.handle_line("/new scaffold a CLI")

    assert orchestrator.calls == [
        {"prompt": "scaffold a CLI", "session_id": None, "new_session": True},
    ]


@pytest.mark.asyncio
async def test_relay_new_requires_prompt(relay) -> None:
    console_relay, orchestrator, buffer = relay

    await console_relay.handle_line("/new")

    assert orchestrator.calls == []
    assert "Usage: /new <prompt>" in buffer.getvalue()


@pytest.mark.asyncio
async def test_relay_continue_resumes_session(relay) -> None:
    console_relay, orchestrator, _ = relay
    orchestrator.awaiting = True
    orchestrator.reply = "Proceed with migration?"

    await console_relay.handle_line("plan the migration")
    assert len(console_relay.approvals) == 1

    orchestrator.awaiting = False
    await console_relay.handle_line("y")

    assert orchestrator.calls[1] == {
        "prompt": "continue", "session_id": "sess-1", "new_session": False,
    }
    assert len(console_relay.approvals) == 0


@pytest.mark.asyncio
async def test_relay_reply_to_approval_passes_instructions(relay) -> None:
    console_relay, orchestrator, _ = relay
    orchestrator.awaiting = True
    await console_relay.handle_line("plan")

    orchestrator.awaiting = False
    await console_relay.handle_line("only touch the docs")

    assert orchestrator.calls[1]["prompt"] == "only touch the docs"
    assert orchestrator.calls[1]["session_id"] == "sess-1"


@pytest.mark.asyncio
async def test_relay_new_drops_pending_approval(relay) -> None:
    console_relay, orchestrator, _ = relay
    orchestrator.awaiting = True
    await console_relay.handle_line("plan")

    orchestrator.awaiting = False
    await console_relay.handle_line("/new something else")

    assert len(console_relay.approvals) == 0
    assert orchestrator.calls[1]["new_session"] is True


@pytest.mark.asyncio
async def test_relay_busy_message(relay) -> None:
    console_relay, orchestrator, buffer = relay
    orchestrator.error = SessionBusyError()

    assert await console_relay.run_turn("hello") is False
    assert "busy" in buffer.getvalue()


@pytest.mark.asyncio
async def test_relay_failed_turn_returns_false(relay) -> None:
    console_relay, orchestrator, buffer = relay
    orchestrator.error = ExecuteFailedError(1, "crashed")

    assert await console_relay.run_turn("hello") is False
    assert "crashed" in buffer.getvalue()


@pytest.mark.asyncio
async def test_relay_workspace_command(relay, workspace: WorkspaceManager) -> None:
    console_relay, orchestrator, buffer = relay

    await console_relay.handle_line("/workspace create proj")

    assert orchestrator.calls == []
    assert workspace.get_current_workspace().name == "proj"
    assert "Created and switched workspace proj" in buffer.getvalue()


@pytest.mark.asyncio
async def test_relay_records_session_id_on_approval(relay) -> None:
    console_relay, orchestrator, _ = relay
    orchestrator.awaiting = True
    orchestrator.session_id = "sess-approve"

    await console_relay.handle_line("plan")

    assert console_relay.approvals.latest().session_id == "sess-approve"


@pytest.mark.asyncio
async def test_relay_stale_approval_is_not_an_answer(relay) -> None:
    console_relay, orchestrator, _ = relay
    console_relay.approvals.register("old-turn", "console", session_id="old")

    await console_relay.handle_line("y")

    assert orchestrator.calls == [
        {"prompt": "y", "session_id": None, "new_session": False},
    ]
    assert len(console_relay.approvals) == 0


# ── ConsoleRelay with a real orchestrator ──


class QueuedExecutor:
    def __init__(self, *responses: str) -> None:
        self.responses = list(responses)
        self.requests = []

    async def execute(self, request, on_assistant=None):
        self.requests.append(request)
        return ExecutionResult(
            session_id="s-1", response=self.responses.pop(0), is_error=False,
        )


def _real_relay(workspace: WorkspaceManager, executor: QueuedExecutor) -> ConsoleRelay:
    console, _ = _console()
    orchestrator = Orchestrator(AgentConfig(), executor=executor)
    orchestrator.bind_workspace(workspace)
    return ConsoleRelay(orchestrator, workspace, console)


@pytest.mark.asyncio
async def test_real_orchestrator_continue_resumes_session(
    workspace: WorkspaceManager,
) -> None:
    executor = QueuedExecutor("Proceed? [ask_approval]", "Applied")
    console_relay = _real_relay(workspace, executor)

    await console_relay.handle_line("plan it")
    await console_relay.handle_line("y")

    assert executor.requests[1].prompt == "continue"
    assert executor.requests[1].session_id == "s-1"
    assert len(console_relay.approvals) == 0


@pytest.mark.asyncio
async def test_workspace_switch_drops_pending_approval(
    workspace: WorkspaceManager,
) -> None:
    executor = QueuedExecutor("Proceed? [ask_approval]", "Hello")
    console_relay = _real_relay(workspace, executor)

    await console_relay.handle_line("plan it")
    assert len(console_relay.approvals) == 1

    await console_relay.handle_line("/workspace create other")
    assert len(console_relay.approvals) == 0

    await console_relay.handle_line("y")

    request = executor.requests[1]
    assert request.prompt == "y"
    assert request.session_id is None
    assert request.continue_session is True


# ── CLI ──


def test_load_config_cli_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("RELAY_COMMAND", raising=False)
    args = build_parser().parse_args([
        "--workspace-root", str(tmp_path),
        "--command", "claude-dev",
        "--timeout", "12.5",
        "--skip-permissions",
        "do it",
    ])

    config = load_config(args)

    assert isinstance(config, RelayConfig)
    assert config.workspace_root == str(tmp_path)
    assert config.command == "claude-dev"
    assert config.timeout_seconds == 12.5
    assert config.skip_permissions is True
    assert args.prompt == "do it"


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.prompt is None
    assert args.new is False
    assert args.resume is None
    assert args.config is None
