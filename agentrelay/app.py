"""Console front-end for the agent relay.

Usage:
    agentrelay "Add a README to this project"      # one turn, then exit
    agentrelay --new "Start over: scaffold a CLI"  # fresh agent session
    agentrelay                                     # interactive chat

Interactive commands:
    /new <prompt>        start a fresh agent session
    /workspace ...       list / create / switch workspaces
    continue             approve a pending "[ask_approval]" request
    /quit                exit
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler

from rich.console import Console

from agentrelay.engine.config import RelayConfig
from agentrelay.engine.errors import AgentRelayError, SessionBusyError
from agentrelay.engine.models import SessionState
from agentrelay.engine.orchestrator import Orchestrator
from agentrelay.engine.yaml_config import load_yaml_config
from agentrelay.session.approvals import PendingApprovals
from agentrelay.session.console import ConsoleSession
from agentrelay.workspace.commands import handle_workspace_command
from agentrelay.workspace.manager import WorkspaceInitWarning, WorkspaceManager

logger = logging.getLogger(__name__)

CONTINUE_WORDS = {"continue", "c", "yes", "y"}
QUIT_WORDS = {"/quit", "/exit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentrelay",
        description="Chat with a tool-using agent CLI, one turn at a time",
    )
    parser.add_argument(
        "prompt",
        nargs="?",
        default=None,
        help="Run a single turn with this prompt and exit",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (default: RELAY_* environment variables)",
    )
    parser.add_argument(
        "--workspace-root",
        default=None,
        help="Directory holding the workspaces",
    )
    parser.add_argument(
        "--command",
        default=None,
        help="Agent CLI binary (default: claude)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-turn timeout in seconds (default: 1800)",
    )
    parser.add_argument(
        "--skip-permissions",
        action="store_true",
        help="Let the agent run tools without asking",
    )
    parser.add_argument(
        "--new",
        action="store_true",
        help="Start a new agent session instead of continuing the latest",
    )
    parser.add_argument(
        "--resume",
        default=None,
        metavar="SESSION_ID",
        help="Resume a specific agent session",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging on stderr",
    )
    return parser


def configure_logging(config: RelayConfig, verbose: bool = False) -> None:
    """Log to a rotating file; mirror to stderr when verbose."""
    level = logging.DEBUG if verbose else getattr(
        logging, config.log_level.upper(), logging.INFO,
    )
    log_file = config.resolved_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if verbose:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)


def load_config(args: argparse.Namespace) -> RelayConfig:
    config = load_yaml_config(args.config) if args.config else RelayConfig.from_env()
    if args.workspace_root is not None:
        config.workspace_root = args.workspace_root
    if args.command is not None:
        config.command = args.command
    if args.timeout is not None:
        config.timeout_seconds = args.timeout
    if args.skip_permissions:
        config.skip_permissions = True
    return config


def _warning_text(warning: WorkspaceInitWarning) -> str:
    if warning.kind == "invalid_name":
        return (
            f'⚠️ Saved workspace "{warning.saved_name}" has an invalid name. '
            f'Fell back to default workspace "{warning.fallback_name}".'
        )
    return (
        f'⚠️ Saved workspace "{warning.saved_name}" was not found. '
        f'Fell back to default workspace "{warning.fallback_name}".'
    )


class ConsoleRelay:
    """Interactive loop wiring console input to the orchestrator."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        workspace: WorkspaceManager,
        console: Console,
    ) -> None:
        self._orchestrator = orchestrator
        self._workspace = workspace
        self._console = console
        self._approvals = PendingApprovals()
        # Approvals belong to the session the switch just dropped.
        workspace.on_switched(lambda _ws: self._approvals.clear())

    @property
    def approvals(self) -> PendingApprovals:
        return self._approvals

    async def run_turn(
        self,
        prompt: str,
        *,
        session_id: str | None = None,
        new_session: bool = False,
    ) -> bool:
        """Run one turn. Returns False if it failed or was rejected."""
        turn_id = uuid.uuid4().hex[:8]
        session = ConsoleSession(
            turn_id,
            console=self._console,
            approvals=self._approvals,
        )
        try:
            agent_session_id = await self._orchestrator.handle_turn(
                session, prompt, session_id=session_id, new_session=new_session,
            )
        except SessionBusyError:
            self._console.print(
                "[yellow]The agent is busy with another request. "
                "Please try again later.[/yellow]"
            )
            return False
        except AgentRelayError as exc:
            # The session has already shown the error.
            logger.info("Turn failed: %s", exc)
            return False

        pending = self._approvals.get(turn_id)
        if pending is not None and agent_session_id:
            self._approvals.register(
                turn_id, pending.conversation_ref, session_id=agent_session_id,
            )
        return True

    async def handle_line(self, line: str) -> bool:
        """Process one input line. Returns False when the user quits."""
        text = line.strip()
        if not text:
            return True
        if text.lower() in QUIT_WORDS:
            return False

        if text.startswith("/workspace"):
            self._console.print(handle_workspace_command(self._workspace, text))
            return True

        if text.startswith("/new"):
            prompt = text[len("/new"):].strip()
            if not prompt:
                self._console.print("Usage: /new <prompt>")
                return True
            # A fresh conversation abandons any outstanding approval.
            self._approvals.clear()
            await self.run_turn(prompt, new_session=True)
            return True

        pending = self._approvals.latest()
        # Any new turn ends the current approval cycle.
        self._approvals.clear()
        if self._orchestrator.get_state() is SessionState.AWAITING_APPROVAL:
            # Either an approval ("continue") or instructions replying to it.
            prompt = "continue" if text.lower() in CONTINUE_WORDS else text
            session_id = (
                pending.session_id if pending is not None else None
            ) or self._orchestrator.get_session_id()
            await self.run_turn(prompt, session_id=session_id)
            return True

        await self.run_turn(text)
        return True

    async def interact(self) -> None:
        current = self._workspace.get_current_workspace()
        self._console.print(
            f"[bold]agentrelay[/bold] workspace [cyan]{current.name}[/cyan] "
            f"({current.path}). Type /quit to exit."
        )
        while True:
            try:
                line = await asyncio.to_thread(self._console.input, "[bold]you>[/bold] ")
            except EOFError:
                break
            if not await self.handle_line(line):
                break


async def run(config: RelayConfig, args: argparse.Namespace) -> int:
    console = Console()
    workspace = WorkspaceManager(config.workspace_root)
    for warning in workspace.initialize():
        console.print(_warning_text(warning))

    orchestrator = Orchestrator(
        config.agent_config(),
        workspace=workspace,
        command=config.command,
        system_prompt=config.system_prompt,
        session_id=args.resume,
    )
    orchestrator.bind_workspace(workspace)
    relay = ConsoleRelay(orchestrator, workspace, console)

    if args.prompt:
        ok = await relay.run_turn(
            args.prompt, session_id=args.resume, new_session=args.new,
        )
        return 0 if ok else 1

    await relay.interact()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = load_config(args)
    configure_logging(config, verbose=args.verbose)
    logger.info(
        "Starting agentrelay command=%s workspace_root=%s",
        config.command, config.workspace_root,
    )
    try:
        code = asyncio.run(run(config, args))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
