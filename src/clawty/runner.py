"""Subprocess wrapper around ``claude -p`` with streaming JSON output.

Each message is one invocation of the CLI. The first call of a session
creates it with ``--session-id``; later calls resume it with ``-r`` so the
agent keeps its conversation context between messages.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from clawty.adapter import DisplayAdapter
from clawty.config import DEFAULT_PERMISSION_MODE, BridgeConfig, find_claude_cli
from clawty.display import DisplayCoordinator
from clawty.events import SessionInit, TurnResult, parse_line
from clawty.exceptions import AgentError, ConfigError

logger = logging.getLogger(__name__)

# stream-json lines carry whole tool results and can be far longer than
# asyncio's 64 KiB default line limit.
STREAM_LIMIT = 16 * 1024 * 1024

INSTALL_HINT = "Install with: npm install -g @anthropic-ai/claude-code"

__all__ = [
    "ClaudeRunner",
    "SessionState",
    "TurnOutcome",
    "build_system_prompt",
    "find_claude_cli",
    "verify_installed",
]


@dataclass
class TurnOutcome:
    """What a finished turn hands back to the bridge."""

    text: str = ""
    cost: float = 0.0
    duration_ms: int = 0


@dataclass
class SessionState:
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_first_message: bool = True
    model: str | None = None
    message_count: int = 0
    total_cost_usd: float = 0.0
    total_duration_ms: int = 0
    started_at: datetime = field(default_factory=datetime.now)

    def record(self, outcome: TurnOutcome) -> None:
        self.is_first_message = False
        self.message_count += 1
        self.total_cost_usd += outcome.cost
        self.total_duration_ms += outcome.duration_ms


def build_system_prompt(contact: str | None) -> str:
    parts = [
        "You are being contacted via text message.",
        f"The user is texting you from their phone ({contact or 'unknown'}).",
        "Keep responses concise and mobile-friendly when possible.",
        "You have full access to the working directory.",
    ]
    return " ".join(parts)


async def verify_installed(cli_path: str | None = None) -> str:
    """Check that the CLI runs, returning its version string.

    Raises:
        ConfigError: If the CLI is missing or ``--version`` fails.
    """
    path = cli_path or find_claude_cli()
    if not path:
        raise ConfigError(f"Claude Code CLI not found. {INSTALL_HINT}")
    try:
        process = await asyncio.create_subprocess_exec(
            path,
            "--version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ConfigError(
            f"Claude Code CLI could not be started. {INSTALL_HINT}",
            context={"path": path, "error": str(exc)},
        ) from exc
    stdout, _ = await process.communicate()
    if process.returncode != 0:
        raise ConfigError(
            f"Claude Code CLI not working. {INSTALL_HINT}",
            context={"path": path, "returncode": process.returncode},
        )
    return stdout.decode("utf-8", errors="replace").strip()


class ClaudeRunner:
    """Runs agent turns and streams their events onto the display."""

    def __init__(self, config: BridgeConfig | None = None) -> None:
        self.config = config or BridgeConfig()
        self._cli_path = self.config.claude_path or find_claude_cli()
        if not self._cli_path:
            raise ConfigError(f"Claude Code CLI not found. {INSTALL_HINT}")
        self.session = SessionState(model=self.config.model)

    @property
    def cli_path(self) -> str:
        assert self._cli_path is not None
        return self._cli_path

    def build_command(self, message: str) -> list[str]:
        cmd = [
            self.cli_path,
            "-p", message,
            "--output-format", "stream-json",
            "--verbose",
            "--include-partial-messages",
            "--dangerously-skip-permissions",
        ]

        if self.session.is_first_message:
            cmd.extend(["--session-id", self.session.session_id])
            cmd.extend(["--append-system-prompt", build_system_prompt(self.config.contact)])
        else:
            cmd.extend(["-r", self.session.session_id])

        if self.config.model:
            cmd.extend(["--model", self.config.model])

        if self.config.permission_mode != DEFAULT_PERMISSION_MODE:
            cmd.extend(["--permission-mode", self.config.permission_mode])

        return cmd

    def new_session(self) -> None:
        """Forget the current session so the next call starts fresh."""
        self.session = SessionState(model=self.config.model)

    async def run(
        self,
        message: str,
        display: DisplayCoordinator,
        on_first_output: Callable[[], None] | None = None,
    ) -> TurnOutcome:
        """Send ``message`` to the agent and render its event stream.

        Args:
            message: Prompt text for this turn.
            display: Where streamed and permanent output is written.
            on_first_output: Called once, when the first event arrives.

        Returns:
            The reply text with the turn's cost and duration.

        Raises:
            AgentError: If the CLI exits non-zero without producing a result.
        """
        cmd = self.build_command(message)
        adapter = DisplayAdapter(display, indent=self.config.indent)
        outcome = TurnOutcome()
        first_output_fired = False

        logger.debug(
            "Starting agent turn",
            extra={"session_id": self.session.session_id, "resume": not self.session.is_first_message},
        )
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.config.working_dir,
            env={**os.environ, "CLAUDECODE": ""},
            limit=STREAM_LIMIT,
        )
        assert process.stdout is not None
        assert process.stderr is not None
        stderr_task = asyncio.create_task(process.stderr.read())

        try:
            async for raw in process.stdout:
                event = parse_line(raw.decode("utf-8", errors="replace"))
                if event is None:
                    continue

                if not first_output_fired:
                    first_output_fired = True
                    if on_first_output is not None:
                        on_first_output()

                adapter.handle(event)

                if isinstance(event, SessionInit) and event.model:
                    self.session.model = event.model
                elif isinstance(event, TurnResult):
                    outcome = TurnOutcome(
                        text=event.result,
                        cost=event.total_cost_usd,
                        duration_ms=event.duration_ms,
                    )

            await process.wait()
            stderr_bytes = await stderr_task
        except BaseException:
            if process.returncode is None:
                process.kill()
            await process.wait()
            stderr_task.cancel()
            raise

        if process.returncode != 0 and not outcome.text:
            stderr_text = stderr_bytes.decode("utf-8", errors="replace").strip()
            raise AgentError(
                stderr_text or f"claude exited with code {process.returncode}",
                returncode=process.returncode,
                stderr=stderr_text,
            )

        self.session.record(outcome)
        return outcome
