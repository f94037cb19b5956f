"""The session loop: collect messages, run agent turns, deliver replies.

Messages come from two places, the remote :class:`MessageSource` and lines
typed at the local prompt, and share one queue. Everything runs on a single
asyncio loop: keystrokes arrive through ``loop.add_reader``, the spinner
ticks as a task, and while a turn is running a background poller keeps
checking the source so new messages show up as ``queued``.

How messages are fetched, what counts as a command and how replies are sent
are left to the three collaborator protocols below.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from clawty import ui
from clawty.ansi import DIM, RESET
from clawty.config import BridgeConfig
from clawty.display import DisplayCoordinator
from clawty.editor import InputLineEditor
from clawty.exceptions import DeliveryError
from clawty.runner import ClaudeRunner, TurnOutcome
from clawty.terminal import Terminal

logger = logging.getLogger(__name__)

ERROR_REPLY_CHARS = 200
STDIN_READ_SIZE = 1024
STARTUP_MESSAGE = "\n".join(
    [
        "✦ Claude bridge is active.",
        "",
        "Send a message to chat with Claude.",
    ]
)


@dataclass
class InboundMessage:
    text: str
    origin: str  # "local" or "remote"
    sender: str | None = None
    timestamp: datetime | None = None

    @property
    def is_local(self) -> bool:
        return self.origin == "local"


@dataclass
class Dispatch:
    """How a batch should be handled.

    ``forward`` sends ``message`` (or the batch text when unset) to the agent.
    Otherwise ``reply``, if any, goes straight back to the sender.
    ``reset_session`` starts a fresh agent conversation before either.
    """

    forward: bool = True
    reply: str | None = None
    message: str | None = None
    reset_session: bool = False


class MessageSource(Protocol):
    async def poll(self) -> list[InboundMessage]: ...


class CommandDispatcher(Protocol):
    async def dispatch(self, text: str) -> Dispatch: ...


class MessageSender(Protocol):
    async def send(self, text: str) -> bool: ...


class PassThroughDispatcher:
    """Treats every batch as a message for the agent."""

    async def dispatch(self, text: str) -> Dispatch:
        return Dispatch(forward=True)


def format_time(ts: datetime | None) -> str:
    """``9:05 PM`` style clock time; empty when unknown."""
    if ts is None:
        return ""
    hour = ts.hour % 12 or 12
    suffix = "AM" if ts.hour < 12 else "PM"
    return f"{hour}:{ts.minute:02d} {suffix}"


class Bridge:
    """Drives one bridge session until shutdown."""

    def __init__(
        self,
        config: BridgeConfig,
        display: DisplayCoordinator,
        runner: ClaudeRunner,
        source: MessageSource | None = None,
        dispatcher: CommandDispatcher | None = None,
        sender: MessageSender | None = None,
    ) -> None:
        self.config = config
        self.display = display
        self.runner = runner
        self.source = source
        self.dispatcher = dispatcher or PassThroughDispatcher()
        self.sender = sender
        self.editor = InputLineEditor(display, on_line=self.submit_local, on_shutdown=self.shutdown)
        self.queue: deque[InboundMessage] = deque()
        self.processing = False
        self._running = False
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._poller: asyncio.Task[None] | None = None
        self._reader_fd: int | None = None

    @property
    def terminal(self) -> Terminal:
        return self.display.terminal

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run until Ctrl-C, Ctrl-D on an empty line, SIGINT or SIGTERM."""
        loop = asyncio.get_running_loop()
        self._task = asyncio.current_task()
        self._running = True
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.shutdown)
        try:
            self._attach_stdin(loop)
            await self._announce()
            self.display.redraw_prompt()
            await self._main_loop()
        except asyncio.CancelledError:
            if self._running:
                raise
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            self.shutdown()

    def shutdown(self) -> None:
        """Stop everything and put the terminal back. Safe to call repeatedly."""
        if not self._running:
            return
        self._running = False
        self._stop_poller()
        self.display.clear()
        self._detach_stdin()
        self.terminal.restore()
        self.terminal.write(f"\n  {DIM}Shutting down...{RESET}\n")
        self._wake.set()
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
        logger.debug("Bridge shut down")

    def _attach_stdin(self, loop: asyncio.AbstractEventLoop) -> None:
        if not self.terminal.is_tty:
            return
        self.terminal.enter_raw_mode()
        assert self.terminal.stdin_fd is not None
        self._reader_fd = self.terminal.stdin_fd
        loop.add_reader(self._reader_fd, self._on_stdin)

    def _detach_stdin(self) -> None:
        if self._reader_fd is None:
            return
        try:
            asyncio.get_running_loop().remove_reader(self._reader_fd)
        except RuntimeError:
            pass
        self._reader_fd = None

    def _on_stdin(self) -> None:
        assert self._reader_fd is not None
        data = os.read(self._reader_fd, STDIN_READ_SIZE)
        if not data:
            logger.debug("stdin closed")
            self._detach_stdin()
            return
        self.editor.feed_bytes(data)

    async def _announce(self) -> None:
        write = self.display.write_permanent
        if self.sender is not None:
            try:
                delivered = await self.sender.send(STARTUP_MESSAGE)
            except Exception as exc:
                write(ui.warning_line(f"Could not send startup message: {exc}"))
            else:
                if delivered:
                    write(ui.success_line(f"Startup message sent to {self.config.contact}"))
                else:
                    write(ui.warning_line("Could not send startup message"))
        write(ui.success_line(f"Session: {self.runner.session.session_id}"))
        write("")

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def submit_local(self, line: str) -> None:
        """Queue a line typed at the prompt and wake the main loop."""
        self.queue.append(InboundMessage(text=line, origin="local"))
        self._wake.set()
        if self.processing:
            self.display.write_permanent(
                ui.queued_line(line, len(self.queue), self.terminal.width)
            )

    async def poll_source(self) -> list[InboundMessage]:
        if self.source is None:
            return []
        try:
            return await self.source.poll()
        except Exception as exc:
            logger.debug("Message source poll failed: %s", exc)
            return []

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        finally:
            self._wake.clear()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def _main_loop(self) -> None:
        while self._running:
            if not self.processing:
                self.queue.extend(await self.poll_source())
                if self.queue:
                    await self.drain()
            await self._sleep(self.config.interval)

    async def drain(self) -> None:
        """Process batches until the queue stays empty."""
        self.processing = True
        self._start_poller()
        try:
            while self._running and self.queue:
                batch = list(self.queue)
                self.queue.clear()
                await self.process_batch(batch)
        finally:
            self._stop_poller()
            self.processing = False
        if self._running:
            self.display.end_streaming()

    def _start_poller(self) -> None:
        if self.source is None or self._poller is not None:
            return
        self._poller = asyncio.create_task(self._background_poll())

    def _stop_poller(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None

    async def _background_poll(self) -> None:
        while True:
            await asyncio.sleep(self.config.interval)
            for msg in await self.poll_source():
                self.queue.append(msg)
                self.display.write_permanent(
                    ui.queued_line(
                        msg.text,
                        len(self.queue),
                        self.terminal.width,
                        sender=msg.sender or self.config.contact or "",
                        time=format_time(msg.timestamp),
                    )
                )

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def _show_batch(self, batch: list[InboundMessage]) -> None:
        write = self.display.write_permanent
        width = self.terminal.width
        write(ui.divider())
        for msg in batch:
            if msg.is_local:
                write(ui.local_message_line(msg.text, width))
            else:
                sender = msg.sender or self.config.contact or ""
                write(ui.remote_message_line(msg.text, sender, format_time(msg.timestamp), width))
        write("")

    async def process_batch(self, batch: list[InboundMessage]) -> None:
        """Show a batch, dispatch it and, unless handled locally, run a turn."""
        write = self.display.write_permanent
        self._show_batch(batch)
        combined = "\n\n".join(msg.text for msg in batch)

        try:
            dispatch = await self.dispatcher.dispatch(combined)
            if dispatch.reset_session:
                self.runner.new_session()
                logger.info("Started a new agent session")
            if not dispatch.forward:
                await self._reply_locally(dispatch.reply)
            else:
                await self._run_turn(dispatch.message or combined)
        except DeliveryError as exc:
            # The channel is down; no point sending an error reply through it.
            write(ui.error_line(f"Error: {exc.message}"))
        except Exception as exc:
            self.display.clear_spinner()
            message = getattr(exc, "message", None) or str(exc)
            logger.debug("Turn failed", exc_info=True)
            write(ui.error_line(f"Error: {message}"))
            await self._deliver_error(message)

        write("")

    async def _reply_locally(self, reply: str | None) -> None:
        if not reply:
            return
        for line in reply.split("\n"):
            self.display.write_permanent(ui.reply_line(line))
        if self.sender is not None and await self.sender.send(reply):
            self.display.write_permanent(ui.success_line("Command response sent"))

    async def _run_turn(self, message: str) -> TurnOutcome:
        self.display.start_spinner()
        outcome = await self.runner.run(
            message, self.display, on_first_output=self.display.on_first_output()
        )
        # A turn that produced no events never cleared the spinner.
        if self.display.spinning:
            self.display.clear_spinner()

        write = self.display.write_permanent
        if not outcome.text:
            write(ui.warning_line("Empty response from Claude"))
            return outcome
        if self.sender is None:
            return outcome

        write("")
        if not await self.sender.send(outcome.text):
            raise DeliveryError("Response could not be delivered", destination=self.config.contact)
        write(ui.success_line(f"Response sent ({len(outcome.text)} chars)"))
        return outcome

    async def _deliver_error(self, message: str) -> None:
        if self.sender is None:
            return
        try:
            await self.sender.send(f"[Error: {message[:ERROR_REPLY_CHARS]}]")
        except Exception as exc:
            logger.debug("Could not deliver error reply: %s", exc)
