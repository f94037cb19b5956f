"""Erase-and-redraw terminal coordinator.

Output is split in two. *Permanent* output is written once and scrolls into
history. The *dynamic* region at the bottom (spinner line, input prompt) is
erased and redrawn on every update. No scroll regions, no cursor save and
restore: just erase the lines the last redraw produced and draw again.

Streamed agent text counts as permanent the moment it is written. The prompt
sits on the line below it, so before appending more streamed text the prompt
is erased and the cursor moved back up to the end of the streamed line.

Everything here runs on the single event-loop thread. Each operation does its
full erase-then-draw sequence before returning, so two redraws never
interleave.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from clawty.ansi import (
    BRIGHT_MAGENTA,
    CARRIAGE_RETURN,
    CLEAR_LINE,
    CURSOR_UP,
    DIM,
    RESET,
    cursor_right,
)
from clawty.editor import EditBuffer
from clawty.spinner import SpinnerAnimator
from clawty.terminal import Terminal
from clawty.wrap import advance_column

logger = logging.getLogger(__name__)

PROMPT_PREFIX = f"  {BRIGHT_MAGENTA}>{RESET} "
CONTINUATION_PREFIX = f"  {DIM}..{RESET} "
PROMPT_MARGIN = 5  # width of the prompt prefix plus one spare column
SPINNER_LABEL = "Thinking..."


class Mode(str, Enum):
    """What the dynamic region currently shows."""

    IDLE = "idle"  # prompt only
    THINKING = "thinking"  # spinner line + prompt
    STREAMING = "streaming"  # prompt pinned below streamed text


@dataclass
class DynamicRegion:
    """Bookkeeping for the redrawable bottom of the screen.

    ``line_count`` is always the number of lines the last draw wrote, so the
    next erase removes exactly that much.
    """

    line_count: int = 0
    mode: Mode = Mode.IDLE
    streaming: bool = False  # the last write was streamed text
    streaming_col: int = 0
    prompt_visible: bool = False


class DisplayCoordinator:
    """Owns the dynamic region and every write to the terminal."""

    def __init__(
        self,
        terminal: Terminal,
        buffer: EditBuffer | None = None,
        spinner: SpinnerAnimator | None = None,
    ) -> None:
        self.terminal = terminal
        self.buffer = buffer if buffer is not None else EditBuffer()
        self.spinner = spinner or SpinnerAnimator()
        self.region = DynamicRegion()
        self._spinning = False
        self._ticker: asyncio.Task[None] | None = None
        self._at_stream_end = False  # cursor sits right after streamed text
        self.erase_counts: list[int] = []

    @property
    def mode(self) -> Mode:
        return self.region.mode

    @property
    def spinning(self) -> bool:
        return self._spinning

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def redraw_prompt(self) -> None:
        """Redraw the prompt from the current edit buffer.

        While the spinner runs the spinner line is redrawn with it, so the two
        lines never fall out of step.
        """
        self._erase()
        self._draw()

    def write_permanent(self, text: str) -> None:
        """Write ``text`` as a permanent line above the dynamic region."""
        erased = self._erase()
        if self.region.streaming:
            if not erased:
                # Nothing was drawn below the streamed text; start a new line.
                self.terminal.write("\n")
            self.region.streaming = False
            self.region.streaming_col = 0
        self._at_stream_end = False
        self.terminal.write(text + "\n")
        self.region.mode = Mode.THINKING if self._spinning else Mode.IDLE
        if self._spinning or self.region.prompt_visible:
            self._draw()

    def write_streaming(self, text: str) -> None:
        """Append streamed text, then redraw the prompt beneath it."""
        erased = self._erase()
        if erased and self.region.streaming:
            self.terminal.write(CURSOR_UP + cursor_right(self.region.streaming_col))
        self.terminal.write(text)
        self.region.streaming = True
        self.region.streaming_col = advance_column(
            text, self.region.streaming_col, width=self.terminal.width
        )
        self._at_stream_end = True
        self.region.mode = Mode.THINKING if self._spinning else Mode.STREAMING
        self._draw()

    def start_spinner(self) -> None:
        """Show the animated spinner line above the prompt."""
        self._stop_ticker()
        self.spinner.reset()
        self._spinning = True
        self.region.mode = Mode.THINKING
        self._erase()
        self._draw()
        self._start_ticker()

    def clear_spinner(self) -> None:
        """Stop the spinner and leave the prompt alone in the dynamic region."""
        self._stop_ticker()
        self._spinning = False
        self.region.mode = Mode.STREAMING if self.region.streaming else Mode.IDLE
        self._erase()
        self._draw()

    def tick(self) -> None:
        """Advance the spinner one frame and redraw."""
        if not self._spinning:
            return
        self.spinner.advance()
        self._erase()
        self._draw()

    def end_streaming(self) -> None:
        """Forget the streaming cursor; the next write starts on its own line."""
        self.region.streaming = False
        self.region.streaming_col = 0
        if not self._spinning:
            self.region.mode = Mode.IDLE
        self.redraw_prompt()

    def clear(self) -> None:
        """Stop animating and wipe the dynamic region (used on shutdown)."""
        self._stop_ticker()
        self._spinning = False
        self._erase()
        if self._at_stream_end:
            self.terminal.write("\n")
            self._at_stream_end = False
        self.region.streaming = False
        self.region.streaming_col = 0
        self.region.prompt_visible = False
        self.region.mode = Mode.IDLE

    def permanent_writer(self) -> Callable[[str], None]:
        """The capability handed to anything that prints permanent output."""
        return self.write_permanent

    def on_first_output(self) -> Callable[[], None]:
        """Return a hook that clears the spinner the first time it is called."""
        fired = False

        def hook() -> None:
            nonlocal fired
            if fired:
                return
            fired = True
            self.clear_spinner()

        return hook

    # ------------------------------------------------------------------
    # Erase / draw primitives
    # ------------------------------------------------------------------

    def _erase(self) -> int:
        count = self.region.line_count
        if count <= 0:
            return 0
        parts: list[str] = []
        for k in range(count):
            parts.append(CLEAR_LINE)
            if k < count - 1:
                parts.append(CURSOR_UP)
        parts.append(CARRIAGE_RETURN)
        self.terminal.write("".join(parts))
        self.region.line_count = 0
        self.erase_counts.append(count)
        return count

    def _prompt_line(self) -> str:
        prefix = CONTINUATION_PREFIX if self.buffer.in_continuation else PROMPT_PREFIX
        return prefix + self.buffer.visible(self.terminal.width - PROMPT_MARGIN)

    def _draw(self) -> None:
        lead = ""
        if self._at_stream_end:
            lead = "\n"
            self._at_stream_end = False
        if self._spinning:
            spinner_line = f"  {DIM}{self.spinner.frame} {SPINNER_LABEL}{RESET}"
            self.terminal.write(f"{lead}{spinner_line}\n{self._prompt_line()}")
            self.region.line_count = 2
        else:
            self.terminal.write(lead + self._prompt_line())
            self.region.line_count = 1
        self.region.prompt_visible = True

    # ------------------------------------------------------------------
    # Spinner timer
    # ------------------------------------------------------------------

    def _start_ticker(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; spinner will not animate")
            return
        self._ticker = loop.create_task(self._spin())

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _spin(self) -> None:
        while True:
            await asyncio.sleep(self.spinner.interval)
            self.tick()
