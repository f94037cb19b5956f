"""The physical terminal: output, width and raw-mode lifecycle.

This is the one process-wide resource in the display stack. Everything that
draws goes through :class:`clawty.display.DisplayCoordinator`, which holds a
``Terminal`` rather than writing to ``sys.stdout`` itself.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import sys
import termios
import tty
from typing import Iterator, TextIO

from clawty.exceptions import TerminalError
from clawty.wrap import DEFAULT_WIDTH

logger = logging.getLogger(__name__)


class Terminal:
    """Write access to stdout plus raw-mode control of stdin."""

    def __init__(
        self,
        stream: TextIO | None = None,
        stdin_fd: int | None = None,
        default_width: int = DEFAULT_WIDTH,
    ) -> None:
        self.stream = stream or sys.stdout
        self.stdin_fd = stdin_fd if stdin_fd is not None else _stdin_fd()
        self.default_width = default_width
        self._saved_tty_state: list | None = None

    @property
    def width(self) -> int:
        columns = shutil.get_terminal_size((0, 0)).columns
        return columns if columns > 0 else self.default_width

    @property
    def is_tty(self) -> bool:
        return self.stdin_fd is not None and os.isatty(self.stdin_fd)

    @property
    def raw(self) -> bool:
        return self._saved_tty_state is not None

    def write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def enter_raw_mode(self) -> None:
        """Switch stdin to raw mode so keystrokes are neither echoed nor buffered."""
        if self.raw or not self.is_tty:
            return
        try:
            self._saved_tty_state = termios.tcgetattr(self.stdin_fd)
            # Keep output post-processing so "\n" still returns the carriage.
            tty.setraw(self.stdin_fd, termios.TCSANOW)
            attrs = termios.tcgetattr(self.stdin_fd)
            attrs[1] |= termios.OPOST
            termios.tcsetattr(self.stdin_fd, termios.TCSANOW, attrs)
        except termios.error as exc:
            self._saved_tty_state = None
            raise TerminalError(f"Could not enable raw mode: {exc}") from exc
        logger.debug("Terminal switched to raw mode")

    def restore(self) -> None:
        """Return stdin to the mode captured by :meth:`enter_raw_mode`. Idempotent."""
        if self._saved_tty_state is None:
            return
        saved, self._saved_tty_state = self._saved_tty_state, None
        try:
            termios.tcsetattr(self.stdin_fd, termios.TCSADRAIN, saved)
        except termios.error as exc:
            logger.warning("Failed to restore terminal mode: %s", exc)
            return
        logger.debug("Terminal mode restored")

    @contextlib.contextmanager
    def raw_mode(self) -> Iterator[None]:
        try:
            self.enter_raw_mode()
            yield
        finally:
            self.restore()


class MemoryTerminal(Terminal):
    """In-memory terminal used by tests and non-interactive rendering."""

    def __init__(self, width: int = DEFAULT_WIDTH) -> None:
        super().__init__(stream=_NullStream(), stdin_fd=-1, default_width=width)
        self._width = width
        self.writes: list[str] = []

    @property
    def width(self) -> int:
        return self._width

    @width.setter
    def width(self, value: int) -> None:
        self._width = value

    @property
    def is_tty(self) -> bool:
        return False

    @property
    def output(self) -> str:
        return "".join(self.writes)

    def write(self, text: str) -> None:
        self.writes.append(text)

    def reset(self) -> None:
        self.writes.clear()


class _NullStream:
    def write(self, text: str) -> int:
        return len(text)

    def flush(self) -> None:
        pass


def _stdin_fd() -> int | None:
    try:
        return sys.stdin.fileno()
    except (AttributeError, ValueError, OSError):
        return None


_terminal: Terminal | None = None


def get_terminal() -> Terminal:
    """Return the process-wide terminal, creating it on first use."""
    global _terminal
    if _terminal is None:
        _terminal = Terminal()
    return _terminal
