"""Raw-keystroke line editor for the pinned input prompt."""

from __future__ import annotations

import codecs
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clawty.display import DisplayCoordinator

logger = logging.getLogger(__name__)

CTRL_C = "\x03"
CTRL_D = "\x04"
CTRL_H = "\x08"
ESC = "\x1b"
DEL = "\x7f"
CONTINUATION = "\\"


@dataclass
class EditBuffer:
    """Text typed so far; may contain embedded newlines from continuations."""

    text: str = ""

    @property
    def current_line(self) -> str:
        return self.text.rpartition("\n")[2]

    @property
    def in_continuation(self) -> bool:
        return "\n" in self.text

    def visible(self, max_len: int) -> str:
        """The tail of the current line that fits in ``max_len`` columns."""
        line = self.current_line
        if max_len <= 0:
            return ""
        if len(line) > max_len:
            return line[len(line) - max_len :]
        return line

    def clear(self) -> None:
        self.text = ""

    def __len__(self) -> int:
        return len(self.text)


class InputLineEditor:
    """Turns raw keystrokes into edits of the shared :class:`EditBuffer`.

    Escape sequences (arrow keys and friends) are swallowed whole. Every
    change to the buffer redraws the prompt through the coordinator; complete
    lines go to ``on_line`` and Ctrl-C (or Ctrl-D on an empty line) calls
    ``on_shutdown``.
    """

    def __init__(
        self,
        display: DisplayCoordinator,
        on_line: Callable[[str], None],
        on_shutdown: Callable[[], None],
    ) -> None:
        self.display = display
        self.buffer = display.buffer
        self.on_line = on_line
        self.on_shutdown = on_shutdown
        self._escape = 0  # 0 = normal, 1 = after ESC, 2 = after ESC [
        self._after_cr = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")

    def decode(self, data: bytes) -> str:
        """Decode a read from stdin; split multi-byte characters carry over."""
        return self._decoder.decode(data)

    def feed_bytes(self, data: bytes) -> None:
        self.feed_text(self.decode(data))

    def feed_text(self, text: str) -> None:
        for ch in text:
            self.feed(ch)

    def feed(self, ch: str) -> None:
        after_cr, self._after_cr = self._after_cr, ch == "\r"
        if self._escape == 1:
            self._escape = 2 if ch == "[" else 0
            return
        if self._escape == 2:
            self._escape = 0
            return
        if ch == ESC:
            self._escape = 1
            return

        if ch == CTRL_C:
            self.on_shutdown()
            return
        if ch == CTRL_D and not self.buffer.text:
            self.on_shutdown()
            return

        if ch in "\r\n":
            # CR LF is one Enter press.
            if ch == "\n" and after_cr:
                return
            self._submit()
            return

        if ch in (DEL, CTRL_H):
            if self.buffer.text:
                self.buffer.text = self.buffer.text[:-1]
                self.display.redraw_prompt()
            return

        if ord(ch) < 32:
            return

        self.buffer.text += ch
        self.display.redraw_prompt()

    def _submit(self) -> None:
        if self.buffer.text.endswith(CONTINUATION):
            self.buffer.text = self.buffer.text[:-1] + "\n"
            self.display.redraw_prompt()
            return

        line = self.buffer.text.strip()
        self.buffer.clear()
        if line:
            logger.debug("Input line submitted (%d chars)", len(line))
            self.on_line(line)
        self.display.redraw_prompt()
