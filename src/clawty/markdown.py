"""Streaming markdown to ANSI renderer.

Agent text arrives in arbitrary chunks, so a token such as ``**`` or a link
may be split across two ``push`` calls. The renderer never guesses: anything
whose meaning depends on characters that have not arrived yet is kept in
``RenderState.pending`` and re-examined on the next call. Every look-ahead is
bounded by a window measured from the start of the token, which keeps the
output identical however the text is partitioned.
"""

from __future__ import annotations

from dataclasses import dataclass

from clawty.ansi import (
    BOLD,
    CYAN,
    DIM,
    ITALIC,
    NO_BOLD,
    NO_ITALIC,
    NO_UNDERLINE,
    RESET,
    UNDERLINE,
)

FENCE_CHARS = "`~"
RULE_CHARS = "-*_"
BULLET = "•"
RULE_GLYPH = "─"

LINK_TEXT_WINDOW = 200
LINK_TARGET_WINDOW = 500
RULE_WINDOW = 200
MAX_LIST_DIGITS = 9
MAX_HEADER_LEVEL = 6
MAX_FENCE_RUN = 32
DEFAULT_RULE_WIDTH = 40

_PENDING = -1


@dataclass
class RenderState:
    """Mutable state of one response stream."""

    pending: str = ""
    bold: bool = False
    italic: bool = False
    in_code: bool = False
    in_code_block: bool = False
    fence_char: str = ""
    fence_width: int = 0
    in_header: bool = False
    skip_line: bool = False  # discarding the remainder of a fence line
    literal_run: str = ""  # character of an over-long fence run being passed through
    at_line_start: bool = True

    @property
    def styled(self) -> bool:
        return self.bold or self.italic or self.in_code or self.in_code_block or self.in_header


def _run_length(text: str, i: int, ch: str) -> int:
    j = i
    while j < len(text) and text[j] == ch:
        j += 1
    return j - i


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class MarkdownRenderer:
    """Convert markdown to ANSI-styled text incrementally.

    Handles fenced code blocks, inline code, headers, horizontal rules,
    bullet and numbered lists, bold, italic and ``[text](url)`` links.

    Example:
        renderer = MarkdownRenderer()
        out = renderer.push("**bo") + renderer.push("ld**") + renderer.flush()
    """

    def __init__(self, rule_width: int = DEFAULT_RULE_WIDTH) -> None:
        self.rule_width = max(1, rule_width)
        self.state = RenderState()

    def push(self, chunk: str) -> str:
        """Feed a chunk of text and return whatever can be rendered so far."""
        text = self.state.pending + chunk
        self.state.pending = ""
        return self._render(text)

    def flush(self) -> str:
        """Emit anything still buffered as-is and close every open style.

        The renderer is back in its initial state afterwards, so the same
        instance can be reused for the next response.
        """
        pending = self.state.pending
        self.state.pending = ""
        out = pending
        if self.state.styled:
            out += RESET
        self.state = RenderState()
        return out

    # ------------------------------------------------------------------
    # Scanner
    # ------------------------------------------------------------------

    def _restore(self) -> str:
        s = self.state
        return (BOLD if s.bold else "") + (ITALIC if s.italic else "")

    def _render(self, text: str) -> str:
        s = self.state
        out: list[str] = []
        n = len(text)
        i = 0

        while i < n:
            ch = text[i]

            if s.skip_line:
                if ch == "\n":
                    s.skip_line = False
                    s.at_line_start = True
                i += 1
                continue

            if s.in_header:
                if ch == "\n":
                    s.in_header = False
                    out.append(RESET + self._restore() + "\n")
                    s.at_line_start = True
                else:
                    out.append(ch)
                i += 1
                continue

            if s.literal_run:
                if ch == s.literal_run:
                    out.append(ch)
                    i += 1
                    continue
                s.literal_run = ""

            # --- Fences (open or close) at line start ---
            if s.at_line_start and not s.in_code and ch in FENCE_CHARS:
                run = _run_length(text, i, ch)
                if run > MAX_FENCE_RUN:
                    s.literal_run = ch
                    s.at_line_start = False
                    continue
                if i + run >= n:
                    s.pending = text[i:]
                    break
                if s.in_code_block:
                    if ch == s.fence_char and run >= s.fence_width:
                        s.in_code_block = False
                        s.fence_char = ""
                        s.fence_width = 0
                        s.skip_line = True
                        out.append(RESET + self._restore())
                        i += run
                        continue
                elif run >= 3:
                    s.in_code_block = True
                    s.fence_char = ch
                    s.fence_width = run
                    s.skip_line = True
                    out.append(DIM)
                    i += run
                    continue

            if s.in_code_block:
                out.append(ch)
                s.at_line_start = ch == "\n"
                i += 1
                continue

            # --- Inline code ---
            if ch == "`":
                s.in_code = not s.in_code
                out.append(CYAN if s.in_code else RESET + self._restore())
                s.at_line_start = False
                i += 1
                continue

            if s.in_code:
                out.append(ch)
                s.at_line_start = ch == "\n"
                i += 1
                continue

            # --- Line-start constructs ---
            if s.at_line_start:
                j = self._line_start(text, i, out)
                if j == _PENDING:
                    s.pending = text[i:]
                    break
                if j != i:
                    i = j
                    continue

            # --- Bold / italic ---
            if ch == "*":
                if i + 1 >= n:
                    s.pending = text[i:]
                    break
                if i + 1 < n and text[i + 1] == "*":
                    s.bold = not s.bold
                    if s.bold:
                        out.append(BOLD)
                    else:
                        out.append(NO_BOLD + (ITALIC if s.italic else ""))
                    s.at_line_start = False
                    i += 2
                    continue
                s.italic = not s.italic
                out.append(ITALIC if s.italic else NO_ITALIC)
                s.at_line_start = False
                i += 1
                continue

            # --- Links ---
            if ch == "[":
                j = self._link(text, i, out)
                if j == _PENDING:
                    s.pending = text[i:]
                    break
                if j != i:
                    s.at_line_start = False
                    i = j
                    continue

            out.append(ch)
            s.at_line_start = ch == "\n"
            i += 1

        return "".join(out)

    def _line_start(self, text: str, i: int, out: list[str]) -> int:
        """Match a header, rule or list marker at ``i``.

        Returns the index after the construct, ``i`` when nothing matched, or
        ``_PENDING`` when the answer depends on text not yet received.
        """
        ch = text[i]
        if ch == "#":
            return self._header(text, i, out)
        if ch in RULE_CHARS:
            j = self._rule(text, i, out)
            if j != i:
                return j
        if ch in "-*":
            if i + 1 < len(text) and text[i + 1] == " ":
                out.append(f"{DIM}{BULLET}{RESET} {self._restore()}")
                self.state.at_line_start = False
                return i + 2
            return i
        if _is_digit(ch):
            return self._ordered(text, i, out)
        return i

    def _header(self, text: str, i: int, out: list[str]) -> int:
        n = len(text)
        j = i
        while j < n and text[j] == "#" and j - i <= MAX_HEADER_LEVEL:
            j += 1
        if j - i > MAX_HEADER_LEVEL:
            return i
        if j >= n:
            return _PENDING
        if text[j] != " ":
            return i
        out.append(BOLD)
        self.state.in_header = True
        self.state.at_line_start = False
        return j + 1

    def _rule(self, text: str, i: int, out: list[str]) -> int:
        n = len(text)
        rule_char = text[i]
        count = 0
        j = i
        while j < n and text[j] != "\n":
            if j - i >= RULE_WINDOW:
                return i
            c = text[j]
            if c == rule_char:
                count += 1
            elif c != " ":
                return i
            j += 1
        if j >= n:
            return _PENDING
        if count < 3:
            return i
        out.append(f"{DIM}{RULE_GLYPH * self.rule_width}{RESET}{self._restore()}")
        if j < n:
            out.append("\n")
            j += 1
        self.state.at_line_start = True
        return j

    def _ordered(self, text: str, i: int, out: list[str]) -> int:
        n = len(text)
        j = i
        while j < n and _is_digit(text[j]):
            j += 1
        if j - i > MAX_LIST_DIGITS:
            return i
        if j + 1 >= n:
            if j < n and text[j] != ".":
                return i
            return _PENDING
        if text[j] == "." and text[j + 1] == " ":
            out.append(f"{DIM}{text[i:j]}.{RESET} {self._restore()}")
            self.state.at_line_start = False
            return j + 2
        return i

    def _link(self, text: str, i: int, out: list[str]) -> int:
        n = len(text)
        close = text.find("]", i + 1, i + 1 + LINK_TEXT_WINDOW)
        if close == -1:
            if n - i <= LINK_TEXT_WINDOW:
                return _PENDING
            return i
        if close + 1 >= n:
            return _PENDING
        if text[close + 1] != "(":
            return i
        paren = text.find(")", close + 2, i + LINK_TARGET_WINDOW)
        if paren == -1:
            if n - i < LINK_TARGET_WINDOW:
                return _PENDING
            return i
        label = text[i + 1 : close]
        url = text[close + 2 : paren]
        out.append(f"{UNDERLINE}{label}{NO_UNDERLINE}{DIM} ({url}){RESET}{self._restore()}")
        return paren + 1


def render_markdown(text: str, rule_width: int = DEFAULT_RULE_WIDTH) -> str:
    """Render a complete block of markdown in one shot."""
    renderer = MarkdownRenderer(rule_width=rule_width)
    return renderer.push(text) + renderer.flush()
