"""Column-aware wrapping of ANSI-styled text."""

from __future__ import annotations

from typing import NamedTuple

from clawty.ansi import skip_escape

DEFAULT_WIDTH = 80
ELLIPSIS = "…"


class WrapResult(NamedTuple):
    text: str
    end_col: int


def wrap_text(text: str, start_col: int, *, width: int, indent: int) -> WrapResult:
    """Hard-wrap ``text`` at ``width`` columns, indenting continuation lines.

    Escape sequences are copied through without advancing the column. Both
    literal newlines and forced wraps are followed by ``indent`` spaces, and
    the returned column lets the caller continue the same logical line on the
    next call.

    Args:
        text: Display-ready text, possibly containing escape sequences.
        start_col: Column the cursor is at before ``text`` is written.
        width: Terminal width in columns.
        indent: Width of the left margin for continuation lines.

    Returns:
        The wrapped text and the column after it.
    """
    pad = " " * indent
    col = start_col
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\x1b":
            j = skip_escape(text, i)
            out.append(text[i:j])
            i = j
            continue
        if ch == "\n":
            out.append("\n" + pad)
            col = indent
        else:
            if col >= width:
                out.append("\n" + pad)
                col = indent
            out.append(ch)
            col += 1
        i += 1
    return WrapResult("".join(out), col)


def advance_column(text: str, col: int, *, width: int) -> int:
    """Return the cursor column after writing ``text`` starting at ``col``.

    Mirrors what the terminal does with the cursor: newlines and carriage
    returns go back to column 0 and a full line wraps to column 0.
    """
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\x1b":
            i = skip_escape(text, i)
            continue
        if ch in "\r\n":
            col = 0
        else:
            col += 1
            if col >= width:
                col = 0
        i += 1
    return col


def truncate(text: str, max_len: int) -> str:
    """Clip ``text`` to ``max_len`` characters, marking the cut with an ellipsis."""
    if max_len <= 0:
        return ""
    if len(text) <= max_len:
        return text
    return text[: max_len - 1] + ELLIPSIS
