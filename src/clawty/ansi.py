"""ANSI escape sequences used by the renderer and the display coordinator.

Only a handful of SGR attributes and cursor movements are needed. Intensity
(bold/dim) shares a single reset code, which is why callers re-assert styles
after emitting ``NO_BOLD`` or ``RESET``.
"""

from __future__ import annotations

import re

ESC = "\x1b"
CSI = ESC + "["

RESET = "\x1b[0m"
BOLD = "\x1b[1m"
DIM = "\x1b[2m"
ITALIC = "\x1b[3m"
UNDERLINE = "\x1b[4m"
NO_BOLD = "\x1b[22m"  # normal intensity: clears bold *and* dim
NO_ITALIC = "\x1b[23m"
NO_UNDERLINE = "\x1b[24m"

RED = "\x1b[31m"
GREEN = "\x1b[32m"
YELLOW = "\x1b[33m"
MAGENTA = "\x1b[35m"
CYAN = "\x1b[36m"
BRIGHT_MAGENTA = "\x1b[95m"
BRIGHT_CYAN = "\x1b[96m"

CLEAR_LINE = "\x1b[2K"
CURSOR_UP = "\x1b[1A"
CARRIAGE_RETURN = "\r"

# ESC [ <parameter/intermediate bytes 0x20-0x3F>* <final byte>
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[\x20-\x3f]*[\x40-\x7e]")


def cursor_right(columns: int) -> str:
    """Move the cursor ``columns`` cells to the right (empty for 0)."""
    if columns <= 0:
        return ""
    return f"\x1b[{columns}C"


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def visible_length(text: str) -> int:
    """Number of characters that occupy a cell once escapes are removed."""
    return len(strip_ansi(text))


def skip_escape(text: str, i: int) -> int:
    """Return the index just past the escape sequence starting at ``text[i]``.

    ``text[i]`` must be ESC. A bare ESC (or ESC followed by anything other than
    ``[``) consumes only what is present, matching how terminals treat a lone
    introducer.
    """
    n = len(text)
    i += 1
    if i < n and text[i] == "[":
        i += 1
        while i < n and 0x20 <= ord(text[i]) <= 0x3F:
            i += 1
        if i < n:
            i += 1
    return i
