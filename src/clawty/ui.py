"""Rich builders for every permanent (non-streamed) line clawty prints.

Each builder returns an ANSI string ready for ``write_permanent``. Streamed
output (assistant text, the thinking marker and its dots) is styled inline by
the adapter instead, because it must be written a fragment at a time.
"""

from __future__ import annotations

import io

from rich.console import Console, RenderableType
from rich.text import Text

from clawty.events import SessionInit, ThinkingBlock, ToolResult, ToolUseBlock, TurnResult
from clawty.wrap import truncate


class Icons:
    """Unicode icons."""

    SPARKLE = "✦"
    ARROWS = "↔"
    DONE = "✓"
    ERROR = "✗"
    WARNING = "⚠"
    PLAY = "▶"
    REPLY = "◀"
    QUEUED = "○"
    ARROW = "→"
    BAR = "│"
    BULLET = "•"


class Theme:
    """Named styles used across the display."""

    ACCENT = "bright_magenta"
    MUTED = "dim"
    SUCCESS = "green"
    WARNING = "yellow"
    ERROR = "red"
    TOOL = "cyan"
    MCP_TOOL = "bright_cyan"
    THINKING = "magenta"
    THINKING_PREVIEW = "dim magenta"


DIVIDER_WIDTH = 60
THINKING_PREVIEW_LINES = 3
THINKING_PREVIEW_CHARS = 120
RESULT_PREVIEW_LINES = 5
RESULT_PREVIEW_CHARS = 150
ERROR_PREVIEW_LINES = 3
ERROR_PREVIEW_CHARS = 200


def render_to_ansi(
    renderable: RenderableType,
    *,
    width: int | None = None,
    force_terminal: bool = True,
) -> str:
    """Render a Rich renderable to ANSI escape codes without wrapping it."""
    console = Console(
        file=io.StringIO(),
        width=width or 120,
        force_terminal=force_terminal,
        color_system="truecolor",
        legacy_windows=False,
    )
    console.print(renderable, end="", soft_wrap=True)
    return console.file.getvalue()


def _line(*parts: str | tuple[str, str]) -> str:
    return render_to_ansi(Text.assemble(*parts))


# ═══════════════════════════════════════════════════════════════════════════════
# Session framing
# ═══════════════════════════════════════════════════════════════════════════════


def banner_lines(contact: str, working_dir: str, model: str | None) -> list[str]:
    """Startup banner: what the bridge is connected to and a risk warning."""
    check = (Icons.DONE, Theme.SUCCESS)
    return [
        "",
        _line(
            "  ",
            (Icons.SPARKLE, Theme.ACCENT),
            "  ",
            ("Messages ", "bold"),
            (Icons.ARROWS, Theme.ACCENT),
            (" Claude", "bold"),
        ),
        _line(("     Text Claude from your phone • Type below or send a message", Theme.MUTED)),
        "",
        _line("  ", check, " Contact      ", (contact, "bold")),
        _line("  ", check, " Directory    ", (working_dir, Theme.MUTED)),
        _line("  ", check, " Model        ", (model or "(default)", Theme.MUTED)),
        _line("  ", check, " Permissions  ", ("--dangerously-skip-permissions", Theme.MUTED)),
        "",
        _line(
            "  ",
            (
                f"{Icons.WARNING}  Claude can execute code, edit files, and run commands "
                "without confirmation.",
                Theme.WARNING,
            ),
        ),
        _line("  ", ("   Only use with trusted contacts and directories.", Theme.MUTED)),
        "",
    ]


def session_header_lines(init: SessionInit) -> list[str]:
    """The ``┌─ Session`` block printed when the agent reports its session."""
    lines = [
        _line(
            "  ",
            (
                f"┌─ Session {init.session_id[:8]}... {Icons.BAR} {init.model} "
                f"{Icons.BAR} v{init.version}",
                Theme.MUTED,
            ),
        )
    ]
    connected = init.connected_servers
    if connected:
        lines.append(_line("  ", (f"{Icons.BAR}  MCP: {', '.join(connected)}", Theme.MUTED)))
    lines.append(
        _line(
            "  ",
            (
                f"{Icons.BAR}  Tools: {len(init.builtin_tools)} built-in, "
                f"{len(init.mcp_tools)} MCP",
                Theme.MUTED,
            ),
        )
    )
    return lines


def turn_summary(result: TurnResult) -> str:
    """``└─ 3 turns │ 12.3s │ $0.0123``; zero cost or duration is left blank."""
    turns = result.num_turns
    duration = f"{result.duration_ms / 1000:.1f}s" if result.duration_ms > 0 else ""
    cost = f"${result.total_cost_usd:.4f}" if result.total_cost_usd > 0 else ""
    plural = "" if turns == 1 else "s"
    return _line(
        "  ",
        (f"└─ {turns} turn{plural} {Icons.BAR} {duration} {Icons.BAR} {cost}", Theme.MUTED),
    )


def divider(width: int = DIVIDER_WIDTH) -> str:
    return "─" * width


# ═══════════════════════════════════════════════════════════════════════════════
# Thinking and tools
# ═══════════════════════════════════════════════════════════════════════════════


def _stats(text: str) -> str:
    return f"({len(text)} chars, {len(text.split(chr(10)))} lines)"


def thinking_preview_lines(text: str) -> list[str]:
    """First few non-blank lines of a thinking span, with ``│ ...`` if cut."""
    raw = text.split("\n")
    lines = [
        _line("  ", (f"  {Icons.BAR} {line.strip()[:THINKING_PREVIEW_CHARS]}", Theme.THINKING_PREVIEW))
        for line in raw[:THINKING_PREVIEW_LINES]
        if line.strip()
    ]
    if len(raw) > THINKING_PREVIEW_LINES:
        lines.append(_line("  ", (f"  {Icons.BAR} ...", Theme.THINKING_PREVIEW)))
    return lines


def streamed_thinking_lines(text: str) -> list[str]:
    """Stats and preview closing a thinking span whose marker was streamed."""
    return [_line(" ", (_stats(text), Theme.MUTED)), *thinking_preview_lines(text)]


def thinking_block_lines(block: ThinkingBlock) -> list[str]:
    """Stats and preview for a thinking block that arrived all at once."""
    header = _line(
        "  ",
        ("  thinking", f"{Theme.THINKING} italic"),
        " ",
        (_stats(block.text), Theme.MUTED),
    )
    return [header, *thinking_preview_lines(block.text)]


def tool_use_lines(block: ToolUseBlock, summary: str) -> list[str]:
    style = Theme.MCP_TOOL if block.is_mcp else Theme.TOOL
    label = "MCP Tool" if block.is_mcp else "Tool"
    lines = [_line("  ", (f"{Icons.PLAY} {label}: ", style), (block.name, f"bold {style}"))]
    if summary:
        lines.append(_line("    ", (summary, Theme.MUTED)))
    return lines


def tool_result_lines(result: ToolResult) -> list[str]:
    """Preview of a tool's output: an image marker, an error, or a few lines."""
    if result.is_image:
        return [_line("    ", (f"{Icons.ARROW} [image result]", Theme.MUTED))]

    if result.is_error:
        err = result.stderr or result.stdout
        preview = "\n    ".join(err.split("\n")[:ERROR_PREVIEW_LINES])
        return [_line("    ", (f"{Icons.ARROW} Error: {preview[:ERROR_PREVIEW_CHARS]}", Theme.ERROR))]

    if not result.stdout:
        return []
    raw = result.stdout.split("\n")
    lines = [
        _line("    ", (f"{Icons.ARROW} {line[:RESULT_PREVIEW_CHARS]}", Theme.MUTED))
        for line in raw[:RESULT_PREVIEW_LINES]
    ]
    if len(raw) > RESULT_PREVIEW_LINES:
        lines.append(
            _line(
                "    ",
                (f"{Icons.ARROW} ... ({len(raw) - RESULT_PREVIEW_LINES} more lines)", Theme.MUTED),
            )
        )
    return lines


# ═══════════════════════════════════════════════════════════════════════════════
# Bridge status lines
# ═══════════════════════════════════════════════════════════════════════════════


def remote_message_line(text: str, sender: str, time: str, width: int) -> str:
    """``✦ [12:01] +15551234567: hello`` with the text clipped to the width."""
    prefix = f"  {Icons.SPARKLE} [{time}] {sender}: "
    max_text = width - len(prefix)
    return _line(
        "  ",
        (Icons.SPARKLE, Theme.ACCENT),
        " ",
        (f"[{time}]", Theme.MUTED),
        " ",
        (sender, "bold"),
        ": ",
        truncate(text, max_text),
    )


def local_message_line(text: str, width: int) -> str:
    return _line(
        "  ",
        (Icons.PLAY, Theme.SUCCESS),
        " ",
        ("[local]", Theme.MUTED),
        " ",
        truncate(text, width - 13),
    )


def queued_line(
    text: str,
    pending: int,
    width: int,
    sender: str | None = None,
    time: str | None = None,
) -> str:
    """``○ queued (2 pending) ...`` for a message that arrived mid-turn."""
    label = f"queued ({pending} pending)"
    parts: list[str | tuple[str, str]] = ["  ", (Icons.QUEUED, Theme.WARNING), " ", (label, Theme.MUTED), " "]
    prefix = f"  {Icons.QUEUED} {label} "
    if sender is not None:
        parts += [(f"[{time or ''}]", Theme.MUTED), " ", (sender, "bold"), ": "]
        prefix += f"[{time or ''}] {sender}: "
    parts.append(truncate(text, width - len(prefix)))
    return _line(*parts)


def status_line(icon: str, message: str, style: str) -> str:
    return _line("  ", (f"{icon} {message}", style))


def success_line(message: str) -> str:
    return status_line(Icons.DONE, message, Theme.SUCCESS)


def warning_line(message: str) -> str:
    return status_line(Icons.WARNING, message, Theme.WARNING)


def error_line(message: str) -> str:
    return status_line(Icons.ERROR, message, Theme.ERROR)


def reply_line(text: str) -> str:
    return _line("  ", (Icons.REPLY, Theme.ERROR), " ", (text, Theme.MUTED))


def muted_line(message: str, indent: str = "  ") -> str:
    return _line(indent, (message, Theme.MUTED))

