"""Tests for the rich line builders."""

from __future__ import annotations

from rich.text import Text

from clawty import ui
from clawty.ansi import strip_ansi, visible_length


class TestRenderToAnsi:
    def test_styled_text_has_escapes(self):
        out = ui.render_to_ansi(Text("hi", style="red"))
        assert "\x1b[" in out
        assert strip_ansi(out) == "hi"

    def test_no_trailing_newline(self):
        assert not ui.render_to_ansi(Text("line")).endswith("\n")

    def test_long_text_is_not_wrapped(self):
        out = ui.render_to_ansi(Text("x" * 300))
        assert "\n" not in out


class TestBanner:
    def test_banner_lists_session_settings(self):
        lines = [strip_ansi(line) for line in ui.banner_lines("+15551234567", "/work", None)]
        assert "  ✓ Contact      +15551234567" in lines
        assert "  ✓ Directory    /work" in lines
        assert "  ✓ Model        (default)" in lines
        assert lines[0] == "" and lines[-1] == ""


class TestMessageLines:
    def test_remote_message_fits_width(self):
        line = ui.remote_message_line("y" * 200, "+15551234567", "9:05 PM", 80)
        plain = strip_ansi(line)
        assert plain.startswith("  ✦ [9:05 PM] +15551234567: ")
        assert plain.endswith("…")
        assert visible_length(line) <= 80

    def test_local_message(self):
        assert strip_ansi(ui.local_message_line("hello", 80)) == "  ▶ [local] hello"

    def test_queued_remote_message(self):
        line = ui.queued_line("later", 2, 80, sender="bob", time="1:00 AM")
        assert strip_ansi(line) == "  ○ queued (2 pending) [1:00 AM] bob: later"

    def test_queued_line_is_clipped(self):
        line = ui.queued_line("z" * 200, 1, 60)
        assert visible_length(line) <= 60


class TestStatusLines:
    def test_icons(self):
        assert strip_ansi(ui.success_line("ok")) == "  ✓ ok"
        assert strip_ansi(ui.warning_line("hmm")) == "  ⚠ hmm"
        assert strip_ansi(ui.error_line("bad")) == "  ✗ bad"
        assert strip_ansi(ui.reply_line("pong")) == "  ◀ pong"

    def test_divider(self):
        assert ui.divider() == "─" * 60
        assert ui.divider(10) == "─" * 10
