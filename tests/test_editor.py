"""Tests for the raw-keystroke input editor."""

from __future__ import annotations

import pytest

from clawty.display import CONTINUATION_PREFIX, PROMPT_PREFIX, DisplayCoordinator
from clawty.editor import EditBuffer, InputLineEditor
from clawty.terminal import MemoryTerminal


class _Harness:
    def __init__(self):
        self.terminal = MemoryTerminal(width=80)
        self.display = DisplayCoordinator(self.terminal)
        self.lines: list[str] = []
        self.shutdowns = 0
        self.editor = InputLineEditor(self.display, self.lines.append, self._shutdown)

    def _shutdown(self):
        self.shutdowns += 1

    @property
    def buffer(self) -> EditBuffer:
        return self.display.buffer


@pytest.fixture
def harness() -> _Harness:
    return _Harness()


class TestEditBuffer:
    def test_current_line_after_continuation(self):
        buffer = EditBuffer("one\ntwo")
        assert buffer.current_line == "two"
        assert buffer.in_continuation

    def test_visible_tail(self):
        buffer = EditBuffer("abcdef")
        assert buffer.visible(3) == "def"
        assert buffer.visible(10) == "abcdef"
        assert buffer.visible(0) == ""

    def test_clear_and_len(self):
        buffer = EditBuffer("abc")
        assert len(buffer) == 3
        buffer.clear()
        assert buffer.text == ""


class TestTyping:
    def test_printable_characters_append_and_redraw(self, harness):
        harness.editor.feed_text("hi")
        assert harness.buffer.text == "hi"
        assert harness.terminal.writes[-1] == PROMPT_PREFIX + "hi"

    def test_enter_submits_trimmed_line(self, harness):
        harness.editor.feed_text("  hello there  \r")
        assert harness.lines == ["hello there"]
        assert harness.buffer.text == ""
        assert harness.terminal.writes[-1] == PROMPT_PREFIX

    def test_blank_line_is_not_submitted(self, harness):
        harness.editor.feed_text("   \n")
        assert harness.lines == []
        assert harness.buffer.text == ""

    def test_crlf_submits_once(self, harness):
        harness.editor.feed_text("go\r\n")
        assert harness.lines == ["go"]

    def test_crlf_after_continuation_adds_one_line(self, harness):
        harness.editor.feed_text("a\\\r\n")
        assert harness.lines == []
        assert harness.buffer.text == "a\n"

    def test_lf_after_other_key_still_submits(self, harness):
        harness.editor.feed_text("a\r")
        harness.editor.feed_text("b\n")
        assert harness.lines == ["a", "b"]

    def test_two_carriage_returns_after_continuation_submit(self, harness):
        harness.editor.feed_text("a\\\r\rb")
        assert harness.lines == ["a"]

    def test_backspace_and_delete(self, harness):
        harness.editor.feed_text("abc\x7f\x08d")
        assert harness.buffer.text == "ad"

    def test_backspace_on_empty_buffer_does_nothing(self, harness):
        harness.editor.feed("\x7f")
        assert harness.buffer.text == ""
        assert harness.terminal.writes == []

    def test_other_control_characters_ignored(self, harness):
        harness.editor.feed_text("a\x01\x02\tb")
        assert harness.buffer.text == "ab"


class TestContinuation:
    def test_trailing_backslash_continues_line(self, harness):
        harness.editor.feed_text("first \\\r")
        assert harness.lines == []
        assert harness.buffer.text == "first \n"
        assert harness.terminal.writes[-1] == CONTINUATION_PREFIX

    def test_continued_message_is_submitted_whole(self, harness):
        harness.editor.feed_text("line one\\\rline two\r")
        assert harness.lines == ["line one\nline two"]
        assert not harness.buffer.in_continuation


class TestEscapeSequences:
    def test_arrow_keys_are_swallowed(self, harness):
        harness.editor.feed_text("a\x1b[Db\x1b[A")
        assert harness.buffer.text == "ab"

    def test_alt_key_is_swallowed(self, harness):
        harness.editor.feed_text("\x1bxyz")
        assert harness.buffer.text == "yz"


class TestShutdownKeys:
    def test_ctrl_c_always_shuts_down(self, harness):
        harness.editor.feed_text("typed\x03")
        assert harness.shutdowns == 1

    def test_ctrl_d_on_empty_buffer_shuts_down(self, harness):
        harness.editor.feed("\x04")
        assert harness.shutdowns == 1

    def test_ctrl_d_with_text_is_ignored(self, harness):
        harness.editor.feed_text("x\x04")
        assert harness.shutdowns == 0
        assert harness.buffer.text == "x"


class TestDecoding:
    def test_multibyte_character_split_across_reads(self, harness):
        data = "héllo ✓".encode()
        for i in range(len(data)):
            harness.editor.feed_bytes(data[i : i + 1])
        assert harness.buffer.text == "héllo ✓"

    def test_invalid_utf8_is_dropped(self, harness):
        harness.editor.feed_bytes(b"a\xff\xfeb")
        assert harness.buffer.text == "ab"
