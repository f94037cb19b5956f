"""Tests for ANSI-aware wrapping and the escape helpers it relies on."""

from __future__ import annotations

from clawty.ansi import BOLD, RESET, cursor_right, skip_escape, strip_ansi, visible_length
from clawty.spinner import FRAMES, SpinnerAnimator
from clawty.wrap import advance_column, truncate, wrap_text


class TestWrapText:
    def test_short_text_is_unchanged(self):
        result = wrap_text("hello", 16, width=80, indent=16)
        assert result.text == "hello"
        assert result.end_col == 21

    def test_escapes_do_not_count_toward_width(self):
        """Only visible characters advance the column."""
        result = wrap_text("hello\x1b[1mworld\x1b[0m!", 37, width=40, indent=16)
        assert result.text.count("\n") == 1
        assert result.end_col == 24
        assert strip_ansi(result.text) == "hel\n" + " " * 16 + "loworld!"

    def test_escape_sequence_is_never_split(self):
        result = wrap_text(f"ab{BOLD}cd{RESET}", 78, width=80, indent=4)
        assert BOLD in result.text
        assert RESET in result.text
        assert result.text == f"ab{BOLD}\n    cd{RESET}"

    def test_newline_is_followed_by_indent(self):
        result = wrap_text("a\nb", 16, width=80, indent=16)
        assert result.text == "a\n" + " " * 16 + "b"
        assert result.end_col == 17

    def test_column_carries_over_between_calls(self):
        """Wrapping two pieces equals wrapping their concatenation."""
        text = "The quick brown fox jumps over the lazy dog " * 4
        whole = wrap_text(text, 16, width=40, indent=16)
        first = wrap_text(text[:50], 16, width=40, indent=16)
        second = wrap_text(text[50:], first.end_col, width=40, indent=16)
        assert first.text + second.text == whole.text
        assert second.end_col == whole.end_col

    def test_every_line_fits_the_width(self):
        text = "x" * 200
        result = wrap_text(text, 16, width=40, indent=16)
        for line in result.text.split("\n"):
            assert visible_length(line) <= 40


class TestAdvanceColumn:
    def test_plain_text(self):
        assert advance_column("abc", 0, width=80) == 3

    def test_newline_and_carriage_return_reset(self):
        assert advance_column("abc\nde", 5, width=80) == 2
        assert advance_column("abc\r", 5, width=80) == 0

    def test_escapes_are_skipped(self):
        assert advance_column(f"{BOLD}ab{RESET}", 10, width=80) == 12

    def test_full_line_wraps_to_zero(self):
        assert advance_column("ab", 78, width=80) == 0


class TestTruncate:
    def test_short_text_untouched(self):
        assert truncate("hello", 10) == "hello"

    def test_exact_fit_untouched(self):
        assert truncate("hello", 5) == "hello"

    def test_long_text_gets_ellipsis(self):
        assert truncate("hello world", 6) == "hello…"

    def test_non_positive_limit(self):
        assert truncate("hello", 0) == ""
        assert truncate("hello", -3) == ""


class TestEscapeHelpers:
    def test_cursor_right(self):
        assert cursor_right(5) == "\x1b[5C"
        assert cursor_right(0) == ""

    def test_strip_and_measure(self):
        text = f"{BOLD}bold{RESET} \x1b[38;5;208mcolor\x1b[0m"
        assert strip_ansi(text) == "bold color"
        assert visible_length(text) == 10

    def test_skip_escape_full_sequence(self):
        text = "a\x1b[38;5;1mb"
        assert skip_escape(text, 1) == text.index("b")

    def test_skip_escape_truncated_sequence(self):
        """An escape cut off at the end of the text consumes what is there."""
        assert skip_escape("\x1b[3", 0) == 3
        assert skip_escape("\x1b", 0) == 1


class TestSpinnerAnimator:
    def test_starts_at_first_frame(self):
        assert SpinnerAnimator().frame == FRAMES[0]

    def test_advance_cycles(self):
        spinner = SpinnerAnimator()
        seen = [spinner.advance() for _ in range(len(FRAMES))]
        assert seen[-1] == FRAMES[0]
        assert seen[0] == FRAMES[1]

    def test_reset(self):
        spinner = SpinnerAnimator()
        spinner.advance()
        spinner.advance()
        spinner.reset()
        assert spinner.frame == FRAMES[0]

    def test_interval_is_80ms(self):
        assert SpinnerAnimator().interval == 0.08
