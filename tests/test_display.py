"""Tests for the erase-and-redraw display coordinator."""

from __future__ import annotations

import asyncio

import pytest

from clawty.ansi import CARRIAGE_RETURN, CLEAR_LINE, CURSOR_UP, DIM, RESET, cursor_right
from clawty.display import CONTINUATION_PREFIX, PROMPT_PREFIX, DisplayCoordinator, Mode
from clawty.spinner import FRAMES
from clawty.terminal import MemoryTerminal


def _erase(count: int) -> str:
    parts = []
    for k in range(count):
        parts.append(CLEAR_LINE)
        if k < count - 1:
            parts.append(CURSOR_UP)
    return "".join(parts) + CARRIAGE_RETURN


@pytest.fixture
def terminal() -> MemoryTerminal:
    return MemoryTerminal(width=80)


@pytest.fixture
def display(terminal: MemoryTerminal) -> DisplayCoordinator:
    return DisplayCoordinator(terminal)


class TestEraseSymmetry:
    """Every erase removes exactly the lines the previous draw produced."""

    def test_erase_matches_previous_draw(self, display, terminal):
        ops = [
            display.redraw_prompt,
            lambda: display.write_permanent("permanent"),
            display.start_spinner,
            display.tick,
            lambda: display.write_permanent("while thinking"),
            display.clear_spinner,
            lambda: display.write_streaming("streamed "),
            lambda: display.write_streaming("more"),
            display.start_spinner,
            lambda: display.write_streaming("x"),
            display.clear_spinner,
            lambda: display.write_permanent("done"),
            display.end_streaming,
            display.redraw_prompt,
            display.clear,
        ]
        for op in ops:
            expected = display.region.line_count
            erases_before = len(display.erase_counts)
            terminal.reset()
            op()
            if expected > 0:
                assert display.erase_counts[erases_before] == expected
                assert terminal.writes[0] == _erase(expected)
            else:
                assert len(display.erase_counts) == erases_before

    def test_nothing_to_erase_initially(self, display, terminal):
        display.write_permanent("hello")
        assert terminal.writes == ["hello\n"]
        assert display.erase_counts == []


class TestPrompt:
    def test_prompt_shows_buffer(self, display, terminal):
        display.buffer.text = "hi"
        display.redraw_prompt()
        assert terminal.writes[-1] == PROMPT_PREFIX + "hi"
        assert display.region.line_count == 1
        assert display.region.prompt_visible

    def test_continuation_prefix_and_current_line(self, display, terminal):
        display.buffer.text = "first\nsecond"
        display.redraw_prompt()
        assert terminal.writes[-1] == CONTINUATION_PREFIX + "second"

    def test_long_input_shows_tail(self, terminal):
        terminal.width = 20
        display = DisplayCoordinator(terminal)
        display.buffer.text = "abcdefghijklmnopqrstuvwxyz"
        display.redraw_prompt()
        assert terminal.writes[-1] == PROMPT_PREFIX + "lmnopqrstuvwxyz"

    def test_permanent_output_keeps_prompt_below(self, display, terminal):
        display.buffer.text = "typing"
        display.redraw_prompt()
        terminal.reset()
        display.write_permanent("log line")
        assert terminal.writes == [_erase(1), "log line\n", PROMPT_PREFIX + "typing"]


class TestSpinner:
    def test_idle_thinking_idle_round_trip(self, display, terminal):
        """Starting then clearing the spinner restores the idle screen exactly."""
        display.buffer.text = "draft"
        display.redraw_prompt()
        idle_screen = terminal.writes[-1]

        display.start_spinner()
        assert display.mode is Mode.THINKING
        assert display.region.line_count == 2

        display.clear_spinner()
        assert display.mode is Mode.IDLE
        assert display.region.line_count == 1
        assert terminal.writes[-1] == idle_screen

    def test_spinner_line_above_prompt(self, display, terminal):
        display.start_spinner()
        assert terminal.writes[-1] == f"  {DIM}{FRAMES[0]} Thinking...{RESET}\n{PROMPT_PREFIX}"

    def test_tick_advances_frame(self, display, terminal):
        display.start_spinner()
        display.tick()
        assert FRAMES[1] in terminal.writes[-1]

    def test_tick_without_spinner_is_noop(self, display, terminal):
        display.redraw_prompt()
        terminal.reset()
        display.tick()
        assert terminal.writes == []

    def test_permanent_output_keeps_spinner(self, display, terminal):
        display.start_spinner()
        display.write_permanent("tool call")
        assert display.region.line_count == 2
        assert "Thinking..." in terminal.writes[-1]

    def test_clear_spinner_when_idle_is_safe(self, display, terminal):
        display.clear_spinner()
        assert display.mode is Mode.IDLE
        assert terminal.writes[-1] == PROMPT_PREFIX

    def test_first_output_hook_fires_once(self, display, terminal):
        display.start_spinner()
        hook = display.on_first_output()
        hook()
        assert not display.spinning
        terminal.reset()
        hook()
        assert terminal.writes == []

    def test_restart_resets_frame(self, display):
        display.start_spinner()
        display.tick()
        display.tick()
        display.start_spinner()
        assert display.spinner.index == 0

    @pytest.mark.asyncio
    async def test_spinner_animates_on_event_loop(self, display):
        display.start_spinner()
        await asyncio.sleep(0.3)
        assert display.spinner.index > 0
        display.clear_spinner()
        index = display.spinner.index
        await asyncio.sleep(0.2)
        assert display.spinner.index == index


class TestStreaming:
    def test_stream_then_prompt_on_next_line(self, display, terminal):
        display.redraw_prompt()
        terminal.reset()
        display.write_streaming("hello")
        assert terminal.writes == [_erase(1), "hello", "\n" + PROMPT_PREFIX]
        assert display.mode is Mode.STREAMING
        assert display.region.streaming_col == 5

    def test_cursor_restored_to_end_of_streamed_text(self, display, terminal):
        display.redraw_prompt()
        display.write_streaming("hello")
        terminal.reset()
        display.write_streaming(" world")
        assert terminal.writes[0] == _erase(1)
        assert terminal.writes[1] == CURSOR_UP + cursor_right(5)
        assert terminal.writes[2] == " world"
        assert display.region.streaming_col == 11

    def test_column_ignores_escapes(self, display):
        display.write_streaming(f"{DIM}abc{RESET}")
        assert display.region.streaming_col == 3

    def test_streamed_newline_resets_column(self, display, terminal):
        display.write_streaming("line one\n" + " " * 16 + "two")
        assert display.region.streaming_col == 19

    def test_permanent_after_streaming_starts_fresh_line(self, display, terminal):
        display.write_streaming("partial")
        terminal.reset()
        display.write_permanent("next")
        # The prompt line below the stream is reused for the permanent line.
        assert terminal.writes == [_erase(1), "next\n", PROMPT_PREFIX]
        assert display.mode is Mode.IDLE
        assert not display.region.streaming

    def test_end_streaming_forgets_column(self, display, terminal):
        display.write_streaming("abc")
        display.end_streaming()
        terminal.reset()
        display.write_streaming("def")
        assert CURSOR_UP not in terminal.output
        assert display.region.streaming_col == 3


class TestClear:
    def test_clear_erases_and_hides_prompt(self, display, terminal):
        display.redraw_prompt()
        display.start_spinner()
        terminal.reset()
        display.clear()
        assert terminal.writes == [_erase(2)]
        assert not display.region.prompt_visible
        assert not display.spinning

        terminal.reset()
        display.write_permanent("bye")
        assert terminal.writes == ["bye\n"]

    def test_permanent_writer_is_write_permanent(self, display, terminal):
        write = display.permanent_writer()
        write("via capability")
        assert terminal.writes[0] == "via capability\n"
