"""Turn agent events into terminal output.

One :class:`StreamAccumulator` lives for the length of an agent turn.
:class:`DisplayAdapter` feeds each event through it and writes the result
either as streamed text (assistant replies, the thinking marker) or as
permanent lines (session header, tool calls and results, summaries).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from clawty import ui
from clawty.ansi import DIM, ITALIC, MAGENTA, RED, RESET
from clawty.display import DisplayCoordinator
from clawty.events import (
    AgentEvent,
    AssistantMessage,
    BlockStart,
    BlockStop,
    SessionInit,
    TextBlock,
    TextDelta,
    ThinkingBlock,
    ThinkingDelta,
    ToolInputDelta,
    ToolResult,
    ToolUseBlock,
    TurnResult,
)
from clawty.markdown import MarkdownRenderer
from clawty.wrap import wrap_text

logger = logging.getLogger(__name__)

ASSISTANT_INDENT = 16  # lines up with the text after "  ◀ [assistant] "
ASSISTANT_LABEL = f"  {RED}◀{RESET} {DIM}[assistant]{RESET} "
THINKING_MARKER = f"  {MAGENTA}{ITALIC}  thinking...{RESET} "
THINKING_DOT = f"{DIM}.{RESET}"
THINKING_DOT_EVERY = 100


@dataclass
class StreamAccumulator:
    """Everything the display needs to remember between events of one turn."""

    thinking_text: str = ""
    thinking_printed: bool = False
    tool_name: str = ""
    tool_input: str = ""
    text_chunks: int = 0
    text_started: bool = False
    assistant_col: int = 0
    renderer: MarkdownRenderer = field(default_factory=MarkdownRenderer)
    session_id: str = ""
    model: str = ""
    result_text: str = ""
    total_cost: float = 0.0
    num_turns: int = 0
    duration_ms: int = 0


class DisplayAdapter:
    """Renders one agent turn onto a :class:`DisplayCoordinator`."""

    def __init__(self, display: DisplayCoordinator, indent: int = ASSISTANT_INDENT) -> None:
        self.display = display
        self.indent = indent
        self.state = StreamAccumulator()

    @property
    def width(self) -> int:
        return self.display.terminal.width

    def handle(self, event: AgentEvent) -> None:
        match event:
            case SessionInit():
                self._session_init(event)
            case BlockStart():
                self._block_start(event)
            case ThinkingDelta():
                self._thinking_delta(event)
            case ToolInputDelta():
                self.state.tool_input += event.partial_json
            case TextDelta():
                self._text_delta(event)
            case BlockStop():
                self._block_stop()
            case AssistantMessage():
                for block in event.blocks:
                    self._assistant_block(block)
            case ToolResult():
                self._permanent(ui.tool_result_lines(event))
            case TurnResult():
                self._turn_result(event)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _session_init(self, event: SessionInit) -> None:
        self.state.session_id = event.session_id
        self.state.model = event.model
        self._permanent(ui.session_header_lines(event))

    def _block_start(self, event: BlockStart) -> None:
        if event.kind == "thinking":
            self.state.thinking_text = ""
            self.state.thinking_printed = False
        elif event.kind == "tool_use":
            self.state.tool_name = event.tool_name
            self.state.tool_input = ""

    def _thinking_delta(self, event: ThinkingDelta) -> None:
        chunk = event.text
        self.state.thinking_text += chunk
        if not self.state.thinking_printed:
            self.state.thinking_printed = True
            self.display.write_streaming(THINKING_MARKER)
        # A dot each time the running length crosses a multiple of 100.
        if len(self.state.thinking_text) % THINKING_DOT_EVERY < len(chunk):
            self.display.write_streaming(THINKING_DOT)

    def _text_delta(self, event: TextDelta) -> None:
        state = self.state
        if not state.text_started:
            state.text_started = True
            state.assistant_col = self.indent
            self.display.write_streaming(ASSISTANT_LABEL)
        state.text_chunks += 1
        self._stream_rendered(state.renderer.push(event.text))

    def _block_stop(self) -> None:
        state = self.state
        if state.text_started:
            self._stream_rendered(state.renderer.flush())
        if state.thinking_printed:
            self._permanent(ui.streamed_thinking_lines(state.thinking_text))
            state.thinking_text = ""
            state.thinking_printed = False

    def _assistant_block(self, block: ThinkingBlock | ToolUseBlock | TextBlock) -> None:
        match block:
            case ThinkingBlock():
                if block.text:
                    self._permanent(ui.thinking_block_lines(block))
            case ToolUseBlock():
                summary = format_tool_input(block.name, block.input)
                self._permanent(ui.tool_use_lines(block, summary))
            case TextBlock():
                self._text_block(block)

    def _text_block(self, block: TextBlock) -> None:
        if not block.text:
            return
        state = self.state
        if state.text_chunks == 0:
            rendered = state.renderer.push(block.text) + state.renderer.flush()
            wrapped = wrap_text(rendered, self.indent, width=self.width, indent=self.indent)
            self.display.write_permanent(ASSISTANT_LABEL + wrapped.text)
        else:
            # Already streamed; just end the streamed line.
            self.display.write_permanent("")
        state.text_chunks = 0
        state.text_started = False
        state.renderer = MarkdownRenderer()

    def _turn_result(self, event: TurnResult) -> None:
        state = self.state
        state.result_text = event.result
        state.total_cost = event.total_cost_usd
        state.num_turns = event.num_turns
        state.duration_ms = event.duration_ms
        self.display.write_permanent(ui.turn_summary(event))

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _stream_rendered(self, rendered: str) -> None:
        if not rendered:
            return
        wrapped = wrap_text(
            rendered, self.state.assistant_col, width=self.width, indent=self.indent
        )
        self.state.assistant_col = wrapped.end_col
        self.display.write_streaming(wrapped.text)

    def _permanent(self, lines: list[str]) -> None:
        for line in lines:
            self.display.write_permanent(line)


def format_tool_input(name: str, tool_input: dict[str, Any]) -> str:
    """One-line summary of a tool call's parameters.

    Well-known tools show their key argument, MCP tools their first non-empty
    argument, and anything else a clipped compact JSON dump. Returns an empty
    string when there is nothing worth showing.
    """
    lowered = name.lower()
    if lowered == "bash":
        command = tool_input.get("command")
        return f"$ {str(command)[:150]}" if command else ""
    if lowered in ("read", "write", "edit"):
        path = tool_input.get("file_path")
        return f"file: {path}" if path else ""
    if lowered in ("glob", "grep"):
        pattern = tool_input.get("pattern")
        return f"pattern: {pattern}" if pattern else ""
    if name == "WebFetch":
        url = tool_input.get("url")
        return f"url: {url}" if url else ""
    if name == "WebSearch":
        query = tool_input.get("query")
        return f"query: {query}" if query else ""
    if name == "Task":
        if tool_input.get("description"):
            return f"task: {tool_input['description']}"
        if tool_input.get("prompt"):
            return f"prompt: {str(tool_input['prompt'])[:100]}"
        return ""

    if name.startswith("mcp__"):
        for key, value in tool_input.items():
            if value is None or value == "":
                continue
            shown = value if isinstance(value, str) else json.dumps(value)
            return f"{key}: {shown[:120]}"

    compact = json.dumps(tool_input, separators=(",", ":"), ensure_ascii=False)
    return compact[:150] if len(compact) > 2 else ""
