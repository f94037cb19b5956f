"""Typed events parsed from the agent's ``stream-json`` output.

The agent writes one JSON object per line. ``parse_line`` turns a line into
one of the event dataclasses below, or ``None`` for anything the display does
not act on (blank lines, malformed JSON, event kinds we do not know).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Union

logger = logging.getLogger(__name__)

MCP_PREFIX = "mcp__"


@dataclass
class McpServer:
    name: str
    status: str = ""

    @property
    def connected(self) -> bool:
        return self.status == "connected"


@dataclass
class SessionInit:
    """First event of a turn: which session, model and tools are in play."""

    session_id: str = ""
    model: str = ""
    version: str = ""
    tools: list[str] = field(default_factory=list)
    mcp_servers: list[McpServer] = field(default_factory=list)

    @property
    def builtin_tools(self) -> list[str]:
        return [t for t in self.tools if not t.startswith(MCP_PREFIX)]

    @property
    def mcp_tools(self) -> list[str]:
        return [t for t in self.tools if t.startswith(MCP_PREFIX)]

    @property
    def connected_servers(self) -> list[str]:
        return [s.name for s in self.mcp_servers if s.connected]


@dataclass
class BlockStart:
    kind: str
    tool_name: str = ""


@dataclass
class ThinkingDelta:
    text: str


@dataclass
class ToolInputDelta:
    partial_json: str


@dataclass
class TextDelta:
    text: str


@dataclass
class BlockStop:
    pass


@dataclass
class ThinkingBlock:
    text: str


@dataclass
class ToolUseBlock:
    name: str
    input: dict[str, Any] = field(default_factory=dict)

    @property
    def is_mcp(self) -> bool:
        return self.name.startswith(MCP_PREFIX)


@dataclass
class TextBlock:
    text: str


ContentBlock = Union[ThinkingBlock, ToolUseBlock, TextBlock]


@dataclass
class AssistantMessage:
    """A complete assistant message, delivered after its streamed deltas."""

    blocks: list[ContentBlock] = field(default_factory=list)


@dataclass
class ToolResult:
    stdout: str = ""
    stderr: str = ""
    is_error: bool = False
    is_image: bool = False


@dataclass
class TurnResult:
    """Final event of a turn, carrying the reply text and its cost."""

    result: str = ""
    total_cost_usd: float = 0.0
    num_turns: int = 0
    duration_ms: int = 0


AgentEvent = Union[
    SessionInit,
    BlockStart,
    ThinkingDelta,
    ToolInputDelta,
    TextDelta,
    BlockStop,
    AssistantMessage,
    ToolResult,
    TurnResult,
]


def parse_line(line: str) -> AgentEvent | None:
    """Parse one NDJSON line; blank or malformed lines yield ``None``."""
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed agent output line: %.80s", line)
        return None
    if not isinstance(data, dict):
        return None
    return parse_event(data)


def parse_event(data: dict[str, Any]) -> AgentEvent | None:
    """Map one decoded agent message onto an event, or ``None`` if irrelevant."""
    kind = data.get("type")
    if kind == "system":
        if data.get("subtype") == "init":
            return _session_init(data)
        return None
    if kind == "stream_event":
        return _stream_event(data.get("event") or {})
    if kind == "assistant":
        return _assistant_message(data.get("message") or {})
    if kind == "user":
        return _tool_result(data.get("tool_use_result"))
    if kind == "result":
        return TurnResult(
            result=data.get("result") or "",
            total_cost_usd=float(data.get("total_cost_usd") or 0.0),
            num_turns=int(data.get("num_turns") or 0),
            duration_ms=int(data.get("duration_ms") or 0),
        )
    return None


def _session_init(data: dict[str, Any]) -> SessionInit:
    servers = [
        McpServer(name=str(s.get("name", "")), status=str(s.get("status", "")))
        for s in data.get("mcp_servers") or []
        if isinstance(s, dict)
    ]
    return SessionInit(
        session_id=data.get("session_id") or "",
        model=data.get("model") or "",
        version=data.get("claude_code_version") or "",
        tools=[str(t) for t in data.get("tools") or []],
        mcp_servers=servers,
    )


def _stream_event(event: dict[str, Any]) -> AgentEvent | None:
    etype = event.get("type")
    if etype == "content_block_start":
        block = event.get("content_block") or {}
        return BlockStart(kind=block.get("type", ""), tool_name=block.get("name") or "")
    if etype == "content_block_delta":
        delta = event.get("delta") or {}
        dtype = delta.get("type")
        if dtype == "thinking_delta":
            return ThinkingDelta(delta.get("thinking") or "")
        if dtype == "input_json_delta":
            return ToolInputDelta(delta.get("partial_json") or "")
        if dtype == "text_delta":
            return TextDelta(delta.get("text") or "")
        return None
    if etype == "content_block_stop":
        return BlockStop()
    return None


def _assistant_message(message: dict[str, Any]) -> AssistantMessage:
    blocks: list[ContentBlock] = []
    for block in message.get("content") or []:
        if not isinstance(block, dict):
            continue
        btype = block.get("type")
        if btype == "thinking":
            blocks.append(ThinkingBlock(block.get("thinking") or ""))
        elif btype == "tool_use":
            tool_input = block.get("input")
            blocks.append(
                ToolUseBlock(
                    name=block.get("name") or "unknown",
                    input=tool_input if isinstance(tool_input, dict) else {},
                )
            )
        elif btype == "text":
            blocks.append(TextBlock(block.get("text") or ""))
    return AssistantMessage(blocks)


def _tool_result(payload: Any) -> ToolResult | None:
    if not payload:
        return None
    if isinstance(payload, str):
        return ToolResult(stdout=payload)
    if not isinstance(payload, dict):
        return None
    return ToolResult(
        stdout=payload.get("stdout") or "",
        stderr=payload.get("stderr") or "",
        is_error=bool(payload.get("is_error", False)),
        is_image=bool(payload.get("isImage", False)),
    )
