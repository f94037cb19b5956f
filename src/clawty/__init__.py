"""Clawty - text your coding agent, watch it work in the terminal."""

__version__ = "0.1.0"

from .bridge import Bridge, Dispatch, InboundMessage
from .config import BridgeConfig, configure_logging
from .display import DisplayCoordinator, DynamicRegion, Mode
from .editor import EditBuffer, InputLineEditor
from .exceptions import AgentError, ClawtyError, ConfigError, DeliveryError, TerminalError
from .markdown import MarkdownRenderer, render_markdown
from .runner import ClaudeRunner, TurnOutcome
from .terminal import MemoryTerminal, Terminal

__all__ = [
    "__version__",
    "AgentError",
    "Bridge",
    "BridgeConfig",
    "ClaudeRunner",
    "ClawtyError",
    "ConfigError",
    "DeliveryError",
    "Dispatch",
    "DisplayCoordinator",
    "DynamicRegion",
    "EditBuffer",
    "InboundMessage",
    "InputLineEditor",
    "MarkdownRenderer",
    "MemoryTerminal",
    "Mode",
    "Terminal",
    "TerminalError",
    "TurnOutcome",
    "configure_logging",
    "render_markdown",
]
