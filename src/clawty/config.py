"""Configuration management for Clawty."""

import json
import logging
import os
import shutil
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, field_validator

from clawty.wrap import DEFAULT_WIDTH

_LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
_LOG_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}

PERMISSION_MODES = {"acceptEdits", "bypassPermissions", "default", "plan"}
DEFAULT_PERMISSION_MODE = "bypassPermissions"


def find_claude_cli() -> str | None:
    """Locate the ``claude`` executable.

    ``CLAWTY_CLAUDE_CLI`` wins when set; otherwise the system PATH is searched,
    then the usual per-user install locations.
    """
    env_override = os.environ.get("CLAWTY_CLAUDE_CLI")
    if env_override:
        return env_override

    cli_path = shutil.which("claude")
    if cli_path:
        return cli_path

    candidates = [
        Path.home() / ".claude" / "local" / "claude",
        Path.home() / ".local" / "bin" / "claude",
        Path.home() / ".npm-global" / "bin" / "claude",
        Path("/usr/local/bin/claude"),
        Path("/opt/homebrew/bin/claude"),
    ]
    for candidate in candidates:
        if candidate.exists() and candidate.is_file():
            return str(candidate)
    return None


def _parse_log_level(level: str) -> int:
    normalized = level.strip().lower()
    if normalized in _LOG_LEVELS:
        return _LOG_LEVELS[normalized]
    valid = ", ".join(sorted({k for k in _LOG_LEVELS if k != "warn"}))
    raise ValueError(f"Invalid log level: {level}. Valid: {valid}")


def _coerce_log_levels(levels: dict[str, str]) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for name, level in levels.items():
        _parse_log_level(level)
        normalized[name] = level.strip().lower()
    return normalized


def _iter_log_levels(
    default_level: str,
    per_component: dict[str, str],
) -> Iterable[int]:
    yield _parse_log_level(default_level)
    for level in per_component.values():
        yield _parse_log_level(level)


class _StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _LOG_RECORD_KEYS:
                continue
            if isinstance(value, (str, int, float, bool)) or value is None:
                payload[key] = value
            else:
                payload[key] = str(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False)


class DisplayLogHandler(logging.Handler):
    """Send log records through the display's permanent-output writer.

    Writing to stderr directly would land in the middle of the redrawable
    prompt area, so records become ordinary permanent lines instead.
    """

    def __init__(self, write_permanent: Callable[[str], None], level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.write_permanent = write_permanent

    def emit(self, record: logging.LogRecord) -> None:
        # Imported here so the config module stays free of rich at import time.
        from clawty import ui

        try:
            message = self.format(record)
            if record.levelno >= logging.ERROR:
                line = ui.status_line(ui.Icons.ERROR, message, ui.Theme.ERROR)
            elif record.levelno >= logging.WARNING:
                line = ui.status_line(ui.Icons.WARNING, message, ui.Theme.WARNING)
            else:
                line = ui.muted_line(message)
            self.write_permanent(line)
        except Exception:
            self.handleError(record)


def configure_logging(
    config: "BridgeConfig",
    write_permanent: Callable[[str], None] | None = None,
) -> None:
    """Install a single root handler for the session.

    With ``log_file`` set, records go to that file as structured JSON.
    Otherwise they are shown in the terminal through ``write_permanent``, or
    on stderr when no display is running yet.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler: logging.Handler
    if config.log_file:
        handler = logging.FileHandler(config.log_file)
        handler.setFormatter(_StructuredFormatter())
    elif write_permanent is not None:
        handler = DisplayLogHandler(write_permanent)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(_StructuredFormatter())
    handler.setLevel(logging.NOTSET)
    root_logger.addHandler(handler)

    min_level = min(_iter_log_levels(config.log_level, config.log_levels))
    root_logger.setLevel(min_level)

    for name, level in config.log_levels.items():
        logging.getLogger(name).setLevel(_parse_log_level(level))


class BridgeConfig(BaseModel):
    """Main configuration for a Clawty session."""

    contact: str | None = Field(default=None, description="Phone number or email to bridge")
    working_dir: str = Field(
        default_factory=os.getcwd, description="Working directory for the agent"
    )
    model: str | None = Field(default=None, description="Model override passed to the agent")
    interval_ms: int = Field(default=2000, ge=100, description="Poll interval (milliseconds)")
    permission_mode: str = Field(
        default=DEFAULT_PERMISSION_MODE, description="Agent permission mode"
    )
    claude_path: str | None = Field(default=None, description="Path to the claude executable")

    log_level: str = Field(default="warning", description="Log level")
    log_levels: dict[str, str] = Field(
        default_factory=dict,
        description="Per-component log levels (e.g., {'clawty.runner': 'debug'})",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (structured JSON)",
    )

    # Display
    indent: int = Field(default=16, ge=0, description="Assistant text indent (columns)")
    default_width: int = Field(
        default=DEFAULT_WIDTH, ge=20, description="Width used when the terminal reports none"
    )

    @field_validator("contact")
    @classmethod
    def _validate_contact(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("working_dir")
    @classmethod
    def _validate_working_dir(cls, value: str) -> str:
        return str(Path(value).expanduser().resolve())

    @field_validator("permission_mode")
    @classmethod
    def _validate_permission_mode(cls, value: str) -> str:
        if value not in PERMISSION_MODES:
            valid = ", ".join(sorted(PERMISSION_MODES))
            raise ValueError(f"Invalid permission_mode. Valid: {valid}")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        _parse_log_level(value)
        return value.strip().lower()

    @field_validator("log_levels")
    @classmethod
    def _validate_log_levels(cls, value: dict[str, str]) -> dict[str, str]:
        return _coerce_log_levels(value)

    @property
    def interval(self) -> float:
        """Poll interval in seconds."""
        return self.interval_ms / 1000

    @classmethod
    def from_file(cls, path: str | Path) -> "BridgeConfig":
        """Load configuration from TOML file."""
        import tomllib

        path = Path(path)
        if not path.exists():
            return cls()

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def default_path(cls) -> Path:
        """Get default config file path."""
        return Path.home() / ".config" / "clawty" / "config.toml"
