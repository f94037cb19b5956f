"""CLI interface for Clawty."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Prompt

from clawty import __version__, ui
from clawty.bridge import Bridge
from clawty.config import BridgeConfig, configure_logging
from clawty.display import DisplayCoordinator
from clawty.exceptions import ClawtyError
from clawty.runner import ClaudeRunner, verify_installed
from clawty.terminal import get_terminal

app = typer.Typer(
    name="clawty",
    help="Bridge text messages to Claude Code with a live terminal view.",
    no_args_is_help=False,
    invoke_without_command=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"clawty version {__version__}")
        raise typer.Exit()


def _fail(message: str) -> None:
    console.print(f"  [red]✗ {message}[/red]")
    raise typer.Exit(1)


def _load_config(config_file: Path | None, overrides: dict[str, Any]) -> BridgeConfig:
    """Explicit ``--config`` wins, then the default path; flags override both."""
    if config_file is not None:
        if not config_file.exists():
            _fail(f"Config file not found: {config_file}")
        base = BridgeConfig.from_file(config_file)
    else:
        base = BridgeConfig.from_file(BridgeConfig.default_path())

    data = base.model_dump()
    data.update({key: value for key, value in overrides.items() if value is not None})
    return BridgeConfig(**data)


def _ask_contact() -> str:
    console.print()
    console.print("  [bright_magenta]✦[/bright_magenta]  [bold]Messages [bright_magenta]↔[/bright_magenta] Claude[/bold]")
    console.print()
    return Prompt.ask(
        "  [bright_magenta]Phone or email:[/bright_magenta]",
        console=console,
        default="",
        show_default=False,
    ).strip()


async def _run_bridge(config: BridgeConfig) -> None:
    await verify_installed(config.claude_path)

    terminal = get_terminal()
    terminal.default_width = config.default_width
    display = DisplayCoordinator(terminal)
    configure_logging(config, display.permanent_writer())

    for line in ui.banner_lines(config.contact or "", config.working_dir, config.model):
        display.write_permanent(line)

    runner = ClaudeRunner(config)
    bridge = Bridge(config, display, runner)
    await bridge.run()


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    contact: Annotated[
        str | None, typer.Option("--contact", "-c", help="Phone number or email to bridge")
    ] = None,
    directory: Annotated[
        Path | None, typer.Option("--dir", "-d", help="Working directory for Claude")
    ] = None,
    model: Annotated[str | None, typer.Option("--model", "-m", help="Model to use")] = None,
    interval: Annotated[
        int | None, typer.Option("--interval", "-i", help="Poll interval in milliseconds")
    ] = None,
    permission_mode: Annotated[
        str | None, typer.Option("--permission-mode", help="Claude permission mode")
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", help="Path to a TOML config file")
    ] = None,
    log_level: Annotated[str | None, typer.Option("--log-level", help="Log level")] = None,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Write structured JSON logs to this file")
    ] = None,
) -> None:
    """Bridge text messages to Claude Code with a live terminal view."""
    overrides = {
        "contact": contact,
        "working_dir": str(directory) if directory is not None else None,
        "model": model,
        "interval_ms": interval,
        "permission_mode": permission_mode,
        "log_level": log_level,
        "log_file": log_file,
    }
    try:
        config = _load_config(config_file, overrides)
    except ValidationError as exc:
        errors = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
        _fail(f"Invalid configuration: {errors}")
        return

    if not config.contact:
        entered = _ask_contact()
        if not entered:
            _fail("No contact provided.")
        config = config.model_copy(update={"contact": entered})

    if not Path(config.working_dir).is_dir():
        _fail(f"Working directory does not exist: {config.working_dir}")

    try:
        asyncio.run(_run_bridge(config))
    except ClawtyError as exc:
        _fail(exc.message)
    except KeyboardInterrupt:
        raise typer.Exit(130) from None


if __name__ == "__main__":
    app()
