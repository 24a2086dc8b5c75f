"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import subprocess
import sys
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shellprompt import __version__
from shellprompt.config import (
    CONFIG_FILE,
    AppConfig,
    get_config,
    load_config,
    save_config,
)
from shellprompt.hooks import SUPPORTED_SHELLS, handle_precmd, handle_preexec, shell_init
from shellprompt.services.banner import run_banner
from shellprompt.services.classifier import CommandClassifier
from shellprompt.services.prompt import PromptBuilder
from shellprompt.services.timer import decode_state, encode_state, format_elapsed
from shellprompt.storage.database import close_db, get_recent_timings, get_slowest_timings, init_db
from shellprompt.storage.models import TimingRecord
from shellprompt.utils.system import check_tool

app = typer.Typer(
    name="shellprompt",
    help="Command timer and status prompt for bash and zsh.",
    add_completion=False,
)
console = Console()


def setup_logging(config: AppConfig) -> None:
    """Log to the configured file only; hooks must keep the terminal clean."""
    handlers: list[logging.Handler]
    try:
        log_path = Path(config.logging.file).expanduser().resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(str(log_path))]
    except OSError:
        handlers = [logging.NullHandler()]
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


@app.command()
def init(
    shell: str = typer.Argument(..., help="Shell to integrate with (bash or zsh)"),
    exe: str = typer.Option("shellprompt", "--exe", help="Command the hooks invoke"),
) -> None:
    """Print the shell integration script.

    Add ``eval "$(shellprompt init zsh)"`` to ``~/.zshrc``.
    """
    try:
        script = shell_init(shell, exe=exe)
    except ValueError:
        console.print(f"[red]Unsupported shell: {shell}[/red]")
        console.print(f"Supported: {', '.join(SUPPORTED_SHELLS)}")
        raise typer.Exit(1)
    typer.echo(script, nl=False)


@app.command()
def preexec(
    line: str = typer.Argument("", help="Command line about to run"),
    state: str = typer.Option("", "--state", help="Pending timer state, if any"),
) -> None:
    """Hook: classify a command and print the new timer state."""
    config = get_config()
    setup_logging(config)
    next_state, _ = handle_preexec(decode_state(state), line, CommandClassifier(config), time.time())
    typer.echo(encode_state(next_state))


@app.command()
def precmd(
    status: int = typer.Option(0, "--status", "-s", help="Exit status of the previous command"),
    state: str = typer.Option("", "--state", help="Timer state printed by preexec"),
    command: str = typer.Option("", "--command", help="Command line the timer belongs to"),
    as_json: bool = typer.Option(False, "--json", help="Print fragments with their styles"),
) -> None:
    """Hook: print the prompt fragments for the next prompt."""
    config = get_config()
    setup_logging(config)
    _, context = handle_precmd(decode_state(state, command), status, PromptBuilder(config), time.time())
    if as_json:
        typer.echo(json.dumps(context.to_dict()))
    else:
        typer.echo(context.render())


@app.command()
def banner() -> None:
    """Print the system-info banner."""
    config = get_config()
    setup_logging(config)
    output = run_banner(config)
    if output:
        typer.echo(output, nl=False)


@app.command()
def classify(
    line: str = typer.Argument(..., help="Command line to classify"),
) -> None:
    """Show how a command line is classified."""
    config = get_config()
    classification, invocation = CommandClassifier(config).classify(line)
    name = invocation.name if invocation else ""
    console.print(f"Command: [cyan]{escape(name) or '(none)'}[/cyan]")
    if invocation and invocation.wrapper:
        console.print(f"Wrapper: {escape(invocation.wrapper)}")
    console.print(f"Class: [green]{classification.value}[/green]")


def _coerce(obj: object, attr: str, value: str) -> object:
    """Convert a string to the type of a config field."""
    current = getattr(obj, attr)
    annotation = {f.name: str(f.type) for f in dataclasses.fields(obj)}.get(attr, "")
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, list):
        items = [v.strip() for v in value.split(",") if v.strip()]
        if annotation == "list[int]":
            return [int(v) for v in items]
        return items
    if isinstance(current, dict):
        pairs = [p.split("=", 1) for p in value.split(",") if p.strip()]
        if any(len(p) != 2 for p in pairs):
            raise ValueError(value)
        return {k.strip(): v.strip() for k, v in pairs}
    return value


def _display(value: object) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) or "(empty)"
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items()) or "(empty)"
    return str(value)


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., timer.threshold_seconds)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    cfg = load_config()

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")
        for section_name, section in cfg.sections().items():
            for f in dataclasses.fields(section):
                table.add_row(f"{section_name}.{f.name}", escape(_display(getattr(section, f.name))))
        console.print(table)
        if not CONFIG_FILE.exists():
            console.print(f"[dim]Defaults shown; {CONFIG_FILE} does not exist yet.[/dim]")
        return

    if value is None:
        console.print("[red]Usage: shellprompt config <key> <value>[/red]")
        raise typer.Exit(1)

    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., timer.threshold_seconds)[/red]")
        raise typer.Exit(1)

    section_name, attr = parts
    section_map = cfg.sections()
    if section_name not in section_map:
        console.print(f"[red]Unknown section: {section_name}[/red]")
        raise typer.Exit(1)

    obj = section_map[section_name]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(1)

    try:
        typed_value = _coerce(obj, attr, value)
    except ValueError:
        console.print(f"[red]Invalid value type for {key}[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, typed_value)
    save_config(cfg)
    console.print(f"[green]{key} = {escape(_display(typed_value))}[/green]")


async def _load_history(db_path: str, limit: int, slowest: bool) -> list[TimingRecord]:
    await init_db(db_path)
    try:
        if slowest:
            return await get_slowest_timings(limit)
        return await get_recent_timings(limit)
    finally:
        await close_db()


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of entries"),
    slowest: bool = typer.Option(False, "--slowest", help="Sort by duration instead of recency"),
) -> None:
    """Show recorded slow commands."""
    cfg = get_config()
    db_path = Path(cfg.history.db_path).expanduser()
    if not db_path.exists():
        console.print("[dim]No timing history recorded yet.[/dim]")
        return

    records = asyncio.run(_load_history(str(db_path), limit, slowest))
    if not records:
        console.print("[dim]No timing history recorded yet.[/dim]")
        return

    table = Table(title="Slowest commands" if slowest else "Recent slow commands")
    table.add_column("When", style="dim")
    table.add_column("Took", style="yellow", justify="right")
    table.add_column("Status", justify="right")
    table.add_column("Command", style="cyan")
    table.add_column("Directory", style="dim")
    for record in records:
        table.add_row(
            record.created_at,
            format_elapsed(record.elapsed_seconds),
            str(record.exit_status),
            escape(record.command),
            escape(record.cwd),
        )
    console.print(table)


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines"),
    follow: bool = typer.Option(False, "--follow", "-f", help="Follow log output"),
) -> None:
    """View shellprompt logs."""
    log_path = Path(get_config().logging.file).expanduser().resolve()
    if not log_path.exists():
        console.print("[dim]No log file found.[/dim]")
        return

    if follow:
        try:
            subprocess.run(["tail", "-f", "-n", str(lines), str(log_path)])
        except KeyboardInterrupt:
            pass
    else:
        content = log_path.read_text()
        log_lines = content.strip().split("\n")
        for line in log_lines[-lines:]:
            console.print(line, markup=False)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"shellprompt v{__version__}")

    installed, info = check_tool("git")
    if installed:
        console.print(f"git: {info}")
    else:
        console.print("git: [yellow]not installed[/yellow]")

    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
