"""
Rich console utilities for dual-mode CLI output.

Provides readable terminal output for humans and structured JSON for automation.
All output functions automatically adapt based on the global output_mode setting.

This module provides:
- OutputMode: Class to manage output format (text/json/quiet)
- Context manager: spinner()
- Output functions: success(), error(), warning(), info()
- Display functions: print_banner(), print_outcomes_table(), print_chain_table()

Human Mode (--format text):
    - Rich spinners and colored tables
    - ANSI colors and Unicode symbols

Agent Mode (--format json):
    - Structured JSON output to stdout
    - No ANSI codes or spinners

Quiet Mode (--quiet):
    - Tab-separated values
    - No decorations

Examples:
    >>> from graph_migrator.utils.console import output_mode, spinner, success
    >>> output_mode.format = "text"
    >>> with spinner("Connecting..."):
    ...     store = open_neo4j_store(config)
    >>> success("Connected")
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

from graph_migrator.models import ChainEntry, MigrationOutcome


class OutputMode:
    """
    Output mode configuration for dual-mode CLI.

    Attributes:
        format: Output format - "text" (human) or "json" (agent)
        quiet: If True, emit tab-separated values only
        _json_buffer: Internal buffer for JSON output in agent mode
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        """True if format is "text"."""
        return self.format == "text"

    def is_agent(self) -> bool:
        """True if format is "json"."""
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """
        Add key-value pair to JSON buffer.

        Used in agent mode to accumulate structured data
        before final output via flush_json().
        """
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """
        Output buffered JSON to stdout and clear buffer.

        Only outputs in agent mode. In human mode, this is a no-op.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2, default=str)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()

    def reset(self) -> None:
        """Return to human mode with an empty buffer."""
        self.format = "text"
        self.quiet = False
        self._json_buffer.clear()


# Global output mode instance (set by CLI flags)
output_mode = OutputMode()

# Global Rich console instances for human mode
console = Console()  # stdout
console_err = Console(stderr=True)  # stderr


@contextmanager
def spinner(message: str):
    """
    Show a spinner during an operation in human mode; silent otherwise.

    Args:
        message: Status message to display
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def success(message: str) -> None:
    """
    Print a success message.

    Human mode: Green checkmark with message
    Agent mode: Buffer to JSON
    Quiet mode: Silent
    """
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[green]✓[/green] {message}")
    elif output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)


def error(message: str) -> None:
    """
    Print an error message.

    Human/quiet mode: Red X with message to stderr
    Agent mode: Buffer to JSON
    """
    if output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)
    else:
        console_err.print(f"[red]✗[/red] {message}", style="red")


def warning(message: str) -> None:
    """
    Print a warning message.

    Human mode: Yellow warning symbol with message
    Agent mode: Buffer to JSON
    """
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")
    elif output_mode.is_agent():
        output_mode.add_json("warning", message)


def info(message: str) -> None:
    """Print an info message in human mode. Silent for agents and quiet mode."""
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def print_banner(version: str) -> None:
    """Print the startup banner (human mode only)."""
    if not output_mode.is_human() or output_mode.quiet:
        return

    banner = f"""
[bold cyan]╔{"═" * 39}╗
║   Graph Migrator v{version:<19} ║
║   Versioned Cypher migrations         ║
╚{"═" * 39}╝[/bold cyan]
"""

    console.print(banner)


def print_outcomes_table(outcomes: list[MigrationOutcome]) -> None:
    """
    Print the result of a migration run.

    Human mode: Rich table with one row per file
    Agent mode: Buffer outcomes and counts, then flush
    Quiet mode: file_name<TAB>status<TAB>version per line
    """
    applied = sum(1 for o in outcomes if o.status == "applied")
    skipped = len(outcomes) - applied

    if output_mode.is_agent():
        output_mode.add_json(
            "migrations",
            [
                {"file_name": o.file_name, "status": o.status, "version": o.version}
                for o in outcomes
            ],
        )
        output_mode.add_json("applied", applied)
        output_mode.add_json("skipped", skipped)
        output_mode.flush_json()
        return

    if output_mode.quiet:
        for o in outcomes:
            print(f"{o.file_name}\t{o.status}\t{o.version}")
        return

    if not outcomes:
        info("No migration files found")
        return

    table = Table(title="Migrations", box=box.ROUNDED)
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("File", style="white")
    table.add_column("Status")

    for o in outcomes:
        status = (
            "[green]✓ applied[/green]"
            if o.status == "applied"
            else "[dim]↷ up to date[/dim]"
        )
        table.add_row(str(o.version), o.file_name, status)

    console.print(table)
    console.print(f"[bold]{applied}[/bold] applied, [bold]{skipped}[/bold] up to date")


def print_chain_table(entries: list[ChainEntry]) -> None:
    """
    Print the recorded migration chain.

    Human mode: Rich table (version, previous, file, applied at)
    Agent mode: Buffer chain and flush
    Quiet mode: version<TAB>previous<TAB>file_name per line
    """
    rows = []
    for entry in entries:
        props = entry.record.properties
        rows.append(
            {
                "version": entry.record.version,
                "previous_version": entry.previous_version,
                "file_name": props.get("file_name"),
                "timestamp": props.get("timestamp"),
            }
        )

    if output_mode.is_agent():
        output_mode.add_json("chain", rows)
        output_mode.add_json("count", len(rows))
        output_mode.flush_json()
        return

    if output_mode.quiet:
        for row in rows:
            previous = "" if row["previous_version"] is None else row["previous_version"]
            print(f"{row['version']}\t{previous}\t{row['file_name'] or ''}")
        return

    if not rows:
        info("No migrations recorded yet")
        return

    table = Table(title="Migration Chain", box=box.ROUNDED)
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Previous", justify="right")
    table.add_column("File", style="white")
    table.add_column("Applied At", style="dim")

    for row in rows:
        table.add_row(
            str(row["version"]),
            "-" if row["previous_version"] is None else str(row["previous_version"]),
            row["file_name"] or "-",
            row["timestamp"] or "-",
        )

    console.print(table)
