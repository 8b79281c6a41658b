"""
CLI entrypoint for Graph Migrator.

Provides a dual-mode command-line interface with:
- Human-friendly output: Rich spinners, tables, colored text
- Agent-friendly output: Structured JSON for automation
- Quiet mode: Tab-separated minimal output for shell scripts

Commands:
    migrate: Apply pending Cypher migrations and record them in the chain
    status: Show the recorded migration chain
    validate: Validate configuration and list migration files without connecting
    link: Record a single migration node and link it to its predecessor

Exit codes:
    0: Success
    1: Configuration error (invalid YAML, missing password variable)
    2: Storage error (database unreachable, write conflict, failed query)
    3: Migration error (checksum mismatch, failing migration file)

Examples:
    # Apply migrations from the configured directory
    graph-migrator migrate --config graph-migrator.yaml

    # JSON output for CI
    graph-migrator migrate --config graph-migrator.yaml --format json

    # Inspect the chain
    graph-migrator status --config graph-migrator.yaml

Security:
    - The database password is read from an environment variable only
    - Errors may contain URIs but never passwords
"""

import re
from pathlib import Path

import typer
from rich.traceback import install as install_rich_traceback

from graph_migrator.chain import read_chain, record_migration
from graph_migrator.config.constants import DEFAULT_CONFIG_FILE, MIGRATION_LABEL, VERSION_KEY
from graph_migrator.config.loader import load_config
from graph_migrator.config.schema import RuntimeConfig
from graph_migrator.exceptions import (
    ChecksumMismatchError,
    ConfigurationError,
    MigrationError,
    StorageError,
    StorageUnavailable,
    WriteConflict,
)
from graph_migrator.migrator import GraphMigrator
from graph_migrator.storage.neo4j_store import open_neo4j_store
from graph_migrator.utils.console import (
    error,
    info,
    output_mode,
    print_banner,
    print_chain_table,
    print_outcomes_table,
    spinner,
    success,
    warning,
)
from graph_migrator.utils.logging import setup_logging

# Install Rich tracebacks for better error messages
install_rich_traceback(show_locals=False)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_STORAGE_ERROR = 2
EXIT_MIGRATION_ERROR = 3

# Integers without sign, padding or separators, e.g. "0", "42", "-3"
_CANONICAL_INT_RE = re.compile(r"^-?(0|[1-9][0-9]*)$")

app = typer.Typer(
    name="graph-migrator",
    help="Versioned Cypher migrations recorded as a chain of graph nodes",
    add_completion=False,
)

CONFIG_OPTION = typer.Option(
    Path(DEFAULT_CONFIG_FILE),
    "--config",
    "-c",
    help="Path to YAML configuration file",
    exists=True,
    file_okay=True,
    dir_okay=False,
)


def _configure_output(format: str, quiet: bool, verbose: bool) -> None:
    if format not in ("text", "json"):
        error(f"Invalid format: {format}. Must be 'text' or 'json'")
        raise typer.Exit(EXIT_CONFIG_ERROR)

    output_mode.format = format
    output_mode.quiet = quiet

    # Suppress JSON logs in human mode (unless verbose=True)
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human())


def _load_runtime_config(config: Path) -> RuntimeConfig:
    try:
        with spinner("Loading configuration..."):
            return load_config(config)
    except ConfigurationError as e:
        error(f"Configuration error: {e}")
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)


def _storage_failure(e: StorageError) -> typer.Exit:
    if isinstance(e, StorageUnavailable):
        error(f"Database unavailable: {e}")
    elif isinstance(e, WriteConflict):
        error(f"Write conflict: {e}")
    else:
        error(f"Storage error: {e}")
    output_mode.flush_json()
    return typer.Exit(EXIT_STORAGE_ERROR)


def _parse_scalar(value: str) -> int | str:
    """
    Canonical integers become ints so they match versions written by `migrate`.

    Anything int() would normalize ("007", "+7", " 7", "1_000") stays a string.
    """
    if _CANONICAL_INT_RE.match(value):
        return int(value)
    return value


@app.command()
def migrate(
    config: Path = CONFIG_OPTION,
    directory: Path | None = typer.Option(
        None,
        "--dir",
        "-d",
        help="Migrations directory (overrides migrations.directory)",
        file_okay=False,
        dir_okay=True,
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Minimal output (tab-separated values)"
    ),
    no_retry: bool = typer.Option(
        False, "--no-retry", help="Fail immediately if the database is unreachable"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Apply pending migrations and record them in the migration chain.

    Files are applied in file-name order. Already applied files are skipped;
    an applied file whose content changed stops the run.

    Exit codes:
      0: All migrations applied or up to date
      1: Configuration error
      2: Storage error
      3: Checksum mismatch or failing migration
    """
    _configure_output(format, quiet, verbose)
    print_banner(_read_version())

    runtime_config = _load_runtime_config(config)
    migrations_dir = directory or runtime_config.migrations_dir

    migrator = GraphMigrator(
        extensions=runtime_config.migrations.extensions,
        enforce_linear_history=runtime_config.migrations.enforce_linear_history,
    )
    migrations = migrator.gather_migrations(migrations_dir)

    if not migrations:
        warning(f"No migration files found in {migrations_dir}")
    else:
        info(f"Found {len(migrations)} migration files in {migrations_dir}")

    try:
        with spinner(f"Connecting to {runtime_config.neo4j.uri}..."):
            store = open_neo4j_store(runtime_config, retry=not no_retry)
    except StorageError as e:
        raise _storage_failure(e) from e

    try:
        with spinner("Applying migrations..."):
            outcomes = migrator.run_migrations(store, migrations)
    except ChecksumMismatchError as e:
        error(f"Checksum mismatch for {e.file_name}: file changed after it was applied")
        output_mode.flush_json()
        raise typer.Exit(EXIT_MIGRATION_ERROR) from e
    except MigrationError as e:
        error(f"Migration failed: {e}")
        output_mode.flush_json()
        raise typer.Exit(EXIT_MIGRATION_ERROR) from e
    except StorageError as e:
        raise _storage_failure(e) from e
    finally:
        store.close()

    applied = sum(1 for o in outcomes if o.status == "applied")
    success(f"Migrations complete: {applied} applied, {len(outcomes) - applied} up to date")
    print_outcomes_table(outcomes)


@app.command()
def status(
    config: Path = CONFIG_OPTION,
    format: str = typer.Option("text", "--format", "-f", help="Output format: 'text' or 'json'"),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Minimal output (tab-separated values)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Show every recorded migration and the version it follows.
    """
    _configure_output(format, quiet, verbose)
    runtime_config = _load_runtime_config(config)

    try:
        with spinner("Reading migration chain..."):
            store = open_neo4j_store(runtime_config)
            try:
                entries = read_chain(store)
            finally:
                store.close()
    except StorageError as e:
        raise _storage_failure(e) from e

    print_chain_table(entries)


@app.command()
def validate(
    config: Path = CONFIG_OPTION,
    format: str = typer.Option("text", "--format", "-f", help="Output format: 'text' or 'json'"),
):
    """
    Validate configuration and list migration files without connecting.

    Checks:
    - YAML syntax is valid
    - All fields pass validation rules
    - The password environment variable is set
    - The migrations directory contains migration files

    Exit codes:
      0: Configuration is valid
      1: Configuration is invalid
    """
    _configure_output(format, False, False)
    runtime_config = _load_runtime_config(config)

    migrator = GraphMigrator(extensions=runtime_config.migrations.extensions)
    migrations = migrator.gather_migrations(runtime_config.migrations_dir)

    success("Configuration is valid")
    info(f"Neo4j: {runtime_config.neo4j.uri} as {runtime_config.neo4j.username}")
    info(f"Migrations directory: {runtime_config.migrations_dir}")
    for migration in migrations:
        info(f"  {migration.file_name}  {migration.checksum[:12]}")
    if not migrations:
        warning("No migration files found")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("uri", runtime_config.neo4j.uri)
        output_mode.add_json("migrations_dir", str(runtime_config.migrations_dir))
        output_mode.add_json(
            "migrations",
            [{"file_name": m.file_name, "checksum": m.checksum} for m in migrations],
        )
        output_mode.flush_json()


@app.command()
def link(
    version: str = typer.Argument(..., help="Version of the migration to record"),
    config: Path = CONFIG_OPTION,
    previous: str | None = typer.Option(
        None, "--previous", "-p", help="Version this migration follows"
    ),
    prop: list[str] = typer.Option(
        [], "--prop", help="Extra node property as key=value (repeatable)"
    ),
    format: str = typer.Option("text", "--format", "-f", help="Output format: 'text' or 'json'"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Record one migration node, linked to --previous when that version exists.

    Plain integers are stored as ints; padded values such as 007 stay
    strings. A missing predecessor is not an error; the node is recorded
    without a link.

    Examples:
      graph-migrator link 3 --previous 2 --prop name=backfill -c graph-migrator.yaml
    """
    _configure_output(format, False, verbose)

    record_data: dict[str, int | str] = {}
    for item in prop:
        key, sep, value = item.partition("=")
        if not sep or not key:
            error(f"Invalid --prop {item!r}, expected key=value")
            output_mode.flush_json()
            raise typer.Exit(EXIT_CONFIG_ERROR)
        record_data[key.strip()] = _parse_scalar(value)
    record_data["version"] = _parse_scalar(version)
    previous_version = _parse_scalar(previous) if previous is not None else None

    runtime_config = _load_runtime_config(config)

    try:
        store = open_neo4j_store(runtime_config)
        try:
            store.ensure_unique_constraint(MIGRATION_LABEL, VERSION_KEY)
            record = record_migration(
                store,
                record_data,
                previous_version,
                enforce_linear_history=runtime_config.migrations.enforce_linear_history,
            )
            chain = {e.record.version: e.previous_version for e in read_chain(store)}
        finally:
            store.close()
    except StorageError as e:
        raise _storage_failure(e) from e
    except ValueError as e:
        error(f"Invalid migration record: {e}")
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR) from e

    linked_to = chain.get(record.version)
    if linked_to is None:
        success(f"Recorded migration {record.version} (no predecessor)")
    else:
        success(f"Recorded migration {record.version} -> {linked_to}")

    if output_mode.is_agent():
        output_mode.add_json("record", record.properties)
        output_mode.add_json("previous_version", linked_to)
        output_mode.flush_json()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-V", help="Show version and exit"),
):
    """
    Graph Migrator - versioned Cypher migrations for Neo4j.

    Each applied migration is recorded as a DataModelMigration node linked
    to its predecessor by a PREVIOUS_MIGRATION relationship.

    Use 'graph-migrator COMMAND --help' for detailed command documentation.
    """
    if version:
        from rich.console import Console

        console = Console()
        console.print(f"[bold cyan]graph-migrator[/bold cyan] version {_read_version()}")
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        from rich.console import Console

        console = Console()
        console.print("[yellow]Use --help to see available commands[/yellow]")
        console.print()
        console.print("Commands:")
        console.print("  migrate   Apply pending migrations")
        console.print("  status    Show the recorded migration chain")
        console.print("  validate  Validate configuration without connecting")
        console.print("  link      Record a single migration node")


def _read_version() -> str:
    """Read version from package metadata."""
    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("graph-migrator")
    except PackageNotFoundError:
        # Package metadata is missing when running from a source checkout
        return "0.1.0"


if __name__ == "__main__":
    app()
