"""sqlshuttle CLI - Command-line interface for resumable SQL dump and import."""

from typing import Any, Optional

import typer
from pathlib import Path
from typing_extensions import Annotated
from sqlalchemy.engine import make_url

from sqlshuttle import __version__
from sqlshuttle.core.checkpoint import CheckpointStore
from sqlshuttle.core.config import settings
from sqlshuttle.core.runner import ExportRunner, ImportRunner
from sqlshuttle.exceptions import (
    ConfigurationError,
    CorruptCheckpointError,
    ShuttleError,
    StatementExecutionError,
    TransportError,
    ValidationError,
)
from sqlshuttle.models.results import ExportResult, ImportResult
from sqlshuttle.models.transfer import TransferConfig
from sqlshuttle.operators import backend_name, create_connector
from sqlshuttle.utils.logging import configure_logging
from sqlshuttle.utils.yaml_parser import build_config, load_profile

app = typer.Typer(
    name="sqlshuttle",
    help="sqlshuttle - Resumable SQL dump and import for large databases",
    add_completion=True,
)

checkpoint_app = typer.Typer(help="Inspect or remove checkpoint files")
app.add_typer(checkpoint_app, name="checkpoint")

URL_ENVVAR = "SQLSHUTTLE_URL"

# CLI parameter name -> TransferConfig field
EXPORT_OPTIONS = {
    "gzip": "gzip",
    "tables": "include_tables",
    "exclude": "exclude_patterns",
    "chunk_size": "chunk_size",
    "extended_insert": "extended_insert",
    "hex_blob": "hex_encode_binary",
    "drop_table": "drop_table",
    "routines": "routines",
    "triggers": "triggers",
    "views": "include_views",
}

IMPORT_OPTIONS = {
    "batch_size": "batch_size",
    "batch_time": "batch_time_seconds",
    "stop_on_error": "stop_on_error",
    "ignore_table_exists": "ignore_table_exists",
    "encoding": "encoding",
}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"sqlshuttle version {__version__}")
        raise typer.Exit()


def _explicit_options(ctx: typer.Context, mapping: dict[str, str]) -> dict[str, Any]:
    """TransferConfig overrides for the options given on the command line."""
    overrides = {}
    for param, field in mapping.items():
        source = ctx.get_parameter_source(param)
        if source is not None and source.name != "DEFAULT":
            overrides[field] = ctx.params[param]
    return overrides


def _resolve(
    url: Optional[str],
    profile: Optional[Path],
    overrides: dict[str, Any],
) -> tuple[str, TransferConfig]:
    """Merge profile and command-line options; the command line wins."""
    profile_url = None
    if profile is not None:
        profile_url, config = load_profile(profile, overrides)
    else:
        config = build_config(overrides=overrides, source="command line")

    url = url or profile_url
    if not url:
        raise ConfigurationError(f"No database URL: use --url, {URL_ENVVAR}, or a profile 'connection'")
    return url, config


def _default_checkpoint(url: str, kind: str) -> Path:
    database = make_url(url).database or kind
    name = Path(database).stem if backend_name(url) == "sqlite" else database
    return settings.default_checkpoint_path(f"{name}_{kind}")


def _display_import_result(result: ImportResult, verbose: bool = False) -> None:
    """Display import result to console."""
    typer.echo("\n" + "=" * 60)
    if result.success:
        typer.secho("Import completed!", fg=typer.colors.GREEN, bold=True)
    else:
        typer.secho("Import completed with errors!", fg=typer.colors.RED, bold=True)

    typer.echo(f"\nSource: {result.source}")
    if result.resumed_from:
        typer.echo(f"Resumed from offset: {result.resumed_from:,}")
    typer.echo(f"Statements executed: {result.statements_executed:,}")
    typer.echo(f"Errors: {result.errors}")
    if result.stats.warnings:
        typer.echo(f"Warnings: {result.stats.warnings}")
    typer.echo(f"Batches committed: {result.stats.batches_committed}")
    typer.echo(f"Duration: {result.duration_seconds:.2f}s")

    if result.stats.error_messages and (verbose or not result.success):
        typer.echo("\nErrors:")
        for message in result.stats.error_messages[:20 if not verbose else None]:
            typer.echo(f"  ✗ {message}")

    if result.checkpoint_cleared:
        typer.echo("\nCheckpoint cleared.")
    elif not result.success:
        typer.echo("\nCheckpoint kept; rerun with --resume to continue.")


def _display_export_result(result: ExportResult, verbose: bool = False) -> None:
    """Display export result to console (stderr, so stdout can carry the dump)."""
    typer.echo("\n" + "=" * 60, err=True)
    if result.success:
        typer.secho("Export completed!", fg=typer.colors.GREEN, bold=True, err=True)
    else:
        typer.secho("Export completed with errors!", fg=typer.colors.RED, bold=True, err=True)

    typer.echo(f"\nOutput: {result.output}", err=True)
    typer.echo(f"Tables: {len(result.tables)} ({result.tables_failed} failed)", err=True)
    typer.echo(f"Rows exported: {result.rows_exported:,}", err=True)
    typer.echo(f"Statements written: {result.statements_written:,}", err=True)
    typer.echo(f"Duration: {result.duration_seconds:.2f}s", err=True)

    if verbose and result.tables:
        typer.echo("\nTable details:", err=True)
        for table in result.tables:
            status = "✓" if table.success else "✗"
            note = " (skipped, already exported)" if table.skipped else ""
            typer.echo(f"  {status} {table.table}: {table.rows_exported:,} rows{note}", err=True)
            if not table.success and table.error_message:
                typer.echo(f"    Error: {table.error_message}", err=True)

    for error in result.errors:
        typer.echo(f"  ✗ {error}", err=True)


def _fail(prefix: str, error: Exception, verbose: bool = False) -> None:
    typer.secho(f"{prefix}: {error}", fg=typer.colors.RED, err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
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
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug logging and detailed output"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only log errors"),
    ] = False,
    log_file: Annotated[
        Optional[Path],
        typer.Option("--log-file", help="Also write logs to this file"),
    ] = None,
) -> None:
    """sqlshuttle - Export and import SQL dumps with checkpointed resume."""
    configure_logging(level="DEBUG" if verbose else None, log_file=log_file, quiet=quiet)
    ctx.obj = {"verbose": verbose}


def _verbose(ctx: typer.Context) -> bool:
    return bool((ctx.obj or {}).get("verbose"))


@app.command("export")
def export_command(
    ctx: typer.Context,
    url: Annotated[
        Optional[str],
        typer.Option("--url", "-u", envvar=URL_ENVVAR, help="Source database URL"),
    ] = None,
    output: Annotated[
        str,
        typer.Option("--output", "-o", help="Output file ('-' for stdout)"),
    ] = "-",
    gzip: Annotated[
        bool,
        typer.Option("--gzip", "-z", help="Compress output with gzip"),
    ] = False,
    tables: Annotated[
        Optional[str],
        typer.Option("--tables", "-t", help="Comma-separated tables to export (overrides --exclude)"),
    ] = None,
    exclude: Annotated[
        Optional[str],
        typer.Option("--exclude", "-x", help="Comma-separated patterns: 'prefix%', '%suffix', 'wild*card'"),
    ] = None,
    chunk_size: Annotated[
        int,
        typer.Option("--chunk-size", "-c", help="Rows per fetch window"),
    ] = 1000,
    extended_insert: Annotated[
        bool,
        typer.Option("--extended-insert/--no-extended-insert", help="Multi-row INSERT statements"),
    ] = True,
    hex_blob: Annotated[
        bool,
        typer.Option("--hex-blob", help="Write binary values as hexadecimal literals"),
    ] = False,
    drop_table: Annotated[
        bool,
        typer.Option("--drop-table/--no-drop-table", help="Add DROP ... IF EXISTS before CREATE"),
    ] = True,
    routines: Annotated[
        bool,
        typer.Option("--routines/--no-routines", help="Export procedures and functions"),
    ] = True,
    triggers: Annotated[
        bool,
        typer.Option("--triggers/--no-triggers", help="Export triggers"),
    ] = True,
    views: Annotated[
        bool,
        typer.Option("--views/--no-views", help="Export views"),
    ] = True,
    no_data: Annotated[
        bool,
        typer.Option("--no-data", help="Schema only"),
    ] = False,
    checkpoint: Annotated[
        Optional[Path],
        typer.Option("--checkpoint", help="Table-level checkpoint file (enables --resume)"),
    ] = None,
    resume: Annotated[
        bool,
        typer.Option("--resume", help="Continue an interrupted export"),
    ] = False,
    profile: Annotated[
        Optional[Path],
        typer.Option("--profile", "-p", help="YAML profile with connection and options"),
    ] = None,
) -> None:
    """Export a database to a SQL dump."""
    verbose = _verbose(ctx)
    try:
        overrides = _explicit_options(ctx, EXPORT_OPTIONS)
        if no_data:
            overrides["include_data"] = False
        url, config = _resolve(url, profile, overrides)

        output_path = None if output == "-" else output
        if checkpoint is None and output_path is not None:
            checkpoint = _default_checkpoint(url, "export")

        with create_connector(url) as connector:
            runner = ExportRunner(connector, config, checkpoint)
            result = runner.run(output_path, resume=resume)

        _display_export_result(result, verbose)
        if not result.success:
            raise typer.Exit(code=1)

    except (ValidationError, ConfigurationError, CorruptCheckpointError) as e:
        _fail("Configuration error", e)
    except TransportError as e:
        _fail("Connection lost", e, verbose)
    except ShuttleError as e:
        _fail("Export failed", e, verbose)
    except OSError as e:
        _fail("I/O error", e, verbose)


@app.command("import")
def import_command(
    ctx: typer.Context,
    file: Annotated[
        Optional[Path],
        typer.Argument(help="SQL file (.sql, .sql.gz or .zip); optional with --resume"),
    ] = None,
    url: Annotated[
        Optional[str],
        typer.Option("--url", "-u", envvar=URL_ENVVAR, help="Target database URL"),
    ] = None,
    batch_size: Annotated[
        int,
        typer.Option("--batch-size", "-b", help="Statements per committed batch"),
    ] = 100,
    batch_time: Annotated[
        int,
        typer.Option("--batch-time", help="Maximum seconds per batch"),
    ] = 30,
    stop_on_error: Annotated[
        bool,
        typer.Option("--stop-on-error", help="Abort on the first failing statement"),
    ] = False,
    ignore_table_exists: Annotated[
        bool,
        typer.Option("--ignore-table-exists", help="Treat 'table already exists' as a warning"),
    ] = False,
    encoding: Annotated[
        str,
        typer.Option("--encoding", help="Text encoding of the SQL file"),
    ] = "utf-8",
    checkpoint: Annotated[
        Optional[Path],
        typer.Option("--checkpoint", help="Checkpoint file (default: per-database file in the checkpoint dir)"),
    ] = None,
    resume: Annotated[
        bool,
        typer.Option("--resume", "-r", help="Continue from the last checkpoint"),
    ] = False,
    profile: Annotated[
        Optional[Path],
        typer.Option("--profile", "-p", help="YAML profile with connection and options"),
    ] = None,
) -> None:
    """Import a SQL dump into a database."""
    verbose = _verbose(ctx)
    try:
        overrides = _explicit_options(ctx, IMPORT_OPTIONS)
        url, config = _resolve(url, profile, overrides)
        checkpoint = checkpoint or _default_checkpoint(url, "import")

        with create_connector(url) as connector:
            runner = ImportRunner(connector, config, checkpoint)
            result = runner.run(file, resume=resume)

        _display_import_result(result, verbose)
        if not result.success:
            raise typer.Exit(code=1)

    except (ValidationError, ConfigurationError, CorruptCheckpointError) as e:
        _fail("Configuration error", e)
    except TransportError as e:
        _fail("Connection lost (rerun with --resume)", e, verbose)
    except StatementExecutionError as e:
        _fail("Import stopped (rerun with --resume)", e, verbose)
    except ShuttleError as e:
        _fail("Import failed", e, verbose)
    except OSError as e:
        _fail("I/O error", e, verbose)


@checkpoint_app.command("show")
def checkpoint_show(
    path: Annotated[Path, typer.Argument(help="Checkpoint file")],
) -> None:
    """Show a checkpoint."""
    store = CheckpointStore(path)
    if not store.exists():
        typer.secho(f"No checkpoint at {path}", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)
    try:
        state = store.load()
    except CorruptCheckpointError as e:
        _fail("✗ Corrupt checkpoint", e)

    typer.echo(f"File: {state.file}")
    typer.echo(f"Position: {state.position:,}")
    typer.echo(f"Statements: {state.statements_executed:,}")
    if state.last_statement_hash:
        typer.echo(f"Last statement: {state.last_statement_hash}")
    if state.completed_tables:
        typer.echo(f"Completed tables: {', '.join(state.completed_tables)}")
    typer.echo(f"Started: {state.started_at.isoformat(sep=' ', timespec='seconds')}")
    typer.echo(f"Updated: {state.updated_at.isoformat(sep=' ', timespec='seconds')}")


@checkpoint_app.command("clear")
def checkpoint_clear(
    path: Annotated[Path, typer.Argument(help="Checkpoint file")],
) -> None:
    """Delete a checkpoint."""
    if CheckpointStore(path).clear():
        typer.secho(f"✓ Removed {path}", fg=typer.colors.GREEN)
    else:
        typer.echo(f"No checkpoint at {path}")


@app.command()
def validate(
    profile_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the YAML profile",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    check_connection: Annotated[
        bool,
        typer.Option("--check-connection", help="Also try to connect"),
    ] = False,
) -> None:
    """Validate a profile YAML file."""
    try:
        typer.echo(f"Validating profile: {profile_path}")
        url, config = load_profile(profile_path)

        typer.secho("✓ Profile is valid!", fg=typer.colors.GREEN, bold=True)
        if url:
            typer.echo(f"\nConnection: {make_url(url).render_as_string(hide_password=True)}")
            typer.echo(f"Backend: {backend_name(url)}")
        typer.echo("\nOptions:")
        for key, value in config.model_dump().items():
            if isinstance(value, (set, list)):
                value = ", ".join(sorted(value)) or "-"
            typer.echo(f"  {key}: {value}")

        if check_connection:
            if not url:
                raise ConfigurationError("Profile has no 'connection' to check")
            connector = create_connector(url)
            if not connector.test_connection():
                typer.secho("✗ Connection failed", fg=typer.colors.RED, err=True)
                raise typer.Exit(code=1)
            connector.disconnect()
            typer.secho("✓ Connection OK", fg=typer.colors.GREEN)

    except (ValidationError, ConfigurationError) as e:
        _fail("✗ Validation failed", e)


if __name__ == "__main__":
    app()
