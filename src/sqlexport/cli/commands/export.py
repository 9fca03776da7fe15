"""Commands for exporting database object scripts."""

from __future__ import annotations

import signal
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.markup import escape

from sqlexport.cli.common.context import build_connection_config, build_export_context
from sqlexport.cli.common.exits import (
    EXIT_FAILED,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_USAGE,
    die,
    exit_from_exc,
)
from sqlexport.cli.common.logsetup import setup_logging
from sqlexport.cli.common.options import (
    CategoryOpt,
    DatabaseOpt,
    DriverOpt,
    EncryptOpt,
    HeaderOpt,
    LogFileOpt,
    NoProgressOpt,
    OutputOpt,
    PasswordOpt,
    QuietOpt,
    ServerOpt,
    TimeoutOpt,
    TrustedOpt,
    UsernameOpt,
    VerboseOpt,
)
from sqlexport.cli.common.output import out
from sqlexport.cli.common.progress import RichProgressSink
from sqlexport.cli.tui import prompt_connection
from sqlexport.core.errors import ConnectivityError
from sqlexport.core.export import (
    CancellationToken,
    EmptyDefinitionPolicy,
    ExportOptions,
    FailurePolicy,
    SchemaNamePolicy,
    export_scripts,
)
from sqlexport.core.objects import ALL_CATEGORIES, CatalogCategory, ExportResult
from sqlexport.core.writer import WriteOptions


def _is_interactive() -> bool:
    return sys.stdin.isatty()


@contextmanager
def _cancel_on_interrupt(token: CancellationToken):
    """Turn Ctrl-C into a cooperative cancellation request for the run."""

    def _handler(signum, frame):
        out.warn("Cancellation requested; stopping after the current step...")
        token.cancel()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:  # not in the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _report(result: ExportResult) -> int:
    """Print the outcome of a run and return the process exit code."""
    if result.skipped:
        out.warn(f"Skipped {len(result.skipped)} object(s) without a definition.")
        out.failures_table(result.skipped, title="Skipped objects")

    if result.failures:
        out.failures_table(result.failures, title="Failures")

    if result.fatal is not None:
        out.error(escape(result.fatal.message))
        return EXIT_FAILED

    if result.cancelled:
        out.warn(
            f"Export cancelled; {result.total_written} file(s) were written before stopping."
        )
        return EXIT_INTERRUPTED

    if result.failures:
        out.error(f"Failed to export {len(result.failures)} object(s).")
        return EXIT_FAILED

    out.success("Script generation completed successfully!")
    return EXIT_OK


def export(
    server: str | None = ServerOpt,
    database: str | None = DatabaseOpt,
    output: Path = OutputOpt,
    trusted: bool = TrustedOpt,
    username: str | None = UsernameOpt,
    password: str | None = PasswordOpt,
    timeout: int = TimeoutOpt,
    encrypt: bool = EncryptOpt,
    driver: str = DriverOpt,
    header: bool = HeaderOpt,
    on_error: FailurePolicy = typer.Option(
        FailurePolicy.FAIL_FAST,
        "--on-error",
        case_sensitive=False,
        help="Abort on the first failed object, or continue and report at the end",
    ),
    on_empty: EmptyDefinitionPolicy = typer.Option(
        EmptyDefinitionPolicy.FAIL,
        "--on-empty",
        case_sensitive=False,
        help="Treat objects without a definition (e.g. encrypted) as failures, or skip them",
    ),
    schema_names: SchemaNamePolicy = typer.Option(
        SchemaNamePolicy.AUTO,
        "--schema-names",
        case_sensitive=False,
        help="Prefix filenames with the schema: auto (when several schemas), always, never",
    ),
    category: list[CatalogCategory] = CategoryOpt,
    verbose: bool = VerboseOpt,
    quiet: bool = QuietOpt,
    no_progress: bool = NoProgressOpt,
    log_file: Path | None = LogFileOpt,
):
    """
    Export views, stored procedures, functions and triggers to .sql files.

    Without --server/--database on an interactive terminal, the connection
    details are prompted for.
    """
    log = setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    auth_choice: bool | None = True if trusted else None
    if not server or not database:
        if not _is_interactive():
            die("Missing --server and/or --database.", code=EXIT_USAGE)
        answers = prompt_connection(server=server, database=database, output=output)
        server, database, output = answers.server, answers.database, answers.output
        auth_choice, username, password = answers.trusted, answers.username, answers.password

    config = build_connection_config(
        server=server,
        database=database,
        trusted=auth_choice,
        username=username,
        password=password,
        timeout=timeout,
        encrypt=encrypt,
        driver=driver,
    )

    if not quiet:
        out.header("SQL Server Database Script Generator")
        out.kv(
            {
                "Started at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
                "Server": config.server,
                "Database": config.database,
                "Authentication": config.auth_label,
                "Connection": config.redacted().connection_string(),
                "Output directory": output,
            }
        )

    options = ExportOptions(
        output_root=output,
        write=WriteOptions(include_header=header, database=config.database),
        on_error=on_error,
        on_empty_definition=on_empty,
        schema_names=schema_names,
        categories=tuple(category) if category else ALL_CATEGORIES,
    )

    appctx = build_export_context(config)
    token = CancellationToken()
    sink = RichProgressSink(show_progress=not (no_progress or quiet), show_summary=not quiet)

    with _cancel_on_interrupt(token), appctx.adapter, sink:
        result = export_scripts(
            appctx.adapter, options, progress=sink, cancel=token, logger=log
        )

    code = _report(result)
    if code:
        raise typer.Exit(code)


def check(
    server: str | None = ServerOpt,
    database: str | None = DatabaseOpt,
    trusted: bool = TrustedOpt,
    username: str | None = UsernameOpt,
    password: str | None = PasswordOpt,
    timeout: int = TimeoutOpt,
    encrypt: bool = EncryptOpt,
    driver: str = DriverOpt,
    verbose: bool = VerboseOpt,
):
    """Check that the database is reachable with the given credentials."""
    setup_logging(verbose=verbose)
    if not server or not database:
        die("Missing --server and/or --database.", code=EXIT_USAGE)

    config = build_connection_config(
        server=server,
        database=database,
        trusted=True if trusted else None,
        username=username,
        password=password,
        timeout=timeout,
        encrypt=encrypt,
        driver=driver,
    )
    appctx = build_export_context(config)

    try:
        with appctx.adapter, out.status(f"Connecting to {config.server}..."):
            appctx.adapter.check_connectivity()
    except ConnectivityError as exc:
        exit_from_exc(exc, message=escape(f"{exc}\n{exc.hint}"), code=EXIT_FAILED)

    out.success(f"Connected to {config.server}/{config.database} ({config.auth_label}).")
