"""Common CLI options for the CLI."""

from pathlib import Path

import typer

from sqlexport.core.connection import DEFAULT_DRIVER, DEFAULT_TIMEOUT

ServerOpt = typer.Option(
    None,
    "--server",
    "-s",
    envvar="SQLEXPORT_SERVER",
    help="SQL Server name or instance (e.g. localhost, .\\SQLEXPRESS)",
)

DatabaseOpt = typer.Option(
    None,
    "--database",
    "-d",
    envvar="SQLEXPORT_DATABASE",
    help="Database name",
)

TrustedOpt = typer.Option(
    False,
    "--trusted",
    "-t",
    help="Use Windows Authentication (default when neither username nor password is given)",
)

UsernameOpt = typer.Option(
    None,
    "--username",
    "-u",
    envvar="SQLEXPORT_USERNAME",
    help="SQL Server login",
)

PasswordOpt = typer.Option(
    None,
    "--password",
    "-p",
    envvar="SQLEXPORT_PASSWORD",
    help="SQL Server password",
)

TimeoutOpt = typer.Option(
    DEFAULT_TIMEOUT,
    "--timeout",
    min=1,
    help="Seconds allowed for connecting and for each catalog query",
)

EncryptOpt = typer.Option(
    False,
    "--encrypt/--no-encrypt",
    help="Request an encrypted connection",
)

DriverOpt = typer.Option(
    DEFAULT_DRIVER,
    "--driver",
    envvar="SQLEXPORT_DRIVER",
    help="ODBC driver name",
)

OutputOpt = typer.Option(
    Path("./Scripts"),
    "--output",
    "-o",
    help="Output directory",
)

HeaderOpt = typer.Option(
    False,
    "--header/--no-header",
    help="Prepend a metadata comment banner to each script",
)

CategoryOpt = typer.Option(
    [],
    "--category",
    "-c",
    help="Only export this category (views, procedures, functions, triggers). Reusable.",
    show_default=False,
)

VerboseOpt = typer.Option(False, "--verbose", "-v", help="Show debug output")

QuietOpt = typer.Option(False, "--quiet", "-q", help="Only show warnings and errors")

NoProgressOpt = typer.Option(False, "--no-progress", help="Disable progress bars")

LogFileOpt = typer.Option(
    None,
    "--log-file",
    help="Also write log messages to this file",
)
