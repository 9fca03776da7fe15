"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from sqlexport.cli.common.output import out

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def die(msg: str, code: int = EXIT_FAILED) -> NoReturn:
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = EXIT_FAILED) -> NoReturn:
    """
    Print an error message and exit with a given code, chaining the cause.
    """
    out.error(message)
    raise typer.Exit(code) from exc
