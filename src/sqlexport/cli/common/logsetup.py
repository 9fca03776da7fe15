"""Logging configuration for the CLI."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from rich.logging import RichHandler

from sqlexport.cli.common.output import console

FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(*, verbose: bool, quiet: bool) -> int:
    """--verbose wins over --quiet; the default level is INFO."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the `sqlexport` logger tree and return its root logger."""
    level = resolve_level(verbose=verbose, quiet=quiet)
    root = logging.getLogger("sqlexport")
    root.setLevel(logging.DEBUG)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=verbose,
        log_time_format=DATE_FORMAT,
    )
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        formatter = logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT)
        formatter.converter = time.gmtime
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
