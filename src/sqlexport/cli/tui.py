"""Interactive prompts for connection details."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from sqlexport.cli.common.output import out


@dataclass
class PromptedConnection:
    """Answers collected by the interactive connection prompt."""

    server: str
    database: str
    trusted: bool
    username: str
    password: str
    output: Path


def prompt_connection(
    *,
    server: str | None = None,
    database: str | None = None,
    output: Path | None = None,
) -> PromptedConnection:
    """
    Ask for the connection details that were not given on the command line.

    Values already supplied are kept and not asked again. Authentication
    defaults to Windows (trusted) authentication.
    """
    out.header("Enter database connection details:")

    server = server or out.ask_text("SQL Server name (e.g., localhost, .\\SQLEXPRESS):")
    database = database or out.ask_text("Database name:")

    trusted = out.confirm("Use Windows Authentication?", default=True)
    username = ""
    password = ""
    if not trusted:
        username = out.ask_text("Username:")
        password = out.ask_password("Password:")

    default_output = str(output) if output else "./Scripts"
    chosen = out.ask_text("Output directory:", default=default_output)

    return PromptedConnection(
        server=server,
        database=database,
        trusted=trusted,
        username=username,
        password=password,
        output=Path(chosen or default_output),
    )
