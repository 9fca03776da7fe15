"""Application context management for the CLI."""

from __future__ import annotations

from dataclasses import dataclass

from sqlexport.cli.common.exits import EXIT_USAGE, die
from sqlexport.core.adapters.sqlserver import SqlServerCatalogAdapter
from sqlexport.core.connection import ConnectionConfig


@dataclass
class ExportAppContext:
    """Application context holding the connection settings and catalog adapter."""

    config: ConnectionConfig
    adapter: SqlServerCatalogAdapter


def build_connection_config(
    *,
    server: str,
    database: str,
    trusted: bool | None,
    username: str | None,
    password: str | None,
    timeout: int,
    encrypt: bool,
    driver: str,
) -> ConnectionConfig:
    """Build and validate a ConnectionConfig, exiting on invalid input.

    `trusted` is True or False when the authentication mode was chosen
    explicitly. With None, Windows (trusted) authentication is used only if
    neither a username nor a password was supplied, so a lone password
    still fails validation with "Username is required".
    """
    if trusted is None:
        use_trusted = not (username or password)
    else:
        use_trusted = trusted
    config = ConnectionConfig(
        server=server.strip(),
        database=database.strip(),
        trusted=use_trusted,
        username="" if use_trusted else (username or "").strip(),
        password="" if use_trusted else (password or ""),
        timeout=timeout,
        encrypt=encrypt,
        driver=driver,
    )
    try:
        config.validate()
    except ValueError as exc:
        die(str(exc), code=EXIT_USAGE)
    return config


def build_export_context(config: ConnectionConfig) -> ExportAppContext:
    """Build the application context; the connection is opened lazily."""
    return ExportAppContext(config=config, adapter=SqlServerCatalogAdapter(config))
