from __future__ import annotations

import logging
from typing import Any, Iterator

import pyodbc

from sqlexport.core.connection import ConnectionConfig, diagnose_connect_error
from sqlexport.core.errors import ConnectivityCause, ConnectivityError
from sqlexport.core.objects import CatalogCategory

logger = logging.getLogger(__name__)

_VIEWS_SQL = """
SELECT v.name AS name,
       s.name AS schema_name,
       m.definition AS definition,
       v.create_date AS create_date,
       v.modify_date AS modify_date,
       v.is_ms_shipped AS is_ms_shipped
FROM sys.views v
INNER JOIN sys.schemas s ON v.schema_id = s.schema_id
LEFT JOIN sys.sql_modules m ON v.object_id = m.object_id
WHERE v.is_ms_shipped = 0
ORDER BY s.name, v.name
"""

_PROCEDURES_SQL = """
SELECT p.name AS name,
       s.name AS schema_name,
       m.definition AS definition,
       p.create_date AS create_date,
       p.modify_date AS modify_date,
       p.is_ms_shipped AS is_ms_shipped
FROM sys.procedures p
INNER JOIN sys.schemas s ON p.schema_id = s.schema_id
LEFT JOIN sys.sql_modules m ON p.object_id = m.object_id
WHERE p.is_ms_shipped = 0
ORDER BY s.name, p.name
"""

_FUNCTIONS_SQL = """
SELECT o.name AS name,
       s.name AS schema_name,
       m.definition AS definition,
       o.create_date AS create_date,
       o.modify_date AS modify_date,
       o.is_ms_shipped AS is_ms_shipped,
       RTRIM(o.type) AS type
FROM sys.objects o
INNER JOIN sys.schemas s ON o.schema_id = s.schema_id
LEFT JOIN sys.sql_modules m ON o.object_id = m.object_id
WHERE o.type IN ('FN', 'IF', 'TF')
  AND o.is_ms_shipped = 0
ORDER BY s.name, o.name
"""

# Database-level (DDL) triggers have no parent object; the LEFT JOIN keeps
# them with a NULL parent_name.
_TRIGGERS_SQL = """
SELECT t.name AS name,
       COALESCE(ps.name, '') AS schema_name,
       m.definition AS definition,
       t.create_date AS create_date,
       t.modify_date AS modify_date,
       t.is_ms_shipped AS is_ms_shipped,
       po.name AS parent_name
FROM sys.triggers t
LEFT JOIN sys.objects po ON t.parent_class = 1 AND t.parent_id = po.object_id
LEFT JOIN sys.schemas ps ON po.schema_id = ps.schema_id
LEFT JOIN sys.sql_modules m ON t.object_id = m.object_id
WHERE t.is_ms_shipped = 0
ORDER BY COALESCE(ps.name, ''), t.name
"""

CATALOG_QUERIES: dict[CatalogCategory, str] = {
    CatalogCategory.VIEWS: _VIEWS_SQL,
    CatalogCategory.STORED_PROCEDURES: _PROCEDURES_SQL,
    CatalogCategory.FUNCTIONS: _FUNCTIONS_SQL,
    CatalogCategory.TRIGGERS: _TRIGGERS_SQL,
}


def connect(config: ConnectionConfig) -> pyodbc.Connection:
    """Open a pyodbc connection, translating failures into ConnectivityError."""
    try:
        conn = pyodbc.connect(
            config.connection_string(),
            timeout=config.timeout,
            autocommit=True,
        )
    except pyodbc.Error as exc:
        raise diagnose_connect_error(exc) from exc
    conn.timeout = config.timeout
    return conn


class SqlServerCatalogAdapter:
    """Adapter around pyodbc for reading the SQL Server system catalog."""

    def __init__(
        self,
        config: ConnectionConfig,
        connection: Any | None = None,
    ) -> None:
        """
        Create an adapter for a SQL Server database.

        The connection is opened lazily on first use unless one is passed in.
        """
        self.config = config
        self._conn = connection

    def __enter__(self) -> SqlServerCatalogAdapter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connection(self):
        if self._conn is None:
            logger.debug("Opening connection to %s/%s", self.config.server, self.config.database)
            self._conn = connect(self.config)
        return self._conn

    def check_connectivity(self) -> None:
        """Open the connection and confirm the expected database is current."""
        try:
            cursor = self.connection.cursor()
            cursor.execute("SELECT DB_NAME()")
            row = cursor.fetchone()
        except ConnectivityError:
            raise
        except pyodbc.Error as exc:
            raise diagnose_connect_error(exc) from exc

        current = row[0] if row else None
        if not current or current.lower() != self.config.database.lower():
            raise ConnectivityError(
                ConnectivityCause.DATABASE_NOT_FOUND,
                f"connected to '{current}' instead of '{self.config.database}'",
            )
        logger.debug("Connected to database %s", current)

    def query(self, category: CatalogCategory) -> Iterator[dict[str, Any]]:
        """Run the catalog query for a category and yield rows as dicts."""
        cursor = self.connection.cursor()
        cursor.execute(CATALOG_QUERIES[category])
        columns = [c[0] for c in cursor.description]
        for row in cursor:
            yield dict(zip(columns, row))

    def close(self) -> None:
        """Close the connection if it was opened."""
        if self._conn is None:
            return
        try:
            self._conn.close()
        except pyodbc.Error as exc:
            logger.warning("Closing the connection failed: %s", exc)
        finally:
            self._conn = None
