import pytest

pyodbc = pytest.importorskip("pyodbc")

from sqlexport.core.adapters import sqlserver  # noqa: E402
from sqlexport.core.adapters.sqlserver import (  # noqa: E402
    CATALOG_QUERIES,
    SqlServerCatalogAdapter,
)
from sqlexport.core.catalog import CatalogReader  # noqa: E402
from sqlexport.core.connection import ConnectionConfig  # noqa: E402
from sqlexport.core.errors import ConnectivityCause, ConnectivityError  # noqa: E402
from sqlexport.core.objects import CatalogCategory, ObjectKind  # noqa: E402

_CONFIG = ConnectionConfig(server="db", database="Sales")


class _Cursor:
    def __init__(self, results):
        self.results = results
        self.description = None
        self._rows = []
        self.executed: list[str] = []

    def execute(self, sql):
        self.executed.append(sql)
        columns, rows = self.results(sql)
        self.description = [(c, None, None, None, None, None, None) for c in columns]
        self._rows = list(rows)
        return self

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def __iter__(self):
        return iter(self._rows)


class _Connection:
    def __init__(self, results):
        self.cursor_obj = _Cursor(results)
        self.closed = False

    def cursor(self):
        return self.cursor_obj

    def close(self):
        self.closed = True


def test_every_category_has_a_user_only_ordered_query():
    for category in CatalogCategory:
        sql = CATALOG_QUERIES[category]
        assert "is_ms_shipped = 0" in sql
        assert "ORDER BY" in sql


def test_check_connectivity_accepts_matching_database():
    conn = _Connection(lambda sql: (["db"], [("sales",)]))

    SqlServerCatalogAdapter(_CONFIG, connection=conn).check_connectivity()

    assert conn.cursor_obj.executed == ["SELECT DB_NAME()"]


def test_check_connectivity_rejects_other_database():
    conn = _Connection(lambda sql: (["db"], [("master",)]))

    with pytest.raises(ConnectivityError) as excinfo:
        SqlServerCatalogAdapter(_CONFIG, connection=conn).check_connectivity()

    assert excinfo.value.cause is ConnectivityCause.DATABASE_NOT_FOUND


def test_connect_failure_is_diagnosed(monkeypatch):
    def _connect(*args, **kwargs):
        raise pyodbc.Error(
            "28000",
            "[28000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]"
            "Login failed for user 'sa'. (18456) (SQLDriverConnect)",
        )

    monkeypatch.setattr(sqlserver.pyodbc, "connect", _connect)

    with pytest.raises(ConnectivityError) as excinfo:
        SqlServerCatalogAdapter(_CONFIG).check_connectivity()

    assert excinfo.value.cause is ConnectivityCause.AUTHENTICATION


def test_query_rows_feed_the_catalog_reader():
    columns = ["name", "schema_name", "definition", "create_date", "modify_date",
               "is_ms_shipped", "type"]
    rows = [
        ("fn_rows", "dbo", "CREATE FUNCTION fn_rows()", None, None, False, "IF"),
        ("fn_total", "dbo", "CREATE FUNCTION fn_total()", None, None, False, "FN"),
    ]
    conn = _Connection(lambda sql: (columns, rows))

    with SqlServerCatalogAdapter(_CONFIG, connection=conn) as adapter:
        objects = CatalogReader(adapter).fetch_all(CatalogCategory.FUNCTIONS)

    assert [(o.name, o.kind) for o in objects] == [
        ("fn_rows", ObjectKind.TABLE_VALUED_FUNCTION),
        ("fn_total", ObjectKind.SCALAR_FUNCTION),
    ]
    assert conn.cursor_obj.executed == [CATALOG_QUERIES[CatalogCategory.FUNCTIONS]]
    assert conn.closed is True
