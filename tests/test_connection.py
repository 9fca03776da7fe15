import pytest

from sqlexport.core.connection import (
    ConnectionConfig,
    classify_connect_error,
    diagnose_connect_error,
)
from sqlexport.core.errors import ConnectivityCause, ConnectivityError


class _DriverError(Exception):
    """Mimics pyodbc.Error, whose args are (sqlstate, message)."""


def _err(state: str, message: str) -> _DriverError:
    return _DriverError(state, message)


def test_trusted_connection_string():
    cs = ConnectionConfig(server="localhost", database="Sales").connection_string()

    assert "SERVER=localhost;" in cs
    assert "DATABASE=Sales;" in cs
    assert "Trusted_Connection=yes;" in cs
    assert "UID=" not in cs
    assert "Connection Timeout=30;" in cs


def test_sql_login_connection_string_quotes_password():
    cs = ConnectionConfig(
        server="db", database="Sales", trusted=False, username="sa", password="p;w"
    ).connection_string()

    assert "UID=sa;" in cs
    assert "PWD={p;w};" in cs
    assert "Trusted_Connection" not in cs


def test_connection_string_quotes_every_user_value():
    cs = ConnectionConfig(
        server="db;Encrypt=no",
        database="Sales {EU}",
        trusted=False,
        username="ops;admin",
        password="pw",
    ).connection_string()

    assert "SERVER={db;Encrypt=no};" in cs
    assert "DATABASE={Sales {EU}}};" in cs
    assert "UID={ops;admin};" in cs
    assert "PWD=pw;" in cs


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"server": "", "database": "Sales"}, "Server name is required"),
        ({"server": "db", "database": " "}, "Database name is required"),
        ({"server": "db", "database": "Sales", "trusted": False}, "Username is required"),
        (
            {"server": "db", "database": "Sales", "trusted": False, "username": "sa"},
            "Password is required",
        ),
        ({"server": "db", "database": "Sales", "timeout": 0}, "Timeout"),
    ],
)
def test_validate_rejects_incomplete_settings(kwargs, message):
    with pytest.raises(ValueError, match=message):
        ConnectionConfig(**kwargs).validate()


def test_redacted_masks_password():
    cfg = ConnectionConfig(server="db", database="x", trusted=False, username="sa", password="secret")

    assert cfg.redacted().password == "***"
    assert "secret" not in repr(cfg.redacted())


@pytest.mark.parametrize(
    ("exc", "cause"),
    [
        (
            _err(
                "28000",
                "[28000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]"
                "Login failed for user 'sa'. (18456) (SQLDriverConnect)",
            ),
            ConnectivityCause.AUTHENTICATION,
        ),
        (
            _err(
                "42000",
                "[42000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]Cannot open "
                "database \"Nope\" requested by the login. The login failed. (4060) "
                "(SQLDriverConnect)",
            ),
            ConnectivityCause.DATABASE_NOT_FOUND,
        ),
        (
            _err("HYT00", "[HYT00] [Microsoft][ODBC Driver 18 for SQL Server]Login timeout expired (0)"),
            ConnectivityCause.TIMEOUT,
        ),
        (
            _err(
                "08001",
                "[08001] [Microsoft][ODBC Driver 18 for SQL Server]TCP Provider: "
                "Error code 0x2749 (10057) (SQLDriverConnect)",
            ),
            ConnectivityCause.HOST_UNREACHABLE,
        ),
        (TimeoutError("timed out"), ConnectivityCause.TIMEOUT),
        (RuntimeError("something odd"), ConnectivityCause.UNKNOWN),
    ],
)
def test_classify_connect_error(exc, cause):
    assert classify_connect_error(exc) is cause


def test_diagnose_strips_driver_prefixes():
    err = diagnose_connect_error(
        _err(
            "28000",
            "[28000] [Microsoft][ODBC Driver 18 for SQL Server][SQL Server]"
            "Login failed for user 'sa'. (18456) (SQLDriverConnect)",
        )
    )

    assert isinstance(err, ConnectivityError)
    assert err.cause is ConnectivityCause.AUTHENTICATION
    assert str(err) == "Connection failed (authentication): Login failed for user 'sa'. (18456)"
    assert "password" in err.hint
