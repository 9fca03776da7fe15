"""Connection settings and connectivity diagnosis for SQL Server.

This module holds the resolved connection descriptor consumed by the
export pipeline and the rules that translate raw driver errors into a
`ConnectivityError` with a specific cause. Keeping these rules in one place
means the CLI can tell an operator *why* a connection failed instead of
echoing an ODBC error string.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from sqlexport.core.errors import ConnectivityCause, ConnectivityError

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"
DEFAULT_TIMEOUT = 30


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Resolved connection descriptor.

    Attributes:
        server: Server name or `host\\instance`.
        database: Database to export from.
        trusted: Use Windows (trusted) authentication.
        username: SQL login, required when `trusted` is False.
        password: SQL password, required when `trusted` is False.
        timeout: Seconds allowed for the connect and for each catalog query.
        encrypt: Request an encrypted connection.
        trust_server_certificate: Skip server certificate validation.
        driver: ODBC driver name.
    """

    server: str
    database: str
    trusted: bool = True
    username: str = ""
    password: str = ""
    timeout: int = DEFAULT_TIMEOUT
    encrypt: bool = False
    trust_server_certificate: bool = True
    driver: str = DEFAULT_DRIVER

    def validate(self) -> None:
        """Raise ValueError if the descriptor cannot be used to connect."""
        if not self.server.strip():
            raise ValueError("Server name is required.")
        if not self.database.strip():
            raise ValueError("Database name is required.")
        if not self.trusted:
            if not self.username.strip():
                raise ValueError(
                    "Username is required when not using Windows Authentication."
                )
            if not self.password:
                raise ValueError(
                    "Password is required when not using Windows Authentication."
                )
        if self.timeout < 1:
            raise ValueError("Timeout must be at least 1 second.")

    def connection_string(self) -> str:
        """Build the ODBC connection string for this descriptor."""
        parts = [
            f"DRIVER={{{self.driver}}}",
            f"SERVER={_quote_odbc(self.server)}",
            f"DATABASE={_quote_odbc(self.database)}",
        ]
        if self.trusted:
            parts.append("Trusted_Connection=yes")
        else:
            parts.append(f"UID={_quote_odbc(self.username)}")
            parts.append(f"PWD={_quote_odbc(self.password)}")
        parts.append(f"Encrypt={'yes' if self.encrypt else 'no'}")
        parts.append(
            f"TrustServerCertificate={'yes' if self.trust_server_certificate else 'no'}"
        )
        parts.append(f"Connection Timeout={self.timeout}")
        return ";".join(parts) + ";"

    def redacted(self) -> ConnectionConfig:
        """Return a copy safe for display (password masked)."""
        return replace(self, password="***" if self.password else "")

    @property
    def auth_label(self) -> str:
        return "Windows (trusted)" if self.trusted else f"SQL login '{self.username}'"


def _quote_odbc(value: str) -> str:
    """Brace-quote an ODBC attribute value when it contains separators."""
    if not value or not re.search(r"[;{}=\s]", value):
        return value
    return "{" + value.replace("}", "}}") + "}"


# SQLSTATE codes and native error numbers reported by the SQL Server ODBC driver.
_AUTH_STATES = {"28000"}
_TIMEOUT_STATES = {"HYT00", "HYT01"}
_UNREACHABLE_STATES = {"08001", "08S01"}
_DB_NOT_FOUND_NATIVE = {"4060", "911"}
_AUTH_NATIVE = {"18456", "18452", "18470", "18486", "18487", "18488"}

_MESSAGE_RULES: tuple[tuple[re.Pattern[str], ConnectivityCause], ...] = (
    (re.compile(r"cannot open database|database .* does not exist", re.I),
     ConnectivityCause.DATABASE_NOT_FOUND),
    (re.compile(r"login failed|authentication|password", re.I),
     ConnectivityCause.AUTHENTICATION),
    (re.compile(r"timeout|timed out", re.I), ConnectivityCause.TIMEOUT),
    (re.compile(
        r"server (was not found|does not exist)|network-related|could not open a "
        r"connection|no such host|name or service not known|unreachable|"
        r"connection refused",
        re.I,
    ), ConnectivityCause.HOST_UNREACHABLE),
)


def _error_parts(exc: BaseException) -> tuple[str | None, str]:
    """Return (sqlstate, message) from a DB-API error."""
    args = getattr(exc, "args", ()) or ()
    if len(args) >= 2 and isinstance(args[0], str) and re.fullmatch(r"[0-9A-Z]{5}", args[0]):
        return args[0], str(args[1])
    return None, str(exc)


def classify_connect_error(exc: BaseException) -> ConnectivityCause:
    """Map a driver exception to a connectivity cause."""
    state, message = _error_parts(exc)
    native = set(re.findall(r"\((\d{3,5})\)", message))

    # SQL Server reports a missing database as a login failure (28000)
    # with native error 4060, so it is checked before authentication.
    if native & _DB_NOT_FOUND_NATIVE:
        return ConnectivityCause.DATABASE_NOT_FOUND
    if state in _AUTH_STATES or native & _AUTH_NATIVE:
        return ConnectivityCause.AUTHENTICATION
    if state in _TIMEOUT_STATES or isinstance(exc, TimeoutError):
        return ConnectivityCause.TIMEOUT
    for pattern, cause in _MESSAGE_RULES:
        if pattern.search(message):
            return cause
    if state in _UNREACHABLE_STATES:
        return ConnectivityCause.HOST_UNREACHABLE
    return ConnectivityCause.UNKNOWN


def diagnose_connect_error(exc: BaseException) -> ConnectivityError:
    """Wrap a driver exception into a cause-keyed `ConnectivityError`."""
    _, message = _error_parts(exc)
    return ConnectivityError(classify_connect_error(exc), _short_message(message))


def _short_message(message: str) -> str:
    """Strip ODBC driver prefixes like `[Microsoft][ODBC Driver 18 ...]`."""
    cleaned = re.sub(r"(\[[^\]]*\])+\s*", "", message).strip()
    # Drivers often append "(<native>) (SQLDriverConnect)"
    cleaned = re.sub(r"\s*\(SQL\w+\)\s*$", "", cleaned)
    return cleaned or message
