"""Error taxonomy for script exports.

Every failure the export pipeline can raise derives from `ExportError`.
The orchestrator catches these at its run boundary and turns them into a
`FatalRunError`, so callers inspect a result rather than unwinding raw
exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlexport.core.objects import CatalogCategory, ExtractedObject


class ExportError(RuntimeError):
    """Base class for all export failures."""


class ConnectivityCause(str, Enum):
    """Known reasons for a failed connectivity check."""

    HOST_UNREACHABLE = "host unreachable"
    AUTHENTICATION = "authentication"
    DATABASE_NOT_FOUND = "database not found"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


_CAUSE_HINTS = {
    ConnectivityCause.HOST_UNREACHABLE: (
        "Check the server name, instance and network/firewall access."
    ),
    ConnectivityCause.AUTHENTICATION: (
        "Check the username and password, or use --trusted for Windows "
        "authentication."
    ),
    ConnectivityCause.DATABASE_NOT_FOUND: (
        "Check the database name and that the login has access to it."
    ),
    ConnectivityCause.TIMEOUT: (
        "The server did not answer in time; raise --timeout or check the "
        "network."
    ),
    ConnectivityCause.UNKNOWN: "See the driver message above for details.",
}


class ConnectivityError(ExportError):
    """Raised when the database cannot be reached or the login is refused."""

    def __init__(self, cause: ConnectivityCause, detail: str = "") -> None:
        self.cause = cause
        self.detail = detail
        message = f"Connection failed ({cause.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def hint(self) -> str:
        return _CAUSE_HINTS[self.cause]


class CatalogReadError(ExportError):
    """Raised when a catalog query fails; no rows of the category are trusted."""

    def __init__(self, category: CatalogCategory, detail: str) -> None:
        self.category = category
        super().__init__(f"Reading {category.label.lower()} failed: {detail}")


class EmptyDefinitionError(ExportError):
    """Raised for objects whose definition is missing (e.g. encrypted)."""

    def __init__(self, obj: ExtractedObject) -> None:
        self.obj = obj
        super().__init__(
            f"{obj.kind.label} '{obj.qualified_name}' has no definition "
            "(encrypted or not visible to this login)."
        )


class WriteError(ExportError):
    """Raised when a script file cannot be written."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Could not write {path}: {cause}")


class PathCollisionError(ExportError):
    """Raised when two objects of one run map to the same script file."""

    def __init__(
        self, path: Path, obj: ExtractedObject, existing: ExtractedObject
    ) -> None:
        self.path = path
        self.obj = obj
        self.existing = existing
        super().__init__(
            f"{obj.kind.label} '{obj.qualified_name}' would overwrite "
            f"'{existing.qualified_name}' at {path}"
        )


class ExportCancelled(ExportError):
    """Raised at a category or object boundary after cancellation."""


@dataclass(frozen=True)
class FatalRunError:
    """
    Terminal failure of a run.

    Attributes:
        stage: Orchestrator state in which the run failed.
        error: The underlying export error.
        message: Human-readable diagnosis.
    """

    stage: str
    error: ExportError
    message: str

    @classmethod
    def from_error(cls, stage: str, error: ExportError) -> FatalRunError:
        message = str(error)
        if isinstance(error, ConnectivityError):
            message = f"{message}\n{error.hint}"
        return cls(stage=stage, error=error, message=message)
