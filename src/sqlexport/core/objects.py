"""Core domain models for exported database objects.

These models describe catalog objects (views, procedures, functions,
triggers) in a simple, immutable form. They are intentionally free of
database driver types and UI/CLI concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlexport.core.errors import FatalRunError


class ObjectKind(str, Enum):
    """
    Kind of a catalog object.

    Values:
        VIEW: A view.
        STORED_PROCEDURE: A stored procedure.
        SCALAR_FUNCTION: A function returning a single value.
        TABLE_VALUED_FUNCTION: An inline or multi-statement table function.
        TRIGGER: A DML trigger attached to a table or view.
    """

    VIEW = "VIEW"
    STORED_PROCEDURE = "STORED_PROCEDURE"
    SCALAR_FUNCTION = "SCALAR_FUNCTION"
    TABLE_VALUED_FUNCTION = "TABLE_VALUED_FUNCTION"
    TRIGGER = "TRIGGER"

    @property
    def label(self) -> str:
        """Human-readable label used in headers and summaries."""
        return _KIND_LABELS[self]


_KIND_LABELS = {
    ObjectKind.VIEW: "View",
    ObjectKind.STORED_PROCEDURE: "Stored Procedure",
    ObjectKind.SCALAR_FUNCTION: "Scalar Function",
    ObjectKind.TABLE_VALUED_FUNCTION: "Table-Valued Function",
    ObjectKind.TRIGGER: "Trigger",
}


class CatalogCategory(str, Enum):
    """
    Catalog query categories, declared in extraction order.

    A category maps to one catalog query; the FUNCTIONS category yields
    both scalar and table-valued functions.
    """

    VIEWS = "views"
    STORED_PROCEDURES = "procedures"
    FUNCTIONS = "functions"
    TRIGGERS = "triggers"

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()

    @property
    def kinds(self) -> tuple[ObjectKind, ...]:
        """Object kinds this category can produce."""
        return _CATEGORY_KINDS[self]


_CATEGORY_KINDS = {
    CatalogCategory.VIEWS: (ObjectKind.VIEW,),
    CatalogCategory.STORED_PROCEDURES: (ObjectKind.STORED_PROCEDURE,),
    CatalogCategory.FUNCTIONS: (
        ObjectKind.SCALAR_FUNCTION,
        ObjectKind.TABLE_VALUED_FUNCTION,
    ),
    CatalogCategory.TRIGGERS: (ObjectKind.TRIGGER,),
}

ALL_CATEGORIES: tuple[CatalogCategory, ...] = tuple(CatalogCategory)


@dataclass(frozen=True)
class ExtractedObject:
    """
    One user-defined object read from the catalog.

    Attributes:
        name: Catalog object name (non-empty).
        schema: Owning schema.
        kind: Object kind, fixed by the reader that produced it.
        definition: Source text as stored in the catalog. May be empty
            for encrypted objects; the writer refuses those.
        created_at: Creation timestamp reported by the catalog.
        modified_at: Last modification timestamp reported by the catalog.
        parent_table: Table or view a trigger is attached to. Only set
            for triggers; None means the parent could not be resolved.
    """

    name: str
    schema: str
    kind: ObjectKind
    definition: str
    created_at: datetime | None = None
    modified_at: datetime | None = None
    parent_table: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Object name must not be empty.")
        if self.parent_table is not None and self.kind is not ObjectKind.TRIGGER:
            raise ValueError(
                f"parent_table is only valid for triggers, not {self.kind.label}."
            )

    @property
    def qualified_name(self) -> str:
        """Return `schema.name` (or just `name` when schema is blank)."""
        return f"{self.schema}.{self.name}" if self.schema else self.name

    @property
    def key(self) -> tuple[str, str, ObjectKind]:
        return (self.schema, self.name, self.kind)


@dataclass(frozen=True)
class ObjectFailure:
    """A single object that could not be exported."""

    name: str
    schema: str
    kind: ObjectKind
    error: str

    @classmethod
    def from_object(cls, obj: ExtractedObject, error: str) -> ObjectFailure:
        return cls(name=obj.name, schema=obj.schema, kind=obj.kind, error=error)


@dataclass
class ExportResult:
    """
    Aggregate outcome of one export run.

    Counts are tracked per object kind: `found` is what the catalog
    returned, `written` is what actually landed on disk.
    """

    found: dict[ObjectKind, int] = field(default_factory=dict)
    written: dict[ObjectKind, int] = field(default_factory=dict)
    failures: list[ObjectFailure] = field(default_factory=list)
    skipped: list[ObjectFailure] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
    cancelled: bool = False
    fatal: FatalRunError | None = None

    def record_found(self, obj: ExtractedObject) -> None:
        self.found[obj.kind] = self.found.get(obj.kind, 0) + 1

    def record_written(self, obj: ExtractedObject, path: Path) -> None:
        self.written[obj.kind] = self.written.get(obj.kind, 0) + 1
        self.files.append(path)

    def record_failure(self, obj: ExtractedObject, error: str) -> None:
        self.failures.append(ObjectFailure.from_object(obj, error))

    def record_skipped(self, obj: ExtractedObject, reason: str) -> None:
        self.skipped.append(ObjectFailure.from_object(obj, reason))

    @property
    def total_found(self) -> int:
        return sum(self.found.values())

    @property
    def total_written(self) -> int:
        return sum(self.written.values())

    @property
    def ok(self) -> bool:
        """True when the run completed without fatal errors or failures."""
        return self.fatal is None and not self.failures and not self.cancelled

    def counts_by_kind(self) -> dict[ObjectKind, int]:
        """Written counts for every kind, including zeroes, in kind order."""
        return {kind: self.written.get(kind, 0) for kind in ObjectKind}
