"""Catalog reading: turn raw catalog rows into `ExtractedObject`s.

The reader issues one query per category through a `CatalogAdapter` and
maps each returned row to an immutable domain object. Adapters only deal
with their database driver; the rules about which rows count as user
objects and how function sub-types map to object kinds live here.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping, Protocol

from sqlexport.core.errors import CatalogReadError, ExportError
from sqlexport.core.objects import CatalogCategory, ExtractedObject, ObjectKind

logger = logging.getLogger(__name__)

CatalogRow = Mapping[str, Any]

# sys.objects.type codes for functions
_FUNCTION_TYPES = {
    "FN": ObjectKind.SCALAR_FUNCTION,
    "FS": ObjectKind.SCALAR_FUNCTION,
    "IF": ObjectKind.TABLE_VALUED_FUNCTION,
    "TF": ObjectKind.TABLE_VALUED_FUNCTION,
    "FT": ObjectKind.TABLE_VALUED_FUNCTION,
}

_CATEGORY_KIND = {
    CatalogCategory.VIEWS: ObjectKind.VIEW,
    CatalogCategory.STORED_PROCEDURES: ObjectKind.STORED_PROCEDURE,
    CatalogCategory.TRIGGERS: ObjectKind.TRIGGER,
}


class CatalogAdapter(Protocol):
    """Interface for catalog access used by the export pipeline."""

    def check_connectivity(self) -> None:
        """Verify the database is reachable; raise ConnectivityError if not."""
        ...

    def query(self, category: CatalogCategory) -> Iterable[CatalogRow]:
        """Return raw catalog rows for one category."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


def _is_user_defined(row: CatalogRow) -> bool:
    """Rows without an `is_ms_shipped` flag are treated as user objects."""
    return not row.get("is_ms_shipped")


def _kind_for(category: CatalogCategory, row: CatalogRow) -> ObjectKind:
    if category is not CatalogCategory.FUNCTIONS:
        return _CATEGORY_KIND[category]
    code = str(row.get("type") or "").strip().upper()
    try:
        return _FUNCTION_TYPES[code]
    except KeyError:
        raise CatalogReadError(
            category, f"unknown function type {code!r} for {row.get('name')!r}"
        ) from None


def row_to_object(category: CatalogCategory, row: CatalogRow) -> ExtractedObject:
    """
    Map a single catalog row to an ExtractedObject.

    Expected keys: `name`, `schema_name`, `definition`, `create_date`,
    `modify_date`; functions also carry `type`, triggers `parent_name`.
    """
    kind = _kind_for(category, row)
    parent: str | None = None
    if kind is ObjectKind.TRIGGER:
        parent = (row.get("parent_name") or "").strip() or None

    try:
        return ExtractedObject(
            name=str(row.get("name") or ""),
            schema=str(row.get("schema_name") or ""),
            kind=kind,
            definition=row.get("definition") or "",
            created_at=row.get("create_date"),
            modified_at=row.get("modify_date"),
            parent_table=parent,
        )
    except ValueError as exc:
        raise CatalogReadError(category, str(exc)) from exc


class CatalogReader:
    """Reads user-defined objects from the catalog, one category at a time."""

    def __init__(self, adapter: CatalogAdapter) -> None:
        self.adapter = adapter

    def fetch(self, category: CatalogCategory) -> Iterator[ExtractedObject]:
        """
        Lazily yield objects for a category.

        Each call re-issues the catalog query. Any failure while reading,
        including a dropped connection halfway through the rows, surfaces
        as CatalogReadError for the whole category.
        """
        try:
            rows = self.adapter.query(category)
            for row in rows:
                if not _is_user_defined(row):
                    logger.debug(
                        "Skipping system object %s.%s",
                        row.get("schema_name"),
                        row.get("name"),
                    )
                    continue
                yield row_to_object(category, row)
        except ExportError:
            raise
        except Exception as exc:  # driver errors vary by client library
            raise CatalogReadError(category, str(exc)) from exc

    def fetch_all(self, category: CatalogCategory) -> list[ExtractedObject]:
        """Materialize a category, ordered by schema then name."""
        objects = list(self.fetch(category))
        objects.sort(key=lambda o: (o.schema, o.name))
        logger.debug("Read %d object(s) for %s", len(objects), category.label)
        return objects
