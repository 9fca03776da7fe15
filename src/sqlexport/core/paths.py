"""Output layout: category directories and safe script filenames.

Everything here is pure: the same object always maps to the same path,
so re-running an export overwrites files in place instead of creating
duplicates.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path, PurePath

from sqlexport.core.objects import ExtractedObject, ObjectKind

logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".sql"
MAX_FILENAME_BYTES = 255
TRIGGERS_DIRNAME = "Triggers"
UNRESOLVED_TRIGGERS = PurePath(TRIGGERS_DIRNAME, "_Unresolved")

CATEGORY_DIRECTORIES: dict[ObjectKind, str] = {
    ObjectKind.VIEW: "Views",
    ObjectKind.STORED_PROCEDURE: "StoredProcedures",
    ObjectKind.SCALAR_FUNCTION: "Functions_ScalarValued",
    ObjectKind.TABLE_VALUED_FUNCTION: "Functions_TableValued",
}

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")
_UNDERSCORES = re.compile(r"_{2,}")


def sanitize(name: str, max_bytes: int = MAX_FILENAME_BYTES) -> str:
    """
    Turn an object name into a filename stem.

    - Characters outside `[A-Za-z0-9_.-]` become `_`
    - Runs of `_` collapse to one
    - The result is capped at `max_bytes` (ASCII, so bytes == chars)

    Names that would be empty or a relative path marker (`.`, `..`)
    become `_`.
    """
    safe = _UNDERSCORES.sub("_", _UNSAFE.sub("_", name))
    safe = safe[:max_bytes]
    if safe.strip(".") == "":
        return "_"
    return safe


def script_filename(name: str, schema: str | None = None) -> str:
    """Return `<stem>.sql`, optionally qualified as `<schema>.<name>.sql`."""
    stem_source = f"{schema}.{name}" if schema else name
    stem = sanitize(stem_source, MAX_FILENAME_BYTES - len(SCRIPT_SUFFIX))
    return f"{stem}{SCRIPT_SUFFIX}"


def resolve(kind: ObjectKind, parent_table: str | None = None) -> PurePath:
    """
    Return the output directory for an object, relative to the export root.

    Triggers live under `<parent>/Triggers`. A trigger without a resolvable
    parent goes to the unresolved-triggers directory instead of failing.
    """
    if kind is ObjectKind.TRIGGER:
        if parent_table and parent_table.strip():
            return PurePath(sanitize(parent_table.strip()), TRIGGERS_DIRNAME)
        return UNRESOLVED_TRIGGERS
    return PurePath(CATEGORY_DIRECTORIES[kind])


def object_path(
    root: Path, obj: ExtractedObject, *, qualify_schema: bool = False
) -> Path:
    """Full destination path of an object's script under `root`."""
    if obj.kind is ObjectKind.TRIGGER and not (obj.parent_table or "").strip():
        logger.warning(
            "Trigger %s has no resolvable parent table; writing to %s",
            obj.qualified_name,
            UNRESOLVED_TRIGGERS,
        )
    directory = resolve(obj.kind, obj.parent_table)
    filename = script_filename(obj.name, obj.schema if qualify_schema else None)
    return Path(root) / directory / filename


def expected_directories(root: Path) -> list[Path]:
    """Fixed category directories created before extraction."""
    root = Path(root)
    return [root] + [root / d for d in CATEGORY_DIRECTORIES.values()] + [
        root / TRIGGERS_DIRNAME
    ]
