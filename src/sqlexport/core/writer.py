"""Script rendering and crash-safe file writes.

A script is written to a temporary file in the destination directory and
then moved over the destination with `os.replace`. Readers of the
destination path therefore see either the previous file or the complete
new one, never a truncated write.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from sqlexport.core.errors import EmptyDefinitionError, WriteError
from sqlexport.core.objects import ExtractedObject

logger = logging.getLogger(__name__)

HEADER_WIDTH = 70
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WriteOptions:
    """
    Options controlling how scripts are rendered and written.

    Attributes:
        include_header: Prepend the metadata comment banner.
        database: Source database name shown in the header.
        encoding: Text encoding of the written files.
        clock: Returns the generation timestamp (UTC).
    """

    include_header: bool = False
    database: str = ""
    encoding: str = "utf-8"
    clock: Callable[[], datetime] = field(default=utc_now, compare=False)


def render_header(obj: ExtractedObject, database: str, generated_at: datetime) -> str:
    """Render the fixed-width comment banner for a script."""
    if generated_at.tzinfo is not None:
        generated_at = generated_at.astimezone(timezone.utc)
    rule = "-- " + "=" * (HEADER_WIDTH - 3)
    rows = [
        ("Object Name", obj.qualified_name),
        ("Object Type", obj.kind.label),
        ("Source Database", database),
        ("Generated", f"{generated_at.strftime(TIMESTAMP_FORMAT)} UTC"),
    ]
    if obj.parent_table:
        rows.insert(2, ("Parent Table", obj.parent_table))
    lines = [rule] + [f"-- {label + ':':<17}{value}" for label, value in rows] + [rule]
    return "\n".join(lines) + "\n"


def render(obj: ExtractedObject, options: WriteOptions) -> str:
    """Return the file content: optional header, blank line, raw definition."""
    if not options.include_header:
        return obj.definition
    header = render_header(obj, options.database, options.clock())
    return f"{header}\n{obj.definition}"


def write_script(path: Path, obj: ExtractedObject, options: WriteOptions) -> Path:
    """
    Render an object and write it to `path` atomically.

    Raises:
        EmptyDefinitionError: If the object has no definition text.
        WriteError: If any filesystem step fails. No partial destination
            file and no temporary file are left behind.
    """
    if not obj.definition or not obj.definition.strip():
        raise EmptyDefinitionError(obj)

    path = Path(path)
    try:
        data = render(obj, options).encode(options.encoding)
        path.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, UnicodeError) as exc:
        raise WriteError(path, exc) from exc

    tmp_name: str | None = None
    try:
        # Short fixed prefix: the destination name may already be at the
        # filesystem's length limit.
        fd, tmp_name = tempfile.mkstemp(prefix=".sqlexport-", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "wb") as fh:
            # mkstemp creates 0600; give the script the mode a plain open() would.
            os.chmod(tmp_name, _target_mode(path))
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, UnicodeError) as exc:
        raise WriteError(path, exc) from exc
    finally:
        if tmp_name is not None:
            _discard(tmp_name)

    logger.debug("Wrote %s (%d bytes)", path, len(data))
    return path


def _target_mode(path: Path) -> int:
    """Mode of the existing destination, or 0666 minus the process umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", tmp_name, exc)
