"""Export orchestration: connect, read the catalog, write scripts.

This module sequences a single export run. The run is strictly sequential:
one catalog query at a time, then one file write at a time. Catalog
results are buffered in memory before any file is written, since catalog
sizes are bounded by schema complexity rather than data volume.

The run never raises for expected failures. Every `ExportError` is caught
at the run boundary and reported on the returned `ExportResult` as a
`FatalRunError`, and the catalog adapter is closed on every exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Protocol

from sqlexport.core.catalog import CatalogAdapter, CatalogReader
from sqlexport.core.errors import (
    EmptyDefinitionError,
    ExportCancelled,
    ExportError,
    FatalRunError,
    PathCollisionError,
    WriteError,
)
from sqlexport.core.objects import (
    ALL_CATEGORIES,
    CatalogCategory,
    ExportResult,
    ExtractedObject,
    ObjectKind,
)
from sqlexport.core.paths import expected_directories, object_path
from sqlexport.core.writer import WriteOptions, write_script

_log = logging.getLogger(__name__)


class RunState(str, Enum):
    """States of an export run; SUCCEEDED, FAILED and CANCELLED are terminal."""

    CONNECTING = "connecting"
    PREPARING = "preparing"
    EXTRACTING = "extracting"
    WRITING = "writing"
    SUMMARIZING = "summarizing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FailurePolicy(str, Enum):
    """What to do when a single object cannot be written."""

    FAIL_FAST = "fail-fast"
    CONTINUE = "continue"


class EmptyDefinitionPolicy(str, Enum):
    """How to treat objects with no definition text (e.g. encrypted)."""

    FAIL = "fail"
    SKIP = "skip"


class SchemaNamePolicy(str, Enum):
    """
    When to qualify filenames with the schema.

    Values:
        AUTO: Qualify only when the run contains more than one schema.
        ALWAYS: Always write `<schema>.<name>.sql`.
        NEVER: Always write `<name>.sql`; same-named objects are reported
            as collisions instead of overwriting each other.
    """

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"


class ProgressSink(Protocol):
    """Receives progress events from a run. Purely observational."""

    def on_start(self, operation: str, total: int) -> None: ...

    def on_progress(self, item_name: str | None = None) -> None: ...

    def on_complete(self) -> None: ...

    def on_summary(self, counts: Mapping[ObjectKind, int], total_files: int) -> None: ...


class NullProgressSink:
    """Progress sink that ignores every event."""

    def on_start(self, operation: str, total: int) -> None:
        pass

    def on_progress(self, item_name: str | None = None) -> None:
        pass

    def on_complete(self) -> None:
        pass

    def on_summary(self, counts: Mapping[ObjectKind, int], total_files: int) -> None:
        pass


class CancellationToken:
    """Cooperative cancellation flag checked between categories and objects."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True)
class ExportOptions:
    """
    Options for an export run.

    Attributes:
        output_root: Directory the category folders are created in.
        write: Rendering options passed to the script writer.
        on_error: Abort on the first failed object, or keep going.
        on_empty_definition: Treat empty definitions as failures or skip them.
        schema_names: Filename schema qualification policy.
        categories: Categories to export; always processed in catalog order.
    """

    output_root: Path
    write: WriteOptions = field(default_factory=WriteOptions)
    on_error: FailurePolicy = FailurePolicy.FAIL_FAST
    on_empty_definition: EmptyDefinitionPolicy = EmptyDefinitionPolicy.FAIL
    schema_names: SchemaNamePolicy = SchemaNamePolicy.AUTO
    categories: tuple[CatalogCategory, ...] = ALL_CATEGORIES

    def ordered_categories(self) -> list[CatalogCategory]:
        wanted = set(self.categories)
        return [c for c in ALL_CATEGORIES if c in wanted]


class ExportOrchestrator:
    """Runs one export from connectivity check to summary."""

    def __init__(
        self,
        adapter: CatalogAdapter,
        options: ExportOptions,
        *,
        progress: ProgressSink | None = None,
        cancel: CancellationToken | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.adapter = adapter
        self.options = options
        self.progress = progress or NullProgressSink()
        self.cancel = cancel or CancellationToken()
        self.log = logger or _log
        self.reader = CatalogReader(adapter)
        self.state = RunState.CONNECTING
        self._operation_open = False

    def run(self) -> ExportResult:
        """
        Execute the run and return its result.

        The final state is SUCCEEDED only if every extracted object was
        written (or explicitly skipped under the SKIP empty-definition
        policy).
        """
        result = ExportResult()
        try:
            self._connect()
            self._prepare()
            objects = self._extract(result)
            self._write_all(objects, result)
            self._summarize(result)
            self.state = RunState.SUCCEEDED if result.ok else RunState.FAILED
        except ExportCancelled:
            result.cancelled = True
            self.log.warning(
                "Export cancelled during %s; %d file(s) already written are kept.",
                self.state.value,
                result.total_written,
            )
            self._finish_operation()
            self._summarize(result)
            self.state = RunState.CANCELLED
        except ExportError as exc:
            result.fatal = FatalRunError.from_error(self.state.value, exc)
            self.log.error("Export failed while %s: %s", self.state.value, exc)
            writing = self.state is RunState.WRITING
            self._finish_operation()
            if writing:
                self._summarize(result)
            self.state = RunState.FAILED
        finally:
            self.adapter.close()
        return result

    def _start_operation(self, operation: str, total: int) -> None:
        self.progress.on_start(operation, total)
        self._operation_open = True

    def _finish_operation(self) -> None:
        if self._operation_open:
            self._operation_open = False
            self.progress.on_complete()

    def _check_cancelled(self) -> None:
        if self.cancel.cancelled:
            raise ExportCancelled("Export cancelled.")

    def _connect(self) -> None:
        self.state = RunState.CONNECTING
        self.log.info("Checking connectivity...")
        self.adapter.check_connectivity()

    def _prepare(self) -> None:
        self.state = RunState.PREPARING
        for directory in expected_directories(self.options.output_root):
            if directory.is_dir():
                continue
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise WriteError(directory, exc) from exc
            self.log.debug("Created directory: %s", directory)

    def _extract(self, result: ExportResult) -> list[ExtractedObject]:
        self.state = RunState.EXTRACTING
        categories = self.options.ordered_categories()
        objects: list[ExtractedObject] = []

        self._start_operation("Reading catalog", len(categories))
        for category in categories:
            self._check_cancelled()
            found = self.reader.fetch_all(category)
            for obj in found:
                result.record_found(obj)
            objects.extend(found)
            self.log.info("Found %d %s", len(found), category.label.lower())
            self.progress.on_progress(category.label)
        self._finish_operation()
        return objects

    def _qualify_schema(self, objects: list[ExtractedObject]) -> bool:
        policy = self.options.schema_names
        if policy is SchemaNamePolicy.ALWAYS:
            return True
        if policy is SchemaNamePolicy.NEVER:
            return False
        return len({o.schema for o in objects if o.schema}) > 1

    def _write_all(self, objects: list[ExtractedObject], result: ExportResult) -> None:
        self.state = RunState.WRITING
        qualify = self._qualify_schema(objects)
        if qualify:
            self.log.info("Multiple schemas present; filenames include the schema.")

        # Keyed case-insensitively: Ab.sql and ab.sql are one file on Windows and macOS.
        claimed: dict[str, ExtractedObject] = {}
        self._start_operation("Writing scripts", len(objects))
        for obj in objects:
            self._check_cancelled()
            path = object_path(self.options.output_root, obj, qualify_schema=qualify)
            key = str(path).casefold()
            try:
                if key in claimed:
                    raise PathCollisionError(path, obj, claimed[key])
                write_script(path, obj, self.options.write)
            except EmptyDefinitionError as exc:
                if self.options.on_empty_definition is EmptyDefinitionPolicy.SKIP:
                    self.log.warning("Skipping %s", exc)
                    result.record_skipped(obj, str(exc))
                else:
                    self._object_failed(obj, exc, result)
            except (WriteError, PathCollisionError) as exc:
                self._object_failed(obj, exc, result)
            else:
                claimed[key] = obj
                result.record_written(obj, path)
            self.progress.on_progress(obj.qualified_name)
        self._finish_operation()

    def _object_failed(
        self, obj: ExtractedObject, exc: ExportError, result: ExportResult
    ) -> None:
        """Record a per-object failure, then abort unless continuing on error."""
        result.record_failure(obj, str(exc))
        if self.options.on_error is FailurePolicy.FAIL_FAST:
            raise exc
        self.log.error("%s", exc)

    def _summarize(self, result: ExportResult) -> None:
        self.state = RunState.SUMMARIZING
        self.progress.on_summary(result.counts_by_kind(), result.total_written)


def export_scripts(
    adapter: CatalogAdapter,
    options: ExportOptions,
    *,
    progress: ProgressSink | None = None,
    cancel: CancellationToken | None = None,
    logger: logging.Logger | None = None,
) -> ExportResult:
    """Run a full export with the given adapter and options."""
    orchestrator = ExportOrchestrator(
        adapter, options, progress=progress, cancel=cancel, logger=logger
    )
    return orchestrator.run()
