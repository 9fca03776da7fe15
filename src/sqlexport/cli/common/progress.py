"""Progress reporting for the CLI.

`RichProgressSink` implements the export pipeline's progress interface with
a transient rich progress bar per operation and log lines for start,
completion and the final summary.
"""

from __future__ import annotations

import logging
import time
from typing import Mapping

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from sqlexport.cli.common.output import console, out
from sqlexport.core.objects import ObjectKind

_MAX_ITEM_WIDTH = 48

logger = logging.getLogger("sqlexport.progress")


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def format_elapsed(seconds: float) -> str:
    """Format a duration as `mm:ss.fff`."""
    seconds = max(seconds, 0.0)
    minutes, rest = divmod(seconds, 60)
    return f"{int(minutes):02d}:{rest:06.3f}"


class RichProgressSink:
    """
    Progress sink rendering rich progress bars.

    Args:
        show_progress: Render live progress bars. Start/complete log lines
            are emitted either way.
        show_summary: Print the summary table at the end of a run.
    """

    def __init__(self, *, show_progress: bool = True, show_summary: bool = True):
        self.show_progress = show_progress
        self.show_summary = show_summary
        self._progress: Progress | None = None
        self._task_id = None
        self._operation = ""
        self._started = 0.0

    def __enter__(self) -> RichProgressSink:
        return self

    def __exit__(self, *exc_info) -> None:
        self._stop()

    def on_start(self, operation: str, total: int) -> None:
        self._stop()
        self._operation = operation
        self._started = time.monotonic()
        logger.info("Starting %s (%d items)...", operation, total)

        if not self.show_progress:
            return
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}[/]"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            TextColumn("[meta]{task.fields[item]}[/]"),
            console=console,
            transient=True,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(operation, total=max(total, 1), item="")

    def on_progress(self, item_name: str | None = None) -> None:
        if item_name:
            logger.debug("%s: %s", self._operation, item_name)
        if self._progress is None:
            return
        self._progress.update(
            self._task_id,
            advance=1,
            item=_truncate(item_name or "", _MAX_ITEM_WIDTH),
        )

    def on_complete(self) -> None:
        self._stop()
        elapsed = format_elapsed(time.monotonic() - self._started)
        logger.info("Completed %s in %s", self._operation, elapsed)

    def on_summary(self, counts: Mapping[ObjectKind, int], total_files: int) -> None:
        self._stop()
        logger.info("Summary: %d file(s) created", total_files)
        for kind, count in counts.items():
            logger.debug("  %s: %d", kind.label, count)
        if self.show_summary:
            out.summary_table(counts, total_files)

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task_id = None
