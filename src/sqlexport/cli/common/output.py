"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from sqlexport.cli.common.tui_style import (
    QUESTIONARY_STYLE_CONFIRM,
    QUESTIONARY_STYLE_TEXT,
)
from sqlexport.core.objects import ObjectKind

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)

_SUMMARY_ROWS = (
    ("Views", (ObjectKind.VIEW,)),
    ("Stored procedures", (ObjectKind.STORED_PROCEDURE,)),
    ("Functions", (ObjectKind.SCALAR_FUNCTION, ObjectKind.TABLE_VALUED_FUNCTION)),
    ("Triggers", (ObjectKind.TRIGGER,)),
)


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages, prompts and tables."""

    def _q(self, message: str) -> str:
        """Prefix Questionary prompts to be SQLEXPORT consistent."""
        return f"[SQLEXPORT] {message}"

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {escape(str(v))}")

    def ask_text(self, message: str, *, default: str = "") -> str:
        """Prompt for a line of text; returns the stripped answer."""
        answer = questionary.text(
            self._q(message), default=default, style=QUESTIONARY_STYLE_TEXT
        ).ask()
        return (answer or "").strip()

    def ask_password(self, message: str) -> str:
        """Prompt for a secret without echoing it."""
        answer = questionary.password(
            self._q(message), style=QUESTIONARY_STYLE_TEXT
        ).ask()
        return answer or ""

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise.
        """
        console.print("[meta]Use y/n then Enter[/]")
        prompt = questionary.confirm(
            self._q(message),
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def summary_table(
        self,
        counts: Mapping[ObjectKind, int],
        total_files: int,
        title: str = "Summary",
    ) -> None:
        """Render processed counts per category plus the total file count."""
        t = Table(title=title, show_lines=False)
        t.add_column("Category", style="title")
        t.add_column("Processed", justify="right")

        for label, kinds in _SUMMARY_ROWS:
            t.add_row(label, str(sum(counts.get(k, 0) for k in kinds)))
        t.add_row("[bold]Total files created[/]", f"[bold]{total_files}[/]")

        console.print(t)

    def failures_table(self, failures: Iterable[Any], title: str = "Failures") -> None:
        """
        Render per-object failures.

        Expects objects with `.schema`, `.name`, `.kind` and `.error`
        (like sqlexport.core.objects.ObjectFailure).
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Object", style="ok")
        t.add_column("Type", style="meta")
        t.add_column("Error", style="err")

        for f in failures:
            name = f"{f.schema}.{f.name}" if f.schema else f.name
            t.add_row(escape(name), f.kind.label, escape(str(f.error)))

        console.print(t)


out = Out()
