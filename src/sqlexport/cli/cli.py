"""CLI application for exporting SQL Server object scripts."""

import typer

from sqlexport.cli.commands.export import check, export

app = typer.Typer(
    help="sqlexport - export SQL Server views, procedures, functions and triggers",
    no_args_is_help=True,
)

app.command("export")(export)
app.command("check")(check)


if __name__ == "__main__":
    app()
