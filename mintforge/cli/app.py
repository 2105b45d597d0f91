"""Main Typer application: imports and registers all CLI commands.

Entry point: ``mintforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from mintforge.cli.commands.status import status_cmd
from mintforge.cli.commands.upload import upload_cmd
from mintforge.cli.commands.verify import verify_cmd

app = typer.Typer(
    name="mintforge",
    help="Mintforge: resumable collection registry upload and verification.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="upload", help="Initialize the registry and upload item lines.")(upload_cmd)
app.command(name="verify", help="Verify the registry against the cache.")(verify_cmd)
app.command(name="status", help="Show upload progress from the cache.")(status_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
