"""``mintforge status``: show upload and verification progress from the cache.

Read-only; never contacts the ledger.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from mintforge.config import settings
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.errors import MintforgeError
from mintforge.core.planner import BatchPlanner

console = Console()


def status_cmd(
    cache: Path = typer.Option(
        None,
        "--cache",
        help="Cache file (default: <cache_dir>/<environment>-<cache_name>.json).",
    ),
) -> None:
    """Show how much of the collection is uploaded and verified."""
    cache_path = cache or settings.cache_path
    if not cache_path.exists():
        console.print(f"[bold red]Cache not found:[/bold red] {cache_path}")
        raise typer.Exit(code=1)

    try:
        state = CacheReconciler(cache_path).state
    except MintforgeError as exc:
        console.print(f"[bold red]Cannot read cache:[/bold red] {exc}")
        raise typer.Exit(code=1)

    total = len(state.items)
    records = state.items.values()
    on_chain = sum(1 for r in records if r.on_chain)
    verified = sum(1 for r in records if r.verify_run)
    mismatched = sum(1 for r in records if r.verify_mismatch)
    errored = sum(1 for r in records if r.last_error and not r.on_chain)

    planner = BatchPlanner(settings.confirmation_batch_size, settings.tx_batch_size)
    batches = planner.plan(total)
    pending_batches = planner.pending(batches, state)

    table = Table(title=f"Cache {cache_path}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Environment", state.env or "-")
    table.add_row("Registry", state.registry_address or "[yellow]not initialized[/yellow]")
    table.add_row("Collection", state.collection_id or "-")
    table.add_row("Items", str(total))
    table.add_row("On chain", f"{on_chain}/{total}")
    table.add_row("Verified", f"{verified}/{total}")
    table.add_row("Mismatched", f"[red]{mismatched}[/red]" if mismatched else "0")
    table.add_row("Failed uploads", f"[red]{errored}[/red]" if errored else "0")
    table.add_row("Batches pending", f"{len(pending_batches)}/{len(batches)}")
    console.print(table)
