"""``mintforge verify``: compare the registry's stored lines with the cache."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mintforge.bridge.rpc_client import RpcNetworkClient
from mintforge.config import settings
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.errors import MintforgeError
from mintforge.core.pipeline import verify
from mintforge.log_setup import configure_logging
from mintforge.models.cache import CacheState
from mintforge.models.results import VerificationResult

console = Console()

# Mismatched items listed before the table is cut short.
MAX_LISTED_MISMATCHES = 20


async def _run_verify(
    state: CacheState,
    cache_path: Path,
    rpc_url: str,
    declared: int | None,
    requeue: bool,
) -> tuple[VerificationResult, CacheState]:
    async with RpcNetworkClient(rpc_url, commitment=settings.commitment) as network:
        return await verify(
            state,
            None,
            declared,
            network=network,
            cache_path=cache_path,
            requeue_mismatches=requeue,
        )


def verify_cmd(
    cache: Path = typer.Option(
        None,
        "--cache",
        help="Cache file (default: <cache_dir>/<environment>-<cache_name>.json).",
    ),
    rpc_url: str = typer.Option(
        None,
        "--rpc-url",
        "-u",
        help="JSON-RPC endpoint.",
    ),
    items_available: int = typer.Option(
        None,
        "--items-available",
        help="Collection size to check the registry against (default: from the cache).",
    ),
    requeue_mismatches: bool = typer.Option(
        False,
        "--requeue-mismatches",
        help="Mark mismatched items for re-upload on the next `mintforge upload`.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log per-item detail.",
    ),
) -> None:
    """Verify every unverified item and the registry's item counts."""
    configure_logging("DEBUG" if verbose else settings.log_level)
    cache_path = cache or settings.cache_path
    if not cache_path.exists():
        console.print(f"[bold red]Cache not found:[/bold red] {cache_path}")
        console.print("[dim]Upload first with: mintforge upload[/dim]")
        raise typer.Exit(code=1)

    try:
        reconciler = CacheReconciler(cache_path)
    except MintforgeError as exc:
        console.print(f"[bold red]Cannot read cache:[/bold red] {exc}")
        raise typer.Exit(code=1)

    result, state = asyncio.run(
        _run_verify(
            reconciler.state,
            cache_path,
            rpc_url or settings.rpc_url,
            items_available,
            requeue_mismatches,
        )
    )

    if result.error and result.failure is None:
        console.print(f"[bold red]Verification failed:[/bold red] {result.error}")
        raise typer.Exit(code=1)

    if result.mismatches:
        table = Table(title="Mismatched items")
        table.add_column("Index", justify="right", style="cyan")
        table.add_column("Name")
        table.add_column("Error", style="red")
        items = state.items
        for index in result.mismatches[:MAX_LISTED_MISMATCHES]:
            record = items[index]
            table.add_row(str(index), record.name, record.last_error or "")
        console.print(table)
        if len(result.mismatches) > MAX_LISTED_MISMATCHES:
            console.print(
                f"  [dim]... and {len(result.mismatches) - MAX_LISTED_MISMATCHES} more[/dim]"
            )

    lines = [
        f"[bold]Checked:[/bold]    {result.checked}",
        f"[bold]Mismatched:[/bold] {len(result.mismatches)}",
        f"[bold]Stored:[/bold]     {result.stored_count} / declared "
        f"{result.declared_items_available} (capacity {result.capacity})",
    ]
    if result.detail:
        lines += ["", f"[red]{result.detail}[/red]"]

    if result.ok:
        console.print(
            Panel("\n".join(lines), title="[bold]Registry verified[/bold]", border_style="green")
        )
        return
    if result.mismatches and requeue_mismatches:
        lines += ["", "[dim]Mismatched items were requeued; run `mintforge upload` again.[/dim]"]
    console.print(
        Panel("\n".join(lines), title="[bold]Registry not ready[/bold]", border_style="red")
    )
    raise typer.Exit(code=1)
