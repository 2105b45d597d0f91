"""``mintforge upload MANIFEST``: initialize the registry and write item lines.

Resumes from the cache: a registry recorded there is reused and items
already on the ledger are skipped.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from mintforge.bridge.rpc_client import RpcNetworkClient
from mintforge.bridge.wallet import KeypairWallet
from mintforge.config import settings
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.errors import MintforgeError
from mintforge.core.pipeline import MintPipeline
from mintforge.core.planner import BatchPlanner
from mintforge.log_setup import configure_logging
from mintforge.manifest import load_manifest, load_registry_config
from mintforge.models.items import ManifestItem
from mintforge.models.registry import RegistryConfig
from mintforge.models.results import UploadOutcome

console = Console()


async def _run_upload(
    rpc_url: str,
    wallet: KeypairWallet,
    reconciler: CacheReconciler,
    planner: BatchPlanner,
    items: list[ManifestItem],
    config: RegistryConfig,
) -> UploadOutcome:
    async with RpcNetworkClient(
        rpc_url,
        commitment=settings.commitment,
        poll_interval=settings.confirm_poll_interval_seconds,
    ) as network:
        pipeline = MintPipeline(
            network,
            wallet,
            reconciler,
            program_id=settings.program_id,
            planner=planner,
            confirm_timeout=settings.confirm_timeout_seconds,
            max_concurrency=settings.max_concurrent_transactions,
        )
        return await pipeline.upload(items, config)


def upload_cmd(
    manifest: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON list of item metadata.",
    ),
    config_path: Path = typer.Option(
        ...,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Collection config JSON (price, creators, mint settings).",
    ),
    links: Path = typer.Option(
        None,
        "--links",
        exists=True,
        dir_okay=False,
        help="JSON list of metadata links, paired with manifest entries by position.",
    ),
    cache: Path = typer.Option(
        None,
        "--cache",
        help="Cache file (default: <cache_dir>/<environment>-<cache_name>.json).",
    ),
    keypair: Path = typer.Option(
        None,
        "--keypair",
        "-k",
        help="Authority keypair JSON file.",
    ),
    rpc_url: str = typer.Option(
        None,
        "--rpc-url",
        "-u",
        help="JSON-RPC endpoint.",
    ),
    batch_size: int = typer.Option(
        None,
        "--batch-size",
        help="Items per confirmation batch.",
    ),
    tx_size: int = typer.Option(
        None,
        "--tx-size",
        help="Items per transaction (at most 10).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log per-transaction detail.",
    ),
) -> None:
    """Upload a collection into its registry, resuming from the cache."""
    configure_logging("DEBUG" if verbose else settings.log_level)
    cache_path = cache or settings.cache_path

    try:
        items = load_manifest(manifest, links)
        config = load_registry_config(config_path)
        planner = BatchPlanner(
            batch_size or settings.confirmation_batch_size,
            tx_size or settings.tx_batch_size,
        )
        wallet = KeypairWallet.from_file(keypair or settings.keypair_path)
        reconciler = CacheReconciler(cache_path, env=settings.environment)
    except (MintforgeError, ValueError) as exc:
        console.print(f"[bold red]Cannot start upload:[/bold red] {exc}")
        raise typer.Exit(code=1)

    outcome = asyncio.run(
        _run_upload(rpc_url or settings.rpc_url, wallet, reconciler, planner, items, config)
    )

    state = outcome.cache
    on_chain = len(state.items) - len(state.pending_indices())
    lines = [
        f"[bold]Registry:[/bold]      {state.registry_address or '-'}",
        f"[bold]Collection:[/bold]    {state.collection_id or '-'}",
        f"[bold]On chain:[/bold]      {on_chain}/{len(state.items)}",
        f"[bold]Cache:[/bold]         {cache_path}",
    ]
    if outcome.result is not None:
        result = outcome.result
        lines.append(
            f"[bold]Transactions:[/bold]  {result.transactions_confirmed}/"
            f"{result.transactions_submitted} confirmed, "
            f"{result.batches_skipped} batch(es) skipped"
        )

    if outcome.ok:
        lines += ["", "[dim]Run `mintforge verify` once the writes have propagated.[/dim]"]
        console.print(
            Panel("\n".join(lines), title="[bold]Upload complete[/bold]", border_style="green")
        )
        return

    if outcome.error:
        lines += ["", f"[red]{outcome.error}[/red]"]
    lines += ["", "[dim]Run the same command again to retry the remaining items.[/dim]"]
    console.print(
        Panel("\n".join(lines), title="[bold]Upload incomplete[/bold]", border_style="red")
    )
    raise typer.Exit(code=1)
