"""Mint pipeline: the resumable ``upload`` and ``verify`` entry points.

Each call makes one forward pass and returns with a cache that records
every item's progress.  Running the same call again is how every per-item
failure is recovered from; nothing retries in a loop.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from mintforge.bridge.protocols import NetworkClient, Wallet
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.errors import (
    EmptyManifest,
    InvalidConfig,
    MintforgeError,
    RegistryLayoutError,
    describe,
)
from mintforge.core.initializer import RegistryInitializer, validate_config
from mintforge.core.orchestrator import UploadOrchestrator
from mintforge.core.planner import BatchPlanner
from mintforge.core.verifier import RegistryVerifier
from mintforge.models.cache import CacheState
from mintforge.models.items import ManifestItem
from mintforge.models.registry import RegistryConfig, RegistryHandle
from mintforge.models.results import UploadOutcome, UploadResult, VerificationResult

logger = logging.getLogger(__name__)


def prepare_config(manifest: Sequence[ManifestItem], config: RegistryConfig) -> RegistryConfig:
    """Complete *config* from the manifest and validate it.

    The first item supplies the symbol, royalty and creators the config
    leaves blank.  Raises ``EmptyManifest`` or ``InvalidConfig``.
    """
    if not manifest:
        raise EmptyManifest("Manifest holds no items")
    first = manifest[0]
    try:
        config = config.with_defaults(
            items_available=len(manifest),
            symbol=first.symbol,
            seller_fee_basis_points=first.seller_fee_basis_points,
            creators=first.creators,
        )
    except ValidationError as exc:
        raise InvalidConfig(f"Collection config is invalid: {exc}") from exc
    if config.items_available < len(manifest):
        raise InvalidConfig(
            f"Config declares {config.items_available} items but the manifest has "
            f"{len(manifest)}"
        )
    validate_config(config)
    return config


class MintPipeline:
    """Wires the initializer, planner, orchestrator and verifier to one cache.

    Parameters
    ----------
    network:
        Ledger client.
    wallet:
        Collection authority wallet.
    cache:
        Reconciler holding the prior cache; it receives every update.
    program_id:
        Address of the registry program.
    planner:
        Batch planner; defaults to 500-item batches of 5-item transactions.
    confirm_timeout:
        Seconds per confirmation wait.
    max_concurrency:
        Optional cap on in-flight transactions per batch.
    """

    def __init__(
        self,
        network: NetworkClient,
        wallet: Wallet,
        cache: CacheReconciler,
        *,
        program_id: str,
        planner: BatchPlanner | None = None,
        confirm_timeout: float = 60.0,
        max_concurrency: int | None = None,
    ) -> None:
        self._network = network
        self._wallet = wallet
        self._cache = cache
        self._program_id = program_id
        self._planner = planner or BatchPlanner()
        self._confirm_timeout = confirm_timeout
        self._max_concurrency = max_concurrency

    @property
    def cache(self) -> CacheReconciler:
        return self._cache

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self, manifest: Sequence[ManifestItem], config: RegistryConfig
    ) -> UploadOutcome:
        """Initialize the registry if needed, then write pending lines.

        Errors are returned in the outcome rather than raised; the cache in
        the outcome reflects everything that was confirmed before them.
        """
        handle: RegistryHandle | None = None
        result: UploadResult | None = None
        try:
            items = sorted(manifest, key=lambda item: item.index)
            config = prepare_config(items, config)
            self._check_registry_capacity(config, len(items))
            self._cache.register_manifest(items)

            handle = await self._ensure_registry(config)

            if config.hidden is not None:
                logger.info("Hidden settings enabled; skipping config line upload")
                result = UploadResult(successful=True)
            else:
                batches = self._planner.plan(len(items))
                orchestrator = UploadOrchestrator(
                    self._network,
                    self._wallet,
                    self._cache,
                    program_id=self._program_id,
                    registry_address=handle.registry_address,
                    confirm_timeout=self._confirm_timeout,
                    max_concurrency=self._max_concurrency,
                )
                result = await orchestrator.upload(batches)
        except MintforgeError as exc:
            logger.error("Upload stopped: %s", exc)
            return UploadOutcome(
                cache=self._cache.state, registry=handle, result=result, error=describe(exc)
            )

        error = result.error if result.aborted else None
        return UploadOutcome(cache=self._cache.state, registry=handle, result=result, error=error)

    def _check_registry_capacity(self, config: RegistryConfig, manifest_size: int) -> None:
        """Refuse a config that no longer fits the registry already initialized.

        The capacity and hidden-settings mode are fixed at initialization;
        a resumed run that would exceed or change them submits nothing.
        """
        program = self._cache.state.program
        if program.candy_machine is None or program.items_available is None:
            return
        wanted = max(manifest_size, config.items_available)
        if wanted > program.items_available:
            raise InvalidConfig(
                f"Registry {program.candy_machine} holds {program.items_available} items; "
                f"the collection now needs {wanted}.  Start a new cache to initialize "
                "a larger registry"
            )
        if program.hidden_settings != (config.hidden is not None):
            raise InvalidConfig(
                f"Registry {program.candy_machine} was initialized "
                f"{'with' if program.hidden_settings else 'without'} hidden settings; "
                "they cannot change after initialization"
            )

    async def _ensure_registry(self, config: RegistryConfig) -> RegistryHandle:
        state = self._cache.state
        if state.registry_address is not None:
            logger.info("Registry %s already initialized; resuming", state.registry_address)
            return RegistryHandle(
                registry_address=state.registry_address,
                collection_id=state.collection_id or "",
                signature="",
            )
        initializer = RegistryInitializer(
            self._network,
            self._wallet,
            program_id=self._program_id,
            confirm_timeout=self._confirm_timeout,
        )
        handle = await initializer.initialize(config)
        self._cache.bind_registry(
            handle, config.items_available, hidden_settings=config.hidden is not None
        )
        return handle

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    async def verify(
        self,
        registry_address: str | None = None,
        declared_items_available: int | None = None,
        *,
        requeue_mismatches: bool = False,
    ) -> VerificationResult:
        """Check the registry against the cache; defaults to the cached registry."""
        return await _run_verification(
            self._network,
            self._cache,
            registry_address,
            declared_items_available,
            requeue_mismatches=requeue_mismatches,
        )


# ----------------------------------------------------------------------
# Functional entry points
# ----------------------------------------------------------------------


async def upload(
    manifest: Sequence[ManifestItem],
    config: RegistryConfig,
    prior_cache: CacheState | None = None,
    *,
    network: NetworkClient,
    wallet: Wallet,
    program_id: str,
    cache_path: Path | None = None,
    planner: BatchPlanner | None = None,
    confirm_timeout: float = 60.0,
) -> UploadOutcome:
    """One upload pass starting from *prior_cache* (or the file at *cache_path*)."""
    cache = CacheReconciler(cache_path, initial=prior_cache)
    pipeline = MintPipeline(
        network,
        wallet,
        cache,
        program_id=program_id,
        planner=planner,
        confirm_timeout=confirm_timeout,
    )
    return await pipeline.upload(manifest, config)


async def verify(
    cache: CacheState,
    registry_address: str | None,
    declared_items_available: int | None = None,
    *,
    network: NetworkClient,
    cache_path: Path | None = None,
    requeue_mismatches: bool = False,
) -> tuple[VerificationResult, CacheState]:
    """One verification pass over *cache*; returns the result and the new cache."""
    reconciler = CacheReconciler(cache_path, initial=cache)
    result = await _run_verification(
        network,
        reconciler,
        registry_address,
        declared_items_available,
        requeue_mismatches=requeue_mismatches,
    )
    return result, reconciler.state


async def _run_verification(
    network: NetworkClient,
    cache: CacheReconciler,
    registry_address: str | None,
    declared_items_available: int | None,
    *,
    requeue_mismatches: bool,
) -> VerificationResult:
    address = registry_address or cache.state.registry_address
    try:
        if address is None:
            raise RegistryLayoutError("Cache has no registry address; upload first")
        verifier = RegistryVerifier(network, cache)
        return await verifier.verify(
            address, declared_items_available, requeue_mismatches=requeue_mismatches
        )
    except MintforgeError as exc:
        logger.error("Verification stopped: %s", exc)
        return VerificationResult(all_matched=False, error=describe(exc))
