"""Upload orchestrator: writes item lines into the registry, batch by batch.

Per confirmation batch:

1. Fetch one fresh reference point (never reused across batches).
2. Build one transaction per group that still has an item off-chain; the
   transaction rewrites the whole group.
3. Ask the wallet to sign every transaction of the batch in one call.
4. Submit all signed transactions and await their confirmations
   concurrently; one failure does not cancel its siblings.
5. Merge the results into the cache once every transaction is resolved:
   confirmed groups become ``onChain``, failed ones keep their status and
   carry the error, so the next run retries exactly those items.

Batches run strictly one after another.  A signing failure aborts the run;
batches merged before it stay valid and a later run resumes after them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from mintforge.bridge.protocols import NetworkClient, Wallet
from mintforge.core import instructions
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.confirmation import await_confirmation, reconcile
from mintforge.core.errors import (
    ConfirmationTimeout,
    SigningFailed,
    SubmissionFailed,
    TransactionBuildFailed,
    describe,
)
from mintforge.models.items import ItemUpdate
from mintforge.models.plan import ConfirmationBatch, TransactionGroup
from mintforge.models.results import TransactionOutcome, UploadResult
from mintforge.models.transactions import (
    ReferencePoint,
    SignedTransaction,
    UnsignedTransaction,
)

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """Drives line uploads for one registry.

    Parameters
    ----------
    network:
        Ledger client.
    wallet:
        Authority wallet that signs each batch.
    cache:
        The cache reconciler; the only place results are recorded.
    program_id:
        Address of the registry program.
    registry_address:
        The initialized registry account.
    confirm_timeout:
        Seconds to wait for each confirmation before a signature lookup.
    max_concurrency:
        Cap on in-flight submissions per batch.  Defaults to the number of
        transactions in the batch.
    """

    def __init__(
        self,
        network: NetworkClient,
        wallet: Wallet,
        cache: CacheReconciler,
        *,
        program_id: str,
        registry_address: str,
        confirm_timeout: float = 60.0,
        max_concurrency: int | None = None,
    ) -> None:
        self._network = network
        self._wallet = wallet
        self._cache = cache
        self._program_id = program_id
        self._registry_address = registry_address
        self._confirm_timeout = confirm_timeout
        self._max_concurrency = max_concurrency

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def upload(self, batches: Sequence[ConfirmationBatch]) -> UploadResult:
        """Process *batches* in order and report what landed.

        Fully uploaded batches are skipped without touching the network.
        """
        processed = skipped = submitted = confirmed = 0
        failed: list[int] = []

        for batch in batches:
            if all(self._cache.is_complete(i) for i in batch.indices):
                skipped += 1
                continue

            logger.info(
                "Batch %d/%d: items %d-%d",
                batch.ordinal + 1,
                len(batches),
                batch.indices[0],
                batch.indices[-1],
            )
            try:
                outcomes, batch_failed = await self._process_batch(batch)
            except SigningFailed as exc:
                logger.error("Aborting upload: %s", exc)
                return UploadResult(
                    successful=False,
                    batches_total=len(batches),
                    batches_processed=processed,
                    batches_skipped=skipped,
                    transactions_submitted=submitted,
                    transactions_confirmed=confirmed,
                    failed_indices=sorted(set(failed) | set(self._cache.state.pending_indices())),
                    aborted=True,
                    error=describe(exc),
                )

            processed += 1
            submitted += len(outcomes)
            confirmed += sum(1 for outcome in outcomes if outcome.confirmed)
            failed.extend(batch_failed)

        successful = not failed
        logger.info(
            "Upload pass done: %d batch(es) processed, %d skipped, %d/%d transactions "
            "confirmed. Successful = %s",
            processed,
            skipped,
            confirmed,
            submitted,
            successful,
        )
        return UploadResult(
            successful=successful,
            batches_total=len(batches),
            batches_processed=processed,
            batches_skipped=skipped,
            transactions_submitted=submitted,
            transactions_confirmed=confirmed,
            failed_indices=sorted(failed),
        )

    # ------------------------------------------------------------------
    # One confirmation batch
    # ------------------------------------------------------------------

    async def _process_batch(
        self, batch: ConfirmationBatch
    ) -> tuple[list[TransactionOutcome], list[int]]:
        updates: list[ItemUpdate] = []
        failed: list[int] = []

        def record_failure(indices: Sequence[int], error: str) -> None:
            pending = [i for i in indices if not self._cache.is_complete(i)]
            updates.extend(ItemUpdate.failed(i, error) for i in pending)
            failed.extend(pending)

        try:
            reference = await self._network.get_reference_point()
        except Exception as exc:
            logger.error("Batch %d: no reference point: %s", batch.ordinal, exc)
            record_failure(batch.indices, describe(exc))
            self._cache.merge(updates)
            return [], failed

        staged: list[tuple[UnsignedTransaction, TransactionGroup]] = []
        for group in batch.groups:
            if all(self._cache.is_complete(i) for i in group.indices):
                continue
            try:
                staged.append((self._build_transaction(group, reference), group))
            except TransactionBuildFailed as exc:
                logger.error("Saving config lines %d-%d failed: %s", group.start, group.end, exc)
                record_failure(group.indices, describe(exc))

        if not staged:
            self._cache.merge(updates)
            return [], failed

        logger.debug("Requesting %d signature(s) for batch %d", len(staged), batch.ordinal)
        try:
            signed = await self._wallet.sign_all([tx for tx, _ in staged])
            if len(signed) != len(staged):
                raise SigningFailed(
                    f"wallet returned {len(signed)} of {len(staged)} transactions"
                )
        except Exception as exc:
            error = exc if isinstance(exc, SigningFailed) else SigningFailed(str(exc))
            for _, group in staged:
                record_failure(group.indices, describe(error))
            self._cache.merge(updates)
            raise SigningFailed(f"Batch {batch.ordinal} was not signed: {error}") from exc

        outcomes = await self._submit_all(
            [(tx, group) for tx, (_, group) in zip(signed, staged)]
        )

        for outcome in outcomes:
            if outcome.confirmed:
                updates.extend(ItemUpdate.uploaded(i) for i in outcome.indices)
            else:
                record_failure(outcome.indices, outcome.error or "unknown failure")

        self._cache.merge(updates)
        return outcomes, failed

    def _build_transaction(
        self, group: TransactionGroup, reference: ReferencePoint
    ) -> UnsignedTransaction:
        items = self._cache.state.items
        try:
            lines = [(items[i].name, items[i].link) for i in group.indices]
        except KeyError as exc:
            raise TransactionBuildFailed(f"Item {exc.args[0]} is not in the cache") from exc
        logger.info("Writing indices %d-%d", group.start, group.end)
        instruction = instructions.add_config_lines(
            self._program_id,
            registry=self._registry_address,
            authority=self._wallet.public_key,
            start_index=group.start,
            lines=lines,
        )
        return UnsignedTransaction(
            fee_payer=self._wallet.public_key,
            reference_point=reference.blockhash,
            instructions=[instruction],
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def _submit_all(
        self, pairs: list[tuple[SignedTransaction, TransactionGroup]]
    ) -> list[TransactionOutcome]:
        semaphore = asyncio.Semaphore(self._max_concurrency or len(pairs))

        async def submit_with_limit(
            signed: SignedTransaction, group: TransactionGroup
        ) -> TransactionOutcome:
            async with semaphore:
                return await self._submit_one(signed, group)

        results = await asyncio.gather(
            *(submit_with_limit(signed, group) for signed, group in pairs),
            return_exceptions=True,
        )

        outcomes: list[TransactionOutcome] = []
        for (signed, group), result in zip(pairs, results):
            if isinstance(result, TransactionOutcome):
                outcomes.append(result)
                continue
            logger.exception("Unexpected error submitting %s", signed.signature, exc_info=result)
            outcomes.append(
                TransactionOutcome(
                    indices=group.indices,
                    signature=signed.signature,
                    confirmed=False,
                    error=describe(result),
                )
            )
        return outcomes

    async def _submit_one(
        self, signed: SignedTransaction, group: TransactionGroup
    ) -> TransactionOutcome:
        signature = signed.signature
        try:
            await self._network.submit(signed)
            landed = await await_confirmation(self._network, signature, self._confirm_timeout)
            error: Exception | None = None
            if not landed:
                error = ConfirmationTimeout(
                    f"{signature} not confirmed in {self._confirm_timeout:.0f}s"
                )
        except Exception as exc:
            landed = False
            error = SubmissionFailed(f"failed transaction {signature}: {exc}")

        if landed:
            logger.debug("Confirmed %s (items %d-%d)", signature, group.start, group.end)
            return TransactionOutcome(indices=group.indices, signature=signature, confirmed=True)

        if await reconcile(self._network, signature):
            return TransactionOutcome(
                indices=group.indices, signature=signature, confirmed=True, reconciled=True
            )

        logger.warning("Items %d-%d not written: %s", group.start, group.end, error)
        return TransactionOutcome(
            indices=group.indices,
            signature=signature,
            confirmed=False,
            error=describe(error) if error else None,
        )
