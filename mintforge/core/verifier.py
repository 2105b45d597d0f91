"""Registry verifier: compares the on-chain records with the cache.

Verification is a separate, re-runnable pass.  Reads from a follower can
lag behind confirmed writes, so a mismatch only leaves the item unverified
for a later pass; it never rolls back the upload status unless the caller
asks for ``requeue_mismatches``.
"""

from __future__ import annotations

import logging

from mintforge.bridge.protocols import NetworkClient
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.errors import (
    OverCapacity,
    RegistryLayoutError,
    UnderReported,
    VerificationError,
    VerificationMismatch,
    describe,
)
from mintforge.core.layout import decode_header, decode_record
from mintforge.models.items import ItemRecord, ItemUpdate
from mintforge.models.results import VerificationFailure, VerificationResult

logger = logging.getLogger(__name__)


def compare_record(buffer: bytes, record: ItemRecord) -> VerificationMismatch | None:
    """Return the mismatch for *record*, or ``None`` if the ledger agrees."""
    try:
        line = decode_record(buffer, record.index)
    except RegistryLayoutError as exc:
        return VerificationMismatch(f"Item {record.index} has no record: {exc}")
    if line.name != record.name:
        return VerificationMismatch(
            f"Name ({line.name!r}) != cache value ({record.name!r}) at index {record.index}"
        )
    if line.uri != record.link:
        return VerificationMismatch(
            f"URI ({line.uri!r}) != cache value ({record.link!r}) at index {record.index}"
        )
    return None


class RegistryVerifier:
    """Reads the registry account once and checks every unverified item."""

    def __init__(self, network: NetworkClient, cache: CacheReconciler) -> None:
        self._network = network
        self._cache = cache

    async def verify(
        self,
        registry_address: str,
        declared_items_available: int | None = None,
        *,
        requeue_mismatches: bool = False,
    ) -> VerificationResult:
        """Verify item records, then the registry's item counts.

        Parameters
        ----------
        registry_address:
            Registry account to read.
        declared_items_available:
            Collection size to check the registry against.  Defaults to the
            size recorded in the cache, then to the number of cached items.
        requeue_mismatches:
            Also reset mismatched items to not-on-chain so the next upload
            rewrites them.

        Raises ``RegistryLayoutError`` when the account is missing or too
        short to hold a header.  Count failures are reported in the result,
        as ``failure`` and as ``error``; call
        :meth:`VerificationResult.raise_for_failure` to raise them.  A
        registry initialized with hidden settings stores no lines, so only
        its capacity is checked.
        """
        buffer = await self._network.get_account_bytes(registry_address)
        if buffer is None:
            raise RegistryLayoutError(f"Registry account {registry_address} not found")
        header = decode_header(buffer)

        state = self._cache.state
        declared = declared_items_available
        if declared is None:
            declared = state.program.items_available
        if declared is None:
            declared = len(state.items)

        if state.program.hidden_settings:
            # No lines are stored; only the capacity can be checked.
            logger.info(
                "Registry %s uses hidden settings; skipping item records", registry_address
            )
            unverified: list[int] = []
        else:
            unverified = state.unverified_indices()
            logger.info(
                "Verifying %d of %d item(s) against %s",
                len(unverified),
                len(state.items),
                registry_address,
            )

        updates: list[ItemUpdate] = []
        mismatches: list[int] = []
        for index in unverified:
            mismatch = compare_record(buffer, state.items[index])
            if mismatch is None:
                updates.append(ItemUpdate.verified(index))
                continue
            logger.warning("%s", mismatch)
            mismatches.append(index)
            updates.append(
                ItemUpdate.mismatched(
                    index,
                    describe(mismatch),
                    requeue=requeue_mismatches,
                )
            )
        self._cache.merge(updates)

        failure: VerificationFailure | None = None
        error: VerificationError | None = None
        if declared > header.items_available:
            failure = VerificationFailure.OVER_CAPACITY
            error = OverCapacity(
                f"Collection declares {declared} items but the registry holds at most "
                f"{header.items_available}"
            )
        elif header.line_count < declared and not state.program.hidden_settings:
            failure = VerificationFailure.UNDER_REPORTED
            error = UnderReported(
                f"Registry reports {header.line_count} items, expected {declared}; "
                "upload again to write the missing lines"
            )
        if error is not None:
            logger.error("%s", error)

        if mismatches:
            logger.warning(
                "%d item(s) did not match; re-run verify after propagation or "
                "upload with requeued items",
                len(mismatches),
            )
        elif failure is None:
            logger.info("All %d item(s) verified", len(unverified))

        return VerificationResult(
            all_matched=not mismatches,
            checked=len(unverified),
            mismatches=mismatches,
            stored_count=header.line_count,
            capacity=header.items_available,
            declared_items_available=declared,
            failure=failure,
            detail=str(error) if error is not None else None,
            error=describe(error) if error is not None else None,
        )
