"""Batch planner: two-level partition of item indices.

``[0, total)`` is cut into contiguous confirmation batches (items sharing
one reference point and one signing request), and each batch into
contiguous transaction groups (items written by one transaction).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TypeVar

from mintforge.models.cache import CacheState
from mintforge.models.plan import ConfirmationBatch, TransactionGroup

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONFIRMATION_BATCH_SIZE = 500
DEFAULT_TX_BATCH_SIZE = 5
# Above this many lines a single transaction overruns its serialized size.
MAX_TX_BATCH_SIZE = 10


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split *items* into consecutive slices of at most *size* elements."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchPlanner:
    """Partitions item indices into confirmation batches of transaction groups.

    Parameters
    ----------
    confirmation_batch_size:
        Items per confirmation batch (one reference point, one signing call).
    tx_batch_size:
        Items per transaction; at most ``MAX_TX_BATCH_SIZE``.
    """

    def __init__(
        self,
        confirmation_batch_size: int = DEFAULT_CONFIRMATION_BATCH_SIZE,
        tx_batch_size: int = DEFAULT_TX_BATCH_SIZE,
    ) -> None:
        if confirmation_batch_size <= 0:
            raise ValueError(
                f"confirmation_batch_size must be positive, got {confirmation_batch_size}"
            )
        if not 0 < tx_batch_size <= MAX_TX_BATCH_SIZE:
            raise ValueError(
                f"tx_batch_size must be within 1..{MAX_TX_BATCH_SIZE}, got {tx_batch_size}"
            )
        self.confirmation_batch_size = confirmation_batch_size
        self.tx_batch_size = tx_batch_size

    def plan(self, total_items: int) -> list[ConfirmationBatch]:
        """Cover ``[0, total_items)`` with no gaps and no duplicates."""
        if total_items < 0:
            raise ValueError(f"total_items must be non-negative, got {total_items}")
        batches = []
        for ordinal, batch in enumerate(
            chunked(range(total_items), self.confirmation_batch_size)
        ):
            groups = tuple(
                TransactionGroup(indices=tuple(group))
                for group in chunked(batch, self.tx_batch_size)
            )
            batches.append(ConfirmationBatch(ordinal=ordinal, groups=groups))
        return batches

    def pending(
        self, batches: Sequence[ConfirmationBatch], cache: CacheState
    ) -> list[ConfirmationBatch]:
        """Drop batches whose every item is already on the ledger."""
        remaining = [
            batch for batch in batches
            if not all(cache.is_complete(i) for i in batch.indices)
        ]
        skipped = len(batches) - len(remaining)
        if skipped:
            logger.info("Skipping %d fully uploaded batch(es)", skipped)
        return remaining
