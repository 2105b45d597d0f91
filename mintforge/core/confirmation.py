"""Bounded confirmation with signature-lookup reconciliation.

A confirmation wait never blocks past its timeout.  When the outcome is
unknown (timeout, dropped connection, ambiguous RPC error) the signature is
looked up directly: the transaction id is derived from the signature, so a
transaction that landed anyway can still be recognised.
"""

from __future__ import annotations

import asyncio
import logging

from mintforge.bridge.protocols import NetworkClient

logger = logging.getLogger(__name__)

# Extra time granted to the client's own timeout before cancelling it.
CONFIRM_GRACE_SECONDS = 5.0


async def await_confirmation(network: NetworkClient, signature: str, timeout: float) -> bool:
    """``True`` once confirmed, ``False`` if the wait ran out.

    Errors reported by the ledger for this transaction propagate.
    """
    try:
        return await asyncio.wait_for(
            network.confirm(signature, timeout),
            timeout=timeout + CONFIRM_GRACE_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.debug("Confirmation wait for %s cancelled after %.1fs", signature, timeout)
        return False


async def reconcile(network: NetworkClient, signature: str) -> bool:
    """Look the signature up; ``True`` only if it landed and confirmed."""
    if not signature:
        return False
    try:
        landed = await network.lookup_signature(signature)
    except Exception as exc:
        logger.warning("Signature lookup for %s failed: %s", signature, exc)
        return False
    if landed:
        logger.info("Transaction %s confirmed by signature lookup", signature)
    return bool(landed)
