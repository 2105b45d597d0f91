"""Collaborator protocols: the ledger network client and the signing wallet.

Any object with matching coroutine methods satisfies these protocols.
``RpcNetworkClient`` and ``KeypairWallet`` are the bundled
implementations.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from mintforge.models.transactions import ReferencePoint, SignedTransaction, UnsignedTransaction


@runtime_checkable
class NetworkClient(Protocol):
    """Ledger primitives the pipeline drives."""

    async def get_reference_point(self) -> ReferencePoint:
        """Return a fresh block reference for new transactions."""
        ...

    async def submit(self, transaction: SignedTransaction) -> str:
        """Send a signed transaction and return its signature."""
        ...

    async def confirm(self, signature: str, timeout: float) -> bool:
        """Wait up to *timeout* seconds; ``False`` means the outcome is unknown.

        Raises when the ledger reports the transaction as failed.
        """
        ...

    async def get_account_bytes(self, address: str) -> bytes | None:
        """Raw account data, or ``None`` if the account does not exist."""
        ...

    async def lookup_signature(self, signature: str) -> bool | None:
        """``True`` if landed and confirmed, ``False`` if landed with an error,
        ``None`` if the ledger has no record of it."""
        ...


@runtime_checkable
class Wallet(Protocol):
    """Signs transactions on behalf of the collection authority."""

    @property
    def public_key(self) -> str:
        ...

    async def sign_all(
        self, transactions: Sequence[UnsignedTransaction]
    ) -> list[SignedTransaction]:
        """Sign every transaction, or raise without returning any."""
        ...
