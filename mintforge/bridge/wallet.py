"""Local keypair wallet."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from mintforge.core.errors import SigningFailed
from mintforge.core.keys import Keypair
from mintforge.models.transactions import SignedTransaction, UnsignedTransaction

logger = logging.getLogger(__name__)


class KeypairWallet:
    """Signs with a single Ed25519 keypair held in memory.

    ``sign_all`` is all-or-nothing: every transaction is checked before
    anything is signed, and a rejected one fails the whole call.
    """

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair

    @classmethod
    def from_file(cls, path: Path) -> KeypairWallet:
        try:
            return cls(Keypair.from_file(path))
        except (OSError, ValueError) as exc:
            raise SigningFailed(f"Cannot load wallet keypair from {path}: {exc}") from exc

    @property
    def public_key(self) -> str:
        return self._keypair.address

    async def sign_all(
        self, transactions: Sequence[UnsignedTransaction]
    ) -> list[SignedTransaction]:
        for position, transaction in enumerate(transactions):
            if self.public_key not in transaction.required_signers:
                raise SigningFailed(
                    f"Transaction {position} does not require {self.public_key}"
                )
        signed = [SignedTransaction.sign(tx, self._keypair) for tx in transactions]
        logger.debug("Signed %d transaction(s) as %s", len(signed), self.public_key)
        return signed
