"""Ledger transaction models.

A transaction message is signed over its canonical JSON bytes.  The
transaction id is the fee payer's signature, which is known locally as
soon as the wallet has signed, before anything is submitted.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mintforge.core.canonical import canonical_json_bytes
from mintforge.core.keys import Keypair, verify_signature


class ReferencePoint(BaseModel):
    """A recent block reference; transactions built on it expire quickly."""

    model_config = ConfigDict(frozen=True)

    blockhash: str
    last_valid_height: int | None = None


class AccountMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    is_signer: bool = False
    is_writable: bool = False


class Instruction(BaseModel):
    """One program call inside a transaction."""

    model_config = ConfigDict(frozen=True)

    program_id: str
    name: str
    accounts: list[AccountMeta] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)


class UnsignedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    fee_payer: str
    reference_point: str
    instructions: list[Instruction]

    @property
    def required_signers(self) -> list[str]:
        """Fee payer first, then every other signer account in order."""
        signers = [self.fee_payer]
        for instruction in self.instructions:
            for account in instruction.accounts:
                if account.is_signer and account.address not in signers:
                    signers.append(account.address)
        return signers

    def message_bytes(self) -> bytes:
        return canonical_json_bytes(self.model_dump(mode="json"))


class SignedTransaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: UnsignedTransaction
    signatures: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def sign(cls, message: UnsignedTransaction, *keypairs: Keypair) -> SignedTransaction:
        return cls(message=message).add_signatures(*keypairs)

    @property
    def signature(self) -> str:
        """Transaction id: the fee payer's signature (empty until signed)."""
        return self.signatures.get(self.message.fee_payer, "")

    @property
    def missing_signers(self) -> list[str]:
        return [s for s in self.message.required_signers if s not in self.signatures]

    @property
    def is_fully_signed(self) -> bool:
        return not self.missing_signers

    def add_signatures(self, *keypairs: Keypair) -> SignedTransaction:
        """Return a copy co-signed by *keypairs*.

        Raises ``ValueError`` for a keypair the message does not ask for.
        """
        required = self.message.required_signers
        message = self.message.message_bytes()
        signatures = dict(self.signatures)
        for keypair in keypairs:
            if keypair.address not in required:
                raise ValueError(f"{keypair.address} is not a signer of this transaction")
            signatures[keypair.address] = keypair.sign(message)
        return self.model_copy(update={"signatures": signatures})

    def verify_signatures(self) -> bool:
        """Every required signer is present and every signature checks out."""
        if not self.is_fully_signed:
            return False
        message = self.message.message_bytes()
        return all(
            verify_signature(address, message, self.signatures[address])
            for address in self.message.required_signers
        )

    def serialize(self) -> bytes:
        """Wire bytes: the message plus signatures in signer order."""
        return canonical_json_bytes(
            {
                "message": self.message.model_dump(mode="json"),
                "signatures": [
                    self.signatures.get(address, "")
                    for address in self.message.required_signers
                ],
            }
        )
