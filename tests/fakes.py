"""In-memory ledger and wallet doubles.

``FakeLedger`` satisfies the ``NetworkClient`` protocol.  Submitted
transactions are signature-checked and then applied to packed registry
buffers laid out exactly as :mod:`mintforge.core.layout` decodes them, so
verification runs against real bytes.

Failure injection is keyed by transaction: the start index of an
``add_config_lines`` write, or ``"init"`` for registry initialization.
"""

from __future__ import annotations

import struct
from collections.abc import Sequence
from typing import Union

from mintforge.bridge.wallet import KeypairWallet
from mintforge.core.keys import Keypair, b58decode
from mintforge.core.layout import (
    AUTHORITY_OFFSET,
    CONFIG_ARRAY_START,
    ITEMS_AVAILABLE_OFFSET,
    encode_record,
    record_offset,
    registry_space,
)
from mintforge.models.transactions import (
    ReferencePoint,
    SignedTransaction,
    UnsignedTransaction,
)

TxKey = Union[int, str]

PROGRAM_ID = "MintforgeRegistry11111111111111111111111111"


def item_name(index: int) -> str:
    return f"Item #{index}"


def item_link(index: int) -> str:
    return f"https://arweave.net/meta-{index:06d}"


def tx_key(transaction: SignedTransaction) -> TxKey:
    for instruction in transaction.message.instructions:
        if instruction.name == "add_config_lines":
            return instruction.data["index"]
    return "init"


def build_registry_buffer(
    items_available: int,
    lines: Sequence[tuple[str, str]] = (),
    *,
    line_count: int | None = None,
) -> bytearray:
    """A registry account holding *lines* from index 0."""
    buffer = bytearray(registry_space(items_available))
    struct.pack_into("<Q", buffer, ITEMS_AVAILABLE_OFFSET, items_available)
    for index, (name, uri) in enumerate(lines):
        write_record(buffer, index, name, uri)
    struct.pack_into(
        "<I", buffer, CONFIG_ARRAY_START, len(lines) if line_count is None else line_count
    )
    return buffer


def write_record(buffer: bytearray, index: int, name: str, uri: str) -> None:
    start = record_offset(index)
    record = encode_record(name, uri)
    buffer[start:start + len(record)] = record


class FakeLedger:
    """A single-node ledger that confirms instantly unless told otherwise.

    Attributes
    ----------
    fail_submit:
        Keys whose submission raises and never lands.
    unconfirmed:
        Keys that land but whose confirmation wait reports unknown, so only
        a signature lookup can prove them.
    lost:
        Keys accepted by ``submit`` that never land.
    rejected:
        Keys that land as failed; ``confirm`` raises for them.
    fail_reference_point:
        Number of upcoming ``get_reference_point`` calls that raise.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, bytearray] = {}
        self.statuses: dict[str, bool] = {}
        self.submitted: list[SignedTransaction] = []
        self.reference_points: list[ReferencePoint] = []
        self.fail_submit: set[TxKey] = set()
        self.unconfirmed: set[TxKey] = set()
        self.lost: set[TxKey] = set()
        self.rejected: set[TxKey] = set()
        self.fail_reference_point = 0
        self.lookups: list[str] = []
        self._keys: dict[str, TxKey] = {}

    # ------------------------------------------------------------------
    # NetworkClient
    # ------------------------------------------------------------------

    async def get_reference_point(self) -> ReferencePoint:
        if self.fail_reference_point:
            self.fail_reference_point -= 1
            raise ConnectionError("blockhash unavailable")
        reference = ReferencePoint(
            blockhash=f"blockhash-{len(self.reference_points)}",
            last_valid_height=len(self.reference_points) + 150,
        )
        self.reference_points.append(reference)
        return reference

    async def submit(self, transaction: SignedTransaction) -> str:
        if not transaction.verify_signatures():
            raise ValueError(f"bad signatures, missing {transaction.missing_signers}")
        key = tx_key(transaction)
        signature = transaction.signature
        self._keys[signature] = key
        self.submitted.append(transaction)
        if key in self.fail_submit:
            raise ConnectionError("connection reset by peer")
        if key in self.lost:
            return signature
        if key in self.rejected:
            self.statuses[signature] = False
            return signature
        self._apply(transaction.message)
        self.statuses[signature] = True
        return signature

    async def confirm(self, signature: str, timeout: float) -> bool:
        if self._keys.get(signature) in self.unconfirmed:
            return False
        status = self.statuses.get(signature)
        if status is False:
            raise RuntimeError(f"transaction {signature} failed: custom program error")
        return bool(status)

    async def get_account_bytes(self, address: str) -> bytes | None:
        buffer = self.accounts.get(address)
        return bytes(buffer) if buffer is not None else None

    async def lookup_signature(self, signature: str) -> bool | None:
        self.lookups.append(signature)
        return self.statuses.get(signature)

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def submitted_keys(self) -> list[TxKey]:
        return [tx_key(tx) for tx in self.submitted]

    def line_writes(self) -> list[list[str]]:
        """Names written by each submitted ``add_config_lines`` transaction."""
        writes = []
        for transaction in self.submitted:
            for instruction in transaction.message.instructions:
                if instruction.name == "add_config_lines":
                    writes.append([line["name"] for line in instruction.data["config_lines"]])
        return writes

    # ------------------------------------------------------------------
    # Program emulation
    # ------------------------------------------------------------------

    def _apply(self, message: UnsignedTransaction) -> None:
        for instruction in message.instructions:
            accounts = [meta.address for meta in instruction.accounts]
            if instruction.name == "create_account":
                self.accounts[accounts[1]] = bytearray(instruction.data["space"])
            elif instruction.name == "initialize_candy_machine":
                buffer = self.accounts[accounts[0]]
                buffer[AUTHORITY_OFFSET:AUTHORITY_OFFSET + 32] = b58decode(accounts[2])
                struct.pack_into(
                    "<Q", buffer, ITEMS_AVAILABLE_OFFSET, instruction.data["items_available"]
                )
            elif instruction.name == "add_config_lines":
                buffer = self.accounts[accounts[0]]
                start = instruction.data["index"]
                lines = instruction.data["config_lines"]
                for offset, line in enumerate(lines):
                    write_record(buffer, start + offset, line["name"], line["uri"])
                (count,) = struct.unpack_from("<I", buffer, CONFIG_ARRAY_START)
                struct.pack_into("<I", buffer, CONFIG_ARRAY_START, max(count, start + len(lines)))
            else:
                raise ValueError(f"unknown instruction {instruction.name}")


class FakeWallet(KeypairWallet):
    """Keypair wallet that records signing requests and can refuse one.

    ``reject_on_call`` is the 1-based signing request to refuse.
    """

    def __init__(self, keypair: Keypair, *, reject_on_call: int | None = None) -> None:
        super().__init__(keypair)
        self.reject_on_call = reject_on_call
        self.requests: list[int] = []

    async def sign_all(
        self, transactions: Sequence[UnsignedTransaction]
    ) -> list[SignedTransaction]:
        self.requests.append(len(transactions))
        if self.reject_on_call == len(self.requests):
            raise RuntimeError("User rejected the request.")
        return await super().sign_all(transactions)
