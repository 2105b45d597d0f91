"""Tests for base58 encoding, Ed25519 keypairs and the keypair wallet."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mintforge.bridge.wallet import KeypairWallet
from mintforge.core.errors import SigningFailed
from mintforge.core.keys import (
    Keypair,
    b58decode,
    b58encode,
    is_valid_address,
    verify_signature,
)
from mintforge.models.transactions import AccountMeta, Instruction, UnsignedTransaction


class TestBase58:
    @pytest.mark.parametrize(
        "raw, encoded",
        [
            (b"", ""),
            (b"\x00", "1"),
            (b"\x00\x00\x01", "112"),
            (b"hello world", "StV1DL6CwTryKyV"),
        ],
    )
    def test_known_vectors(self, raw: bytes, encoded: str):
        assert b58encode(raw) == encoded
        assert b58decode(encoded) == raw

    def test_rejects_ambiguous_characters(self):
        for bad in ("0", "O", "I", "l"):
            with pytest.raises(ValueError):
                b58decode(bad)

    def test_address_validity(self, authority: Keypair):
        assert is_valid_address(authority.address)
        assert not is_valid_address("abc")
        assert not is_valid_address("0OIl")


class TestKeypair:
    def test_seed_is_deterministic(self):
        assert Keypair.from_seed(b"\x01" * 32).address == Keypair.from_seed(b"\x01" * 32).address

    def test_generate_is_fresh(self):
        assert Keypair.generate().address != Keypair.generate().address

    def test_sign_and_verify(self, authority: Keypair):
        signature = authority.sign(b"payload")
        assert verify_signature(authority.address, b"payload", signature)
        assert not verify_signature(authority.address, b"other", signature)

    def test_verify_rejects_garbage(self, authority: Keypair):
        assert not verify_signature(authority.address, b"payload", "")
        assert not verify_signature(authority.address, b"payload", "0bad")

    def test_file_round_trip(self, authority: Keypair, tmp_dir: Path):
        path = tmp_dir / "id.json"
        path.write_text(authority.to_json())
        assert Keypair.from_file(path).address == authority.address

    def test_file_wrong_length(self, tmp_dir: Path):
        path = tmp_dir / "id.json"
        path.write_text(json.dumps([1] * 10))
        with pytest.raises(ValueError, match="64 bytes"):
            Keypair.from_file(path)

    def test_file_mismatched_public_key(self, authority: Keypair, tmp_dir: Path):
        secret = json.loads(authority.to_json())
        secret[40] ^= 0xFF
        path = tmp_dir / "id.json"
        path.write_text(json.dumps(secret))
        with pytest.raises(ValueError, match="mismatched"):
            Keypair.from_file(path)


class TestKeypairWallet:
    def _transaction(self, fee_payer: str) -> UnsignedTransaction:
        return UnsignedTransaction(
            fee_payer=fee_payer,
            reference_point="blockhash-0",
            instructions=[
                Instruction(
                    program_id="Prog",
                    name="noop",
                    accounts=[AccountMeta(address=fee_payer, is_signer=True)],
                )
            ],
        )

    @pytest.mark.asyncio
    async def test_signs_every_transaction(self, authority: Keypair):
        wallet = KeypairWallet(authority)
        signed = await wallet.sign_all([self._transaction(authority.address)] * 3)
        assert len(signed) == 3
        assert all(tx.verify_signatures() for tx in signed)

    @pytest.mark.asyncio
    async def test_all_or_nothing(self, authority: Keypair, second_creator: Keypair):
        wallet = KeypairWallet(authority)
        batch = [
            self._transaction(authority.address),
            self._transaction(second_creator.address),
        ]
        with pytest.raises(SigningFailed, match="Transaction 1"):
            await wallet.sign_all(batch)

    def test_from_file(self, authority: Keypair, tmp_dir: Path):
        path = tmp_dir / "id.json"
        path.write_text(authority.to_json())
        assert KeypairWallet.from_file(path).public_key == authority.address

    def test_from_missing_file(self, tmp_dir: Path):
        with pytest.raises(SigningFailed, match="Cannot load"):
            KeypairWallet.from_file(tmp_dir / "absent.json")
