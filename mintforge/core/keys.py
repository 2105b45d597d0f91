"""Ed25519 keys and base58 addresses.

Ledger addresses are base58-encoded Ed25519 public keys and signatures are
base58-encoded 64-byte Ed25519 signatures.  Signing goes through PyNaCl
(libsodium).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import nacl.signing
from nacl.exceptions import BadSignatureError

logger = logging.getLogger(__name__)

B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
B58_MAP = {c: i for i, c in enumerate(B58_ALPHABET)}

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def b58encode(data: bytes) -> str:
    """Encode raw bytes as base58 (bitcoin alphabet)."""
    n_pad = 0
    for c in data:
        if c == 0:
            n_pad += 1
        else:
            break
    num = int.from_bytes(data, "big")
    out = bytearray()
    while num > 0:
        num, rem = divmod(num, 58)
        out.append(B58_ALPHABET[rem])
    out.extend(B58_ALPHABET[0] for _ in range(n_pad))
    out.reverse()
    return out.decode("ascii")


def b58decode(value: str) -> bytes:
    """Decode a base58 string; raises ``ValueError`` on foreign characters."""
    raw = value.encode("ascii")
    num = 0
    for c in raw:
        if c not in B58_MAP:
            raise ValueError(f"Invalid base58 character in {value!r}")
        num = num * 58 + B58_MAP[c]
    n_pad = 0
    for c in raw:
        if c == B58_ALPHABET[0]:
            n_pad += 1
        else:
            break
    full = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * n_pad + full


def is_valid_address(address: str) -> bool:
    """Return ``True`` if *address* decodes to a 32-byte public key."""
    try:
        return len(b58decode(address)) == PUBLIC_KEY_LENGTH
    except ValueError:
        return False


def verify_signature(address: str, message: bytes, signature: str) -> bool:
    """Check a base58 *signature* over *message* for the signer *address*.

    Malformed keys or signatures count as a failed verification.
    """
    if not signature:
        return False
    try:
        verify_key = nacl.signing.VerifyKey(b58decode(address))
        verify_key.verify(message, b58decode(signature))
        return True
    except (BadSignatureError, ValueError):
        return False


class Keypair:
    """An Ed25519 signing key with its base58 address.

    Parameters
    ----------
    signing_key:
        The PyNaCl signing key.  Use :meth:`generate` for a fresh identity
        or :meth:`from_file` for a keypair JSON file (64 integers: the
        32-byte seed followed by the 32-byte public key).
    """

    def __init__(self, signing_key: nacl.signing.SigningKey) -> None:
        self._signing_key = signing_key
        self.address = b58encode(signing_key.verify_key.encode())

    @classmethod
    def generate(cls) -> Keypair:
        return cls(nacl.signing.SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Keypair:
        return cls(nacl.signing.SigningKey(seed))

    @classmethod
    def from_file(cls, path: Path) -> Keypair:
        """Load a keypair JSON file as written by the ledger's CLI tools."""
        raw = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
        secret = bytes(raw)
        if len(secret) != 64:
            raise ValueError(
                f"Keypair file {path} must hold 64 bytes, found {len(secret)}"
            )
        keypair = cls.from_seed(secret[:32])
        if b58encode(secret[32:]) != keypair.address:
            raise ValueError(f"Keypair file {path} has a mismatched public key")
        logger.debug("Loaded keypair %s from %s", keypair.address, path)
        return keypair

    def to_json(self) -> str:
        """Serialize in the same 64-integer format :meth:`from_file` reads."""
        secret = self._signing_key.encode() + self._signing_key.verify_key.encode()
        return json.dumps(list(secret))

    def sign(self, message: bytes) -> str:
        """Sign *message* and return the base58 signature."""
        return b58encode(self._signing_key.sign(message).signature)

    def __repr__(self) -> str:
        return f"Keypair({self.address})"
