"""Packed byte layout of the registry account.

The account starts with a fixed header, then a little-endian ``u32`` count
of written lines, then one fixed-width record per item index::

    [0, CONFIG_ARRAY_START)            header (identity, counters, settings)
    [CONFIG_ARRAY_START, +4)           line count (u32)
    [CONFIG_LINES_START + i * CONFIG_LINE_SIZE, +CONFIG_LINE_SIZE)
                                       record i

Each record is ``u32 name length | name (32 bytes) | u32 uri length |
uri (200 bytes)``; unused bytes are zero.  A trailing bitmask (one bit
per item, stored twice for mint bookkeeping) follows the records.

The header is fixed-width: the optional token mint always takes its tag
byte plus a full key, zeroed when absent, so the counters sit at constant
offsets.  This is the mintforge registry program's layout; it does not
decode accounts whose optional fields are variable-width.

Everything here is pure and works on ``bytes``; nothing talks to the
network.
"""

from __future__ import annotations

import struct

from pydantic import BaseModel, ConfigDict

from mintforge.core.errors import RegistryLayoutError

MAX_NAME_LENGTH = 32
MAX_URI_LENGTH = 200
MAX_SYMBOL_LENGTH = 10
MAX_CREATOR_LIMIT = 5

U32_SIZE = 4
U64_SIZE = 8
PUBKEY_SIZE = 32

# Header
DISCRIMINATOR_SIZE = 8
AUTHORITY_OFFSET = DISCRIMINATOR_SIZE
WALLET_OFFSET = AUTHORITY_OFFSET + PUBKEY_SIZE
TOKEN_MINT_OFFSET = WALLET_OFFSET + PUBKEY_SIZE
TOKEN_MINT_SIZE = 1 + PUBKEY_SIZE  # option tag + key
ITEMS_REDEEMED_OFFSET = TOKEN_MINT_OFFSET + TOKEN_MINT_SIZE
ITEMS_AVAILABLE_OFFSET = ITEMS_REDEEMED_OFFSET + U64_SIZE
SETTINGS_OFFSET = ITEMS_AVAILABLE_OFFSET + U64_SIZE
SETTINGS_SIZE = 592  # largest encodable collection settings
CONFIG_ARRAY_START = SETTINGS_OFFSET + SETTINGS_SIZE

# Records
CONFIG_LINES_START = CONFIG_ARRAY_START + U32_SIZE
NAME_LENGTH_OFFSET = 0
NAME_OFFSET = NAME_LENGTH_OFFSET + U32_SIZE
URI_LENGTH_OFFSET = NAME_OFFSET + MAX_NAME_LENGTH
URI_OFFSET = URI_LENGTH_OFFSET + U32_SIZE
CONFIG_LINE_SIZE = URI_OFFSET + MAX_URI_LENGTH


class RegistryHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    authority: bytes
    wallet: bytes
    items_redeemed: int
    items_available: int  # capacity declared at initialization
    line_count: int  # lines written so far


class ConfigLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    uri: str


def registry_space(items_available: int) -> int:
    """Account size needed for a registry holding *items_available* lines."""
    bitmask = items_available // 8 + 1
    return CONFIG_LINES_START + CONFIG_LINE_SIZE * items_available + U32_SIZE + 2 * bitmask


def record_offset(index: int) -> int:
    if index < 0:
        raise ValueError(f"Record index must be non-negative, got {index}")
    return CONFIG_LINES_START + CONFIG_LINE_SIZE * index


def decode_header(buffer: bytes) -> RegistryHeader:
    if len(buffer) < CONFIG_LINES_START:
        raise RegistryLayoutError(
            f"Registry account holds {len(buffer)} bytes; header needs {CONFIG_LINES_START}"
        )
    (items_redeemed,) = struct.unpack_from("<Q", buffer, ITEMS_REDEEMED_OFFSET)
    (items_available,) = struct.unpack_from("<Q", buffer, ITEMS_AVAILABLE_OFFSET)
    (line_count,) = struct.unpack_from("<I", buffer, CONFIG_ARRAY_START)
    return RegistryHeader(
        authority=bytes(buffer[AUTHORITY_OFFSET:WALLET_OFFSET]),
        wallet=bytes(buffer[WALLET_OFFSET:TOKEN_MINT_OFFSET]),
        items_redeemed=items_redeemed,
        items_available=items_available,
        line_count=line_count,
    )


def _decode_field(record: bytes, length_offset: int, data_offset: int, width: int) -> str:
    (length,) = struct.unpack_from("<I", record, length_offset)
    raw = record[data_offset:data_offset + min(length, width)]
    # Writers may pad to the full width with NULs instead of trimming the prefix.
    return raw.decode("utf-8", errors="replace").rstrip("\x00")


def decode_record(buffer: bytes, index: int) -> ConfigLine:
    """Decode the name and URI stored for item *index*."""
    start = record_offset(index)
    end = start + CONFIG_LINE_SIZE
    if len(buffer) < end:
        raise RegistryLayoutError(
            f"Registry account holds {len(buffer)} bytes; record {index} ends at {end}"
        )
    record = bytes(buffer[start:end])
    return ConfigLine(
        name=_decode_field(record, NAME_LENGTH_OFFSET, NAME_OFFSET, MAX_NAME_LENGTH),
        uri=_decode_field(record, URI_LENGTH_OFFSET, URI_OFFSET, MAX_URI_LENGTH),
    )


def encode_record(name: str, uri: str) -> bytes:
    """Pack one record; the inverse of :func:`decode_record`."""
    name_bytes = name.encode("utf-8")
    uri_bytes = uri.encode("utf-8")
    if len(name_bytes) > MAX_NAME_LENGTH:
        raise ValueError(f"Name {name!r} exceeds {MAX_NAME_LENGTH} bytes")
    if len(uri_bytes) > MAX_URI_LENGTH:
        raise ValueError(f"URI {uri!r} exceeds {MAX_URI_LENGTH} bytes")
    return (
        struct.pack("<I", len(name_bytes))
        + name_bytes.ljust(MAX_NAME_LENGTH, b"\x00")
        + struct.pack("<I", len(uri_bytes))
        + uri_bytes.ljust(MAX_URI_LENGTH, b"\x00")
    )
