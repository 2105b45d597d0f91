"""Instruction builders for the registry program."""

from __future__ import annotations

from collections.abc import Sequence

from mintforge.core.errors import TransactionBuildFailed
from mintforge.core.layout import encode_record, registry_space
from mintforge.models.registry import RegistryConfig
from mintforge.models.transactions import AccountMeta, Instruction

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
SYSVAR_RENT_ID = "SysvarRent111111111111111111111111111111111"


def create_registry_account(
    payer: str, registry: str, program_id: str, items_available: int
) -> Instruction:
    """Allocate the registry account, owned by the registry program."""
    return Instruction(
        program_id=SYSTEM_PROGRAM_ID,
        name="create_account",
        accounts=[
            AccountMeta(address=payer, is_signer=True, is_writable=True),
            AccountMeta(address=registry, is_signer=True, is_writable=True),
        ],
        data={"space": registry_space(items_available), "owner": program_id},
    )


def initialize_registry(
    program_id: str,
    *,
    registry: str,
    authority: str,
    treasury: str,
    config: RegistryConfig,
    collection_id: str,
) -> Instruction:
    accounts = [
        AccountMeta(address=registry, is_writable=True),
        AccountMeta(address=treasury),
        AccountMeta(address=authority, is_signer=True, is_writable=True),
        AccountMeta(address=SYSTEM_PROGRAM_ID),
        AccountMeta(address=SYSVAR_RENT_ID),
    ]
    if config.spl_token:
        accounts.append(AccountMeta(address=config.spl_token))
    data = config.model_dump(mode="json")
    data["uuid"] = collection_id
    return Instruction(
        program_id=program_id,
        name="initialize_candy_machine",
        accounts=accounts,
        data=data,
    )


def add_config_lines(
    program_id: str,
    *,
    registry: str,
    authority: str,
    start_index: int,
    lines: Sequence[tuple[str, str]],
) -> Instruction:
    """Write ``(name, uri)`` lines starting at *start_index*.

    Raises ``TransactionBuildFailed`` when a line cannot fit its record.
    """
    if not lines:
        raise TransactionBuildFailed(f"No lines to write at index {start_index}")
    for offset, (name, uri) in enumerate(lines):
        try:
            encode_record(name, uri)
        except ValueError as exc:
            raise TransactionBuildFailed(
                f"Line {start_index + offset} does not fit a registry record: {exc}"
            ) from exc
    return Instruction(
        program_id=program_id,
        name="add_config_lines",
        accounts=[
            AccountMeta(address=registry, is_writable=True),
            AccountMeta(address=authority, is_signer=True),
        ],
        data={
            "index": start_index,
            "config_lines": [{"name": name, "uri": uri} for name, uri in lines],
        },
    )
