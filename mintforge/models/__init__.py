"""Mintforge data models (Pydantic v2, frozen)."""

from mintforge.models.cache import CacheState, ProgramInfo
from mintforge.models.items import Creator, ItemRecord, ItemUpdate, ManifestItem
from mintforge.models.plan import ConfirmationBatch, TransactionGroup
from mintforge.models.registry import (
    EndSettings,
    EndSettingType,
    GatekeeperSettings,
    HiddenSettings,
    MintSetting,
    RegistryConfig,
    RegistryHandle,
    WhitelistMintMode,
    WhitelistMintSettings,
)
from mintforge.models.results import (
    TransactionOutcome,
    UploadOutcome,
    UploadResult,
    VerificationFailure,
    VerificationResult,
)
from mintforge.models.transactions import (
    AccountMeta,
    Instruction,
    ReferencePoint,
    SignedTransaction,
    UnsignedTransaction,
)

__all__ = [
    # items
    "Creator",
    "ItemRecord",
    "ItemUpdate",
    "ManifestItem",
    # cache
    "CacheState",
    "ProgramInfo",
    # plan
    "ConfirmationBatch",
    "TransactionGroup",
    # registry
    "EndSettings",
    "EndSettingType",
    "GatekeeperSettings",
    "HiddenSettings",
    "MintSetting",
    "RegistryConfig",
    "RegistryHandle",
    "WhitelistMintMode",
    "WhitelistMintSettings",
    # transactions
    "AccountMeta",
    "Instruction",
    "ReferencePoint",
    "SignedTransaction",
    "UnsignedTransaction",
    # results
    "TransactionOutcome",
    "UploadOutcome",
    "UploadResult",
    "VerificationFailure",
    "VerificationResult",
]
