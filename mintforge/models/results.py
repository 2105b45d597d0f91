"""Results returned by the upload and verification passes."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from mintforge.core.errors import OverCapacity, UnderReported
from mintforge.models.cache import CacheState
from mintforge.models.registry import RegistryHandle


class TransactionOutcome(BaseModel):
    """What happened to one submitted transaction group."""

    model_config = ConfigDict(frozen=True)

    indices: tuple[int, ...]
    signature: str
    confirmed: bool
    reconciled: bool = False  # landed, but only a signature lookup proved it
    error: str | None = None


class UploadResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    successful: bool
    batches_total: int = 0
    batches_processed: int = 0
    batches_skipped: int = 0
    transactions_submitted: int = 0
    transactions_confirmed: int = 0
    failed_indices: list[int] = Field(default_factory=list)
    aborted: bool = False
    error: str | None = None


class UploadOutcome(BaseModel):
    """Single entry point result: the updated cache and any fatal error."""

    model_config = ConfigDict(frozen=True)

    cache: CacheState
    registry: RegistryHandle | None = None
    result: UploadResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None and self.result.successful


class VerificationFailure(str, Enum):
    UNDER_REPORTED = "under_reported"
    OVER_CAPACITY = "over_capacity"


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    all_matched: bool
    checked: int = 0
    mismatches: list[int] = Field(default_factory=list)
    stored_count: int = 0
    capacity: int = 0
    declared_items_available: int = 0
    failure: VerificationFailure | None = None
    detail: str | None = None
    # "Class: message" when the pass could not run or a count check failed
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Launch-ready: every item matched and the counts line up."""
        return self.all_matched and self.failure is None and self.error is None

    def raise_for_failure(self) -> None:
        if self.failure is VerificationFailure.UNDER_REPORTED:
            raise UnderReported(self.detail or "Registry under-reports its items")
        if self.failure is VerificationFailure.OVER_CAPACITY:
            raise OverCapacity(self.detail or "Collection exceeds registry capacity")
