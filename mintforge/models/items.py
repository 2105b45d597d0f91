"""Item-level models: manifest entries, cached item records, partial updates."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Creator(BaseModel):
    """A royalty recipient with its percentage share (0-100)."""

    model_config = ConfigDict(frozen=True)

    address: str | None = None
    share: int = Field(ge=0, le=100)
    verified: bool = True


class ManifestItem(BaseModel):
    """One entry of the upstream manifest, already paired with its link."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    index: int = Field(ge=0)
    name: str
    uri: str = Field(alias="link")
    symbol: str = ""
    seller_fee_basis_points: int = Field(default=0, ge=0, le=10_000)
    creators: list[Creator] = Field(default_factory=list)


class ItemRecord(BaseModel):
    """Cached upload/verify status of one collection entry.

    Serialized with the camelCase keys of the cache file
    (``link``, ``name``, ``onChain``, ``verifyRun``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    index: int = Field(ge=0)
    name: str
    link: str
    on_chain: bool = Field(default=False, alias="onChain")
    verify_run: bool = Field(default=False, alias="verifyRun")
    verify_mismatch: bool = Field(default=False, alias="verifyMismatch")
    last_error: str | None = Field(default=None, alias="lastError")

    def apply(self, update: ItemUpdate) -> ItemRecord:
        """Return a copy with every field *update* explicitly set."""
        changes = {
            field: getattr(update, field)
            for field in update.model_fields_set
            if field != "index"
        }
        if not changes:
            return self
        return self.model_copy(update=changes)


class ItemUpdate(BaseModel):
    """A partial item change, keyed by index.

    Only fields passed explicitly are applied, so ``last_error=None``
    clears a stored error while omitting ``last_error`` leaves it alone.
    Applying the same update twice yields the same record.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    on_chain: bool | None = None
    verify_run: bool | None = None
    verify_mismatch: bool | None = None
    last_error: str | None = None

    @classmethod
    def uploaded(cls, index: int) -> ItemUpdate:
        """Confirmed on the ledger; any previous verification is stale."""
        return cls(
            index=index,
            on_chain=True,
            verify_run=False,
            verify_mismatch=False,
            last_error=None,
        )

    @classmethod
    def failed(cls, index: int, error: str) -> ItemUpdate:
        return cls(index=index, last_error=error)

    @classmethod
    def verified(cls, index: int) -> ItemUpdate:
        return cls(index=index, verify_run=True, verify_mismatch=False, last_error=None)

    @classmethod
    def mismatched(cls, index: int, error: str, *, requeue: bool = False) -> ItemUpdate:
        if requeue:
            return cls(
                index=index,
                on_chain=False,
                verify_run=False,
                verify_mismatch=True,
                last_error=error,
            )
        return cls(index=index, verify_run=False, verify_mismatch=True, last_error=error)
