"""Durable upload progress: the cache file schema.

On disk the cache is JSON shaped as::

    {
      "env": "devnet",
      "program": {"uuid": "4kGy2d", "candyMachine": "4kGy2d...", "itemsAvailable": 1200,
                  "hiddenSettings": false},
      "items": {"0": {"link": "...", "name": "...", "onChain": true, "verifyRun": false}}
    }

``CacheState`` is immutable.  Every change goes through a method that
returns a new state, and only the cache store hands new states out.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mintforge.core.errors import CacheIntegrityError
from mintforge.models.items import ItemRecord, ItemUpdate, ManifestItem


class ProgramInfo(BaseModel):
    """Registry identity, written once by initialization."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uuid: str | None = None
    candy_machine: str | None = Field(default=None, alias="candyMachine")
    items_available: int | None = Field(default=None, alias="itemsAvailable")
    # lines are never written when every item shares one hidden name/URI
    hidden_settings: bool = Field(default=False, alias="hiddenSettings")


class CacheState(BaseModel):
    """Registry identity plus per-item status, keyed by contiguous index."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    env: str | None = None
    program: ProgramInfo = ProgramInfo()
    items: dict[int, ItemRecord] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _inject_item_indices(cls, data: Any) -> Any:
        # Cache files key items by index and omit it from the record body.
        if not isinstance(data, dict) or not isinstance(data.get("items"), dict):
            return data
        items = {}
        for key, record in data["items"].items():
            if isinstance(record, dict) and "index" not in record:
                record = {**record, "index": int(key)}
            items[key] = record
        return {**data, "items": items}

    @model_validator(mode="after")
    def _check_contiguous(self) -> CacheState:
        indices = sorted(self.items)
        if indices != list(range(len(indices))):
            raise ValueError(
                f"Cache item indices must be contiguous from 0, got {indices[:10]}..."
            )
        for key, record in self.items.items():
            if record.index != key:
                raise ValueError(f"Item keyed {key} carries index {record.index}")
        return self

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @property
    def registry_address(self) -> str | None:
        return self.program.candy_machine

    @property
    def collection_id(self) -> str | None:
        return self.program.uuid

    def is_complete(self, index: int) -> bool:
        """``True`` once the item at *index* is confirmed on the ledger."""
        record = self.items.get(index)
        return bool(record and record.on_chain)

    def pending_indices(self) -> list[int]:
        return [i for i, record in sorted(self.items.items()) if not record.on_chain]

    def unverified_indices(self) -> list[int]:
        return [i for i, record in sorted(self.items.items()) if not record.verify_run]

    # ------------------------------------------------------------------
    # Transitions (each returns a new state)
    # ------------------------------------------------------------------

    def with_registry(
        self,
        registry_address: str,
        collection_id: str,
        items_available: int,
        hidden_settings: bool = False,
    ) -> CacheState:
        """Bind the registry identity.  Rebinding to another address fails."""
        current = self.program.candy_machine
        if current is not None and current != registry_address:
            raise CacheIntegrityError(
                f"Cache is bound to registry {current}; refusing to rebind to "
                f"{registry_address}"
            )
        program = ProgramInfo(
            uuid=collection_id,
            candy_machine=registry_address,
            items_available=items_available,
            hidden_settings=hidden_settings,
        )
        return self.model_copy(update={"program": program})

    def with_manifest(self, manifest: Iterable[ManifestItem]) -> CacheState:
        """Register manifest items, keeping status for unchanged entries.

        An entry whose name or link differs from the cached one starts over
        as not-on-chain.  Items are never dropped, so a manifest shorter
        than the cache is rejected.
        """
        items: dict[int, ItemRecord] = dict(self.items)
        seen: set[int] = set()
        for entry in manifest:
            seen.add(entry.index)
            existing = items.get(entry.index)
            if existing and existing.name == entry.name and existing.link == entry.uri:
                continue
            items[entry.index] = ItemRecord(index=entry.index, name=entry.name, link=entry.uri)
        missing = set(self.items) - seen
        if missing:
            raise CacheIntegrityError(
                f"Manifest omits {len(missing)} cached item(s), first {min(missing)}; "
                "cached items cannot be removed"
            )
        try:
            return CacheState(env=self.env, program=self.program, items=items)
        except ValueError as exc:
            raise CacheIntegrityError(str(exc)) from exc

    def with_updates(self, updates: Iterable[ItemUpdate]) -> CacheState:
        """Apply partial item updates.  Unknown indices are rejected."""
        items = dict(self.items)
        for update in updates:
            record = items.get(update.index)
            if record is None:
                raise CacheIntegrityError(f"No cached item at index {update.index}")
            items[update.index] = record.apply(update)
        return self.model_copy(update={"items": items})

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """The JSON document written to the cache file."""
        return {
            "env": self.env,
            "program": self.program.model_dump(mode="json", by_alias=True),
            "items": {
                str(index): record.model_dump(mode="json", by_alias=True, exclude={"index"})
                for index, record in sorted(self.items.items())
            },
        }
