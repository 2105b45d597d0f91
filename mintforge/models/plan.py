"""Batch plan models: transaction groups nested in confirmation batches."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TransactionGroup(BaseModel):
    """Contiguous item indices written by a single transaction."""

    model_config = ConfigDict(frozen=True)

    indices: tuple[int, ...]

    @property
    def start(self) -> int:
        return self.indices[0]

    @property
    def end(self) -> int:
        return self.indices[-1]

    def __len__(self) -> int:
        return len(self.indices)


class ConfirmationBatch(BaseModel):
    """Groups that share one reference point and one signing request."""

    model_config = ConfigDict(frozen=True)

    ordinal: int
    groups: tuple[TransactionGroup, ...]

    @property
    def indices(self) -> list[int]:
        return [i for group in self.groups for i in group.indices]

    def __len__(self) -> int:
        return sum(len(group) for group in self.groups)
