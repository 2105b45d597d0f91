"""Collection-level registry configuration.

Optional mint modes are a tagged union keyed by ``kind``: each variant
carries only the fields that mode needs, and a config lists only the
modes it enables.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mintforge.core.layout import MAX_NAME_LENGTH, MAX_SYMBOL_LENGTH, MAX_URI_LENGTH
from mintforge.models.items import Creator


class WhitelistMintMode(str, Enum):
    """What happens to a whitelist token when it is used to mint."""

    BURN_EVERY_TIME = "burn_every_time"
    NEVER_BURN = "never_burn"


class EndSettingType(str, Enum):
    """Whether minting ends at a timestamp or after an amount is minted."""

    DATE = "date"
    AMOUNT = "amount"


class GatekeeperSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["gatekeeper"] = "gatekeeper"
    gatekeeper_network: str
    expire_on_use: bool = False


class WhitelistMintSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["whitelist"] = "whitelist"
    mode: WhitelistMintMode = WhitelistMintMode.BURN_EVERY_TIME
    mint: str
    presale: bool = False
    discount_price: int | None = Field(default=None, ge=0)


class HiddenSettings(BaseModel):
    """A single shared name/URI for every item; lines are not uploaded."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["hidden"] = "hidden"
    name: str = Field(max_length=MAX_NAME_LENGTH)
    uri: str = Field(max_length=MAX_URI_LENGTH)
    hash: str = Field(min_length=32, max_length=32)


class EndSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["end"] = "end"
    end_setting_type: EndSettingType
    value: int = Field(ge=0)


MintSetting = Annotated[
    Union[GatekeeperSettings, WhitelistMintSettings, HiddenSettings, EndSettings],
    Field(discriminator="kind"),
]


class RegistryConfig(BaseModel):
    """Parameters fixed when the registry is initialized.

    Share totals and the item count are checked by the initializer
    (``InvalidConfig`` / ``EmptyManifest``), not by the model.
    """

    model_config = ConfigDict(frozen=True)

    items_available: int = Field(default=0, ge=0)  # 0 = size of the manifest
    symbol: str = Field(default="", max_length=MAX_SYMBOL_LENGTH)
    seller_fee_basis_points: int = Field(default=0, ge=0, le=10_000)
    is_mutable: bool = True
    retain_authority: bool = True
    price: int = Field(default=0, ge=0)  # smallest currency unit
    max_supply: int = Field(default=0, ge=0)
    treasury_wallet: str | None = None  # defaults to the signing wallet
    spl_token: str | None = None
    go_live_date: datetime | None = None
    creators: list[Creator] = Field(default_factory=list)
    settings: list[MintSetting] = Field(default_factory=list)

    @field_validator("settings")
    @classmethod
    def _one_setting_per_kind(cls, value: list[MintSetting]) -> list[MintSetting]:
        kinds = [setting.kind for setting in value]
        duplicates = sorted({k for k in kinds if kinds.count(k) > 1})
        if duplicates:
            raise ValueError(f"Mint settings repeat kind(s): {', '.join(duplicates)}")
        return value

    def setting(self, kind: str) -> MintSetting | None:
        for entry in self.settings:
            if entry.kind == kind:
                return entry
        return None

    @property
    def hidden(self) -> HiddenSettings | None:
        found = self.setting("hidden")
        return found if isinstance(found, HiddenSettings) else None

    def with_defaults(
        self,
        *,
        items_available: int,
        symbol: str,
        seller_fee_basis_points: int,
        creators: list[Creator],
    ) -> RegistryConfig:
        """Fill fields the config never set from the manifest's first item.

        A field set explicitly wins, even when it is ``0`` or ``""``.  An
        ``items_available`` of 0 always means the manifest size.  The result
        is validated again, so manifest values obey the same limits; raises
        ``pydantic.ValidationError`` when they do not.  An empty creator list
        is never valid, so it is always filled.
        """
        explicit = self.model_fields_set
        data = self.model_dump()
        data["items_available"] = self.items_available or items_available
        if "symbol" not in explicit:
            data["symbol"] = symbol
        if "seller_fee_basis_points" not in explicit:
            data["seller_fee_basis_points"] = seller_fee_basis_points
        if not self.creators:
            data["creators"] = [creator.model_dump() for creator in creators]
        return RegistryConfig.model_validate(data)


class RegistryHandle(BaseModel):
    """Outcome of a successful initialization."""

    model_config = ConfigDict(frozen=True)

    registry_address: str
    collection_id: str
    signature: str
    reconciled: bool = False  # True when confirmed only by signature lookup
