"""Registry initializer: creates the on-chain registry account once.

Callers check the cache for an existing registry address first; this
module does not deduplicate.  All validation happens before the first
network call, so a rejected config leaves no partial state anywhere.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from mintforge.bridge.protocols import NetworkClient, Wallet
from mintforge.core import instructions
from mintforge.core.confirmation import await_confirmation, reconcile
from mintforge.core.errors import (
    ConfirmationTimeout,
    EmptyManifest,
    InitializationFailed,
    InvalidConfig,
)
from mintforge.core.keys import Keypair, is_valid_address
from mintforge.core.layout import MAX_CREATOR_LIMIT
from mintforge.models.items import Creator
from mintforge.models.registry import RegistryConfig, RegistryHandle
from mintforge.models.transactions import UnsignedTransaction

logger = logging.getLogger(__name__)

COLLECTION_ID_LENGTH = 6


def collection_id_for(registry_address: str) -> str:
    """Short collection id: the leading characters of the registry address."""
    return registry_address[:COLLECTION_ID_LENGTH]


def validate_config(config: RegistryConfig) -> None:
    """Reject configs the registry program would refuse.

    Raises ``EmptyManifest`` for a zero item count and ``InvalidConfig``
    for creator problems (none, too many, missing address, shares not
    summing to exactly 100).
    """
    if config.items_available <= 0:
        raise EmptyManifest("Collection must hold at least one item")
    if not config.creators:
        raise InvalidConfig("Invalid config, there must be at least one creator")
    if len(config.creators) > MAX_CREATOR_LIMIT:
        raise InvalidConfig(
            f"Invalid config, at most {MAX_CREATOR_LIMIT} creators are allowed, "
            f"got {len(config.creators)}"
        )
    for creator in config.creators:
        if not creator.address:
            raise InvalidConfig("Creator address is missing")
        if not is_valid_address(creator.address):
            raise InvalidConfig(f"Creator address {creator.address!r} is not a valid address")
    total_share = sum(creator.share for creator in config.creators)
    if total_share != 100:
        raise InvalidConfig(
            f"Invalid config, creators shares must add up to 100, got {total_share}"
        )


class RegistryInitializer:
    """Creates and initializes the registry account.

    Parameters
    ----------
    network:
        Ledger client used to fetch a reference point and submit.
    wallet:
        Authority wallet; pays for the account and signs first.
    program_id:
        Address of the registry program.
    confirm_timeout:
        Seconds to wait for confirmation before looking the signature up.
    """

    def __init__(
        self,
        network: NetworkClient,
        wallet: Wallet,
        *,
        program_id: str,
        confirm_timeout: float = 60.0,
    ) -> None:
        self._network = network
        self._wallet = wallet
        self._program_id = program_id
        self._confirm_timeout = confirm_timeout

    async def initialize(
        self,
        config: RegistryConfig,
        creators: Sequence[Creator] | None = None,
    ) -> RegistryHandle:
        """Create the registry and return its address and collection id.

        *creators*, when given, replaces the creator list in *config*.
        """
        if creators is not None:
            config = config.model_copy(update={"creators": list(creators)})
        validate_config(config)

        registry = Keypair.generate()
        collection_id = collection_id_for(registry.address)
        authority = self._wallet.public_key
        logger.info(
            "Initializing registry %s (collection %s) for %d items",
            registry.address,
            collection_id,
            config.items_available,
        )

        try:
            reference = await self._network.get_reference_point()
        except Exception as exc:
            raise InitializationFailed(f"Could not fetch a reference point: {exc}") from exc

        message = UnsignedTransaction(
            fee_payer=authority,
            reference_point=reference.blockhash,
            instructions=[
                instructions.create_registry_account(
                    authority, registry.address, self._program_id, config.items_available
                ),
                instructions.initialize_registry(
                    self._program_id,
                    registry=registry.address,
                    authority=authority,
                    treasury=config.treasury_wallet or authority,
                    config=config,
                    collection_id=collection_id,
                ),
            ],
        )

        try:
            (signed,) = await self._wallet.sign_all([message])
            signed = signed.add_signatures(registry)
        except Exception as exc:
            raise InitializationFailed(f"Initialization was not signed: {exc}") from exc

        signature = signed.signature
        error: Exception | None = None
        try:
            await self._network.submit(signed)
            confirmed = await await_confirmation(self._network, signature, self._confirm_timeout)
            if not confirmed:
                error = ConfirmationTimeout(
                    f"Initialization {signature} not confirmed in {self._confirm_timeout:.0f}s"
                )
        except Exception as exc:
            confirmed = False
            error = exc

        reconciled = False
        if not confirmed:
            logger.warning("Initialization outcome unknown (%s); checking signature", error)
            if not await reconcile(self._network, signature):
                raise InitializationFailed(
                    f"Error deploying registry {registry.address}: {error}"
                ) from error
            reconciled = True

        logger.info("Initialized registry %s", registry.address)
        return RegistryHandle(
            registry_address=registry.address,
            collection_id=collection_id,
            signature=signature,
            reconciled=reconciled,
        )
