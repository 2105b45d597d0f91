"""Runtime configuration, env-driven.

Reads ``MINTFORGE_*`` environment variables and an optional ``.env`` file
via pydantic-settings.  Collection-level parameters (price, creators, mint
settings) are not here; they live in the collection config JSON loaded as
:class:`mintforge.models.registry.RegistryConfig`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from mintforge.core.planner import (
    DEFAULT_CONFIRMATION_BATCH_SIZE,
    DEFAULT_TX_BATCH_SIZE,
    MAX_TX_BATCH_SIZE,
)

PLACEHOLDER_PROGRAM_ID = "MintforgeRegistry11111111111111111111111111"


class MintforgeSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MINTFORGE_ENVIRONMENT=mainnet-beta
        export MINTFORGE_RPC_URL=https://rpc.example.org
        export MINTFORGE_TX_BATCH_SIZE=8

    Or via .env file::

        MINTFORGE_KEYPAIR_PATH=/secure/authority.json
        MINTFORGE_LOG_LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MINTFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "localnet"
    log_level: str = "INFO"
    debug: bool = False

    # Ledger access.  Both defaults are placeholders for a local test
    # validator; set MINTFORGE_RPC_URL and MINTFORGE_PROGRAM_ID to the
    # cluster and the deployed registry program.
    rpc_url: str = "http://127.0.0.1:8899"
    commitment: str = "confirmed"
    keypair_path: Path = Path("~/.config/solana/id.json")
    program_id: str = PLACEHOLDER_PROGRAM_ID

    # Cache
    cache_dir: Path = Path(".cache")
    cache_name: str = "temp"

    # Batching
    confirmation_batch_size: int = Field(default=DEFAULT_CONFIRMATION_BATCH_SIZE, gt=0)
    tx_batch_size: int = Field(default=DEFAULT_TX_BATCH_SIZE, gt=0, le=MAX_TX_BATCH_SIZE)
    max_concurrent_transactions: int | None = Field(default=None, gt=0)

    # Confirmation
    confirm_timeout_seconds: float = Field(default=60.0, gt=0)
    confirm_poll_interval_seconds: float = Field(default=0.5, gt=0)

    @property
    def cache_path(self) -> Path:
        """``<cache_dir>/<environment>-<cache_name>.json``."""
        return self.cache_dir / f"{self.environment}-{self.cache_name}.json"


# Module-level singleton; import as `from mintforge.config import settings`
settings = MintforgeSettings()
