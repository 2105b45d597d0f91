"""Shared test fixtures for Mintforge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from fakes import PROGRAM_ID, FakeLedger, FakeWallet, item_link, item_name
from mintforge.core.cache_store import CacheReconciler
from mintforge.core.keys import Keypair
from mintforge.models.cache import CacheState
from mintforge.models.items import Creator, ItemRecord, ManifestItem
from mintforge.models.registry import RegistryConfig


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def authority() -> Keypair:
    """Deterministic collection authority."""
    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture
def second_creator() -> Keypair:
    return Keypair.from_seed(bytes(range(32, 64)))


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def wallet(authority: Keypair) -> FakeWallet:
    return FakeWallet(authority)


@pytest.fixture
def cache_path(tmp_dir: Path) -> Path:
    return tmp_dir / ".cache" / "devnet-temp.json"


@pytest.fixture
def reconciler(cache_path: Path) -> CacheReconciler:
    """Provide a file-backed CacheReconciler starting from an empty cache."""
    return CacheReconciler(cache_path, env="devnet")


# ---------------------------------------------------------------------------
# Collection factories, shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_manifest(authority: Keypair) -> Callable[..., list[ManifestItem]]:
    """Factory fixture: *n* manifest items, all paying the authority."""

    def _factory(n: int, *, creators: list[Creator] | None = None) -> list[ManifestItem]:
        creators = creators if creators is not None else [
            Creator(address=authority.address, share=100)
        ]
        return [
            ManifestItem(
                index=i,
                name=item_name(i),
                uri=item_link(i),
                symbol="FORGE",
                seller_fee_basis_points=500,
                creators=creators,
            )
            for i in range(n)
        ]

    return _factory


@pytest.fixture
def make_cache() -> Callable[..., CacheState]:
    """Factory fixture: a cache of *n* items bound to *registry*.

    ``on_chain`` and ``verified`` name the indices to mark; ``True`` marks
    every item.
    """

    def _factory(
        n: int,
        *,
        registry: str | None = None,
        on_chain: bool | set[int] = False,
        verified: bool | set[int] = False,
    ) -> CacheState:
        def marked(selection: bool | set[int], index: int) -> bool:
            return selection if isinstance(selection, bool) else index in selection

        items = {
            i: ItemRecord(
                index=i,
                name=item_name(i),
                link=item_link(i),
                on_chain=marked(on_chain, i),
                verify_run=marked(verified, i),
            )
            for i in range(n)
        }
        state = CacheState(env="devnet", items=items)
        if registry is not None:
            state = state.with_registry(registry, registry[:6], n)
        return state

    return _factory


@pytest.fixture
def registry_config(authority: Keypair) -> RegistryConfig:
    return RegistryConfig(
        price=1_000_000_000,
        creators=[Creator(address=authority.address, share=100)],
    )


@pytest.fixture
def program_id() -> str:
    return PROGRAM_ID
