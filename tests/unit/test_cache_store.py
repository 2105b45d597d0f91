"""Tests for the CacheReconciler and CacheState transitions."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from mintforge.core.cache_store import CacheReconciler
from mintforge.core.errors import CacheIntegrityError
from mintforge.models.cache import CacheState
from mintforge.models.items import ItemUpdate
from mintforge.models.registry import RegistryHandle

REGISTRY = "4kGy2dQ6FbR3ZzH1m8uFwM1cQ7Fjz8m9QnKQH4y5nZ2p"


class TestLoadAndSave:
    def test_missing_file_starts_empty(self, cache_path: Path):
        reconciler = CacheReconciler(cache_path, env="devnet")
        assert reconciler.state.items == {}
        assert reconciler.state.env == "devnet"
        assert not cache_path.exists()

    def test_round_trip_through_file(self, cache_path: Path, make_cache):
        CacheReconciler(cache_path, initial=make_cache(3, registry=REGISTRY, on_chain={1})).save()
        loaded = CacheReconciler(cache_path).state
        assert loaded.registry_address == REGISTRY
        assert loaded.collection_id == REGISTRY[:6]
        assert [loaded.is_complete(i) for i in range(3)] == [False, True, False]

    def test_document_shape(self, cache_path: Path, make_cache):
        CacheReconciler(cache_path, initial=make_cache(2, registry=REGISTRY)).save()
        doc = json.loads(cache_path.read_text())
        assert doc["program"] == {
            "uuid": REGISTRY[:6],
            "candyMachine": REGISTRY,
            "itemsAvailable": 2,
            "hiddenSettings": False,
        }
        assert set(doc["items"]) == {"0", "1"}
        assert set(doc["items"]["0"]) == {
            "link", "name", "onChain", "verifyRun", "verifyMismatch", "lastError",
        }

    def test_reads_minimal_legacy_document(self, cache_path: Path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text(json.dumps({
            "program": {"uuid": "4kGy2d", "candyMachine": REGISTRY},
            "items": {
                "0": {"link": "https://a", "name": "A", "onChain": True},
                "1": {"link": "https://b", "name": "B", "onChain": False},
            },
        }))
        state = CacheReconciler(cache_path).state
        assert state.items[0].on_chain is True
        assert state.items[1].verify_run is False
        assert state.program.items_available is None

    def test_corrupt_json(self, cache_path: Path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text("{not json")
        with pytest.raises(CacheIntegrityError):
            CacheReconciler(cache_path)

    def test_non_contiguous_indices(self, cache_path: Path):
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text(json.dumps({
            "items": {"0": {"link": "a", "name": "A"}, "2": {"link": "c", "name": "C"}},
        }))
        with pytest.raises(CacheIntegrityError):
            CacheReconciler(cache_path)

    def test_atomic_write_leaves_no_temp_file(self, cache_path: Path, make_cache):
        CacheReconciler(cache_path, initial=make_cache(1)).save()
        assert [p.name for p in cache_path.parent.iterdir()] == [cache_path.name]

    def test_in_memory_reconciler_never_writes(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2))
        reconciler.merge([ItemUpdate.uploaded(0)])
        assert reconciler.path is None
        assert reconciler.is_complete(0)


class TestMerge:
    def test_merge_persists(self, cache_path: Path, make_cache):
        reconciler = CacheReconciler(cache_path, initial=make_cache(3))
        reconciler.merge([ItemUpdate.uploaded(2)])
        assert CacheReconciler(cache_path).state.is_complete(2)

    def test_merge_is_idempotent(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(3))
        updates = [ItemUpdate.uploaded(0), ItemUpdate.uploaded(1)]
        first = reconciler.merge(updates)
        second = reconciler.merge(updates)
        assert first.to_document() == second.to_document()

    def test_uploaded_clears_stale_verification(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(1, on_chain=True, verified=True))
        reconciler.merge([ItemUpdate.mismatched(0, "VerificationMismatch: name")])
        state = reconciler.merge([ItemUpdate.uploaded(0)])
        record = state.items[0]
        assert record.on_chain is True
        assert record.verify_run is False
        assert record.verify_mismatch is False
        assert record.last_error is None

    def test_failed_keeps_status(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(1))
        state = reconciler.merge([ItemUpdate.failed(0, "SubmissionFailed: reset")])
        assert state.items[0].on_chain is False
        assert state.items[0].last_error == "SubmissionFailed: reset"

    def test_unknown_index_rejected(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2))
        with pytest.raises(CacheIntegrityError):
            reconciler.merge([ItemUpdate.uploaded(5)])

    def test_empty_merge_is_a_no_op(self, cache_path: Path, make_cache):
        reconciler = CacheReconciler(cache_path, initial=make_cache(1))
        reconciler.merge([])
        assert not cache_path.exists()

    def test_states_are_not_mutated_in_place(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2))
        before = reconciler.state
        reconciler.merge([ItemUpdate.uploaded(0)])
        assert before.items[0].on_chain is False
        assert reconciler.state is not before


class TestRegistryBinding:
    def test_bind_once(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2))
        handle = RegistryHandle(registry_address=REGISTRY, collection_id=REGISTRY[:6], signature="s")
        state = reconciler.bind_registry(handle, 2)
        assert state.registry_address == REGISTRY
        assert state.program.items_available == 2

    def test_rebinding_same_address_is_allowed(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2, registry=REGISTRY))
        handle = RegistryHandle(registry_address=REGISTRY, collection_id=REGISTRY[:6], signature="s")
        reconciler.bind_registry(handle, 2)

    def test_rebinding_other_address_rejected(self, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2, registry=REGISTRY))
        handle = RegistryHandle(registry_address="Other1111", collection_id="Other1", signature="s")
        with pytest.raises(CacheIntegrityError):
            reconciler.bind_registry(handle, 2)


class TestRegisterManifest:
    def test_new_items_start_off_chain(self, make_manifest):
        reconciler = CacheReconciler(initial=CacheState())
        state = reconciler.register_manifest(make_manifest(3))
        assert state.pending_indices() == [0, 1, 2]

    def test_unchanged_items_keep_status(self, make_manifest, make_cache):
        reconciler = CacheReconciler(initial=make_cache(3, on_chain=True, verified={0}))
        state = reconciler.register_manifest(make_manifest(3))
        assert state.pending_indices() == []
        assert state.items[0].verify_run is True

    def test_changed_link_resets_item(self, make_manifest, make_cache):
        reconciler = CacheReconciler(initial=make_cache(3, on_chain=True))
        manifest = make_manifest(3)
        manifest[1] = manifest[1].model_copy(update={"uri": "https://arweave.net/replaced"})
        state = reconciler.register_manifest(manifest)
        assert state.pending_indices() == [1]
        assert state.items[1].link == "https://arweave.net/replaced"

    def test_growing_manifest_appends(self, make_manifest, make_cache):
        reconciler = CacheReconciler(initial=make_cache(2, on_chain=True))
        state = reconciler.register_manifest(make_manifest(4))
        assert state.pending_indices() == [2, 3]

    def test_shrinking_manifest_rejected(self, make_manifest, make_cache):
        reconciler = CacheReconciler(initial=make_cache(4))
        with pytest.raises(CacheIntegrityError):
            reconciler.register_manifest(make_manifest(2))
