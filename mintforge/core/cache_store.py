"""Cache reconciler: sole owner of upload progress.

Holds the current ``CacheState`` and swaps it for a new immutable state on
every change, persisting each one to a JSON file so an interrupted run can
resume from the last merged batch.

Storage: a single JSON document (see ``mintforge.models.cache``), written
to a temporary sibling and renamed over the target so a crash mid-write
never leaves a truncated cache behind.  Without a path the reconciler
keeps state in memory only.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from mintforge.core.errors import CacheIntegrityError
from mintforge.models.cache import CacheState
from mintforge.models.items import ItemUpdate, ManifestItem
from mintforge.models.registry import RegistryHandle

logger = logging.getLogger(__name__)


class CacheReconciler:
    """Read/merge access to the upload cache.

    Parameters
    ----------
    path:
        Cache file location.  ``None`` keeps the cache in memory.
    env:
        Environment label stored in a newly created cache.
    initial:
        Starting state; when omitted :meth:`load` reads *path*.
    """

    def __init__(
        self,
        path: Path | None = None,
        *,
        env: str | None = None,
        initial: CacheState | None = None,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._env = env
        self._state = initial if initial is not None else self.load()

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def state(self) -> CacheState:
        return self._state

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self) -> CacheState:
        """Read the cache file, or start empty if there is none yet."""
        if self._path is None or not self._path.exists():
            self._state = CacheState(env=self._env)
            return self._state
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            self._state = CacheState.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CacheIntegrityError(f"Unreadable cache file {self._path}: {exc}") from exc
        logger.debug(
            "Loaded cache %s: %d items, registry=%s",
            self._path,
            len(self._state.items),
            self._state.registry_address,
        )
        return self._state

    def is_complete(self, index: int) -> bool:
        return self._state.is_complete(index)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def register_manifest(self, manifest: Iterable[ManifestItem]) -> CacheState:
        """Add manifest items, resetting entries whose name or link changed."""
        previous = self._state
        state = previous.with_manifest(manifest)
        reset = [
            i for i, old in previous.items.items()
            if (old.name, old.link) != (state.items[i].name, state.items[i].link)
        ]
        if reset:
            logger.warning(
                "%d cached item(s) changed in the manifest and will be re-uploaded",
                len(reset),
            )
        return self._commit(state)

    def bind_registry(
        self, handle: RegistryHandle, items_available: int, hidden_settings: bool = False
    ) -> CacheState:
        """Record the registry identity.  The address can be set only once."""
        state = self._state.with_registry(
            handle.registry_address, handle.collection_id, items_available, hidden_settings
        )
        return self._commit(state)

    def merge(self, updates: Iterable[ItemUpdate]) -> CacheState:
        """Apply item updates and persist.  Safe to repeat with the same updates."""
        updates = list(updates)
        if not updates:
            return self._state
        state = self._state.with_updates(updates)
        logger.debug("Merging %d item update(s) into cache", len(updates))
        return self._commit(state)

    def save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        tmp_path.write_text(
            json.dumps(self._state.to_document(), indent=2),
            encoding="utf-8",
        )
        os.replace(tmp_path, self._path)

    def _commit(self, state: CacheState) -> CacheState:
        self._state = state
        self.save()
        return state
