"""Manifest loading.

A manifest is a JSON list of item metadata (or an object with an
``items`` list).  Each entry needs a ``name`` and a metadata link, given
as ``uri`` / ``link`` on the entry or in a separate JSON list of links
paired by position.  Creators may sit at the top level or under
``properties.creators``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mintforge.core.errors import EmptyManifest, InvalidConfig
from mintforge.models.items import ManifestItem
from mintforge.models.registry import RegistryConfig

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidConfig(f"Cannot read {path}: {exc}") from exc


def parse_manifest(
    entries: list[dict[str, Any]], links: list[str] | None = None
) -> list[ManifestItem]:
    """Turn raw manifest entries into ``ManifestItem`` objects.

    Entries without an ``index`` take their position.  Raises
    ``EmptyManifest`` for an empty list and ``InvalidConfig`` for entries
    that fail validation or links that do not pair up.
    """
    if not entries:
        raise EmptyManifest("Your manifests file is invalid: it holds no items")
    if links is not None and len(links) != len(entries):
        raise InvalidConfig(
            f"{len(entries)} manifest entries but {len(links)} metadata links"
        )

    items = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise InvalidConfig(f"Manifest entry {position} is not an object")
        data = dict(entry)
        data.setdefault("index", position)
        if links is not None:
            data["link"] = links[position]
        elif "uri" in data and "link" not in data:
            data["link"] = data.pop("uri")
        if "creators" not in data:
            creators = (data.get("properties") or {}).get("creators")
            if creators is not None:
                data["creators"] = creators
        try:
            items.append(ManifestItem.model_validate(data))
        except ValidationError as exc:
            raise InvalidConfig(f"Manifest entry {position} is invalid: {exc}") from exc

    indices = sorted(item.index for item in items)
    if indices != list(range(len(items))):
        raise InvalidConfig("Manifest indices must be unique and contiguous from 0")
    return sorted(items, key=lambda item: item.index)


def load_manifest(path: Path, links_path: Path | None = None) -> list[ManifestItem]:
    raw = _read_json(path)
    entries = raw.get("items") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise InvalidConfig(f"{path} must hold a list of manifest entries")
    links = _read_json(links_path) if links_path is not None else None
    if links is not None and not isinstance(links, list):
        raise InvalidConfig(f"{links_path} must hold a list of metadata links")
    items = parse_manifest(entries, links)
    logger.info("Loaded %d manifest item(s) from %s", len(items), path)
    return items


def load_registry_config(path: Path) -> RegistryConfig:
    """Read the collection config JSON (price, creators, mint settings)."""
    raw = _read_json(path)
    try:
        return RegistryConfig.model_validate(raw)
    except ValidationError as exc:
        raise InvalidConfig(f"Collection config {path} is invalid: {exc}") from exc
