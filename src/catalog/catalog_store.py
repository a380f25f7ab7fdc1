"""catalog_store.py
Loader and read-only holder for the canonical catalog document::

    {"lastUpdated": "...", "totalCount": 123, "entries": {"<id>": {...}}}

Entries are keyed by their stable ``id``.  Records that do not carry a usable
title and year are skipped with a warning; the rest of the document still
loads.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from src.catalog.entities import CatalogEntry
from src.catalog.normalize import legacy_key

logger = logging.getLogger(__name__)


class SourceMalformedError(ValueError):
    """Raised when a required source document does not have the expected shape."""


def _coerce_year(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _clean_entry(entry_id: str, raw: Any) -> CatalogEntry | None:
    """Validate one raw record, returning ``None`` when it must be skipped."""
    if not isinstance(raw, dict):
        logger.warning("Catalog entry %r is not an object, skipping", entry_id)
        return None

    embedded_id = raw.get("id", entry_id)
    if embedded_id != entry_id:
        logger.warning(
            "Catalog entry %r carries mismatching id %r, skipping", entry_id, embedded_id
        )
        return None

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        logger.warning("Catalog entry %r has no title, skipping", entry_id)
        return None

    year = _coerce_year(raw.get("year"))
    if year is None:
        logger.warning("Catalog entry %r has no usable year, skipping", entry_id)
        return None

    entry: CatalogEntry = {**raw, "id": entry_id, "title": title, "year": year}
    if not isinstance(raw.get("legacyKey"), str) or not raw["legacyKey"]:
        entry["legacyKey"] = legacy_key(title, year)
    if not isinstance(raw.get("links"), dict):
        entry["links"] = {}
    if not isinstance(raw.get("enrichment"), dict):
        entry["enrichment"] = {}
    return entry


class CatalogStore:
    """Canonical entries keyed by stable id, plus a legacy-key index.

    The store is immutable once built; aggregation only ever reads it.
    """

    def __init__(
        self, entries: Mapping[str, CatalogEntry], last_updated: str | None = None
    ) -> None:
        self._entries = MappingProxyType(dict(entries))
        self._by_legacy: dict[str, str] = {}
        for entry in self._entries.values():
            owner = self._by_legacy.setdefault(entry["legacyKey"], entry["id"])
            if owner != entry["id"]:
                logger.warning(
                    "Legacy key %r of %r already belongs to %r; keeping the first",
                    entry["legacyKey"],
                    entry["id"],
                    owner,
                )
        self.last_updated = last_updated

    @classmethod
    def from_document(cls, document: Any) -> "CatalogStore":
        """Build a store from an already parsed catalog document.

        Raises:
            SourceMalformedError: If *document* has no ``entries`` object.
        """
        if not isinstance(document, dict) or not isinstance(document.get("entries"), dict):
            raise SourceMalformedError("catalog document must contain an 'entries' object")

        entries: dict[str, CatalogEntry] = {}
        for entry_id, raw in document["entries"].items():
            entry = _clean_entry(str(entry_id), raw)
            if entry is not None:
                entries[entry["id"]] = entry

        declared = document.get("totalCount")
        if isinstance(declared, int) and declared != len(entries):
            logger.warning(
                "Catalog declares %d entries but %d loaded", declared, len(entries)
            )
        return cls(entries, last_updated=document.get("lastUpdated"))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries.values())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> CatalogEntry | None:
        return self._entries.get(entry_id)

    def ids(self) -> list[str]:
        return list(self._entries)

    def by_legacy_key(self, key: str) -> CatalogEntry | None:
        entry_id = self._by_legacy.get(key)
        return self._entries[entry_id] if entry_id is not None else None

    def resolve(self, key: str) -> CatalogEntry | None:
        """Look *key* up as a stable id first, then as a legacy key."""
        return self.get(key) or self.by_legacy_key(key)

    def keys(self) -> list[str]:
        """Every key a shared list may legitimately carry (ids and legacy keys)."""
        return list(self._entries) + list(self._by_legacy)


def load_catalog(path: Path) -> CatalogStore:
    """Read the catalog document at *path*.

    Raises:
        FileNotFoundError: If *path* does not exist.
        SourceMalformedError: If the file is not JSON or lacks ``entries``.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SourceMalformedError(f"{path}: invalid JSON ({exc})") from exc

    store = CatalogStore.from_document(document)
    logger.info("Loaded %d catalog entries from %s", len(store), path)
    return store
