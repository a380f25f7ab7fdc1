"""availability.py
Viewing-option snapshot keyed by stable id, as produced by the external
availability lookup::

    {"lastUpdated": "...", "country": "NO",
     "entries": {"<id>": {"found": true, "streaming": [...], "rent": [...],
                          "buy": [...], "posterUrl": "...", ...}}}

An id missing from ``entries`` was never searched.  That is kept distinct from
"searched, not found" and from "found, no viewing options" through
:class:`AvailabilityStatus`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

from src.catalog.entities import AvailabilityRecord, AvailabilityStatus, Offer

logger = logging.getLogger(__name__)

OFFER_KINDS = ("streaming", "rent", "buy")

# Older snapshots were written with snake_case keys.
_LEGACY_FIELDS = {
    "poster_url": "posterUrl",
    "justwatch_url": "justwatchUrl",
    "search_attempted": "searchAttempted",
}


def _clean_offers(raw: Any) -> list[Offer]:
    if not isinstance(raw, list):
        return []
    return [o for o in raw if isinstance(o, dict) and isinstance(o.get("provider"), str)]


def _clean_record(entry_id: str, raw: Any) -> AvailabilityRecord | None:
    if not isinstance(raw, dict):
        logger.warning("Availability record %r is not an object, skipping", entry_id)
        return None
    record: dict[str, Any] = dict(raw)
    for old, new in _LEGACY_FIELDS.items():
        if old in record and new not in record:
            record[new] = record.pop(old)
    record["found"] = bool(record.get("found", False))
    for kind in OFFER_KINDS:
        record[kind] = _clean_offers(record.get(kind))
    return record  # type: ignore[return-value]


def classify(record: AvailabilityRecord | None) -> AvailabilityStatus:
    """Map a snapshot record (or its absence) onto the tri-state status."""
    if record is None:
        return AvailabilityStatus.UNKNOWN
    if record.get("found"):
        return AvailabilityStatus.FOUND
    if record.get("searchAttempted") is False:
        return AvailabilityStatus.UNKNOWN
    return AvailabilityStatus.CHECKED_ABSENT


def enabled_offers(offers: Iterable[Offer], enabled: Sequence[str]) -> list[Offer]:
    """Keep offers whose provider is enabled; an empty *enabled* keeps all."""
    if not enabled:
        return list(offers)
    allowed = set(enabled)
    return [o for o in offers if o.get("provider") in allowed]


def sort_offers(offers: Iterable[Offer], preference: Sequence[str]) -> list[Offer]:
    """Order offers by *preference*; unlisted providers follow in input order."""
    rank = {name: i for i, name in enumerate(preference)}
    return sorted(offers, key=lambda o: rank.get(o.get("provider", ""), len(rank)))


class AvailabilitySnapshot:
    """Read-only ``id -> AvailabilityRecord`` map with snapshot metadata."""

    def __init__(
        self,
        entries: Mapping[str, AvailabilityRecord] | None = None,
        *,
        country: str | None = None,
        last_updated: str | None = None,
    ) -> None:
        self._entries = MappingProxyType(dict(entries or {}))
        self.country = country
        self.last_updated = last_updated

    @classmethod
    def from_document(cls, document: Any) -> "AvailabilitySnapshot":
        entries = document.get("entries") if isinstance(document, dict) else None
        if not isinstance(entries, dict):
            logger.warning("Availability document has no 'entries' object")
            return cls()

        cleaned: dict[str, AvailabilityRecord] = {}
        for entry_id, raw in entries.items():
            record = _clean_record(entry_id, raw)
            if record is not None:
                cleaned[entry_id] = record
        return cls(
            cleaned,
            country=document.get("country"),
            last_updated=document.get("lastUpdated"),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> AvailabilityRecord | None:
        return self._entries.get(entry_id)

    def status(self, entry_id: str) -> AvailabilityStatus:
        return classify(self._entries.get(entry_id))


def load_availability(path: Path) -> AvailabilitySnapshot:
    """Load the availability snapshot at *path*.

    A missing or unreadable snapshot leaves every entry ``UNKNOWN``; it never
    makes entries look checked.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Availability snapshot %s not found; all entries unknown", path)
        return AvailabilitySnapshot()
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Cannot read availability snapshot %s: %s", path, exc)
        return AvailabilitySnapshot()

    snapshot = AvailabilitySnapshot.from_document(document)
    logger.info(
        "Loaded availability for %d entries (country=%s) from %s",
        len(snapshot),
        snapshot.country,
        path,
    )
    return snapshot
