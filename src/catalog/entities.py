"""entities.py
Shared type definitions used across the aggregation pipeline.

Source records mirror the JSON documents they are read from (camelCase keys);
:class:`UnifiedEntry` is the joined record written to the merged data set.
"""

from __future__ import annotations

from enum import Enum
from typing import TypedDict, Union


class Enrichment(TypedDict, total=False):
    """Metadata fetched from an external enrichment service (e.g. TMDB)."""

    posterUrl: str
    country: str
    synopsis: str
    genres: list[str]
    runtime: Union[int, str]
    cast: list[Union[str, dict]]
    rating: float


class CatalogEntry(TypedDict, total=False):
    """Canonical record for one work, addressed by its stable ``id``."""

    id: str
    legacyKey: str
    title: str
    year: int
    director: str | None
    country: str | None
    links: dict[str, str]
    posterPath: str | None
    synopsis: str
    genres: list[str]
    runtime: Union[int, str]
    cast: list[Union[str, dict]]
    enrichment: Enrichment


class Appearance(TypedDict):
    """One inclusion of an entry in a dated collection."""

    collection: str
    period: str
    awarded: bool


class AwardDetail(TypedDict):
    festival: str
    award: str
    year: int


class AwardInfo(TypedDict):
    """Value of the award document's ``films`` map."""

    awarded: bool
    awards: list[AwardDetail]


class Offer(TypedDict, total=False):
    provider: str
    quality: str | None
    price: str | None
    url: str | None


class AvailabilityRecord(TypedDict, total=False):
    """Per-entry value of the availability snapshot."""

    found: bool
    searchAttempted: bool
    streaming: list[Offer]
    rent: list[Offer]
    buy: list[Offer]
    posterUrl: str | None
    justwatchUrl: str | None


class AvailabilityStatus(str, Enum):
    """Whether an entry was checked for viewing options, and with what result.

    ``UNKNOWN`` means never searched; ``CHECKED_ABSENT`` means searched and not
    matched; ``FOUND`` means matched, which may still carry zero offers.
    """

    UNKNOWN = "unknown"
    CHECKED_ABSENT = "checked-absent"
    FOUND = "found"


class UnifiedEntry(TypedDict):
    """Joined record produced by :func:`src.catalog.aggregator.aggregate`."""

    id: str
    legacyKey: str
    title: str
    year: int
    director: str | None
    country: str | None
    synopsis: str | None
    genres: list[str]
    runtime: str | None
    cast: list[str]
    rating: float | None
    links: dict[str, str | None]
    posterUrl: str | None
    awarded: bool
    awards: list[AwardDetail]
    appearances: list[Appearance]
    availability: str
    hasStreaming: bool
    hasRent: bool
    hasBuy: bool
    streaming: list[Offer]
    rent: list[Offer]
    buy: list[Offer]
