"""aggregator.py
Join the catalog with its appearance, award and availability sources.

Workflow
---------
1. Load each source independently (they share no state, so they are read
   concurrently in a small thread pool).
2. For every catalog entry, look up its appearances and availability by
   stable id and its awards by normalized title + year.
3. Resolve display fields (poster, country, synopsis, ...) preferring
   enrichment data over the catalog's own fields.
4. Write ``{generatedAt, totalCount, entries}`` to the merged data file.

Exactly one unified entry is produced per catalog entry.  A missing related
record is never an error; it shows up as an empty list, ``False`` or
``AvailabilityStatus.UNKNOWN``.

Environment variables are consumed via :pyfile:`src.catalog.settings`.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, NamedTuple, Sequence

from tqdm import tqdm

from src.catalog.appearances import build_appearance_index
from src.catalog.availability import (
    AvailabilitySnapshot,
    classify,
    enabled_offers,
    load_availability,
    sort_offers,
)
from src.catalog.awards import AwardIndex, load_award_index
from src.catalog.catalog_store import CatalogStore, load_catalog
from src.catalog.entities import (
    Appearance,
    AvailabilityRecord,
    AwardInfo,
    CatalogEntry,
    UnifiedEntry,
)
from src.catalog.settings import settings

logger = logging.getLogger(__name__)


class Sources(NamedTuple):
    catalog: CatalogStore
    appearances: Mapping[str, list[Appearance]]
    awards: AwardIndex
    availability: AvailabilitySnapshot


def _text(value: Any) -> str | None:
    """Return a stripped non-empty string, or ``None``."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _resolve_poster(
    entry: CatalogEntry, record: AvailabilityRecord | None, poster_base_url: str
) -> str | None:
    # Poster priority: enrichment > catalog posterPath > availability snapshot.
    enriched = _text(entry.get("enrichment", {}).get("posterUrl"))
    if enriched:
        return enriched
    poster_path = _text(entry.get("posterPath"))
    if poster_path:
        return poster_base_url.rstrip("/") + "/" + poster_path.lstrip("/")
    if record is not None:
        return _text(record.get("posterUrl"))
    return None


def _resolve_country(entry: CatalogEntry) -> str | None:
    return _text(entry.get("enrichment", {}).get("country")) or _text(entry.get("country"))


def _cast_names(cast: Any, limit: int) -> list[str]:
    if not isinstance(cast, list):
        return []
    names = []
    for member in cast:
        name = member.get("name") if isinstance(member, dict) else member
        if isinstance(name, str) and name:
            names.append(name)
    return names[:limit]


def _mark_awarded(
    appearances: Iterable[Appearance], award_info: AwardInfo
) -> list[Appearance]:
    """Copy *appearances*, flagging those an award fact refers to."""
    won = {
        (str(a.get("festival", "")).casefold(), str(a.get("year", "")))
        for a in award_info["awards"]
    }
    return [
        {
            "collection": app["collection"],
            "period": app["period"],
            "awarded": (app["collection"].casefold(), app["period"]) in won,
        }
        for app in appearances
    ]


def build_unified_entry(
    entry: CatalogEntry,
    appearances: Sequence[Appearance],
    award_info: AwardInfo,
    record: AvailabilityRecord | None,
    *,
    enabled_platforms: Sequence[str] = (),
    poster_base_url: str = settings.poster_base_url,
    cast_limit: int = settings.cast_limit,
) -> UnifiedEntry:
    """Join one catalog entry with its already looked-up related records."""
    enrichment = entry.get("enrichment", {})
    links = entry.get("links", {})

    offers = {
        kind: sort_offers((record or {}).get(kind, []), enabled_platforms)
        for kind in ("streaming", "rent", "buy")
    }
    runtime = enrichment.get("runtime") or entry.get("runtime")
    genres = enrichment.get("genres") or entry.get("genres") or []
    rating = enrichment.get("rating")

    return {
        "id": entry["id"],
        "legacyKey": entry["legacyKey"],
        "title": entry["title"],
        "year": entry["year"],
        "director": _text(entry.get("director")),
        "country": _resolve_country(entry),
        "synopsis": _text(enrichment.get("synopsis")) or _text(entry.get("synopsis")),
        "genres": [g for g in genres if isinstance(g, str)] if isinstance(genres, list) else [],
        "runtime": str(runtime) if runtime else None,
        "cast": _cast_names(enrichment.get("cast") or entry.get("cast"), cast_limit),
        "rating": float(rating) if isinstance(rating, (int, float)) else None,
        "links": {
            "mubi": _text(links.get("mubi")),
            "justwatch": _text((record or {}).get("justwatchUrl")),
        },
        "posterUrl": _resolve_poster(entry, record, poster_base_url),
        "awarded": award_info["awarded"],
        "awards": award_info["awards"],
        "appearances": _mark_awarded(appearances, award_info),
        "availability": classify(record).value,
        "hasStreaming": bool(enabled_offers(offers["streaming"], enabled_platforms)),
        "hasRent": bool(enabled_offers(offers["rent"], enabled_platforms)),
        "hasBuy": bool(enabled_offers(offers["buy"], enabled_platforms)),
        "streaming": offers["streaming"],
        "rent": offers["rent"],
        "buy": offers["buy"],
    }


def aggregate(
    catalog: CatalogStore,
    appearances: Mapping[str, list[Appearance]],
    awards: AwardIndex,
    availability: AvailabilitySnapshot,
    *,
    enabled_platforms: Sequence[str] | None = None,
    poster_base_url: str | None = None,
    cast_limit: int | None = None,
    progress: bool = False,
) -> list[UnifiedEntry]:
    """Produce one :class:`UnifiedEntry` per catalog entry, in catalog order.

    Args:
        catalog: Canonical entries.
        appearances: Output of :func:`build_appearance_index`.
        awards: Award facts keyed by normalized title + year.
        availability: Viewing-option snapshot keyed by id.
        enabled_platforms: Providers counted for the ``has*`` flags; defaults
            to ``ENABLED_PLATFORMS``.
        poster_base_url: Prefix for raw poster paths; defaults to settings.
        cast_limit: Cast members kept per entry; defaults to settings.
        progress: Show a progress bar.
    """
    if enabled_platforms is None:
        enabled_platforms = settings.enabled_platforms
    if poster_base_url is None:
        poster_base_url = settings.poster_base_url
    if cast_limit is None:
        cast_limit = settings.cast_limit

    unified: list[UnifiedEntry] = []
    for entry in tqdm(catalog, total=len(catalog), desc="Joining", unit="entry", disable=not progress):
        unified.append(
            build_unified_entry(
                entry,
                appearances.get(entry["id"], []),
                awards.lookup(entry["title"], entry["year"]),
                availability.get(entry["id"]),
                enabled_platforms=enabled_platforms,
                poster_base_url=poster_base_url,
                cast_limit=cast_limit,
            )
        )

    orphans = [ref_id for ref_id in appearances if ref_id not in catalog]
    if orphans:
        logger.warning(
            "%d ids referenced by collections are not in the catalog (e.g. %s)",
            len(orphans),
            orphans[0],
        )
    logger.info(
        "Aggregated %d entries (%d awarded, %d with availability records)",
        len(unified),
        sum(1 for u in unified if u["awarded"]),
        sum(1 for u in unified if u["availability"] != "unknown"),
    )
    return unified


def load_sources(
    catalog_file: Path | None = None,
    collections_dir: Path | None = None,
    awards_file: Path | None = None,
    availability_file: Path | None = None,
    *,
    progress: bool = False,
) -> Sources:
    """Load the four sources concurrently; each is built independently."""
    catalog_file = catalog_file or settings.catalog_file
    collections_dir = collections_dir or settings.collections_dir
    awards_file = awards_file or settings.awards_file
    availability_file = availability_file or settings.availability_file

    with ThreadPoolExecutor(max_workers=max(1, settings.load_workers)) as pool:
        catalog = pool.submit(load_catalog, catalog_file)
        appearances = pool.submit(build_appearance_index, collections_dir, progress=progress)
        awards = pool.submit(load_award_index, awards_file)
        availability = pool.submit(load_availability, availability_file)
        # .result() re-raises fatal loader errors (missing catalog/root).
        return Sources(
            catalog.result(), appearances.result(), awards.result(), availability.result()
        )


def run_aggregation(output: Path | None = None, *, progress: bool = False) -> list[UnifiedEntry]:
    """Load every source, join them and write the merged data set."""
    output = Path(output or settings.merged_file)
    sources = load_sources(progress=progress)
    entries = aggregate(*sources, progress=progress)

    document = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "totalCount": len(entries),
        "entries": entries,
    }
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Wrote %d unified entries to %s", len(entries), output)
    return entries


def collect_facets(entries: Iterable[UnifiedEntry]) -> dict[str, list]:
    """Distinct filter values over the unified data set.

    Years are sorted newest first; every other facet alphabetically.
    """
    years: set[int] = set()
    collections: set[str] = set()
    providers: set[str] = set()
    countries: set[str] = set()
    genres: set[str] = set()

    for entry in entries:
        years.add(entry["year"])
        collections.update(a["collection"] for a in entry["appearances"])
        for kind in ("streaming", "rent", "buy"):
            providers.update(o["provider"] for o in entry[kind])
        if entry["country"]:
            countries.add(entry["country"])
        genres.update(entry["genres"])

    return {
        "years": sorted(years, reverse=True),
        "collections": sorted(collections),
        "providers": sorted(providers),
        "countries": sorted(countries),
        "genres": sorted(genres),
    }
