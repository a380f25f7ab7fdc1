"""quality.py
Coverage report over the unified data set, one row per collection/period.

Columns
-------
entries
    Unified entries appearing in that collection/period.
unknown / checked-absent / found
    Availability status counts.
with_offers
    Found entries that carry at least one offer (any kind, any provider).
with_poster / awarded
    Entries with a resolved poster / with any award.
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from src.catalog.entities import AvailabilityStatus, UnifiedEntry

_COLUMNS = [
    "collection",
    "period",
    "entries",
    AvailabilityStatus.UNKNOWN.value,
    AvailabilityStatus.CHECKED_ABSENT.value,
    AvailabilityStatus.FOUND.value,
    "with_offers",
    "with_poster",
    "awarded",
]


def coverage_report(entries: Iterable[UnifiedEntry]) -> pd.DataFrame:
    """Summarise availability and enrichment coverage per collection/period.

    Entries without any appearance are grouped under collection ``"(none)"``
    so that the totals still add up to the catalog size.
    """
    rows: list[dict[str, object]] = []
    for entry in entries:
        has_offers = any(entry[kind] for kind in ("streaming", "rent", "buy"))
        base = {
            "status": entry["availability"],
            "with_offers": entry["availability"] == AvailabilityStatus.FOUND.value
            and has_offers,
            "with_poster": entry["posterUrl"] is not None,
            "awarded": entry["awarded"],
        }
        memberships = entry["appearances"] or [{"collection": "(none)", "period": ""}]
        for app in memberships:
            rows.append({"collection": app["collection"], "period": app["period"], **base})

    if not rows:
        return pd.DataFrame(columns=_COLUMNS)

    df = pd.DataFrame(rows)
    status_counts = (
        pd.crosstab([df["collection"], df["period"]], df["status"])
        .reindex(columns=[s.value for s in AvailabilityStatus], fill_value=0)
    )
    flags = df.groupby(["collection", "period"]).agg(
        entries=("status", "size"),
        with_offers=("with_offers", "sum"),
        with_poster=("with_poster", "sum"),
        awarded=("awarded", "sum"),
    )
    report = flags.join(status_counts).reset_index()
    report = report[_COLUMNS].astype({c: int for c in _COLUMNS[2:]})
    return report.sort_values(["collection", "period"]).reset_index(drop=True)
