from src.catalog.aggregator import aggregate
from src.catalog.appearances import build_appearance_index
from src.catalog.availability import AvailabilitySnapshot
from src.catalog.awards import AwardIndex
from src.catalog.quality import coverage_report


def test_coverage_report_counts_per_collection(catalog, collections_root):
    snapshot = AvailabilitySnapshot.from_document(
        {
            "entries": {
                "abc": {"found": True, "streaming": [{"provider": "MUBI"}]},
                "ghi": {"found": False},
            }
        }
    )
    entries = aggregate(
        catalog,
        build_appearance_index(collections_root),
        AwardIndex(),
        snapshot,
        enabled_platforms=[],
    )

    report = coverage_report(entries)
    rows = {row["collection"]: row for row in report.to_dict(orient="records")}

    assert list(rows) == ["(none)", "berlin", "venice"]
    assert rows["venice"]["found"] == 1
    assert rows["venice"]["with_offers"] == 1
    assert rows["berlin"]["checked-absent"] == 1
    assert rows["(none)"]["unknown"] == 1
    assert rows["(none)"]["with_poster"] == 1
    assert report["entries"].sum() == len(catalog)


def test_empty_report_has_columns():
    report = coverage_report([])
    assert report.empty
    assert "with_offers" in report.columns
