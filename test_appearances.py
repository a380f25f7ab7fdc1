import logging

import pytest

from conftest import write_json
from src.catalog.appearances import (
    AppearanceRootMissingError,
    build_appearance_index,
    canonical_period,
)


def test_single_reference(collections_root):
    index = build_appearance_index(collections_root)
    assert index["abc"] == [{"collection": "venice", "period": "2020", "awarded": False}]


def test_duplicate_reference_yields_one_appearance(collections_root):
    index = build_appearance_index(collections_root)
    assert index["ghi"] == [{"collection": "berlin", "period": "2024", "awarded": False}]


def test_modified_period_files_merge_into_one_period(tmp_path):
    root = tmp_path / "festivals"
    write_json(root / "cannes" / "2023.json", [{"id": "x"}])
    write_json(root / "cannes" / "2023-fixed.json", [{"id": "x"}, {"id": "y"}])
    write_json(root / "cannes" / "2023+.json", [{"id": "y"}])

    index = build_appearance_index(root)

    assert index["x"] == [{"collection": "cannes", "period": "2023", "awarded": False}]
    assert index["y"] == [{"collection": "cannes", "period": "2023", "awarded": False}]


def test_same_id_in_several_collections_keeps_each(tmp_path):
    root = tmp_path / "festivals"
    write_json(root / "berlin" / "2019.json", [{"id": "x"}])
    write_json(root / "venice" / "2019.json", [{"id": "x"}])
    write_json(root / "venice" / "2020.json", [{"id": "x"}])

    pairs = [(a["collection"], a["period"]) for a in build_appearance_index(root)["x"]]

    assert sorted(pairs) == [("berlin", "2019"), ("venice", "2019"), ("venice", "2020")]


@pytest.mark.parametrize(
    "name,period",
    [("2024.json", "2024"), ("2024-fixed.json", "2024"), ("2020+.json", "2020"), ("2019", "2019")],
)
def test_canonical_period(name, period):
    assert canonical_period(name) == period


def test_malformed_files_are_skipped_with_warning(tmp_path, caplog):
    root = tmp_path / "festivals"
    write_json(root / "venice" / "2020.json", {"films": [{"id": "a"}]})
    (root / "venice" / "2021.json").write_text("{not json", encoding="utf-8")
    write_json(root / "venice" / "2022.json", [{"id": "b"}, "junk", {"title": "no id"}])
    (root / "venice" / "notes.txt").write_text("ignored", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        index = build_appearance_index(root)

    assert list(index) == ["b"]
    assert "Expected array format" in caplog.text
    assert "Skipped 2 malformed references" in caplog.text


def test_missing_root_is_fatal(tmp_path):
    with pytest.raises(AppearanceRootMissingError):
        build_appearance_index(tmp_path / "nope")
