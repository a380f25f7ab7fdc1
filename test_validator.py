from datetime import datetime, timezone

import pytest

from src.sharing.codec import DecodeFailure, DecodeResult, ListCodec
from src.sharing.validator import (
    ImportRejectedError,
    ImportStatus,
    PersistedItem,
    build_records,
    plan_import,
    validate_records,
)

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)


def _record(key="abc", **overrides):
    record = {"key": key, "title": "Nomadland", "addedAt": "2025-05-01T12:00:00Z", "priority": False}
    record.update(overrides)
    return record


def _decoded(*keys, flagged=()):
    return DecodeResult(ok=True, keys=keys, flags={k: k in flagged for k in keys})


def test_valid_records_pass():
    items = validate_records([_record(), _record("def", title="", priority=True)])
    assert [i.key for i in items] == ["abc", "def"]
    assert items[0].added_at == NOW
    assert items[1].to_record()["priority"] is True


@pytest.mark.parametrize(
    "bad",
    [
        _record("bad key!"),
        _record(""),
        _record("k" * 201),
        _record(title="x" * 501),
        _record(title=42),
        _record(addedAt="not a date"),
        _record(priority="yes"),
        _record(extra="field"),
        {"key": "abc", "title": "no timestamp"},
    ],
)
def test_one_bad_record_rejects_the_whole_batch(bad):
    with pytest.raises(ImportRejectedError) as excinfo:
        validate_records([_record("first"), bad, _record("last")])
    assert [e["index"] for e in excinfo.value.errors] == [1]


def test_limits_can_be_overridden():
    with pytest.raises(ImportRejectedError):
        validate_records([_record(title="long title")], max_title_length=5)
    validate_records([_record("ab")], key_min_length=2)


def test_build_records_collapses_duplicates_and_ors_flags(catalog):
    records = build_records(_decoded("abc", "zzz-2030", "abc", flagged=("abc",)), catalog, now=NOW)

    assert records == [
        {"key": "abc", "title": "Nomadland", "addedAt": NOW.isoformat(), "priority": True},
        {"key": "zzz-2030", "title": "", "addedAt": NOW.isoformat(), "priority": False},
    ]


def test_titles_resolve_through_legacy_keys(catalog):
    [record] = build_records(_decoded("no-other-land-2024"), catalog, now=NOW)
    assert record["title"] == "No Other Land"


def test_corrupted_link():
    plan = plan_import(DecodeResult.failure(DecodeFailure.NOT_JSON))
    assert plan.status is ImportStatus.CORRUPTED
    assert "corrupted" in plan.message
    assert not plan.can_save


def test_empty_or_unknown_link_is_unrecognized(catalog):
    assert plan_import(_decoded()).status is ImportStatus.UNRECOGNIZED

    plan = plan_import(_decoded("nope-1", "nope-2"), catalog=catalog)
    assert plan.status is ImportStatus.UNRECOGNIZED
    assert plan.unrecognized == ("nope-1", "nope-2")


def test_partially_known_link_keeps_unknown_keys(catalog):
    plan = plan_import(_decoded("abc", "future-2030"), catalog=catalog, now=NOW)
    assert plan.status is ImportStatus.READY
    assert [i.key for i in plan.items] == ["abc", "future-2030"]
    assert plan.unrecognized == ("future-2030",)


def test_invalid_key_rejects_import():
    plan = plan_import(_decoded("abc", "bad key"), now=NOW)
    assert plan.status is ImportStatus.REJECTED
    assert plan.items == ()
    assert plan.errors[0]["key"] == "bad key"


def test_overwrite_requires_confirmation(catalog):
    existing = validate_records([_record("def", title="Eden")])
    decoded = _decoded("abc")

    plan = plan_import(decoded, catalog=catalog, existing=existing, now=NOW)
    assert plan.status is ImportStatus.NEEDS_CONFIRMATION
    assert "replace" in plan.message

    plan = plan_import(decoded, catalog=catalog, existing=existing, confirm_overwrite=True, now=NOW)
    assert plan.status is ImportStatus.READY
    assert plan.can_save


def test_identical_import_needs_no_confirmation(catalog):
    existing = validate_records([_record("abc")])
    plan = plan_import(_decoded("abc"), catalog=catalog, existing=existing, now=NOW)
    assert plan.status is ImportStatus.READY


def test_shared_token_imports_end_to_end(catalog, registry):
    codec = ListCodec(registry)
    token = codec.encode(["abc", "def", "abc"], {"def": True})

    plan = plan_import(codec.decode(token), catalog=catalog, now=NOW)

    assert plan.status is ImportStatus.READY
    assert [(i.key, i.title, i.priority) for i in plan.items] == [
        ("abc", "Nomadland", False),
        ("def", "Eden", True),
    ]
    assert isinstance(plan.items[0], PersistedItem)


def test_changing_only_a_flag_requires_confirmation(catalog):
    existing = validate_records(
        [_record("abc", addedAt="2020-03-01T08:00:00Z", priority=True)]
    )
    decoded = _decoded("abc")

    plan = plan_import(decoded, catalog=catalog, existing=existing, now=NOW)
    assert plan.status is ImportStatus.NEEDS_CONFIRMATION

    plan = plan_import(decoded, catalog=catalog, existing=existing, confirm_overwrite=True, now=NOW)
    assert plan.status is ImportStatus.READY
    [item] = plan.items
    assert item.priority is False
    assert item.added_at == datetime(2020, 3, 1, 8, 0, tzinfo=timezone.utc)


def test_retained_keys_keep_their_saved_timestamp(catalog):
    saved = datetime(2020, 3, 1, 8, 0, tzinfo=timezone.utc)
    existing = validate_records([_record("abc", addedAt=saved.isoformat())])

    plan = plan_import(_decoded("abc"), catalog=catalog, existing=existing, now=NOW)

    assert plan.status is ImportStatus.READY
    assert plan.items[0].added_at == saved
