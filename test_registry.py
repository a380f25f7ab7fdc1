import pytest

from src.sharing.registry import (
    CapacityExceededError,
    CodeRegistry,
    RegistryFormatError,
    generate_registry,
    index_to_code,
    load_registry,
    save_registry,
)
from src.sharing.settings import DEFAULT_ALPHABET


def test_codes_are_fixed_width_base_n():
    assert index_to_code(0, DEFAULT_ALPHABET, 3) == "aaa"
    assert index_to_code(1, DEFAULT_ALPHABET, 3) == "aab"
    assert index_to_code(62, DEFAULT_ALPHABET, 3) == "aba"
    assert index_to_code(62**3 - 1, DEFAULT_ALPHABET, 3) == "999"


def test_registry_is_a_bijection():
    keys = [f"film-{i}" for i in range(500)]
    registry = generate_registry(keys)

    codes = [registry.code_for(k) for k in keys]
    assert len(set(codes)) == len(keys)
    assert all(len(c) == 3 for c in codes)
    for key in keys:
        assert registry.key_for(registry.code_for(key)) == key


def test_generation_is_deterministic_over_key_order():
    a = generate_registry(["c", "a", "b"])
    b = generate_registry(["b", "c", "a", "a"])
    assert a.to_document()["keyToCode"] == b.to_document()["keyToCode"]
    assert a.code_for("a") == "aaa"


def test_unknown_lookups_return_none(registry):
    assert registry.code_for("not-in-catalog") is None
    assert registry.key_for("zzz") is None


def test_capacity_must_strictly_exceed_key_count():
    generate_registry(["a", "b", "c"], alphabet="ab", code_length=2)
    with pytest.raises(CapacityExceededError):
        generate_registry(["a", "b", "c", "d"], alphabet="ab", code_length=2)


def test_extending_never_reassigns_or_recycles():
    first = generate_registry(["a", "b", "c"], alphabet="abcd", code_length=2)
    second = generate_registry(["a", "c", "d"], previous=first)

    for key in ("a", "b", "c"):
        assert second.code_for(key) == first.code_for(key)
    assert second.code_for("d") == "ad"
    assert second.key_for(first.code_for("b")) == "b"


def test_extending_counts_retired_codes_against_capacity():
    first = generate_registry(["a", "b"], alphabet="ab", code_length=2)
    with pytest.raises(CapacityExceededError):
        generate_registry(["c", "d"], previous=first)


def test_extending_with_other_parameters_is_refused():
    first = generate_registry(["a"], alphabet="abcd", code_length=2)
    with pytest.raises(RegistryFormatError):
        generate_registry(["b"], previous=first, code_length=3)


def test_artifact_round_trip(tmp_path, registry):
    path = tmp_path / "data" / "film-key-mappings.json"
    save_registry(registry, path)
    loaded = load_registry(path)

    doc = loaded.to_document()
    assert doc["metadata"]["totalCount"] == 3
    assert doc["metadata"]["capacity"] == 62**3
    assert doc["keyToCode"] == registry.to_document()["keyToCode"]
    assert not list(tmp_path.glob("data/*.tmp"))


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"metadata": {"alphabet": "ab", "codeLength": 1}},
        {"metadata": {"codeLength": 1}, "keyToCode": {}},
        {"metadata": {"alphabet": "ab", "codeLength": 1}, "keyToCode": {"x": "a", "y": "a"}},
        {"metadata": {"alphabet": "ab", "codeLength": 1}, "keyToCode": {"x": "c"}},
        {"metadata": {"alphabet": "ab", "codeLength": 2}, "keyToCode": {"x": "a"}},
        {
            "metadata": {"alphabet": "ab", "codeLength": 1},
            "keyToCode": {"x": "a"},
            "codeToKey": {"b": "x"},
        },
    ],
)
def test_inconsistent_artifacts_are_refused(document):
    with pytest.raises(RegistryFormatError):
        CodeRegistry.from_document(document)


def test_alphabet_must_be_url_safe():
    with pytest.raises(RegistryFormatError):
        generate_registry(["a"], alphabet="ab,~", code_length=2)


@pytest.mark.parametrize("params", [{"code_length": 0}, {"alphabet": ""}])
def test_explicit_empty_parameters_are_refused(params):
    with pytest.raises(RegistryFormatError):
        generate_registry(["a"], **params)
