from __future__ import annotations

import json
from pathlib import Path

import pytest

from src.catalog.catalog_store import CatalogStore
from src.sharing.registry import generate_registry


def write_json(path: Path, data: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def catalog_document() -> dict:
    return {
        "lastUpdated": "2025-01-01T00:00:00Z",
        "totalCount": 3,
        "entries": {
            "abc": {"title": "Nomadland", "year": 2020, "country": "USA"},
            "def": {
                "title": "Eden",
                "year": 2014,
                "country": "France",
                "posterPath": "/eden.jpg",
                "enrichment": {"country": "FR", "genres": ["Drama"], "runtime": 131},
            },
            "ghi": {"title": "No Other Land", "year": 2024, "links": {"mubi": "  "}},
        },
    }


@pytest.fixture
def catalog(catalog_document: dict) -> CatalogStore:
    return CatalogStore.from_document(catalog_document)


@pytest.fixture
def collections_root(tmp_path: Path) -> Path:
    root = tmp_path / "festivals"
    write_json(root / "venice" / "2020.json", [{"id": "abc"}])
    write_json(root / "berlin" / "2024.json", [{"id": "ghi"}, {"id": "ghi"}])
    return root


@pytest.fixture
def registry():
    return generate_registry(["eden-2014", "no-other-land-2024", "xyz"])
