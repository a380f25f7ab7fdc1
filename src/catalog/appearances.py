"""appearances.py
Build the id -> collection memberships index from the collections tree::

    <root>/<collection>/<period>.json      # [{"id": "..."}, ...]

Period labels come from the file stem with trailing modifiers removed, so
``2024-fixed.json`` and ``2024+.json`` both count as period ``2024``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from tqdm import tqdm

from src.catalog.entities import Appearance

logger = logging.getLogger(__name__)

_PERIOD_MODIFIER = re.compile(r"[-+].*$")


class AppearanceRootMissingError(FileNotFoundError):
    """Raised when the collections root does not exist; nothing can be derived."""


def canonical_period(filename: str) -> str:
    """Return the period label for a collection file name.

    >>> canonical_period("2024-fixed.json")
    '2024'
    """
    stem = filename[: -len(".json")] if filename.endswith(".json") else filename
    return _PERIOD_MODIFIER.sub("", stem)


def _collection_files(root: Path) -> list[tuple[str, Path]]:
    files: list[tuple[str, Path]] = []
    for collection_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        for path in sorted(collection_dir.iterdir()):
            if path.is_file() and path.suffix == ".json":
                files.append((collection_dir.name, path))
            else:
                logger.debug("Ignoring non-JSON entry %s", path)
    return files


def _read_references(path: Path) -> list[str] | None:
    """Return the ids referenced by one period file, or ``None`` to skip it."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Cannot read %s: %s, skipping", path, exc)
        return None

    if not isinstance(data, list):
        logger.warning("Expected array format in %s, skipping", path)
        return None

    ids: list[str] = []
    bad = 0
    for ref in data:
        ref_id = ref.get("id") if isinstance(ref, dict) else None
        if isinstance(ref_id, str) and ref_id:
            ids.append(ref_id)
        else:
            bad += 1
    if bad:
        logger.warning("Skipped %d malformed references in %s", bad, path)
    return ids


def build_appearance_index(
    root: Path, *, progress: bool = False
) -> dict[str, list[Appearance]]:
    """Scan *root* and map every referenced id to its appearances.

    Each ``(collection, period)`` pair is recorded at most once per id; the
    first occurrence wins and later duplicates are ignored.  Lists keep
    traversal order.  ``awarded`` is always ``False`` here; award status is
    attached at join time.

    Args:
        root: Directory containing one sub-directory per collection.
        progress: Show a progress bar while scanning.

    Raises:
        AppearanceRootMissingError: If *root* is missing or not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        logger.error("Collections root %s does not exist", root)
        raise AppearanceRootMissingError(f"collections root not found: {root}")

    index: dict[str, list[Appearance]] = {}
    seen: set[tuple[str, str, str]] = set()

    files = _collection_files(root)
    for collection, path in tqdm(
        files, desc="Scanning collections", unit="file", disable=not progress
    ):
        ids = _read_references(path)
        if ids is None:
            continue
        period = canonical_period(path.name)
        for ref_id in ids:
            marker = (ref_id, collection, period)
            if marker in seen:
                continue
            seen.add(marker)
            index.setdefault(ref_id, []).append(
                {"collection": collection, "period": period, "awarded": False}
            )

    logger.info(
        "Indexed appearances for %d ids from %d files under %s",
        len(index),
        len(files),
        root,
    )
    return index
