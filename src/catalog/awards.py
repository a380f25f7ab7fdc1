"""awards.py
Award facts keyed by normalized title + year.

Only the ``films`` map of the award document is consumed; it is already keyed
by ``award_key(title, year)`` so the loader copies it without renormalizing.
A lookup miss is the common case and yields "not awarded".
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from src.catalog.entities import AwardDetail, AwardInfo
from src.catalog.normalize import award_key

logger = logging.getLogger(__name__)


def _clean_info(key: str, raw: Any) -> AwardInfo | None:
    if not isinstance(raw, dict):
        logger.warning("Award record %r is not an object, skipping", key)
        return None
    awards = raw.get("awards") or []
    if not isinstance(awards, list):
        logger.warning("Award record %r has non-list awards, skipping", key)
        return None
    details: list[AwardDetail] = [a for a in awards if isinstance(a, dict)]
    return {"awarded": bool(raw.get("awarded", bool(details))), "awards": details}


class AwardIndex:
    """Read-only ``award_key -> AwardInfo`` map."""

    def __init__(self, films: Mapping[str, AwardInfo] | None = None) -> None:
        self._films = MappingProxyType(dict(films or {}))

    @classmethod
    def from_document(cls, document: Any) -> "AwardIndex":
        """Copy the ``films`` map of a parsed award document.

        A document without a ``films`` object yields an empty index.
        """
        films = document.get("films") if isinstance(document, dict) else None
        if not isinstance(films, dict):
            logger.warning("Award document has no 'films' object; no awards attached")
            return cls()

        cleaned: dict[str, AwardInfo] = {}
        for key, raw in films.items():
            info = _clean_info(key, raw)
            if info is not None:
                cleaned[key] = info
        return cls(cleaned)

    def __len__(self) -> int:
        return len(self._films)

    def __contains__(self, key: object) -> bool:
        return key in self._films

    def lookup(self, title: str | None, year: int | str | None) -> AwardInfo:
        """Return award facts for *title*/*year*; a miss is ``awarded=False``."""
        info = self._films.get(award_key(title, year))
        if info is None:
            return {"awarded": False, "awards": []}
        return {"awarded": info["awarded"], "awards": [dict(a) for a in info["awards"]]}


def load_award_index(path: Path) -> AwardIndex:
    """Load the award document at *path*.

    The award source is optional: a missing or unreadable file is logged and
    produces an empty index rather than aborting aggregation.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Award document %s not found; no awards attached", path)
        return AwardIndex()
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Cannot read award document %s: %s", path, exc)
        return AwardIndex()

    index = AwardIndex.from_document(document)
    logger.info("Loaded %d award records from %s", len(index), path)
    return index
