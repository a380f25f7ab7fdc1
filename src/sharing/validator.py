"""validator.py
Stricter gate applied before a decoded list replaces a user's saved selection.

Displaying a shared list only needs a successful decode.  Persisting it
additionally requires every reconstructed record to validate; a single bad
record rejects the whole import so a partially applied list is never stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from src.catalog.catalog_store import CatalogStore
from src.sharing.codec import DecodeResult
from src.sharing.settings import settings

logger = logging.getLogger(__name__)

KEY_PATTERN = r"^[A-Za-z0-9_-]+$"


class ImportRejectedError(ValueError):
    """Raised when any record of an import fails validation.

    ``errors`` holds one ``{"index", "key", "errors"}`` entry per failing record.
    """

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        super().__init__(f"{len(errors)} record(s) failed validation")
        self.errors = errors


class PersistedItem(BaseModel):
    """One entry of a user's saved selection."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    key: StrictStr = Field(pattern=KEY_PATTERN)
    title: StrictStr = ""
    added_at: datetime = Field(alias="addedAt")
    priority: StrictBool = False

    @field_validator("key")
    @classmethod
    def _key_length(cls, value: str, info: ValidationInfo) -> str:
        limits = info.context or {}
        low = limits.get("key_min_length", settings.key_min_length)
        high = limits.get("key_max_length", settings.key_max_length)
        if not low <= len(value) <= high:
            raise ValueError(f"key length must be between {low} and {high}")
        return value

    @field_validator("title")
    @classmethod
    def _title_length(cls, value: str, info: ValidationInfo) -> str:
        limit = (info.context or {}).get("max_title_length", settings.max_title_length)
        if len(value) > limit:
            raise ValueError(f"title longer than {limit} characters")
        return value

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def validate_records(
    records: Sequence[Mapping[str, Any]], **limits: int
) -> list[PersistedItem]:
    """Validate every record; all pass or :class:`ImportRejectedError` is raised.

    Keyword arguments override the length limits from settings
    (``key_min_length``, ``key_max_length``, ``max_title_length``).
    """
    items: list[PersistedItem] = []
    errors: list[dict[str, Any]] = []
    for index, record in enumerate(records):
        try:
            items.append(PersistedItem.model_validate(record, context=limits))
        except ValidationError as exc:
            errors.append(
                {
                    "index": index,
                    "key": record.get("key") if isinstance(record, Mapping) else None,
                    "errors": exc.errors(include_url=False, include_context=False),
                }
            )
    if errors:
        logger.warning("Import rejected: %d of %d records invalid", len(errors), len(records))
        raise ImportRejectedError(errors)
    return items


class ImportStatus(str, Enum):
    CORRUPTED = "corrupted"
    UNRECOGNIZED = "unrecognized"
    REJECTED = "rejected"
    NEEDS_CONFIRMATION = "needs-confirmation"
    READY = "ready"


MESSAGES = {
    ImportStatus.CORRUPTED: "This link is corrupted and cannot be read.",
    ImportStatus.UNRECOGNIZED: "This link does not refer to any film we recognize.",
    ImportStatus.REJECTED: "This list contains entries that cannot be saved.",
    ImportStatus.NEEDS_CONFIRMATION: "Importing will replace your existing list. Confirm to continue.",
    ImportStatus.READY: "The list is ready to be saved.",
}


@dataclass(frozen=True)
class ImportPlan:
    status: ImportStatus
    items: tuple[PersistedItem, ...] = ()
    errors: tuple[dict[str, Any], ...] = ()
    unrecognized: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return MESSAGES[self.status]

    @property
    def can_save(self) -> bool:
        return self.status is ImportStatus.READY


def build_records(
    result: DecodeResult,
    catalog: CatalogStore | None = None,
    *,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Turn a decoded list into persisted-record dicts.

    Duplicate keys collapse onto their first occurrence, keeping the flag if
    any occurrence was flagged.  Titles come from the catalog when the key is
    known there.
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    records: dict[str, dict[str, Any]] = {}
    for key in result.keys:
        if key in records:
            records[key]["priority"] = records[key]["priority"] or result.flag(key)
            continue
        entry = catalog.resolve(key) if catalog is not None else None
        records[key] = {
            "key": key,
            "title": entry["title"] if entry else "",
            "addedAt": stamp,
            "priority": result.flag(key),
        }
    return list(records.values())


def plan_import(
    result: DecodeResult,
    *,
    catalog: CatalogStore | None = None,
    existing: Sequence[PersistedItem] = (),
    confirm_overwrite: bool = False,
    now: datetime | None = None,
) -> ImportPlan:
    """Decide what importing *result* over *existing* would do.

    The returned plan only carries items when they all validated.  Keys already
    saved keep their original ``addedAt``.  Replacing a non-empty selection
    whose keys or priority flags differ needs *confirm_overwrite*.
    """
    if not result.ok:
        return ImportPlan(ImportStatus.CORRUPTED)

    unknown = tuple(
        k for k in dict.fromkeys(result.keys) if catalog is not None and catalog.resolve(k) is None
    )
    if not result.keys or len(unknown) == len(dict.fromkeys(result.keys)):
        return ImportPlan(ImportStatus.UNRECOGNIZED, unrecognized=unknown)

    saved_at = {item.key: item.added_at for item in existing}
    records = build_records(result, catalog, now=now)
    for record in records:
        if record["key"] in saved_at:
            record["addedAt"] = saved_at[record["key"]].isoformat()

    try:
        items = tuple(validate_records(records))
    except ImportRejectedError as exc:
        return ImportPlan(ImportStatus.REJECTED, errors=tuple(exc.errors), unrecognized=unknown)

    current = [(item.key, item.priority) for item in existing]
    incoming = [(item.key, item.priority) for item in items]
    if current and current != incoming and not confirm_overwrite:
        return ImportPlan(ImportStatus.NEEDS_CONFIRMATION, items=items, unrecognized=unknown)
    return ImportPlan(ImportStatus.READY, items=items, unrecognized=unknown)
