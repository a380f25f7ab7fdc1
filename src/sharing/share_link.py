"""share_link.py
Build and parse the shared-list URL::

    <base>?name=<list name>&favs=<token>&removed=<key>,<key>

``favs`` carries the opaque codec token.  ``name`` and ``removed`` are plain
text companions, percent-encoded by the URL layer only.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple
from urllib.parse import parse_qs, urlencode, urlsplit

from src.sharing.codec import DELIMITER
from src.sharing.settings import settings

TOKEN_PARAM = "favs"
NAME_PARAM = "name"
REMOVED_PARAM = "removed"


class SharedQuery(NamedTuple):
    token: str
    name: str | None
    removed: tuple[str, ...]


def build_share_url(
    token: str,
    *,
    name: str | None = None,
    removed: Iterable[str] = (),
    base_url: str | None = None,
) -> str:
    """Return the share URL for *token*, or ``""`` when there is nothing to share."""
    if not token:
        return ""
    params: list[tuple[str, str]] = []
    if name and name.strip():
        params.append((NAME_PARAM, name.strip()))
    params.append((TOKEN_PARAM, token))
    removed = [k for k in removed if k]
    if removed:
        params.append((REMOVED_PARAM, DELIMITER.join(removed)))
    return f"{base_url or settings.share_base_url}?{urlencode(params, safe=DELIMITER)}"


def parse_share_query(url_or_query: str) -> SharedQuery:
    """Split a share URL (or just its query string) into its three parts.

    Missing parameters come back empty; nothing here validates the token.
    """
    query = urlsplit(url_or_query).query if "?" in url_or_query else url_or_query
    params = parse_qs(query.lstrip("?"), keep_blank_values=True)

    def first(name: str) -> str:
        values = params.get(name) or [""]
        return values[0]

    name = first(NAME_PARAM).strip() or None
    removed = tuple(k for k in first(REMOVED_PARAM).split(DELIMITER) if k)
    return SharedQuery(token=first(TOKEN_PARAM), name=name, removed=removed)
