"""normalize.py
Title normalization used to build the fuzzy award join key, and the legacy
title+year slug that predates stable ids.

Neither function is an identity: two different works may normalize to the
same string.  Stable ``id`` remains the only primary key.
"""

from __future__ import annotations

import re

_PARENTHETICAL = re.compile(r"\s*\([^)]+\)\s*")
# ASCII word characters only; the published award keys were built this way.
_NON_WORD = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str | None) -> str:
    """Reduce *title* to the form used as the award document's key.

    Parenthetical segments (original titles, cut names) are dropped, the rest
    is lowercased, every character outside ``[a-z0-9_]`` and whitespace
    becomes a space, and whitespace runs collapse to one space.  Accented
    letters are not folded, so they split words the same way the award data
    does.

    >>> normalize_title("The Film (2020 Cut)")
    'the film'
    >>> normalize_title("Amélie: Le Fabuleux Destin")
    'am lie le fabuleux destin'
    """
    if not title:
        return ""
    text = _PARENTHETICAL.sub("", title).strip().lower()
    text = _NON_WORD.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def award_key(title: str | None, year: int | str | None) -> str:
    """Composite key used by the award document's ``films`` map."""
    return f"{normalize_title(title)}-{year}"


def legacy_key(title: str, year: int | str) -> str:
    """Title+year slug used by links shared before stable ids existed.

    Kept byte-compatible with the old scheme: no trimming of leading or
    trailing separators.
    """
    return f"{re.sub(r'[^a-z0-9]+', '-', title.lower())}-{year}"
