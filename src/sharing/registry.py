"""registry.py
Bijection between catalog keys and fixed-length short codes.

Codes are base-``len(alphabet)`` renderings of a running index, most
significant character first, padded to ``code_length``.  The registry is
append-only: regenerating on top of a previously published artifact keeps
every existing assignment (including keys no longer in the catalog) and
hands new keys indices after the highest one ever issued, so old share links
keep decoding to the same keys.

Published artifact::

    {"metadata": {"generated", "totalCount", "codeLength", "alphabet", "capacity"},
     "keyToCode": {...}, "codeToKey": {...}}
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from src.sharing.settings import settings

logger = logging.getLogger(__name__)

_ALPHABET_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class CapacityExceededError(RuntimeError):
    """Raised when more keys need codes than the code space can address."""


class RegistryFormatError(ValueError):
    """Raised when a registry artifact or its parameters are inconsistent."""


def _check_alphabet(alphabet: str, code_length: int) -> None:
    if len(alphabet) < 2 or len(set(alphabet)) != len(alphabet):
        raise RegistryFormatError("alphabet needs at least two distinct characters")
    if not _ALPHABET_PATTERN.match(alphabet):
        raise RegistryFormatError("alphabet may only contain [A-Za-z0-9_-]")
    if code_length < 1:
        raise RegistryFormatError("code length must be positive")


def index_to_code(index: int, alphabet: str, code_length: int) -> str:
    """Render *index* as a fixed-width code over *alphabet*."""
    base = len(alphabet)
    if not 0 <= index < base**code_length:
        raise CapacityExceededError(f"index {index} does not fit in {code_length} characters")
    chars = []
    for _ in range(code_length):
        index, digit = divmod(index, base)
        chars.append(alphabet[digit])
    return "".join(reversed(chars))


def code_to_index(code: str, alphabet: str) -> int:
    base = len(alphabet)
    index = 0
    for ch in code:
        digit = alphabet.find(ch)
        if digit < 0:
            raise RegistryFormatError(f"code {code!r} uses characters outside the alphabet")
        index = index * base + digit
    return index


class CodeRegistry:
    """Immutable key <-> code maps plus the parameters that produced them.

    Lookups of unknown keys or codes return ``None``; callers decide how to
    fall back (the list codec passes the literal key through).
    """

    def __init__(
        self,
        key_to_code: Mapping[str, str],
        *,
        alphabet: str,
        code_length: int,
        generated: str | None = None,
    ) -> None:
        _check_alphabet(alphabet, code_length)
        code_to_key: dict[str, str] = {}
        for key, code in key_to_code.items():
            if not isinstance(key, str) or not isinstance(code, str):
                raise RegistryFormatError(f"non-string mapping {key!r} -> {code!r}")
            if len(code) != code_length:
                raise RegistryFormatError(f"code {code!r} for {key!r} is not {code_length} long")
            code_to_index(code, alphabet)
            if code in code_to_key:
                raise RegistryFormatError(
                    f"code {code!r} assigned to both {code_to_key[code]!r} and {key!r}"
                )
            code_to_key[code] = key

        self.alphabet = alphabet
        self.code_length = code_length
        self.generated = generated
        self._key_to_code = dict(key_to_code)
        self._code_to_key = code_to_key

    @property
    def capacity(self) -> int:
        return len(self.alphabet) ** self.code_length

    def __len__(self) -> int:
        return len(self._key_to_code)

    def __contains__(self, key: object) -> bool:
        return key in self._key_to_code

    def code_for(self, key: str) -> str | None:
        return self._key_to_code.get(key)

    def key_for(self, code: str) -> str | None:
        return self._code_to_key.get(code)

    def is_code(self, token: str) -> bool:
        return token in self._code_to_key

    def next_index(self) -> int:
        """Index the next newly registered key will receive."""
        if not self._code_to_key:
            return 0
        return max(code_to_index(c, self.alphabet) for c in self._code_to_key) + 1

    def to_document(self) -> dict[str, Any]:
        return {
            "metadata": {
                "generated": self.generated,
                "totalCount": len(self),
                "codeLength": self.code_length,
                "alphabet": self.alphabet,
                "capacity": self.capacity,
            },
            "keyToCode": dict(self._key_to_code),
            "codeToKey": dict(self._code_to_key),
        }

    @classmethod
    def from_document(cls, document: Any) -> "CodeRegistry":
        """Rebuild a registry from its published artifact.

        Raises:
            RegistryFormatError: If the artifact is incomplete or its two maps
                are not inverse of each other.
        """
        if not isinstance(document, dict):
            raise RegistryFormatError("registry artifact must be an object")
        meta = document.get("metadata")
        key_to_code = document.get("keyToCode")
        code_to_key = document.get("codeToKey")
        if not isinstance(meta, dict) or not isinstance(key_to_code, dict):
            raise RegistryFormatError("registry artifact lacks metadata or keyToCode")
        try:
            alphabet = str(meta["alphabet"])
            code_length = int(meta["codeLength"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RegistryFormatError(f"invalid registry metadata: {exc}") from exc
        registry = cls(
            key_to_code,
            alphabet=alphabet,
            code_length=code_length,
            generated=meta.get("generated"),
        )
        if code_to_key is not None and code_to_key != registry._code_to_key:
            raise RegistryFormatError("codeToKey is not the inverse of keyToCode")
        return registry


def generate_registry(
    keys: Iterable[str],
    *,
    alphabet: str | None = None,
    code_length: int | None = None,
    previous: CodeRegistry | None = None,
) -> CodeRegistry:
    """Assign codes to every key in *keys*, extending *previous* if given.

    New keys are sorted before numbering so that a fresh generation over the
    same key set is deterministic.

    Raises:
        CapacityExceededError: If the total number of codes would not be
            strictly below ``len(alphabet) ** code_length``.  Nothing is
            returned in that case; a partial registry never exists.
        RegistryFormatError: If *previous* was built with other parameters.
    """
    if alphabet is None:
        alphabet = previous.alphabet if previous else settings.code_alphabet
    if code_length is None:
        code_length = previous.code_length if previous else settings.code_length
    _check_alphabet(alphabet, code_length)

    assigned: dict[str, str] = {}
    start = 0
    if previous is not None:
        if previous.alphabet != alphabet or previous.code_length != code_length:
            raise RegistryFormatError(
                "cannot extend a registry generated with a different alphabet or code length"
            )
        assigned = previous.to_document()["keyToCode"]
        start = previous.next_index()

    new_keys = sorted({k for k in keys if k not in assigned})
    capacity = len(alphabet) ** code_length
    needed = start + len(new_keys)
    if needed >= capacity:
        logger.error(
            "Registry needs %d codes but %d-character codes over %d symbols address %d",
            needed,
            code_length,
            len(alphabet),
            capacity,
        )
        raise CapacityExceededError(
            f"{needed} codes required, capacity is {capacity}; increase CODE_LENGTH"
        )

    for offset, key in enumerate(new_keys):
        assigned[key] = index_to_code(start + offset, alphabet, code_length)

    usage = needed / capacity
    if usage > settings.capacity_headroom:
        logger.warning(
            "Short-code space is %.1f%% used (%d of %d); consider a longer code",
            usage * 100,
            needed,
            capacity,
        )
    logger.info(
        "Registry holds %d keys (%d new, %d retained)",
        len(assigned),
        len(new_keys),
        len(assigned) - len(new_keys),
    )
    return CodeRegistry(
        assigned,
        alphabet=alphabet,
        code_length=code_length,
        generated=datetime.now(timezone.utc).isoformat(),
    )


def load_registry(path: Path) -> CodeRegistry:
    """Read a published registry artifact."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RegistryFormatError(f"{path}: invalid JSON ({exc})") from exc
    registry = CodeRegistry.from_document(document)
    logger.info("Loaded %d short codes from %s", len(registry), path)
    return registry


def save_registry(registry: CodeRegistry, path: Path) -> None:
    """Publish *registry* to *path* atomically (write, then rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(registry.to_document(), fh, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Published %d short codes to %s", len(registry), path)
