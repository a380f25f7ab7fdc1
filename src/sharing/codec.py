"""codec.py
Encode an ordered list of catalog keys (plus per-key priority flags) into one
compact URL-safe token, and decode such tokens back.

Encoding
---------
1. Map each key to its short code; a key the registry does not know is
   passed through literally (prefixed with ``~`` when it could be mistaken
   for a code).
2. Join the tokens with ``,`` and build ``{"codes": ..., "priorities": ...}``
   where ``priorities`` only lists flagged codes.
3. Serialize compactly, zlib-compress and render as unpadded URL-safe base64
   (characters ``[A-Za-z0-9_-]`` only, safe in a query parameter as is).

Decoding treats the token as untrusted: every failure is reported through a
:class:`DecodeResult` with a :class:`DecodeFailure` reason, never raised.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import threading
import zlib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Mapping, Union

from src.sharing.registry import CodeRegistry, load_registry
from src.sharing.settings import settings

logger = logging.getLogger(__name__)

DELIMITER = ","
LITERAL_MARKER = "~"

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class DecodeFailure(str, Enum):
    """Why a share token could not be decoded."""

    TOO_LARGE = "too-large"
    BAD_CHARACTERS = "bad-characters"
    NOT_DECOMPRESSIBLE = "not-decompressible"
    NOT_JSON = "not-json"
    BAD_SHAPE = "bad-shape"
    TOO_MANY_ITEMS = "too-many-items"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of :meth:`ListCodec.decode`.

    On success ``keys`` holds the decoded keys in their original order
    (duplicates included) and ``flags`` maps every decoded key to its
    priority flag.  On failure ``reason`` says why.
    """

    ok: bool
    keys: tuple[str, ...] = ()
    flags: Mapping[str, bool] = field(default_factory=dict)
    reason: DecodeFailure | None = None
    detail: str = ""

    @classmethod
    def failure(cls, reason: DecodeFailure, detail: str = "") -> "DecodeResult":
        logger.info("Rejected share token: %s %s", reason.value, detail)
        return cls(ok=False, reason=reason, detail=detail)

    def flag(self, key: str) -> bool:
        return self.flags.get(key, False)


class RegistryCache:
    """Lazily loaded, explicitly reloadable registry snapshot.

    The first :meth:`get` loads the artifact; later calls return the same
    snapshot until :meth:`reload` swaps in a freshly loaded one.  A failed
    load is not cached.
    """

    def __init__(
        self,
        path: Path | None = None,
        loader: Callable[[Path], CodeRegistry] = load_registry,
    ) -> None:
        self._path = Path(path or settings.registry_file)
        self._loader = loader
        self._registry: CodeRegistry | None = None
        self._lock = threading.Lock()

    @classmethod
    def of(cls, registry: CodeRegistry) -> "RegistryCache":
        """Wrap an in-memory registry (no artifact behind it)."""
        cache = cls(loader=lambda _path: registry)
        cache._registry = registry
        return cache

    def get(self) -> CodeRegistry:
        registry = self._registry
        if registry is not None:
            return registry
        with self._lock:
            if self._registry is None:
                self._registry = self._loader(self._path)
            return self._registry

    def reload(self) -> CodeRegistry:
        """Load the artifact again and replace the cached snapshot."""
        fresh = self._loader(self._path)
        with self._lock:
            self._registry = fresh
        return fresh


class ListCodec:
    """Stateless encoder/decoder over a shared, read-only registry snapshot."""

    def __init__(
        self,
        registry: Union[CodeRegistry, RegistryCache, None] = None,
        *,
        max_token_length: int = settings.max_token_length,
        max_payload_bytes: int = settings.max_payload_bytes,
        max_items: int = settings.max_items,
    ) -> None:
        if isinstance(registry, CodeRegistry):
            registry = RegistryCache.of(registry)
        self.cache = registry or RegistryCache()
        self.max_token_length = max_token_length
        self.max_payload_bytes = max_payload_bytes
        self.max_items = max_items

    # ------------------------------------------------------------------ encode

    @staticmethod
    def _to_token(key: str, registry: CodeRegistry) -> str:
        code = registry.code_for(key)
        if code is not None:
            return code
        logger.debug("No short code for %r, passing it through literally", key)
        if key.startswith(LITERAL_MARKER) or registry.is_code(key):
            return LITERAL_MARKER + key
        return key

    def encode(self, keys: Iterable[str], flags: Mapping[str, bool] | None = None) -> str:
        """Encode *keys* (order and duplicates preserved) and their flags.

        Args:
            keys: Catalog keys known to the caller.
            flags: Optional per-key priority flags; missing keys count as
                ``False``.

        Returns:
            The URL-safe token, or ``""`` for an empty list.

        Raises:
            ValueError: If a key is empty or contains the delimiter.
        """
        keys = list(keys)
        if not keys:
            return ""
        flags = flags or {}
        registry = self.cache.get()

        tokens: list[str] = []
        priorities: dict[str, bool] = {}
        for key in keys:
            if not isinstance(key, str) or not key or DELIMITER in key:
                raise ValueError(f"cannot encode key {key!r}")
            token = self._to_token(key, registry)
            tokens.append(token)
            if flags.get(key):
                priorities[token] = True

        payload = json.dumps(
            {"codes": DELIMITER.join(tokens), "priorities": priorities},
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
        ).encode("utf-8")
        compressed = zlib.compress(payload, 9)
        return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")

    # ------------------------------------------------------------------ decode

    def _inflate(self, token: str) -> bytes | DecodeResult:
        padding = "=" * (-len(token) % 4)
        try:
            compressed = base64.urlsafe_b64decode(token + padding)
        except (ValueError, binascii.Error) as exc:
            return DecodeResult.failure(DecodeFailure.NOT_DECOMPRESSIBLE, str(exc))

        inflater = zlib.decompressobj()
        try:
            raw = inflater.decompress(compressed, self.max_payload_bytes + 1)
        except zlib.error as exc:
            return DecodeResult.failure(DecodeFailure.NOT_DECOMPRESSIBLE, str(exc))
        if len(raw) > self.max_payload_bytes or inflater.unconsumed_tail:
            return DecodeResult.failure(DecodeFailure.TOO_LARGE, "payload exceeds limit")
        if not inflater.eof or inflater.unused_data:
            return DecodeResult.failure(DecodeFailure.NOT_DECOMPRESSIBLE, "truncated or trailing data")
        return raw

    @staticmethod
    def _to_key(token: str, registry: CodeRegistry) -> str:
        if token.startswith(LITERAL_MARKER):
            return token[len(LITERAL_MARKER):]
        key = registry.key_for(token)
        if key is None:
            logger.debug("Unknown short code %r, treating it as a literal key", token)
            return token
        return key

    def decode(self, token: str) -> DecodeResult:
        """Decode an untrusted share *token*.

        Blank input decodes to an empty list.  Unknown codes are kept as
        literal keys, never dropped.
        """
        if not isinstance(token, str):
            return DecodeResult.failure(DecodeFailure.BAD_CHARACTERS, "token is not text")
        token = token.strip()
        if not token:
            return DecodeResult(ok=True)
        if len(token) > self.max_token_length:
            return DecodeResult.failure(DecodeFailure.TOO_LARGE, f"{len(token)} characters")
        if not _TOKEN_PATTERN.match(token):
            return DecodeResult.failure(DecodeFailure.BAD_CHARACTERS)

        raw = self._inflate(token)
        if isinstance(raw, DecodeResult):
            return raw

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError, RecursionError) as exc:
            return DecodeResult.failure(DecodeFailure.NOT_JSON, str(exc)[:200])

        if not (
            isinstance(payload, dict)
            and isinstance(payload.get("codes"), str)
            and isinstance(payload.get("priorities"), dict)
            and all(isinstance(v, bool) for v in payload["priorities"].values())
        ):
            return DecodeResult.failure(DecodeFailure.BAD_SHAPE)

        tokens = [t for t in payload["codes"].split(DELIMITER) if t]
        if len(tokens) > self.max_items:
            return DecodeResult.failure(DecodeFailure.TOO_MANY_ITEMS, f"{len(tokens)} items")

        registry = self.cache.get()
        keys: list[str] = []
        flags: dict[str, bool] = {}
        for tok in tokens:
            key = self._to_key(tok, registry)
            keys.append(key)
            flags[key] = flags.get(key, False) or payload["priorities"].get(tok) is True
        return DecodeResult(ok=True, keys=tuple(keys), flags=flags)
