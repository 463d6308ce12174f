"""Key-driven redaction engine for structured log payloads."""

from __future__ import annotations

import logging
from threading import RLock
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from ..metrics import record_redaction
from .defaults import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_REPLACEMENT,
    LAST4_FIELDS,
    REMOVE_FIELDS,
    SENSITIVE_KEYS,
    looks_like_email,
    mask_email,
    mask_last4,
    normalize_key,
)

if TYPE_CHECKING:
    from ..config import RedactionSettings


LOGGER = logging.getLogger("traffic_logger.redaction")


# Returned by Redactor.mask_value when the entry must be dropped.
REMOVED: Any = object()


class _Tally:
    __slots__ = ("masked", "removed")

    def __init__(self) -> None:
        self.masked = 0
        self.removed = 0


class Redactor:
    """Thread-safe sensitive key registry plus the traversal that applies it.

    Every key stored in the registry is normalized (see :func:`normalize_key`),
    so ``"Card_Number"``, ``"card-number"`` and ``"cardnumber"`` all match the
    same entry. Keys found in ``remove_fields`` are dropped from their mapping,
    keys found in ``last4_fields`` reveal the last four digits of textual
    values, and any other sensitive key is replaced with the marker (or the
    domain of an email-shaped string).
    """

    def __init__(
        self,
        sensitive_keys: Iterable[str] = SENSITIVE_KEYS,
        *,
        remove_fields: Iterable[str] = REMOVE_FIELDS,
        last4_fields: Iterable[str] = LAST4_FIELDS,
        replacement: str = DEFAULT_REPLACEMENT,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._lock = RLock()
        self._remove_fields = frozenset(normalize_key(key) for key in remove_fields)
        self._last4_fields = frozenset(normalize_key(key) for key in last4_fields)
        self._sensitive_keys: set[str] = {normalize_key(key) for key in sensitive_keys}
        self._sensitive_keys.update(self._remove_fields)
        self._sensitive_keys.update(self._last4_fields)
        self.replacement = replacement
        self.max_depth = max_depth

    # --------------------- registry ---------------------
    @property
    def sensitive_keys(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._sensitive_keys)

    @property
    def remove_fields(self) -> frozenset[str]:
        return self._remove_fields

    @property
    def last4_fields(self) -> frozenset[str]:
        return self._last4_fields

    def is_sensitive_key(self, key: object) -> bool:
        """Check whether ``key`` names a sensitive field."""

        normalized = normalize_key(key)
        with self._lock:
            return normalized in self._sensitive_keys

    def add_sensitive_keys(self, keys: Iterable[str]) -> None:
        """Add custom sensitive keys to the registry."""

        normalized = [normalize_key(key) for key in _as_keys(keys)]
        with self._lock:
            self._sensitive_keys.update(normalized)

    def remove_sensitive_keys(self, keys: Iterable[str]) -> None:
        """Remove keys from the registry; unknown keys are ignored."""

        normalized = [normalize_key(key) for key in _as_keys(keys)]
        with self._lock:
            for key in normalized:
                self._sensitive_keys.discard(key)

    # --------------------- masking ---------------------
    def mask_value(self, normalized_key: str, value: Any, replacement: str | None = None) -> Any:
        """Mask ``value`` according to the category of ``normalized_key``.

        Returns :data:`REMOVED` when the entry must not appear at all.
        """

        marker = self.replacement if replacement is None else replacement

        if normalized_key in self._remove_fields:
            return REMOVED

        if normalized_key in self._last4_fields and isinstance(value, str):
            return mask_last4(value, marker)

        if isinstance(value, str) and looks_like_email(value):
            return mask_email(value, marker)

        return marker

    # --------------------- traversal ---------------------
    def redact(
        self,
        value: Any,
        *,
        replacement: str | None = None,
        depth: int = 0,
        max_depth: int | None = None,
    ) -> Any:
        """Return a sanitized copy of ``value``; the input is never mutated.

        Traversal stops (returning the subtree untouched) once ``depth``
        exceeds ``max_depth``.
        """

        marker = self.replacement if replacement is None else replacement
        limit = self.max_depth if max_depth is None else max_depth

        with self._lock:
            vocabulary = frozenset(self._sensitive_keys)

        tally = _Tally()
        sanitized = self._redact(value, marker, depth, limit, vocabulary, tally)
        record_redaction(tally.masked, tally.removed)
        return sanitized

    def _redact(
        self,
        value: Any,
        marker: str,
        depth: int,
        max_depth: int,
        vocabulary: frozenset[str],
        tally: _Tally,
    ) -> Any:
        if depth > max_depth:
            return value

        if isinstance(value, Mapping):
            return self._redact_mapping(value, marker, depth, max_depth, vocabulary, tally)

        if isinstance(value, (list, tuple)):
            items = [
                self._redact(item, marker, depth + 1, max_depth, vocabulary, tally)
                for item in value
            ]
            return items if isinstance(value, list) else tuple(items)

        return value

    def _redact_mapping(
        self,
        value: Mapping[Any, Any],
        marker: str,
        depth: int,
        max_depth: int,
        vocabulary: frozenset[str],
        tally: _Tally,
    ) -> dict[Any, Any]:
        sanitized: dict[Any, Any] = {}

        for key, item in value.items():
            normalized = normalize_key(key)

            if normalized in vocabulary:
                masked = self.mask_value(normalized, item, marker)
                if masked is REMOVED:
                    tally.removed += 1
                    continue
                tally.masked += 1
                sanitized[key] = masked
                continue

            sanitized[key] = self._redact(item, marker, depth + 1, max_depth, vocabulary, tally)

        return sanitized


def _as_keys(keys: Iterable[str] | str) -> list[str]:
    # A bare string is one key, not an iterable of characters.
    if isinstance(keys, str):
        return [keys]
    return list(keys)


def build_redactor(settings: "RedactionSettings") -> Redactor:
    """Construct a redactor derived from runtime settings."""

    redactor = Redactor(
        remove_fields=settings.remove_fields,
        last4_fields=settings.last4_fields,
        replacement=settings.replacement,
        max_depth=settings.max_depth,
    )

    if settings.extra_keys:
        redactor.add_sensitive_keys(settings.extra_keys)

    if settings.allowlist:
        redactor.remove_sensitive_keys(settings.allowlist)

    LOGGER.debug(
        "Redactor built with %d sensitive keys", len(redactor.sensitive_keys)
    )
    return redactor


_DEFAULT_LOCK = RLock()
_DEFAULT_REDACTOR: Redactor | None = None


def get_redactor() -> Redactor:
    """Return the process default redactor, building it from settings on first use."""

    global _DEFAULT_REDACTOR
    with _DEFAULT_LOCK:
        if _DEFAULT_REDACTOR is None:
            from ..config import get_settings

            _DEFAULT_REDACTOR = build_redactor(get_settings().redaction)
        return _DEFAULT_REDACTOR


def set_redactor(redactor: Redactor) -> None:
    global _DEFAULT_REDACTOR
    with _DEFAULT_LOCK:
        _DEFAULT_REDACTOR = redactor


def reset_redactor() -> None:
    """Drop the default redactor so the next lookup rebuilds it from settings."""

    global _DEFAULT_REDACTOR
    with _DEFAULT_LOCK:
        _DEFAULT_REDACTOR = None


def add_sensitive_keys(keys: Iterable[str]) -> None:
    get_redactor().add_sensitive_keys(keys)


def remove_sensitive_keys(keys: Iterable[str]) -> None:
    get_redactor().remove_sensitive_keys(keys)


def is_sensitive_key(key: object) -> bool:
    return get_redactor().is_sensitive_key(key)


def redact_data(value: Any) -> Any:
    """Redact ``value`` with the default redactor."""

    return get_redactor().redact(value)


__all__ = [
    "REMOVED",
    "Redactor",
    "add_sensitive_keys",
    "build_redactor",
    "get_redactor",
    "is_sensitive_key",
    "normalize_key",
    "redact_data",
    "remove_sensitive_keys",
    "reset_redactor",
    "set_redactor",
]
