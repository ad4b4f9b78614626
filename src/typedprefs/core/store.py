"""In-memory typed key-value store."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Iterator, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import NDArray

from typedprefs.core.errors import (
    InvalidKeyError,
    InvalidValueError,
    KeyNotFoundError,
    KindMismatchError,
    NotLoadedError,
    ReservedKeyError,
)
from typedprefs.models.values import (
    BoolValue,
    FloatValue,
    IntValue,
    Kind,
    StringValue,
    Value,
    Vector2Value,
    Vector3Value,
    as_components,
    narrow_float,
    narrow_int,
)

logger = logging.getLogger(__name__)

# Holds the UNIX time (whole seconds) of the most recent save.
RESERVED_KEY = "date"

_MISSING: Any = object()


class StoreState(Enum):
    """Lifecycle of a store."""

    NOT_LOADED = "not_loaded"  # No mapping exists yet
    LOADED = "loaded"  # Mapping exists, possibly empty


class TypedStore:
    """
    Mapping from text keys to tagged values.

    A new store starts unloaded: every operation except ``clear`` raises
    ``NotLoadedError`` until it is loaded by a codec, ``empty()`` or
    ``from_entries()``. The reserved ``"date"`` key can only be written by
    the save routine through ``stamp_date``.

    Not thread-safe; callers serialize access.
    """

    def __init__(self) -> None:
        self._data: dict[str, Value] | None = None

    @classmethod
    def empty(cls) -> TypedStore:
        """Create a loaded store with no entries."""
        store = cls()
        store._data = {}
        return store

    @classmethod
    def from_entries(cls, entries: Iterable[tuple[str, Value]]) -> TypedStore:
        """Create a loaded store from decoded entries, including ``"date"``."""
        store = cls.empty()
        for key, value in entries:
            store._check_entry(key, value)
            store._data[key] = value  # type: ignore[index]
        return store

    @property
    def state(self) -> StoreState:
        return StoreState.NOT_LOADED if self._data is None else StoreState.LOADED

    @property
    def is_loaded(self) -> bool:
        return self._data is not None

    def _loaded(self, operation: str) -> dict[str, Value]:
        if self._data is None:
            raise NotLoadedError(operation)
        return self._data

    @staticmethod
    def _check_entry(key: str, value: Value) -> None:
        if not isinstance(key, str) or not key:
            raise InvalidKeyError(f"Keys must be non-empty text, got {key!r}")
        if not isinstance(value, Value):
            raise InvalidValueError(
                f"Unsupported type {type(value).__name__} for key {key!r}"
            )

    # --- Mapping operations ---

    def set(self, key: str, value: Value) -> None:
        """Insert or overwrite ``key``."""
        data = self._loaded("modify")
        if key == RESERVED_KEY:
            raise ReservedKeyError(key)
        self._check_entry(key, value)
        data[key] = value

    def get(self, key: str, default: Any = _MISSING) -> Value:
        """Return the value under ``key``, or ``default`` when given and missing."""
        data = self._loaded("read")
        if key in data:
            return data[key]
        if default is _MISSING:
            raise KeyNotFoundError(key)
        return default

    def has(self, key: str) -> bool:
        return key in self._loaded("read")

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._loaded("modify").pop(key, None)

    def clear(self) -> None:
        """Remove every entry, loading an empty mapping if none existed."""
        if self._data is None:
            self._data = {}
        else:
            self._data.clear()

    def count(self) -> int:
        return len(self._loaded("count"))

    def keys(self) -> list[str]:
        return list(self._loaded("read"))

    def items(self) -> list[tuple[str, Value]]:
        """Snapshot of the entries, in insertion order."""
        return list(self._loaded("read").items())

    def to_dict(self) -> dict[str, Value]:
        return dict(self._loaded("read"))

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    # --- Save date ---

    def stamp_date(self, value: IntValue | FloatValue) -> None:
        """Write the reserved key. Only the save routine calls this."""
        self._loaded("save")[RESERVED_KEY] = value

    def saved_at(self, now: Callable[[], datetime] = datetime.now) -> datetime:
        """Local time of the last save, or ``now()`` if never saved."""
        value = self._loaded("read").get(RESERVED_KEY)
        if not isinstance(value, (IntValue, FloatValue)) or not math.isfinite(value.value):
            return now()
        try:
            return datetime.fromtimestamp(int(value.value))
        except (OverflowError, OSError, ValueError):
            logger.warning(f"Save date {value.format()} is out of range, using now")
            return now()

    # --- Typed accessors ---

    def _set_checked(self, key: str, build: Callable[[], Value]) -> None:
        self._loaded("modify")
        if key == RESERVED_KEY:
            raise ReservedKeyError(key)
        try:
            value = build()
        except (TypeError, ValueError) as e:
            raise InvalidValueError(f"Invalid value for key {key!r}: {e}") from e
        self.set(key, value)

    def set_bool(self, key: str, value: bool) -> None:
        if not isinstance(value, (bool, np.bool_)):
            raise InvalidValueError(f"Expected a bool for key {key!r}")
        self._set_checked(key, lambda: BoolValue(bool(value)))

    def set_int(self, key: str, value: int) -> None:
        self._set_checked(key, lambda: IntValue(narrow_int(value)))

    def set_float(self, key: str, value: float) -> None:
        self._set_checked(key, lambda: FloatValue(narrow_float(value)))

    def set_string(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise InvalidValueError(f"Expected text for key {key!r}")
        self._set_checked(key, lambda: StringValue(value))

    def set_vector2(self, key: str, value: Sequence[float] | NDArray[np.float32]) -> None:
        self._set_checked(key, lambda: Vector2Value(*as_components(value, 2)))

    def set_vector3(self, key: str, value: Sequence[float] | NDArray[np.float32]) -> None:
        self._set_checked(key, lambda: Vector3Value(*as_components(value, 3)))

    def _get_typed(self, key: str, kind: Kind, fallback: Any) -> Any:
        value = self.get(key, None)
        if value is None:
            if fallback is _MISSING:
                raise KeyNotFoundError(key)
            return fallback
        if value.kind is not kind:
            raise KindMismatchError(
                f"Key {key!r} holds a {value.tag}, not a {kind.value}"
            )
        return value.to_python()

    def get_bool(self, key: str, fallback: bool = _MISSING) -> bool:
        return self._get_typed(key, Kind.BOOL, fallback)

    def get_int(self, key: str, fallback: int = _MISSING) -> int:
        return self._get_typed(key, Kind.INT, fallback)

    def get_float(self, key: str, fallback: float = _MISSING) -> float:
        return self._get_typed(key, Kind.FLOAT, fallback)

    def get_string(self, key: str, fallback: str = _MISSING) -> str:
        return self._get_typed(key, Kind.STRING, fallback)

    def get_vector2(
        self, key: str, fallback: tuple[float, float] = _MISSING
    ) -> tuple[float, float]:
        return self._get_typed(key, Kind.VECTOR2, fallback)

    def get_vector3(
        self, key: str, fallback: tuple[float, float, float] = _MISSING
    ) -> tuple[float, float, float]:
        return self._get_typed(key, Kind.VECTOR3, fallback)

    def __repr__(self) -> str:
        if self._data is None:
            return "TypedStore(<not loaded>)"
        return f"TypedStore({len(self._data)} entries)"
