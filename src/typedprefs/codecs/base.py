"""Codec contract and the results it returns."""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from typedprefs.core.diagnostics import Diagnostic
from typedprefs.core.errors import KeyNotFoundError
from typedprefs.core.store import RESERVED_KEY, TypedStore
from typedprefs.models.values import FloatValue, IntValue

PayloadT = TypeVar("PayloadT", bytes, str)


@dataclass
class DecodeResult:
    """A decoded store and everything that was skipped on the way."""

    store: TypedStore
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class EncodeResult(Generic[PayloadT]):
    """
    Encoded payload, or ``None`` when the target should be deleted.

    An empty store is never written: the caller removes any existing
    target instead.
    """

    payload: PayloadT | None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def delete_target(self) -> bool:
        return self.payload is None


class Codec(Generic[PayloadT]):
    """Encode/decode pair between a ``TypedStore`` and one payload layout."""

    name: str = ""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock

    def encode(self, store: TypedStore) -> EncodeResult[PayloadT]:
        raise NotImplementedError

    def decode(self, payload: PayloadT) -> DecodeResult:
        raise NotImplementedError

    def read_date(self, payload: PayloadT) -> datetime:
        """
        Local time stored under the reserved key of a persisted payload.

        Raises:
            KeyNotFoundError: The payload has no numeric ``"date"`` entry.
            MalformedFramingError: The payload cannot be decoded.
        """
        store = self.decode(payload).store
        value = store.get(RESERVED_KEY, None)
        if not isinstance(value, (IntValue, FloatValue)) or not math.isfinite(value.value):
            raise KeyNotFoundError(RESERVED_KEY)
        try:
            return datetime.fromtimestamp(int(value.value))
        except (OverflowError, OSError, ValueError) as e:
            # Out of the platform time_t range
            raise KeyNotFoundError(RESERVED_KEY) from e

    def _now_seconds(self) -> int:
        return int(self.clock())

    @staticmethod
    def _is_empty(store: TypedStore) -> bool:
        return all(key == RESERVED_KEY for key in store.keys())
