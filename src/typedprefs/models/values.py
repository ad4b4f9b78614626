"""Tagged value variant stored under every key."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

import numpy as np
from numpy.typing import NDArray

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Tag written for entries whose value could not be encoded at save time.
UNKNOWN_TAG = "unknown"


class Kind(str, Enum):
    """The six value kinds, valued by their wire tag."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    VECTOR2 = "vector2"
    VECTOR3 = "vector3"


def narrow_int(value: int) -> int:
    """Check that ``value`` fits a 32-bit signed integer."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"Expected an integer, got {type(value).__name__}")
    value = int(value)
    if not INT32_MIN <= value <= INT32_MAX:
        raise ValueError(f"Integer {value} does not fit in 32 bits")
    return value


def narrow_float(value: float) -> float:
    """Round ``value`` to 32-bit float precision."""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
        raise TypeError(f"Expected a number, got {type(value).__name__}")
    with np.errstate(over="ignore"):
        narrowed = np.float32(value)
    if np.isinf(narrowed) and not math.isinf(float(value)):
        raise ValueError(f"{value} overflows a 32-bit float")
    return float(narrowed)


def format_float(value: float) -> str:
    """Shortest decimal text that round-trips ``value`` as a 32-bit float."""
    return np.format_float_positional(np.float32(value), trim="-")


def as_components(value: Sequence[float] | NDArray[np.float32], arity: int) -> tuple[float, ...]:
    """Convert a sequence or array of ``arity`` numbers to float32 components."""
    try:
        array = np.asarray(value, dtype=np.float32)
    except (TypeError, ValueError) as e:
        raise TypeError(f"Cannot convert {value!r} to a float vector") from e
    if array.shape != (arity,):
        raise ValueError(f"Expected {arity} components, got shape {array.shape}")
    return tuple(float(c) for c in array)


class Value:
    """Base of the value variant. Subclasses set ``kind`` and ``format``."""

    kind: ClassVar[Kind | None] = None

    @property
    def tag(self) -> str:
        return self.kind.value if self.kind is not None else UNKNOWN_TAG

    def format(self) -> str:
        raise NotImplementedError

    def to_python(self) -> object:
        raise NotImplementedError


@dataclass(frozen=True)
class BoolValue(Value):
    value: bool

    kind: ClassVar[Kind] = Kind.BOOL

    def format(self) -> str:
        return "true" if self.value else "false"

    def to_python(self) -> bool:
        return self.value


@dataclass(frozen=True)
class IntValue(Value):
    value: int

    kind: ClassVar[Kind] = Kind.INT

    def format(self) -> str:
        return str(self.value)

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class FloatValue(Value):
    value: float

    kind: ClassVar[Kind] = Kind.FLOAT

    def format(self) -> str:
        return format_float(self.value)

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class StringValue(Value):
    value: str

    kind: ClassVar[Kind] = Kind.STRING

    def format(self) -> str:
        return self.value

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class Vector2Value(Value):
    x: float
    y: float

    kind: ClassVar[Kind] = Kind.VECTOR2

    def format(self) -> str:
        return f"{format_float(self.x)},{format_float(self.y)}"

    def to_python(self) -> tuple[float, float]:
        return (self.x, self.y)

    def as_array(self) -> NDArray[np.float32]:
        return np.array([self.x, self.y], dtype=np.float32)


@dataclass(frozen=True)
class Vector3Value(Value):
    x: float
    y: float
    z: float

    kind: ClassVar[Kind] = Kind.VECTOR3

    def format(self) -> str:
        return f"{format_float(self.x)},{format_float(self.y)},{format_float(self.z)}"

    def to_python(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def as_array(self) -> NDArray[np.float32]:
        return np.array([self.x, self.y, self.z], dtype=np.float32)


VALUE_TYPES: dict[Kind, type[Value]] = {
    Kind.BOOL: BoolValue,
    Kind.INT: IntValue,
    Kind.FLOAT: FloatValue,
    Kind.STRING: StringValue,
    Kind.VECTOR2: Vector2Value,
    Kind.VECTOR3: Vector3Value,
}
