"""Row-level formatting and parsing shared by every codec.

A row is ``(tag, key, text)``. Both codecs funnel their rows through
``RowDecoder`` so that malformed values, unknown tags, and duplicate keys
are handled the same way regardless of layout.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from typedprefs.codecs.base import DecodeResult
from typedprefs.core.diagnostics import Diagnostic, DiagnosticKind
from typedprefs.core.store import RESERVED_KEY, TypedStore
from typedprefs.models.values import (
    INT32_MAX,
    INT32_MIN,
    UNKNOWN_TAG,
    VALUE_TYPES,
    BoolValue,
    FloatValue,
    IntValue,
    Kind,
    StringValue,
    Value,
    Vector2Value,
    Vector3Value,
    narrow_float,
)

Row = tuple[str, str, str]

# Text written in place of a value that could not be encoded.
UNPARSABLE_TEXT = "unparsable"

_INT_RE = re.compile(r"^[+-]?[0-9]+$")


class FieldParseError(ValueError):
    """A value field does not match its tag."""


def parse_int(text: str, wide: bool = False) -> int:
    stripped = text.strip()
    if not _INT_RE.match(stripped):
        raise FieldParseError(f"{text!r} is not a base-10 integer")
    value = int(stripped)
    if not wide and not INT32_MIN <= value <= INT32_MAX:
        raise FieldParseError(f"{text!r} does not fit in 32 bits")
    return value


def parse_float(text: str, wide: bool = False) -> float:
    stripped = text.strip()
    # float() accepts digit separators, the wire format does not
    if not stripped or "_" in stripped:
        raise FieldParseError(f"{text!r} is not a number")
    try:
        value = float(stripped)
    except ValueError as e:
        raise FieldParseError(f"{text!r} is not a number") from e
    if wide:
        return value
    try:
        return narrow_float(value)
    except ValueError as e:
        raise FieldParseError(str(e)) from e


def parse_bool(text: str) -> bool:
    if text == "true":
        return True
    if text == "false":
        return False
    raise FieldParseError(f"{text!r} is not true or false")


def parse_components(text: str, arity: int) -> tuple[float, ...]:
    parts = text.split(",")
    if len(parts) != arity:
        raise FieldParseError(f"{text!r} does not have {arity} components")
    return tuple(parse_float(part) for part in parts)


_PARSERS: dict[Kind, Callable[[str, bool], Value]] = {
    Kind.BOOL: lambda text, wide: BoolValue(parse_bool(text)),
    Kind.INT: lambda text, wide: IntValue(parse_int(text, wide)),
    Kind.FLOAT: lambda text, wide: FloatValue(parse_float(text, wide)),
    Kind.STRING: lambda text, wide: StringValue(text),
    Kind.VECTOR2: lambda text, wide: Vector2Value(*parse_components(text, 2)),
    Kind.VECTOR3: lambda text, wide: Vector3Value(*parse_components(text, 3)),
}


def parse_value(kind: Kind, text: str, wide: bool = False) -> Value:
    """Parse ``text`` as ``kind``. ``wide`` skips 32-bit narrowing of numbers."""
    return _PARSERS[kind](text, wide)


def _encodable(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def format_entry(key: str, value: Value) -> tuple[Row | None, Diagnostic | None]:
    """
    Render one entry; values outside the six kinds become an ``unknown`` row.

    Entries whose key or text has no UTF-8 form (lone surrogates) give no
    row and an ``UNENCODABLE_ENTRY`` diagnostic.
    """
    if value.kind not in VALUE_TYPES or not isinstance(value, VALUE_TYPES[value.kind]):
        row: Row = (UNKNOWN_TAG, key, UNPARSABLE_TEXT)
        diagnostic = Diagnostic(
            kind=DiagnosticKind.UNKNOWN_KIND,
            key=key,
            message=f"Unsupported type {type(value).__name__} for key {key!r}",
        )
    else:
        row, diagnostic = (value.tag, key, value.format()), None
    if not _encodable(key) or not _encodable(row[2]):
        return None, Diagnostic(
            kind=DiagnosticKind.UNENCODABLE_ENTRY,
            key=key,
            message=f"Key {key!r} or its value cannot be encoded as UTF-8",
        )
    return row, diagnostic


class RowDecoder:
    """Accumulates decoded rows into entries, collecting diagnostics."""

    def __init__(self, unescape: Callable[[str], str] | None = None) -> None:
        self._unescape = unescape
        self.entries: dict[str, Value] = {}
        self.diagnostics: list[Diagnostic] = []

    def skip(self, kind: DiagnosticKind, message: str, key: str | None, row: int) -> None:
        self.diagnostics.append(Diagnostic(kind=kind, message=message, key=key, row=row))

    def add(self, row: int, tag: str, key: str, text: str) -> None:
        if not key:
            self.skip(DiagnosticKind.INVALID_KEY, "Row has an empty key", None, row)
            return

        if tag == UNKNOWN_TAG:
            self.skip(
                DiagnosticKind.UNKNOWN_TYPE,
                f"Key {key!r} has type unknown: the value could not be encoded when it was saved",
                key,
                row,
            )
            return

        try:
            kind = Kind(tag)
        except ValueError:
            self.skip(DiagnosticKind.UNKNOWN_TYPE, f"Invalid type {tag!r} for key {key!r}", key, row)
            return

        if kind is Kind.STRING and self._unescape is not None:
            text = self._unescape(text)

        try:
            value = parse_value(kind, text, wide=key == RESERVED_KEY)
        except FieldParseError as e:
            self.skip(
                DiagnosticKind.UNPARSABLE_FIELD, f"Invalid {tag} value for key {key!r}: {e}", key, row
            )
            return

        if key in self.entries:
            self.skip(
                DiagnosticKind.DUPLICATE_KEY, f"Duplicate key {key!r}, using the last one", key, row
            )
        self.entries[key] = value

    def result(self) -> DecodeResult:
        return DecodeResult(
            store=TypedStore.from_entries(self.entries.items()),
            diagnostics=self.diagnostics,
        )
