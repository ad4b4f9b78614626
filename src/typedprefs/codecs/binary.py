"""Binary tabular codec.

Layout, little-endian::

    int32 rows
    int32 columns            (always 3)
    rows x columns strings   row-major: tag, key, value

Each string is UTF-8 prefixed by its byte length as a 7-bit variable-length
integer (low groups first, high bit set on every byte but the last).
"""

from __future__ import annotations

import io
import struct
from typing import BinaryIO

from typedprefs.codecs.base import Codec, DecodeResult, EncodeResult
from typedprefs.codecs.rows import Row, RowDecoder, format_entry
from typedprefs.core.errors import MalformedFramingError
from typedprefs.core.store import RESERVED_KEY, TypedStore
from typedprefs.models.values import FloatValue, Kind

COLUMNS = 3

_INT32 = struct.Struct("<i")
# A 32-bit length never needs more than five 7-bit groups.
_MAX_PREFIX_BYTES = 5


def write_string(stream: BinaryIO, text: str) -> None:
    data = text.encode("utf-8")
    length = len(data)
    while length >= 0x80:
        stream.write(bytes([(length & 0x7F) | 0x80]))
        length >>= 7
    stream.write(bytes([length]))
    stream.write(data)


def read_string(stream: BinaryIO) -> str:
    length = 0
    for shift in range(0, 7 * _MAX_PREFIX_BYTES, 7):
        byte = stream.read(1)
        if not byte:
            raise MalformedFramingError("Stream ended inside a string length prefix")
        length |= (byte[0] & 0x7F) << shift
        if not byte[0] & 0x80:
            break
    else:
        raise MalformedFramingError("String length prefix is too long")

    data = stream.read(length)
    if len(data) != length:
        raise MalformedFramingError(
            f"String declares {length} bytes but only {len(data)} remain"
        )
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedFramingError(f"String is not valid UTF-8: {e}") from e


def _read_int32(stream: BinaryIO, what: str) -> int:
    data = stream.read(_INT32.size)
    if len(data) != _INT32.size:
        raise MalformedFramingError(f"Stream ended before the {what}")
    return _INT32.unpack(data)[0]


class BinaryCodec(Codec[bytes]):
    """Compact, exactly framed encoding. Stores the save date as a float."""

    name = "binary"

    def encode(self, store: TypedStore) -> EncodeResult[bytes]:
        if self._is_empty(store):
            return EncodeResult(payload=None)

        now = self._now_seconds()
        store.stamp_date(FloatValue(float(now)))

        rows: list[Row] = []
        diagnostics = []
        for key, value in store.items():
            if key == RESERVED_KEY:
                continue
            row, diagnostic = format_entry(key, value)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
            if row is not None:
                rows.append(row)
        # Exact seconds, not the 32-bit rendering
        rows.append((Kind.FLOAT.value, RESERVED_KEY, str(now)))

        with io.BytesIO() as stream:
            stream.write(_INT32.pack(len(rows)))
            stream.write(_INT32.pack(COLUMNS))
            for row in rows:
                for cell in row:
                    write_string(stream, cell)
            payload = stream.getvalue()

        return EncodeResult(payload=payload, diagnostics=diagnostics)

    def decode(self, payload: bytes) -> DecodeResult:
        """
        Decode a binary payload.

        Raises:
            MalformedFramingError: The declared table shape does not match the
                data. No partial store is returned.
        """
        decoder = RowDecoder()
        with io.BytesIO(payload) as stream:
            row_count = _read_int32(stream, "row count")
            column_count = _read_int32(stream, "column count")
            if row_count < 0:
                raise MalformedFramingError(f"Negative row count {row_count}")
            if column_count != COLUMNS:
                raise MalformedFramingError(
                    f"Expected {COLUMNS} columns, payload declares {column_count}"
                )
            # Every cell takes at least its one-byte length prefix
            remaining = len(payload) - stream.tell()
            if row_count * column_count > remaining:
                raise MalformedFramingError(
                    f"Payload declares {row_count} rows but holds only {remaining} bytes"
                )

            for index in range(1, row_count + 1):
                tag, key, text = (read_string(stream) for _ in range(COLUMNS))
                decoder.add(index, tag, key, text)

            trailing = len(payload) - stream.tell()
            if trailing:
                raise MalformedFramingError(f"{trailing} unexpected bytes after the last row")

        return decoder.result()
