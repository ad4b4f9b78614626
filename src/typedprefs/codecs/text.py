"""Delimited text codec: one ``tag<D>key<D>value`` line per entry."""

from __future__ import annotations

import re
import time
from collections.abc import Callable

from typedprefs.codecs.base import Codec, DecodeResult, EncodeResult
from typedprefs.codecs.rows import RowDecoder, format_entry
from typedprefs.core.diagnostics import Diagnostic, DiagnosticKind
from typedprefs.core.errors import SettingsError
from typedprefs.core.store import RESERVED_KEY, TypedStore
from typedprefs.models.values import IntValue, Kind

DEFAULT_DELIMITER = "␟"  # SYMBOL FOR UNIT SEPARATOR
COMMENT_PREFIX = "#"

_ESCAPE_RE = re.compile(r"\\(\\|n)")


def escape_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def unescape_text(text: str) -> str:
    """Reverse ``escape_text``; unknown escapes are kept verbatim."""
    return _ESCAPE_RE.sub(lambda m: "\n" if m.group(1) == "n" else "\\", text)


def _comment(text: str) -> str:
    return "\n".join(f"{COMMENT_PREFIX} {line}" for line in text.split("\n"))


class TextCodec(Codec[str]):
    """
    Human-readable encoding, diffable and independent of platform newlines.

    Stores the save date as integer seconds, appended after every other
    entry. Lines starting with ``#`` are comments.
    """

    name = "text"

    def __init__(
        self,
        delimiter: str = DEFAULT_DELIMITER,
        start_comment: str | None = None,
        end_comment: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(clock)
        if len(delimiter) != 1 or delimiter in ("\n", "\\", COMMENT_PREFIX):
            raise SettingsError(f"Delimiter must be a single framing-safe character, got {delimiter!r}")
        self.delimiter = delimiter
        self.start_comment = start_comment
        self.end_comment = end_comment

    def encode(self, store: TypedStore) -> EncodeResult[str]:
        if self._is_empty(store):
            return EncodeResult(payload=None)

        now = self._now_seconds()
        store.stamp_date(IntValue(now))

        lines: list[str] = []
        diagnostics: list[Diagnostic] = []
        if self.start_comment:
            lines.append(_comment(self.start_comment))

        for key, value in store.items():
            if key == RESERVED_KEY:
                continue
            row, diagnostic = format_entry(key, value)
            if diagnostic is not None:
                diagnostics.append(diagnostic)
            if row is None:
                continue
            tag, _, text = row
            if value.kind is Kind.STRING:
                text = escape_text(text)
            if self.delimiter in key or self.delimiter in text or "\n" in key or "\n" in text:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.UNENCODABLE_ENTRY,
                        key=key,
                        message=f"Key {key!r} or its value contains the delimiter or a newline",
                    )
                )
                continue
            lines.append(self.delimiter.join((tag, key, text)))

        lines.append(self.delimiter.join((Kind.INT.value, RESERVED_KEY, str(now))))

        payload = "\n".join(lines)
        if self.end_comment:
            payload += "\n\n" + _comment(self.end_comment)
        return EncodeResult(payload=payload, diagnostics=diagnostics)

    def decode(self, payload: str) -> DecodeResult:
        decoder = RowDecoder(unescape=unescape_text)
        for number, line in enumerate(payload.split("\n"), start=1):
            if not line.strip() or line.startswith(COMMENT_PREFIX):
                continue
            fields = line.split(self.delimiter)
            if len(fields) != 3:
                decoder.skip(
                    DiagnosticKind.MALFORMED_LINE,
                    f"Expected 3 fields separated by {self.delimiter!r}, found {len(fields)}",
                    None,
                    number,
                )
                continue
            tag, key, text = fields
            decoder.add(number, tag, key, text)
        return decoder.result()
