"""Non-fatal observations collected while encoding or decoding a store."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticKind(Enum):
    """What went wrong with a single row, line, or entry."""

    DUPLICATE_KEY = "duplicate_key"  # Later row replaced an earlier one
    UNPARSABLE_FIELD = "unparsable_field"  # Value text failed type-specific parsing
    UNKNOWN_TYPE = "unknown_type"  # Tag is not one of the six kinds
    UNKNOWN_KIND = "unknown_kind"  # Save met a value it cannot encode
    MALFORMED_LINE = "malformed_line"  # Text line without exactly three fields
    INVALID_KEY = "invalid_key"  # Empty key in a row
    UNENCODABLE_ENTRY = "unencodable_entry"  # Key/value collides with the text framing


@dataclass(frozen=True)
class Diagnostic:
    """A single recoverable problem, reported instead of aborting."""

    kind: DiagnosticKind
    message: str
    key: str | None = None
    row: int | None = None

    def __str__(self) -> str:
        where = f" (row {self.row})" if self.row is not None else ""
        return f"{self.kind.value}{where}: {self.message}"
