"""Core store, errors, and file-backed saves."""

from typedprefs.core.diagnostics import Diagnostic, DiagnosticKind
from typedprefs.core.store import RESERVED_KEY, StoreState, TypedStore

__all__ = ["RESERVED_KEY", "Diagnostic", "DiagnosticKind", "StoreState", "TypedStore"]
