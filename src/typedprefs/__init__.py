"""Typed key-value saves with binary and delimited text encodings."""

from typedprefs.codecs import BinaryCodec, TextCodec
from typedprefs.core.saves import SaveFile
from typedprefs.core.settings import SaveSettings
from typedprefs.core.store import RESERVED_KEY, TypedStore

__version__ = "0.1.0"

__all__ = [
    "RESERVED_KEY",
    "BinaryCodec",
    "SaveFile",
    "SaveSettings",
    "TextCodec",
    "TypedStore",
]
