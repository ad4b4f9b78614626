"""Encodings of a typed store."""

from typedprefs.codecs.base import Codec, DecodeResult, EncodeResult
from typedprefs.codecs.binary import BinaryCodec
from typedprefs.codecs.text import TextCodec

__all__ = ["BinaryCodec", "Codec", "DecodeResult", "EncodeResult", "TextCodec"]
