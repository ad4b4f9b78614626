"""Save file configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from typedprefs.codecs.base import Codec
from typedprefs.codecs.binary import BinaryCodec
from typedprefs.codecs.text import COMMENT_PREFIX, DEFAULT_DELIMITER, TextCodec
from typedprefs.core.errors import SettingsError

DEFAULT_SAVE_LOCATION = "~/.typedprefs/saves"

FormatName = Literal["binary", "text"]


class SaveSettings(BaseModel):
    """Where saves live and how they are encoded."""

    save_location: Path = Field(
        default=Path(DEFAULT_SAVE_LOCATION),
        validate_default=True,
        description="Directory holding save files",
    )
    save_extension: str = Field(default=".sav", description="Extension of save files")
    default_save_name: str = Field(
        default="game",
        min_length=1,
        description="File name (without extension) used when no path is given",
    )
    format: FormatName = Field(default="binary", description="Encoding: binary or text")
    delimiter: str = Field(
        default=DEFAULT_DELIMITER,
        description="Field separator of the text format",
    )
    start_comment: str | None = Field(
        default=None,
        description="Comment written at the top of text saves",
    )
    end_comment: str | None = Field(
        default=None,
        description="Comment written at the bottom of text saves",
    )

    model_config = {"frozen": True}

    @field_validator("save_location")
    @classmethod
    def _expand(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("save_extension")
    @classmethod
    def _dotted(cls, value: str) -> str:
        if value and not value.startswith("."):
            return f".{value}"
        return value

    @field_validator("delimiter")
    @classmethod
    def _single_char(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("delimiter must be exactly one character")
        if value in ("\n", "\\", COMMENT_PREFIX):
            raise ValueError(f"{value!r} cannot be used as a delimiter")
        return value

    @property
    def default_path(self) -> Path:
        return self.save_location / f"{self.default_save_name}{self.save_extension}"

    def codec(self, format: FormatName | None = None) -> Codec:
        """Build the codec for ``format`` (defaults to the configured one)."""
        if (format or self.format) == "text":
            return TextCodec(
                delimiter=self.delimiter,
                start_comment=self.start_comment,
                end_comment=self.end_comment,
            )
        return BinaryCodec()

    @classmethod
    def from_env(cls, **overrides: object) -> SaveSettings:
        """Create settings from environment variables.

        Reads:
            TYPEDPREFS_SAVE_LOCATION: Directory for save files
            TYPEDPREFS_SAVE_EXTENSION: Save file extension (default: .sav)
            TYPEDPREFS_SAVE_NAME: Default save name (default: game)
            TYPEDPREFS_FORMAT: binary or text (default: binary)
            TYPEDPREFS_DELIMITER: Text format delimiter

        Keyword overrides win over the environment; ``None`` overrides are ignored.

        Raises:
            SettingsError: A value is invalid.
        """
        env_map = {
            "save_location": "TYPEDPREFS_SAVE_LOCATION",
            "save_extension": "TYPEDPREFS_SAVE_EXTENSION",
            "default_save_name": "TYPEDPREFS_SAVE_NAME",
            "format": "TYPEDPREFS_FORMAT",
            "delimiter": "TYPEDPREFS_DELIMITER",
        }
        values: dict[str, object] = {
            field: os.environ[var] for field, var in env_map.items() if os.environ.get(var)
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            raise SettingsError(f"Invalid save settings: {e}") from e
