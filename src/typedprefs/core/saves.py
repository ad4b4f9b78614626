"""File-backed saves on top of the codecs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from typedprefs.codecs.base import Codec
from typedprefs.codecs.text import TextCodec
from typedprefs.core.diagnostics import Diagnostic
from typedprefs.core.errors import MalformedFramingError, NotLoadedError
from typedprefs.core.settings import SaveSettings
from typedprefs.core.store import TypedStore

logger = logging.getLogger(__name__)


class SaveFile:
    """
    Loads a store from a save file and writes it back.

    The loaded path is remembered, so ``save()`` without arguments writes
    over the file it came from. Loading a path that does not exist yet gives
    an empty store bound to that path.
    """

    def __init__(self, settings: SaveSettings | None = None, codec: Codec | None = None):
        self.settings = settings or SaveSettings()
        self.codec = codec or self.settings.codec()
        self.store = TypedStore()
        self.current_path: Path | None = None
        self.diagnostics: list[Diagnostic] = []
        self.save_diagnostics: list[Diagnostic] = []

    def _resolve(self, path: str | Path | None) -> Path:
        if path is None:
            return self.settings.default_path
        return Path(path).expanduser()

    def _read(self, path: Path, codec: Codec) -> bytes | str:
        if isinstance(codec, TextCodec):
            try:
                return path.read_bytes().decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedFramingError(f'"{path}" is not valid UTF-8 text: {e}') from e
        return path.read_bytes()

    def _write(self, path: Path, payload: bytes | str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(payload, str):
            path.write_bytes(payload.encode("utf-8"))
        else:
            path.write_bytes(payload)

    def _report(self, path: Path, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            logger.warning(f'Save file "{path}": {diagnostic}')

    def _persist(self, target: Path, codec: Codec) -> Path | None:
        result = codec.encode(self.store)
        self._report(target, result.diagnostics)
        self.save_diagnostics = result.diagnostics

        if result.delete_target:
            target.unlink(missing_ok=True)
            logger.info(f"Saved file with no data; deleted {target}")
            return None

        self._write(target, result.payload)
        logger.info(f"Saved {self.store.count()} entries to {target} ({codec.name})")
        return target

    def load(self, path: str | Path | None = None) -> TypedStore:
        """
        Load a save file, replacing the current store.

        Args:
            path: File to load. Defaults to the configured default save.

        Returns:
            The loaded store, empty if the file does not exist.

        Raises:
            MalformedFramingError: The file is not a valid binary save, or a
                text save is not valid UTF-8. The previously loaded store is kept.
        """
        target = self._resolve(path)

        if target.exists():
            result = self.codec.decode(self._read(target, self.codec))
            self._report(target, result.diagnostics)
            self.store = result.store
            self.diagnostics = result.diagnostics
            logger.info(f"Loaded {self.store.count()} entries from {target}")
        else:
            self.store = TypedStore.empty()
            self.diagnostics = []
            logger.info(f"No save at {target}, starting empty")

        self.current_path = target
        return self.store

    def save(self, path: str | Path | None = None) -> Path | None:
        """
        Write the loaded store.

        Args:
            path: Destination. Defaults to the path the store was loaded from.

        Returns:
            The written path, or None when the store was empty and the file
            was deleted instead.
        """
        if not self.store.is_loaded:
            raise NotLoadedError("save")
        target = self._resolve(path) if path is not None else self.current_path
        if target is None:
            target = self.settings.default_path

        return self._persist(target, self.codec)

    def export(self, path: str | Path, codec: Codec) -> Path | None:
        """Write the loaded store to ``path`` with another codec."""
        if not self.store.is_loaded:
            raise NotLoadedError("export")
        return self._persist(self._resolve(path), codec)

    def saved_at(self, path: str | Path | None = None) -> datetime:
        """
        Date of a save.

        Without a path, the date of the loaded store (now if never saved).
        With a path, the date stored in that file.

        Raises:
            FileNotFoundError: ``path`` does not exist.
            KeyNotFoundError: The file holds no save date.
        """
        if path is None:
            return self.store.saved_at()
        target = self._resolve(path)
        if not target.exists():
            raise FileNotFoundError(f'The save file "{target}" does not exist')
        return self.codec.read_date(self._read(target, self.codec))
