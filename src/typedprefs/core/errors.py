"""Exception hierarchy for typedprefs."""


class TypedPrefsError(Exception):
    """Base exception."""


class NotLoadedError(TypedPrefsError):
    """Operation attempted before any store was loaded."""

    def __init__(self, operation: str = "access") -> None:
        super().__init__(f"No store is loaded, cannot {operation} it")
        self.operation = operation


class ReservedKeyError(TypedPrefsError, ValueError):
    """Attempt to write the reserved save-date key directly."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f'Key "{key}" is reserved for the date of the save. Please use a different key.'
        )
        self.key = key


class InvalidKeyError(TypedPrefsError, ValueError):
    """Key is empty or not text."""


class InvalidValueError(TypedPrefsError, TypeError):
    """Value is not one of the supported kinds, or is out of range for its kind."""


class KeyNotFoundError(TypedPrefsError, KeyError):
    """Lookup miss with no fallback supplied."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f'Key "{self.key}" does not exist'


class KindMismatchError(TypedPrefsError, TypeError):
    """Typed getter used on a key holding another kind."""


class MalformedFramingError(TypedPrefsError):
    """Payload cannot be read: binary shape mismatch or non-UTF-8 text."""


class SettingsError(TypedPrefsError, ValueError):
    """Invalid configuration."""
