"""Exception types shared across the scan, translate and patch passes."""

from __future__ import annotations


class DoctransError(Exception):
    """Base class for every error raised by doctrans."""


class ConfigError(DoctransError):
    """Required configuration is missing or invalid."""


class DocumentError(DoctransError):
    """A file could not be parsed or is not an IntelliSense document."""


class TranslationServiceError(DoctransError):
    """The translation service failed or returned an unusable response."""


class StoreError(DoctransError):
    """Reading from or writing to the translation memory database failed."""
