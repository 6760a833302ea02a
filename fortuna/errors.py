"""Exception hierarchy shared by the generator, accumulator and storage layers."""

from __future__ import annotations


class FortunaError(Exception):
    """Base class for every failure raised by this package."""


class PrimitiveError(FortunaError):
    """A digest, cipher or random-source call could not complete."""


class LibcryptoUnavailableError(PrimitiveError):
    """Raised when libcrypto cannot be loaded."""


class StorageError(FortunaError):
    """Seed storage could not be read or written."""


class InvalidInputError(FortunaError, ValueError):
    """An argument was rejected at the API boundary."""


class ConfigError(FortunaError):
    """A configuration value is unknown or malformed."""


__all__ = [
    "FortunaError",
    "PrimitiveError",
    "LibcryptoUnavailableError",
    "StorageError",
    "InvalidInputError",
    "ConfigError",
]
