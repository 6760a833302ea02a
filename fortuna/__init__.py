from __future__ import annotations

from .accumulator import POOL_COUNT, EntropyAccumulator
from .core import Fortuna
from .errors import (
    ConfigError,
    FortunaError,
    InvalidInputError,
    LibcryptoUnavailableError,
    PrimitiveError,
    StorageError,
)
from .generator import DATA_LIMIT, Generator
from .primitives import CryptographyPrimitives, Primitives, get_primitives
from .storage import FileSeedStorage, MemorySeedStorage, SeedStorage

__version__ = "0.1.0"
