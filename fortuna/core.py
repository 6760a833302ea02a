"""Fortuna orchestrator tying the accumulator, generator and seed storage together."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .accumulator import EntropyAccumulator
from .errors import InvalidInputError
from .generator import Generator
from .primitives import KEY_SIZE, Primitives, get_primitives
from .storage import FileSeedStorage, SeedStorage

logger = logging.getLogger(__name__)


class Fortuna:
    """Thread-safe Fortuna CSPRNG.

    One lock covers both the generator and the accumulator, so a reseed
    and a concurrent draw never observe a half-updated key or counter.
    The seed in ``storage`` always matches the live key after construction
    and after every successful ``reseed``.
    """

    def __init__(self, storage: Optional[SeedStorage] = None, primitives: Optional[Primitives] = None) -> None:
        self._primitives = primitives if primitives is not None else get_primitives()
        self._storage = storage if storage is not None else FileSeedStorage()
        self._lock = threading.RLock()
        self._accumulator = EntropyAccumulator(self._primitives)
        self._generator = Generator(self._primitives)
        self._generator.set_key(self._initial_seed())

    def _initial_seed(self) -> bytes:
        seed = self._storage.load()
        if seed is None:
            seed = self._primitives.random_bytes(KEY_SIZE)
            self._storage.save(seed)
            logger.info("no stored seed found; created a fresh one")
        return seed

    @property
    def accumulator(self) -> EntropyAccumulator:
        return self._accumulator

    @property
    def generator(self) -> Generator:
        return self._generator

    def add_entropy(self, data: bytes, source: int = 0) -> None:
        with self._lock:
            self._accumulator.add_entropy(data, source)

    def reseed(self) -> None:
        """Replace the key with accumulated entropy.

        The seed is persisted before the generator sees it; if the save
        fails the old key stays live, matching what storage still holds.
        The pools are consumed either way.
        """
        with self._lock:
            seed = self._accumulator.get_reseed_entropy()
            self._storage.save(seed)
            self._generator.set_key(seed)
        logger.debug("generator reseeded from accumulated entropy")

    def get_random_bytes(self, num_bytes: int) -> bytes:
        _require_int("byte count", num_bytes)
        if num_bytes < 0:
            raise InvalidInputError("byte count cannot be negative")
        if num_bytes == 0:
            return b""

        result = bytearray()
        with self._lock:
            while len(result) < num_bytes:
                result.extend(self._generator.generate_block())
        return bytes(result[:num_bytes])

    # ------------------------------------------------------------------
    # Convenience draws

    def randbits(self, bits: int) -> int:
        _require_int("bits", bits)
        if bits <= 0:
            raise InvalidInputError(f"bits must be positive, got {bits}")
        raw = self.get_random_bytes((bits + 7) // 8)
        return int.from_bytes(raw, "big") >> (-bits % 8)

    def randbelow(self, upper: int) -> int:
        """Uniform integer in ``[0, upper)`` by rejection sampling."""
        _require_int("upper", upper)
        if upper <= 0:
            raise InvalidInputError(f"upper must be positive, got {upper}")
        bits = upper.bit_length()
        candidate = self.randbits(bits)
        while candidate >= upper:
            candidate = self.randbits(bits)
        return candidate

    def randint(self, a: int, b: int) -> int:
        _require_int("a", a)
        _require_int("b", b)
        if a > b:
            raise InvalidInputError(f"empty range [{a}, {b}]")
        return a + self.randbelow(b - a + 1)

    def token_hex(self, num_bytes: int) -> str:
        return self.get_random_bytes(num_bytes).hex()


def _require_int(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {type(value).__name__}")
