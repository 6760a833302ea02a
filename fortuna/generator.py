"""AES-256 counter-mode block generator with hash-based rekeying."""

from __future__ import annotations

import logging
from typing import Optional

from .primitives import BLOCK_SIZE, KEY_SIZE, Primitives, check_length

logger = logging.getLogger(__name__)

DATA_LIMIT = 1024 * 1024
COUNTER_MODULUS = 1 << 64


class Generator:
    """Produces 16-byte blocks by encrypting a counter under a secret key.

    The key lives in a private buffer that is overwritten in place on
    ``set_key`` and on rekey. After ``DATA_LIMIT`` bytes the key is replaced
    by its own SHA-256 digest, so earlier keys cannot be recovered from
    later state.
    """

    def __init__(self, primitives: Primitives, key: Optional[bytes] = None) -> None:
        self._primitives = primitives
        self._key = bytearray(KEY_SIZE)
        self._counter = 0
        self._data_generated = 0
        if key is None:
            key = primitives.random_bytes(KEY_SIZE)
        self.set_key(key)

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def data_generated(self) -> int:
        return self._data_generated

    def set_key(self, new_key: bytes) -> None:
        """Replace the key. The counter and byte count are left untouched."""
        new_key = check_length("key", new_key, KEY_SIZE)
        self._key[:] = new_key

    def _counter_block(self) -> bytes:
        # High half zero, low half the big-endian counter.
        return bytes(8) + self._counter.to_bytes(8, "big")

    def _rekey(self) -> None:
        self._key[:] = self._primitives.sha256(bytes(self._key))
        self._data_generated = 0
        logger.debug("generator rekeyed at counter %d", self._counter)

    def generate_block(self) -> bytes:
        block = self._primitives.encrypt_block(bytes(self._key), self._counter_block())
        self._counter = (self._counter + 1) % COUNTER_MODULUS
        self._data_generated += BLOCK_SIZE

        if self._data_generated >= DATA_LIMIT:
            self._rekey()

        return block
