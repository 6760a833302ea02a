"""Entropy pools feeding the generator on reseed."""

from __future__ import annotations

import logging
from typing import List

from .primitives import Primitives

logger = logging.getLogger(__name__)

POOL_COUNT = 32


class EntropyAccumulator:
    """Collects caller-supplied entropy into ``POOL_COUNT`` pools.

    Every pool contributes to every reseed with equal weight; the classical
    Fortuna 2**i pool schedule is not used.
    """

    def __init__(self, primitives: Primitives) -> None:
        self._primitives = primitives
        self._pools: List[bytearray] = [bytearray() for _ in range(POOL_COUNT)]

    def add_entropy(self, data: bytes, source: int = 0) -> None:
        """Append ``data`` to pool ``source % POOL_COUNT``."""
        index = source % POOL_COUNT
        self._pools[index].extend(data)

    def get_reseed_entropy(self) -> bytes:
        """Digest all pools in index order, clear them and return the 32-byte seed.

        The pools are emptied even if hashing fails so that no partial state
        survives for a retry.
        """
        combined = bytearray()
        for pool in self._pools:
            combined.extend(pool)
        try:
            seed = self._primitives.sha256(bytes(combined))
        finally:
            self.clear_pools()
            combined[:] = bytes(len(combined))
        logger.debug("reseed entropy drawn from %d pooled bytes", len(combined))
        return seed

    def clear_pools(self) -> None:
        for pool in self._pools:
            pool[:] = bytes(len(pool))
            pool.clear()

    def pool_sizes(self) -> List[int]:
        return [len(pool) for pool in self._pools]
