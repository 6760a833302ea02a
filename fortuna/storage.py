"""Durable and in-memory seed stores."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .errors import StorageError
from .primitives import KEY_SIZE, check_length

logger = logging.getLogger(__name__)

SEED_SIZE = KEY_SIZE
DEFAULT_SEED_PATH = "seed.dat"


class SeedStorage:
    """Stores a single 32-byte seed blob.

    ``load`` returns ``None`` only when the store positively holds no seed;
    read failures raise ``StorageError``.
    """

    def load(self) -> Optional[bytes]:
        raise NotImplementedError

    def save(self, seed: bytes) -> None:
        raise NotImplementedError


class MemorySeedStorage(SeedStorage):
    def __init__(self, seed: Optional[bytes] = None) -> None:
        self._seed = None if seed is None else check_length("seed", seed, SEED_SIZE)
        self.saves = 0

    def load(self) -> Optional[bytes]:
        return self._seed

    def save(self, seed: bytes) -> None:
        self._seed = check_length("seed", seed, SEED_SIZE)
        self.saves += 1


class FileSeedStorage(SeedStorage):
    """Raw 32-byte seed file. Saves go through a temporary file and ``os.replace``."""

    def __init__(self, path: Union[str, Path] = DEFAULT_SEED_PATH) -> None:
        self.path = Path(path)

    def load(self) -> Optional[bytes]:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("no seed file at %s", self.path)
            return None
        except OSError as exc:
            raise StorageError(f"Unable to read seed file {self.path}: {exc}") from exc

        if len(data) != SEED_SIZE:
            raise StorageError(f"Seed file {self.path} holds {len(data)} bytes, expected {SEED_SIZE}")
        logger.debug("loaded seed from %s", self.path)
        return data

    def save(self, seed: bytes) -> None:
        seed = check_length("seed", seed, SEED_SIZE)
        directory = self.path.parent
        tmp_name: Optional[str] = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=self.path.name + ".", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "wb") as handle:
                handle.write(seed)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise StorageError(f"Unable to write seed file {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:  # pragma: no cover - best effort cleanup
                    pass
        logger.debug("saved seed to %s", self.path)


__all__ = ["SeedStorage", "MemorySeedStorage", "FileSeedStorage", "SEED_SIZE", "DEFAULT_SEED_PATH"]
