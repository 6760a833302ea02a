"""Digest, block-cipher and random-source primitives behind a small backend interface."""

from __future__ import annotations

import secrets
from typing import Dict, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigError, InvalidInputError, PrimitiveError

KEY_SIZE = 32
BLOCK_SIZE = 16
DIGEST_SIZE = 32

# CTR runs from an all-zero initial counter; the caller's counter block is
# the plaintext, so every output is AES(key, 0) XOR block.
ZERO_IV = bytes(BLOCK_SIZE)


def check_length(name: str, value: bytes, size: int) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidInputError(f"{name} must be bytes, got {type(value).__name__}")
    value = bytes(value)
    if len(value) != size:
        raise InvalidInputError(f"{name} must be {size} bytes, got {len(value)}")
    return value


class Primitives:
    """Backend interface: SHA-256, single-block AES-256-CTR and a secure random source."""

    name = "abstract"

    def sha256(self, data: bytes) -> bytes:
        raise NotImplementedError

    def encrypt_block(self, key: bytes, block: bytes) -> bytes:
        raise NotImplementedError

    def random_bytes(self, size: int) -> bytes:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} backend={self.name!r}>"


class CryptographyPrimitives(Primitives):
    """Primitives provided by the ``cryptography`` package."""

    name = "cryptography"

    def sha256(self, data: bytes) -> bytes:
        try:
            digest = hashes.Hash(hashes.SHA256())
            digest.update(bytes(data))
            out = digest.finalize()
        except UnsupportedAlgorithm as exc:
            raise PrimitiveError("SHA-256 unavailable in cryptography backend") from exc
        if len(out) != DIGEST_SIZE:
            raise PrimitiveError(f"SHA-256 returned {len(out)} bytes")
        return out

    def encrypt_block(self, key: bytes, block: bytes) -> bytes:
        key = check_length("key", key, KEY_SIZE)
        block = check_length("block", block, BLOCK_SIZE)
        try:
            encryptor = Cipher(algorithms.AES(key), modes.CTR(ZERO_IV)).encryptor()
            out = encryptor.update(block) + encryptor.finalize()
        except UnsupportedAlgorithm as exc:
            raise PrimitiveError("AES-256-CTR unavailable in cryptography backend") from exc
        if len(out) != BLOCK_SIZE:
            raise PrimitiveError(f"AES-256-CTR returned {len(out)} bytes")
        return out

    def random_bytes(self, size: int) -> bytes:
        if size <= 0:
            raise InvalidInputError("size must be positive")
        return secrets.token_bytes(size)


BACKENDS = ("libcrypto", "cryptography")

_CACHE: Dict[tuple, Primitives] = {}


def get_primitives(backend: str = "libcrypto", libcrypto_path: Optional[str] = None) -> Primitives:
    """Return a shared primitives instance for ``backend``.

    The libcrypto backend raises ``LibcryptoUnavailableError`` when the
    shared library cannot be loaded; no other backend is substituted.
    """
    if backend not in BACKENDS:
        raise ConfigError(f"Unknown primitives backend {backend!r}; expected one of {', '.join(BACKENDS)}")

    cache_key = (backend, libcrypto_path)
    if cache_key in _CACHE:
        return _CACHE[cache_key]

    if backend == "libcrypto":
        from .libcrypto import LibcryptoPrimitives

        prims: Primitives = LibcryptoPrimitives(libcrypto_path)
    else:
        prims = CryptographyPrimitives()

    _CACHE[cache_key] = prims
    return prims


__all__ = [
    "KEY_SIZE",
    "BLOCK_SIZE",
    "DIGEST_SIZE",
    "BACKENDS",
    "Primitives",
    "CryptographyPrimitives",
    "check_length",
    "get_primitives",
]
