from __future__ import annotations

import ctypes
import ctypes.util
import logging
from typing import Optional, Tuple

from .errors import InvalidInputError, LibcryptoUnavailableError, PrimitiveError
from .primitives import BLOCK_SIZE, DIGEST_SIZE, KEY_SIZE, ZERO_IV, Primitives, check_length

logger = logging.getLogger(__name__)

LIBCRYPTO_ENV = "FORTUNA_LIBCRYPTO_PATH"
EVP_MAX_MD_SIZE = 64

_c_void_p = ctypes.c_void_p
_c_int = ctypes.c_int
_c_uint = ctypes.c_uint
_c_size_t = ctypes.c_size_t
_c_ulong = ctypes.c_ulong
_c_uchar_p = ctypes.POINTER(ctypes.c_ubyte)


# ---------------------------------------------------------------------------
# libcrypto loader & helpers
# ---------------------------------------------------------------------------

def _load_libcrypto(path: Optional[str] = None) -> ctypes.CDLL:
    candidates: list[str] = []

    if path:
        candidates.append(path)

    found = ctypes.util.find_library("crypto")
    if found:
        candidates.append(found)

    for name in ("libcrypto.so.3", "libcrypto.so.1.1", "libcrypto.dylib"):
        candidates.append(name)

    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            lib = ctypes.CDLL(candidate)
        except OSError as exc:  # pragma: no cover - depends on env
            last_error = exc
            continue
        logger.debug("loaded libcrypto from %s", candidate)
        return lib

    raise LibcryptoUnavailableError(
        f"Unable to load libcrypto. Set {LIBCRYPTO_ENV} to the shared "
        "library (e.g. /usr/lib/x86_64-linux-gnu/libcrypto.so.3)."
    ) from last_error


def _configure(lib: ctypes.CDLL) -> None:
    try:
        lib.EVP_CIPHER_CTX_new.restype = _c_void_p
        lib.EVP_CIPHER_CTX_new.argtypes = []
        lib.EVP_CIPHER_CTX_free.restype = None
        lib.EVP_CIPHER_CTX_free.argtypes = [_c_void_p]

        lib.EVP_aes_256_ctr.restype = _c_void_p
        lib.EVP_aes_256_ctr.argtypes = []

        lib.EVP_EncryptInit_ex.restype = _c_int
        lib.EVP_EncryptInit_ex.argtypes = [_c_void_p, _c_void_p, _c_void_p, _c_void_p, _c_void_p]
        lib.EVP_EncryptUpdate.restype = _c_int
        lib.EVP_EncryptUpdate.argtypes = [_c_void_p, _c_void_p, ctypes.POINTER(_c_int), _c_void_p, _c_int]
        lib.EVP_EncryptFinal_ex.restype = _c_int
        lib.EVP_EncryptFinal_ex.argtypes = [_c_void_p, _c_void_p, ctypes.POINTER(_c_int)]

        lib.EVP_sha256.restype = _c_void_p
        lib.EVP_sha256.argtypes = []
        lib.EVP_Digest.restype = _c_int
        lib.EVP_Digest.argtypes = [_c_void_p, _c_size_t, _c_uchar_p, ctypes.POINTER(_c_uint), _c_void_p, _c_void_p]

        lib.ERR_get_error.restype = _c_ulong
        lib.ERR_get_error.argtypes = []
        lib.ERR_error_string_n.restype = None
        lib.ERR_error_string_n.argtypes = [_c_ulong, ctypes.c_char_p, _c_size_t]

        lib.RAND_bytes.restype = _c_int
        lib.RAND_bytes.argtypes = [_c_uchar_p, _c_int]
    except AttributeError as exc:
        raise LibcryptoUnavailableError(f"libcrypto is missing a required symbol: {exc}") from exc


def _error_message(lib: ctypes.CDLL, context: str) -> str:
    parts: list[str] = []
    while True:
        err = lib.ERR_get_error()
        if err == 0:
            break
        buf = ctypes.create_string_buffer(256)
        lib.ERR_error_string_n(err, buf, len(buf))
        msg = buf.value.decode() or f"0x{err:x}"
        parts.append(msg)
    if not parts:
        return f"{context} failed without OpenSSL error information"
    return f"{context} failed: {'; '.join(parts)}"


def _data_buffer(data: bytes) -> Tuple[ctypes.Array, int]:
    if len(data) == 0:
        return (ctypes.c_ubyte * 1)(), 0
    array_type = ctypes.c_ubyte * len(data)
    return array_type.from_buffer_copy(data), len(data)


def _ptr(buf: ctypes.Array) -> _c_void_p:
    return ctypes.cast(buf, _c_void_p)


def _as_uchar_ptr(buf: ctypes.Array):
    return ctypes.cast(buf, _c_uchar_p)


def _wipe(buf: ctypes.Array) -> None:
    ctypes.memset(buf, 0, ctypes.sizeof(buf))


# ---------------------------------------------------------------------------
# Primitives backend
# ---------------------------------------------------------------------------


class LibcryptoPrimitives(Primitives):
    """SHA-256, AES-256-CTR and RAND_bytes straight from OpenSSL's libcrypto."""

    name = "libcrypto"

    def __init__(self, path: Optional[str] = None):
        self._lib = _load_libcrypto(path)
        _configure(self._lib)
        self.library_path = getattr(self._lib, "_name", "")

    def sha256(self, data: bytes) -> bytes:
        lib = self._lib
        md = lib.EVP_sha256()
        if not md:
            raise PrimitiveError("EVP_sha256 unavailable in libcrypto")
        in_buf, in_len = _data_buffer(bytes(data))
        out_buf = (ctypes.c_ubyte * EVP_MAX_MD_SIZE)()
        out_len = _c_uint(0)
        if lib.EVP_Digest(_ptr(in_buf), in_len, _as_uchar_ptr(out_buf), ctypes.byref(out_len), md, None) != 1:
            raise PrimitiveError(_error_message(lib, "EVP_Digest(SHA-256)"))
        if out_len.value != DIGEST_SIZE:
            raise PrimitiveError(f"EVP_Digest(SHA-256) returned {out_len.value} bytes")
        return bytes(out_buf)[:DIGEST_SIZE]

    def encrypt_block(self, key: bytes, block: bytes) -> bytes:
        key = check_length("key", key, KEY_SIZE)
        block = check_length("block", block, BLOCK_SIZE)
        lib = self._lib

        cipher = lib.EVP_aes_256_ctr()
        if not cipher:
            raise PrimitiveError("EVP_aes_256_ctr unavailable in libcrypto")

        ctx = lib.EVP_CIPHER_CTX_new()
        if not ctx:
            raise PrimitiveError("Unable to allocate EVP_CIPHER_CTX")
        key_buf, _ = _data_buffer(key)
        iv_buf, _ = _data_buffer(ZERO_IV)
        in_buf, in_len = _data_buffer(block)
        out_buf = (ctypes.c_ubyte * BLOCK_SIZE)()
        try:
            if lib.EVP_EncryptInit_ex(ctx, cipher, None, _ptr(key_buf), _ptr(iv_buf)) != 1:
                raise PrimitiveError(_error_message(lib, "EVP_EncryptInit_ex(aes-256-ctr)"))
            out_len = _c_int(0)
            if lib.EVP_EncryptUpdate(ctx, _ptr(out_buf), ctypes.byref(out_len), _ptr(in_buf), in_len) != 1:
                raise PrimitiveError(_error_message(lib, "EVP_EncryptUpdate"))
            final_len = _c_int(0)
            tail = (ctypes.c_ubyte * BLOCK_SIZE)()
            if lib.EVP_EncryptFinal_ex(ctx, _ptr(tail), ctypes.byref(final_len)) != 1:
                raise PrimitiveError(_error_message(lib, "EVP_EncryptFinal_ex"))
            if out_len.value + final_len.value != BLOCK_SIZE:
                raise PrimitiveError(f"AES-256-CTR produced {out_len.value + final_len.value} bytes")
            return bytes(out_buf)
        finally:
            lib.EVP_CIPHER_CTX_free(ctx)
            _wipe(key_buf)

    def random_bytes(self, size: int) -> bytes:
        if size <= 0:
            raise InvalidInputError("size must be positive")
        out = (ctypes.c_ubyte * size)()
        if self._lib.RAND_bytes(out, size) != 1:
            raise PrimitiveError(_error_message(self._lib, "RAND_bytes"))
        return bytes(out)


__all__ = ["LibcryptoPrimitives", "LIBCRYPTO_ENV"]
