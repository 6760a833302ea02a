import pytest

from fortuna.errors import LibcryptoUnavailableError
from fortuna.primitives import CryptographyPrimitives, get_primitives
from fortuna.storage import MemorySeedStorage


def _libcrypto_or_skip():
    try:
        return get_primitives("libcrypto")
    except LibcryptoUnavailableError as exc:
        pytest.skip(f"libcrypto not loadable: {exc}")


@pytest.fixture(params=["cryptography", "libcrypto"])
def primitives(request):
    if request.param == "libcrypto":
        return _libcrypto_or_skip()
    return CryptographyPrimitives()


@pytest.fixture
def libcrypto_primitives():
    return _libcrypto_or_skip()


@pytest.fixture
def memory_storage():
    return MemorySeedStorage()
