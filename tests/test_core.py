import hashlib
import threading

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from fakes import RecordingPrimitives
from fortuna.core import Fortuna
from fortuna.errors import InvalidInputError, StorageError
from fortuna.storage import MemorySeedStorage, SeedStorage


def counter_block(n):
    return bytes(8) + n.to_bytes(8, "big")


def reference_block(key, n):
    encryptor = Cipher(algorithms.AES(key), modes.CTR(bytes(16))).encryptor()
    return encryptor.update(counter_block(n)) + encryptor.finalize()


class BrokenStorage(SeedStorage):
    def load(self):
        raise StorageError("disk on fire")

    def save(self, seed):
        raise StorageError("disk on fire")


def test_fresh_start_creates_and_saves_seed(primitives, memory_storage):
    assert memory_storage.load() is None
    Fortuna(memory_storage, primitives)
    stored = memory_storage.load()
    assert stored is not None and len(stored) == 32
    assert memory_storage.load() == stored
    assert memory_storage.saves == 1


def test_existing_seed_becomes_key(primitives):
    seed = bytes(range(32))
    storage = MemorySeedStorage(seed)
    fortuna = Fortuna(storage, primitives)
    assert fortuna.get_random_bytes(16) == primitives.encrypt_block(seed, counter_block(0))
    assert storage.saves == 0


def test_load_failure_is_not_treated_as_absent(primitives):
    with pytest.raises(StorageError):
        Fortuna(BrokenStorage(), primitives)


def test_reseed_scenario(primitives, memory_storage):
    fortuna = Fortuna(memory_storage, primitives)
    fortuna.add_entropy(bytes([0x01, 0x02, 0x03, 0x04]))
    fortuna.reseed()

    new_key = hashlib.sha256(bytes([0x01, 0x02, 0x03, 0x04])).digest()
    assert memory_storage.load() == new_key

    out = fortuna.get_random_bytes(32)
    expected = primitives.encrypt_block(new_key, counter_block(0)) + primitives.encrypt_block(new_key, counter_block(1))
    assert out == expected


def test_reseed_does_not_replay_old_entropy(primitives, memory_storage):
    fortuna = Fortuna(memory_storage, primitives)
    fortuna.add_entropy(b"first batch", source=7)
    fortuna.reseed()
    fortuna.reseed()
    assert memory_storage.load() == hashlib.sha256(b"").digest()
    assert fortuna.accumulator.pool_sizes() == [0] * 32


def test_failed_save_keeps_key_in_step_with_storage(primitives):
    class SaveFails(MemorySeedStorage):
        def save(self, seed):
            raise StorageError("read-only")

    storage = SaveFails(bytes(range(32)))
    fortuna = Fortuna(storage, primitives)
    fortuna.add_entropy(b"lost on failure")
    with pytest.raises(StorageError):
        fortuna.reseed()

    assert fortuna.accumulator.pool_sizes() == [0] * 32
    assert fortuna.get_random_bytes(16) == reference_block(storage.load(), 0)


@pytest.mark.parametrize("n", [0, 1, 15, 16, 17, 31, 32, 33, 100, 1000])
def test_exact_length(n, memory_storage):
    fortuna = Fortuna(memory_storage, RecordingPrimitives())
    assert len(fortuna.get_random_bytes(n)) == n


def test_zero_bytes_does_not_touch_generator(memory_storage):
    prims = RecordingPrimitives()
    fortuna = Fortuna(memory_storage, prims)
    assert fortuna.get_random_bytes(0) == b""
    assert prims.calls == []
    assert fortuna.generator.counter == 0


def test_partial_block_consumes_whole_block(memory_storage):
    prims = RecordingPrimitives()
    fortuna = Fortuna(memory_storage, prims)
    fortuna.get_random_bytes(17)
    assert fortuna.generator.counter == 2
    assert fortuna.generator.data_generated == 32


@pytest.mark.parametrize("bad", [-1, 1.5, "8", None, True])
def test_invalid_byte_count_rejected(bad, memory_storage):
    fortuna = Fortuna(memory_storage, RecordingPrimitives())
    with pytest.raises(InvalidInputError):
        fortuna.get_random_bytes(bad)


def test_invalid_input_is_a_value_error(memory_storage):
    fortuna = Fortuna(memory_storage, RecordingPrimitives())
    with pytest.raises(ValueError):
        fortuna.get_random_bytes(-5)


def test_consecutive_draws_continue_the_stream(primitives):
    seed = bytes([9]) * 32
    a = Fortuna(MemorySeedStorage(seed), primitives)
    b = Fortuna(MemorySeedStorage(seed), primitives)
    assert a.get_random_bytes(16) + a.get_random_bytes(16) == b.get_random_bytes(32)


def test_convenience_draws(memory_storage):
    fortuna = Fortuna(memory_storage, RecordingPrimitives())
    for _ in range(200):
        assert 0 <= fortuna.randbits(5) < 32
        assert 0 <= fortuna.randbelow(10) < 10
        assert 3 <= fortuna.randint(3, 7) <= 7
    assert fortuna.randint(4, 4) == 4
    token = fortuna.token_hex(8)
    assert len(token) == 16
    assert token == token.lower()


@pytest.mark.parametrize(
    "call",
    [
        lambda f: f.randbits(0),
        lambda f: f.randbelow(0),
        lambda f: f.randint(5, 4),
        lambda f: f.token_hex(-1),
    ],
)
def test_convenience_draws_reject_bad_arguments(call, memory_storage):
    fortuna = Fortuna(memory_storage, RecordingPrimitives())
    with pytest.raises(InvalidInputError):
        call(fortuna)


def test_concurrent_draws_never_reuse_a_block(memory_storage):
    prims = RecordingPrimitives()
    fortuna = Fortuna(memory_storage, prims)
    errors = []

    def worker():
        try:
            for i in range(50):
                fortuna.add_entropy(b"x", source=i)
                fortuna.get_random_bytes(40)
        except Exception as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(set(prims.calls)) == len(prims.calls) == 4 * 50 * 3


def test_reseed_scenario_against_reference_cipher(primitives, memory_storage):
    fortuna = Fortuna(memory_storage, primitives)
    fortuna.add_entropy(bytes([0x01, 0x02, 0x03, 0x04]), source=0)
    fortuna.reseed()

    key = hashlib.sha256(bytes([0x01, 0x02, 0x03, 0x04])).digest()
    assert fortuna.get_random_bytes(32) == reference_block(key, 0) + reference_block(key, 1)


@pytest.mark.parametrize(
    "call",
    [
        lambda f: f.randbits(2.0),
        lambda f: f.randbelow(2.5),
        lambda f: f.randbelow("10"),
        lambda f: f.randint(1, 3.5),
        lambda f: f.randint(None, 3),
        lambda f: f.randbits(True),
    ],
)
def test_convenience_draws_reject_non_integers(call, memory_storage):
    fortuna = Fortuna(memory_storage, RecordingPrimitives())
    with pytest.raises(InvalidInputError):
        call(fortuna)
