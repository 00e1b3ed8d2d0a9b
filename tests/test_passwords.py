"""PasswordHasher: argon2 hashing and uniform verification failures."""
import pytest
from argon2 import PasswordHasher as Argon2Hasher

from security.errors import HashingFailure
from security.passwords import MAX_PASSWORD_BYTES, PasswordHasher


@pytest.mark.parametrize("password", ["hunter22", "correct horse battery staple", "pässwörd-ünïcode", "x" * 72])
def test_verify_accepts_own_hash(hasher, password):
    assert hasher.verify(password, hasher.hash(password)) is True


def test_verify_rejects_other_password(hasher):
    assert hasher.verify("password-two", hasher.hash("password-one")) is False


def test_hash_is_salted(hasher):
    first, second = hasher.hash("same-password"), hasher.hash("same-password")
    assert first != second
    assert first.startswith("$argon2id$")
    assert "same-password" not in first


@pytest.mark.parametrize("bad_hash", ["", "not-a-hash", "$argon2id$v=19$garbage", "$2a$10$abcdefghijklmnopqrstuv"])
def test_malformed_hash_is_plain_false(hasher, bad_hash):
    # same shape as a wrong password: no exception, just False
    assert hasher.verify("whatever", bad_hash) is False


def test_non_string_inputs_are_false(hasher):
    assert hasher.verify(None, hasher.hash("password-one")) is False
    assert hasher.verify("password-one", None) is False


def test_too_long_password_fails_to_hash(hasher):
    with pytest.raises(HashingFailure):
        hasher.hash("x" * (MAX_PASSWORD_BYTES + 1))


def test_multibyte_length_counts_bytes(hasher):
    # 37 two-byte characters = 74 bytes
    with pytest.raises(HashingFailure):
        hasher.hash("é" * 37)


def test_hash_from_other_parameters_verifies_and_needs_rehash(hasher):
    strong = PasswordHasher(Argon2Hasher(time_cost=2, memory_cost=2048, parallelism=1))
    legacy_hash = strong.hash("password-one")

    assert hasher.verify("password-one", legacy_hash) is True
    assert hasher.needs_rehash(legacy_hash) is True
    assert hasher.needs_rehash(hasher.hash("password-one")) is False


def test_needs_rehash_on_garbage(hasher):
    assert hasher.needs_rehash("not-a-hash") is True


def test_dummy_verify_returns_nothing(hasher):
    assert hasher.dummy_verify("anything") is None
