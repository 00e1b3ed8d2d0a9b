"""
Password hashing via argon2-cffi.

Hashes are argon2id encoded strings ($argon2id$v=19$m=...,t=...,p=...$salt$hash)
so the salt and cost parameters travel with the hash.
"""
from __future__ import annotations

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from security.errors import HashingFailure

# Longest password accepted, in UTF-8 bytes.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """One-way, salted password hashing and verification."""

    def __init__(self, argon2_hasher: Argon2Hasher | None = None):
        self._ph = argon2_hasher or Argon2Hasher()
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        """Hash a plaintext password. Raises HashingFailure."""
        if not isinstance(password, str):
            raise HashingFailure("Password must be a string")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise HashingFailure(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
        try:
            return self._ph.hash(password)
        except HashingError as exc:
            raise HashingFailure(str(exc)) from exc

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Return True only if password matches password_hash.
        A wrong password, a malformed hash and incompatible parameters all
        return False.
        """
        if not isinstance(password, str) or not isinstance(password_hash, str):
            return False
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        try:
            return self._ph.check_needs_rehash(password_hash)
        except (InvalidHashError, ValueError):
            return True

    def dummy_verify(self, password: str) -> None:
        """Burn one verification so unknown users cost as much as wrong passwords."""
        if self._dummy_hash is None:
            self._dummy_hash = self._ph.hash("dummy-password-for-timing")
        self.verify(password, self._dummy_hash)
