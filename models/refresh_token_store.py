"""
Durable record of opaque refresh tokens.

All writes are single SQL statements so concurrent refresh/revoke calls on
the same token are serialized by the database, not by this class:
- create() is a plain INSERT; a duplicate primary key fails instead of
  overwriting an existing token.
- revoke() is one conditional UPDATE guarded by "revoked_at IS NULL".
"""
from __future__ import annotations

import enum
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import FlushError

from models.refresh_token import RefreshToken, TokenState
from models.user import User
from security.errors import DuplicateToken, NotFound, ResetForbidden, StorageFailure

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_TTL = timedelta(days=60)
TOKEN_BYTES = 32


class RevokeOutcome(enum.Enum):
    REVOKED = "revoked"
    ALREADY_REVOKED = "already_revoked"
    EXPIRED = "expired"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_refresh_token() -> str:
    """32 random bytes, hex encoded (64 chars)."""
    return secrets.token_hex(TOKEN_BYTES)


class RefreshTokenStore:
    def __init__(self, storage, ttl: timedelta = DEFAULT_REFRESH_TTL,
                 clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.ttl = ttl
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _session(self):
        return self.storage.get_session()

    def create(self, user_id: str, ttl: timedelta | None = None) -> str:
        now = self._clock()
        record = RefreshToken(
            token=generate_refresh_token(),
            user_id=str(user_id),
            created_at=now,
            expires_at=now + (ttl or self.ttl),
            revoked_at=None,
        )
        session = self._session()
        try:
            session.add(record)
            session.commit()
        except (IntegrityError, FlushError) as exc:
            # FlushError: the colliding row is already in this session's identity map
            session.rollback()
            if session.get(User, str(user_id)) is None:
                raise StorageFailure(f"Unknown user {user_id}") from exc
            raise DuplicateToken() from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFailure(str(exc)) from exc
        token = record.token
        session.expunge(record)
        return token

    def lookup(self, token: str) -> RefreshToken:
        """Exact-match lookup. Expired and revoked rows are returned as-is."""
        if not token:
            raise NotFound("Refresh token not found")
        session = self._session()
        try:
            record = (
                session.query(RefreshToken)
                .populate_existing()
                .filter(RefreshToken.token == token)
                .one_or_none()
            )
            # end the read transaction so the next call sees fresh data
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFailure(str(exc)) from exc
        if record is None:
            raise NotFound("Refresh token not found")
        return record

    def revoke(self, token: str) -> RevokeOutcome:
        """
        Set revoked_at=now on an active token.
        Already-revoked and expired tokens are left untouched and reported as
        such; unknown tokens raise NotFound.
        """
        if not token:
            raise NotFound("Refresh token not found")
        now = self._clock()
        session = self._session()
        try:
            changed = (
                session.query(RefreshToken)
                .filter(
                    RefreshToken.token == token,
                    RefreshToken.revoked_at.is_(None),
                    RefreshToken.expires_at > now,
                )
                .update({RefreshToken.revoked_at: now}, synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFailure(str(exc)) from exc

        if changed:
            return RevokeOutcome.REVOKED
        record = self.lookup(token)
        if record.state(now) is TokenState.REVOKED:
            return RevokeOutcome.ALREADY_REVOKED
        return RevokeOutcome.EXPIRED

    def revoke_all_for_user(self, user_id: str, commit: bool = True) -> int:
        """
        Revoke every unrevoked token of a user. Returns how many rows changed.
        With commit=False the UPDATE joins the caller's transaction.
        """
        now = self._clock()
        session = self._session()
        try:
            changed = (
                session.query(RefreshToken)
                .filter(
                    RefreshToken.user_id == str(user_id),
                    RefreshToken.revoked_at.is_(None),
                )
                .update({RefreshToken.revoked_at: now}, synchronize_session=False)
            )
            if commit:
                session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFailure(str(exc)) from exc
        return changed

    def delete_all_for_reset(self, allowed: bool) -> None:
        """Wipe refresh tokens and users. Only for non-production environments."""
        if not allowed:
            raise ResetForbidden()
        session = self._session()
        try:
            session.query(RefreshToken).delete(synchronize_session=False)
            session.query(User).delete(synchronize_session=False)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFailure(str(exc)) from exc
        session.expunge_all()
        logger.warning("All users and refresh tokens deleted (reset)")
