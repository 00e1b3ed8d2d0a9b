"""
AuthenticationService: login, refresh, logout and per-request authentication.

Every failure that could reveal whether an email exists or where a refresh
token is in its lifecycle is collapsed into one AuthFailure (or Unauthorized
for access tokens) before it leaves this module.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.refresh_token_store import RefreshTokenStore, RevokeOutcome
from models.user import User
from security.errors import AuthFailure, NotFound, StorageFailure, TokenError, Unauthorized
from security.passwords import PasswordHasher
from security.tokens import TokenSigner

logger = logging.getLogger(__name__)

LOGIN_FAILED = "Incorrect email or password"
REFRESH_FAILED = "Invalid refresh token"


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str
    expires_in: int


class AuthenticationService:
    def __init__(self, storage, hasher: PasswordHasher, signer: TokenSigner,
                 refresh_tokens: RefreshTokenStore):
        self.storage = storage
        self.hasher = hasher
        self.signer = signer
        self.refresh_tokens = refresh_tokens

    # account lookups (the account collaborator owns the users table)
    def _find_user_by_email(self, email: str) -> Optional[User]:
        session = self.storage.get_session()
        try:
            return session.query(User).filter(User.email == email).first()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFailure(str(exc)) from exc

    def get_user(self, user_id: str) -> Optional[User]:
        try:
            return self.storage.get(User, user_id)
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StorageFailure(str(exc)) from exc

    def login(self, email: str, password: str, expires_in_seconds: Optional[int] = None) -> LoginResult:
        user = self._find_user_by_email(email) if email else None
        if user is None:
            self.hasher.dummy_verify(password or "")
            logger.info("Login failed: unknown account")
            raise AuthFailure(LOGIN_FAILED)
        if not self.hasher.verify(password or "", user.password_hash):
            logger.info("Login failed for user %s", user.id)
            raise AuthFailure(LOGIN_FAILED)

        if self.hasher.needs_rehash(user.password_hash):
            self._upgrade_hash(user, password)

        ttl = self.signer.clamp_ttl(expires_in_seconds)
        access_token = self.signer.issue(user.id, ttl)
        refresh_token = self.refresh_tokens.create(user.id)
        logger.info("Login succeeded for user %s", user.id)
        return LoginResult(user=user, access_token=access_token,
                           refresh_token=refresh_token, expires_in=ttl)

    def _upgrade_hash(self, user: User, password: str) -> None:
        """Best effort: a failed upgrade keeps the old hash and does not block login."""
        user.password_hash = self.hasher.hash(password)
        self.storage.new(user)
        try:
            self.storage.save()
        except SQLAlchemyError:
            self.storage.rollback()
            logger.warning("Password hash upgrade failed for user %s", user.id, exc_info=True)

    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token for the token's owner. The refresh token is not rotated."""
        try:
            record = self.refresh_tokens.lookup(refresh_token)
        except NotFound:
            raise AuthFailure(REFRESH_FAILED) from None
        now = self.refresh_tokens.now()
        if not record.is_active(now):
            logger.info("Refresh refused for user %s: token %s", record.user_id, record.state(now).value)
            raise AuthFailure(REFRESH_FAILED)
        return self.signer.issue(record.user_id)

    def logout(self, refresh_token: str) -> None:
        """
        Revoke a refresh token. Revoking an already-revoked token succeeds;
        unknown or expired tokens fail.
        """
        try:
            outcome = self.refresh_tokens.revoke(refresh_token)
        except NotFound:
            raise AuthFailure(REFRESH_FAILED) from None
        if outcome is RevokeOutcome.EXPIRED:
            raise AuthFailure(REFRESH_FAILED)
        logger.info("Refresh token revoked (%s)", outcome.value)

    def authenticate(self, access_token: str) -> str:
        try:
            return self.signer.verify(access_token)
        except TokenError as exc:
            logger.debug("Access token rejected: %s", exc.__class__.__name__)
            raise Unauthorized() from None

    def change_credentials(self, user: User, email: Optional[str] = None,
                           password: Optional[str] = None) -> User:
        """
        Update email and/or password. A new password revokes every open
        session in the same commit as the hash change.
        """
        if email:
            user.email = email
        if password:
            user.password_hash = self.hasher.hash(password)
        self.storage.new(user)
        try:
            # flush first so a duplicate email surfaces as IntegrityError (409)
            self.storage.get_session().flush()
            revoked = self.refresh_tokens.revoke_all_for_user(user.id, commit=False) if password else 0
            self.storage.save()
        except IntegrityError:
            self.storage.rollback()
            raise
        except SQLAlchemyError as exc:
            self.storage.rollback()
            raise StorageFailure(str(exc)) from exc
        if password:
            logger.info("Password changed for user %s, %d refresh tokens revoked", user.id, revoked)
        return user
