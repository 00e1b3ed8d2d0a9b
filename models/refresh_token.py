"""
RefreshToken model: one row per issued refresh token.
Fields:
- token (primary key) - 64 hex chars, opaque
- user_id (String(36)) - FK to users.id
- created_at, expires_at
- revoked_at (null while the token is usable)

Rows are kept after revocation as an audit trail.
"""
from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from models.base_model import Base, ensure_utc


class TokenState(enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (Index("idx_refresh_tokens_user", "user_id", "revoked_at"),)

    def state(self, now: datetime) -> TokenState:
        """Lifecycle state at `now`. Revocation wins over expiry."""
        if self.revoked_at is not None:
            return TokenState.REVOKED
        if ensure_utc(now) >= ensure_utc(self.expires_at):
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    def is_active(self, now: datetime) -> bool:
        return self.state(now) is TokenState.ACTIVE

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} revoked={self.revoked_at is not None}>"
