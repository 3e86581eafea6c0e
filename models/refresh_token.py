"""
RefreshToken model: one row per opaque refresh token handed to a client.
Fields:
- token_hash: SHA-256 hex of the opaque secret (the secret itself is never stored)
- user_id (String(36)) - FK to users.id, cascades on delete
- expires_at, revoked_at (null while usable), created_at
"""
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base, as_utc


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"
    __private__ = ("token_hash",)

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (Index("ix_refresh_tokens_user_revoked", "user_id", "revoked_at"),)

    def remaining(self, now: datetime) -> timedelta:
        return as_utc(self.expires_at) - now

    def __repr__(self):
        return f"<RefreshToken id={self.id} user_id={self.user_id} revoked={self.revoked_at is not None}>"
