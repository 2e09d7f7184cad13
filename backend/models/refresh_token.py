"""Refresh token session model."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from backend.db.base import Base, utcnow


class RefreshToken(Base):
    """One live refresh session; only the sha256 of the token is stored."""
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
