"""Message model."""

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from backend.db.base import Base, new_object_id, utcnow


class Message(Base):
    """A note addressed to one receiver; sender_id is NULL when anonymous."""
    __tablename__ = "messages"

    id = Column(String(24), primary_key=True, default=new_object_id)
    content = Column(Text, nullable=False)
    receiver_id = Column(String(24), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    is_anonymous = Column(Boolean, default=True, nullable=False)
    is_viewed = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
