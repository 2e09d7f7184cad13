"""Message service — send, inbox, read, soft delete."""

import math
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from backend.core.exceptions import (
    AuthorizationError, InvalidTargetError, ResourceNotFoundError,
)
from backend.models.message import Message
from backend.models.user import User


class MessageService:
    """Direct messages addressed to a receiver, optionally anonymous."""

    @staticmethod
    def send(db: Session, receiver_id: str, sender_id: Optional[str], content: str) -> Message:
        receiver = db.query(User).filter(User.id == receiver_id).first()
        if not receiver or not receiver.is_active:
            raise ResourceNotFoundError("Receiver not found")

        if sender_id and sender_id == receiver_id:
            raise InvalidTargetError("You cannot send a message to yourself")

        message = Message(
            receiver_id=receiver_id,
            sender_id=sender_id or None,
            content=content,
            is_anonymous=not sender_id,
            is_viewed=False,
            is_deleted=False,
        )
        db.add(message)
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def list_inbox(db: Session, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Receiver's visible messages, newest first, with pagination info."""
        query = db.query(Message).filter(
            Message.receiver_id == user_id,
            Message.is_deleted.is_(False),
        )

        total = query.count()
        messages = (
            query.order_by(Message.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        total_pages = math.ceil(total / limit)

        return {
            "messages": messages,
            "pagination": {
                "total_messages": total,
                "total_pages": total_pages,
                "current_page": page,
                "items_per_page": limit,
                "has_next_page": page < total_pages,
                "has_prev_page": page > 1,
            },
        }

    @staticmethod
    def _get_own_message(db: Session, message_id: str, user_id: str, action: str) -> Message:
        message = db.query(Message).filter(Message.id == message_id).first()
        if not message or message.is_deleted:
            raise ResourceNotFoundError("Message not found")
        if message.receiver_id != user_id:
            raise AuthorizationError(f"You are not authorized to {action} this message")
        return message

    @staticmethod
    def mark_read(db: Session, message_id: str, user_id: str) -> Message:
        message = MessageService._get_own_message(db, message_id, user_id, "view")
        message.is_viewed = True
        db.commit()
        db.refresh(message)
        return message

    @staticmethod
    def soft_delete(db: Session, message_id: str, user_id: str) -> str:
        message = MessageService._get_own_message(db, message_id, user_id, "delete")
        message.is_deleted = True
        db.commit()
        return "Message deleted successfully"


message_service = MessageService()
