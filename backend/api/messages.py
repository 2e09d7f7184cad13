"""Messages API router — send (optionally anonymous), inbox, read, delete."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from backend.db.session import get_db
from backend.schemas.schemas import (
    OBJECT_ID_PATTERN, SendMessageRequest, MessageOut, MessageDataResponse,
    InboxResponse, MessageResponse,
)
from backend.services.message_service import message_service
from backend.core.security import require_auth, optional_auth
from backend.models.user import User

router = APIRouter(prefix="/messages", tags=["messages"])

MessageId = Annotated[str, Path(pattern=OBJECT_ID_PATTERN)]


@router.post("", response_model=MessageDataResponse, status_code=201)
def send_message(
    body: SendMessageRequest,
    db: Session = Depends(get_db),
    sender: Optional[User] = Depends(optional_auth),
):
    """Send a message; without a token the message is anonymous."""
    message = message_service.send(
        db, body.receiver_id, sender.id if sender else None, body.content
    )
    return MessageDataResponse(
        message="Message sent successfully",
        data=MessageOut.model_validate(message),
    )


@router.get("", response_model=InboxResponse)
def get_inbox(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
):
    result = message_service.list_inbox(db, user.id, page, limit)
    return InboxResponse(
        message="Messages fetched successfully",
        data=[MessageOut.model_validate(m) for m in result["messages"]],
        pagination=result["pagination"],
    )


@router.patch("/{message_id}/read", response_model=MessageDataResponse)
def mark_message_as_read(
    message_id: MessageId,
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
):
    message = message_service.mark_read(db, message_id, user.id)
    return MessageDataResponse(
        message="Message marked as read",
        data=MessageOut.model_validate(message),
    )


@router.delete("/{message_id}/delete", response_model=MessageResponse)
def delete_message(
    message_id: MessageId,
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
):
    return MessageResponse(message=message_service.soft_delete(db, message_id, user.id))
