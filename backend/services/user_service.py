"""User service — profile, password change, freeze/restore/delete, avatar."""

import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import UploadFile
from sqlalchemy import or_
from sqlalchemy.orm import Session

from backend.core.config import Settings
from backend.core.exceptions import (
    AuthorizationError, ResourceNotFoundError, StorageError, ValidationError,
)
from backend.core.security import hash_password, verify_password
from backend.db.base import utcnow
from backend.models.message import Message
from backend.models.user import AccountState, User
from backend.services.storage_service import AvatarStorage
from backend.services.token_service import TokenService

logger = logging.getLogger("saraha.users")

ALLOWED_IMAGE_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@contextmanager
def temporary_upload(content: bytes, suffix: str) -> Iterator[str]:
    """Write bytes to a temp file and remove it on exit, whatever happens."""
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        tmp.write(content)
        tmp_path = tmp.name
    try:
        yield tmp_path
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class UserService:
    """Account lifecycle operations on existing users."""

    def __init__(
        self,
        settings: Settings,
        tokens: TokenService,
        storage: Optional[AvatarStorage] = None,
    ):
        self.settings = settings
        self.tokens = tokens
        self.storage = storage

    def get_user(self, db: Session, user_id: str) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    def get_profile(self, db: Session, user_id: str, is_me: bool = False) -> dict:
        """Public profile; the owner also sees email and phone."""
        user = self.get_user(db, user_id)
        if not is_me and not user.is_active:
            raise ResourceNotFoundError("User not found")

        profile = {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "full_name": user.full_name,
            "gender": user.gender,
            "avatar_url": user.avatar_url,
        }
        if is_me:
            profile["email"] = user.email
            profile["phone"] = user.phone
        return profile

    def update_profile(self, db: Session, user_id: str, **changes) -> User:
        user = self.get_user(db, user_id)
        for field in ("first_name", "last_name", "gender", "phone"):
            value = changes.get(field)
            if value is not None:
                setattr(user, field, value)
        db.commit()
        db.refresh(user)
        return user

    def update_password(self, db: Session, user_id: str, old_password: str, new_password: str) -> str:
        user = self.get_user(db, user_id)
        if not verify_password(old_password, user.hashed_password):
            raise ValidationError("Incorrect old password")

        user.hashed_password = hash_password(new_password, self.settings.PASSWORD_HASH_ROUNDS)
        self.tokens.revoke_all(db, user.id, commit=False)
        db.commit()
        return "Password updated successfully"

    # ---- freeze / restore / delete ----
    def freeze(self, db: Session, target_id: str, actor_id: str, is_admin: bool) -> str:
        """Deactivate an account (self) or ban it (admin on someone else)."""
        is_self = target_id == actor_id
        if not is_self and not is_admin:
            raise AuthorizationError("Not authorized account")

        target_state = AccountState.FROZEN if is_self else AccountState.BANNED
        user = db.query(User).filter(User.id == target_id).first()
        if not user or not user.account_state.can_transition_to(target_state):
            raise ResourceNotFoundError("User not found or already frozen")

        user.transition_to(target_state)
        user.deleted_by = actor_id
        user.deleted_at = utcnow()
        user.restored_by = None
        user.restored_at = None
        self.tokens.revoke_all(db, user.id, commit=False)
        db.commit()

        logger.info("User %s frozen by %s (%s)", target_id, actor_id, target_state.value)
        return "Account deactivated successfully" if is_self else "User banned successfully"

    def restore(self, db: Session, target_id: str, actor_id: str) -> str:
        user = db.query(User).filter(User.id == target_id).first()
        if not user or not user.is_deleted:
            raise ResourceNotFoundError("User not found or already active")

        user.transition_to(AccountState.ACTIVE)
        user.restored_by = actor_id
        user.restored_at = utcnow()
        user.deleted_by = None
        user.deleted_at = None
        db.commit()

        logger.info("User %s restored by %s", target_id, actor_id)
        return "Account activated successfully"

    def delete_account(self, db: Session, target_id: str) -> str:
        """Hard-delete a frozen account together with its sessions and messages."""
        user = db.query(User).filter(User.id == target_id).first()
        if not user or not user.is_deleted:
            raise ResourceNotFoundError("User not found")

        db.query(Message).filter(
            or_(Message.receiver_id == target_id, Message.sender_id == target_id)
        ).delete(synchronize_session=False)
        self.tokens.revoke_all(db, target_id, commit=False)
        db.delete(user)
        db.commit()

        logger.info("User %s deleted with all associated data", target_id)
        return "User and all associated data deleted successfully"

    # ---- avatar ----
    def upload_avatar(self, db: Session, user_id: str, upload: UploadFile) -> User:
        """Replace the user's profile picture.

        The previous object is removed only once the new one is stored and
        the row points at it.
        """
        suffix = ALLOWED_IMAGE_TYPES.get(upload.content_type or "")
        if suffix is None:
            raise ValidationError("Invalid file format")

        content = upload.file.read()
        if not content:
            raise ValidationError("Please upload an image")
        if len(content) > self.settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
            raise ValidationError(f"Image exceeds {self.settings.MAX_UPLOAD_SIZE_MB} MB")

        user = self.get_user(db, user_id)
        previous_id = user.avatar_storage_id
        with temporary_upload(content, suffix) as tmp_path:
            stored = self.storage.upload_image(tmp_path, self.settings.AVATAR_FOLDER, upload.content_type)

        user.avatar_url = stored.url
        user.avatar_storage_id = stored.storage_id
        db.commit()
        db.refresh(user)

        if previous_id:
            try:
                self.storage.delete_image(previous_id)
            except StorageError as e:
                logger.warning("Orphaned avatar %s for user %s: %s", previous_id, user.id, e.message)
        return user
