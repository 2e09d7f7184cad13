"""Users API router — profiles, password, avatar, account lifecycle."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, UploadFile
from sqlalchemy.orm import Session

from backend.api.deps import get_user_service
from backend.db.session import get_db
from backend.schemas.schemas import (
    OBJECT_ID_PATTERN, ProfileOut, ProfileResponse, UpdateProfileRequest,
    UpdatePasswordRequest, MessageResponse,
)
from backend.services.user_service import UserService
from backend.core.security import require_auth, require_admin
from backend.models.role import Role
from backend.models.user import User

router = APIRouter(prefix="/users", tags=["users"])

UserId = Annotated[str, Path(pattern=OBJECT_ID_PATTERN, description="24-hex user id")]


@router.get("/profile/me", response_model=ProfileResponse)
def get_my_profile(
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    profile = users.get_profile(db, user.id, is_me=True)
    return ProfileResponse(message="User profile fetched successfully", user=profile)


@router.get("/profile/{user_id}", response_model=ProfileResponse, response_model_exclude_none=True)
def get_profile(
    user_id: UserId,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    profile = users.get_profile(db, user_id)
    return ProfileResponse(message="User profile fetched successfully", user=profile)


@router.patch("/profile", response_model=ProfileResponse)
def update_profile(
    body: UpdateProfileRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    updated = users.update_profile(db, user.id, **body.model_dump(exclude_unset=True))
    return ProfileResponse(
        message="Profile updated successfully",
        user=ProfileOut.model_validate(updated),
    )


@router.patch("/profile-pic", response_model=ProfileResponse)
def upload_profile_pic(
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    updated = users.upload_avatar(db, user.id, image)
    return ProfileResponse(
        message="Profile picture updated successfully",
        user=ProfileOut.model_validate(updated),
    )


@router.patch("/update-password", response_model=MessageResponse)
def update_password(
    body: UpdatePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    message = users.update_password(db, user.id, body.old_password, body.new_password)
    return MessageResponse(message=message)


@router.patch("/freeze-account", response_model=MessageResponse)
def freeze_own_account(
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    users: UserService = Depends(get_user_service),
):
    message = users.freeze(db, user.id, user.id, is_admin=Role(user.role) == Role.ADMIN)
    return MessageResponse(message=message)


@router.patch("/freeze-account/{user_id}", response_model=MessageResponse)
def freeze_account(
    user_id: UserId,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """Ban another account (admin only)."""
    return MessageResponse(message=users.freeze(db, user_id, admin.id, is_admin=True))


@router.patch("/restore-account/{user_id}", response_model=MessageResponse)
def restore_account(
    user_id: UserId,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return MessageResponse(message=users.restore(db, user_id, admin.id))


@router.delete("/delete-account/{user_id}", response_model=MessageResponse)
def delete_account(
    user_id: UserId,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    return MessageResponse(message=users.delete_account(db, user_id))
