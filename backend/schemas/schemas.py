"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, List
from datetime import datetime

from backend.models.role import Role
from backend.models.user import Gender

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
PASSWORD_PATTERN = r"^[a-zA-Z0-9]{6,30}$"
PHONE_PATTERN = r"^[0-9]{10,15}$"


# ---- Auth ----
class SignupRequest(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=20)
    last_name: str = Field(..., min_length=2, max_length=20)
    email: EmailStr
    password: str = Field(..., pattern=PASSWORD_PATTERN)
    gender: Gender = Gender.MALE
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., pattern=PASSWORD_PATTERN)

class RefreshRequest(BaseModel):
    token: str = Field(..., min_length=1)

class VerifyEmailRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=1)

class EmailRequest(BaseModel):
    email: EmailStr

class ResetPasswordRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6)
    new_password: str = Field(..., pattern=PASSWORD_PATTERN)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password != self.new_password:
            raise ValueError("Confirm password does not match new password")
        return self

class GoogleLoginRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


# ---- User ----
class UserSummary(BaseModel):
    id: str
    email: str
    full_name: str
    role: Role

    class Config:
        from_attributes = True

class TokenPairResponse(BaseModel):
    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: Optional[UserSummary] = None

class SignupResponse(BaseModel):
    message: str
    user: UserSummary

class ProfileOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    full_name: str
    gender: Gender
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True

class ProfileResponse(BaseModel):
    message: str
    user: ProfileOut

class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=20)
    last_name: Optional[str] = Field(None, min_length=2, max_length=20)
    gender: Optional[Gender] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

class UpdatePasswordRequest(BaseModel):
    old_password: str = Field(..., pattern=PASSWORD_PATTERN)
    new_password: str = Field(..., pattern=PASSWORD_PATTERN)
    confirm_password: str

    @model_validator(mode="after")
    def check_passwords(self):
        if self.new_password == self.old_password:
            raise ValueError("New password must be different from old password")
        if self.confirm_password != self.new_password:
            raise ValueError("Confirm password does not match new password")
        return self


# ---- Message ----
class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2500)
    receiver_id: str = Field(..., pattern=OBJECT_ID_PATTERN)

class MessageOut(BaseModel):
    id: str
    content: str
    receiver_id: str
    sender_id: Optional[str] = None
    is_anonymous: bool
    is_viewed: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class MessageDataResponse(BaseModel):
    message: str
    data: MessageOut

class Pagination(BaseModel):
    total_messages: int
    total_pages: int
    current_page: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

class InboxResponse(BaseModel):
    message: str
    data: List[MessageOut]
    pagination: Pagination


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
