"""User model and account state machine."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from backend.db.base import Base, new_object_id, utcnow
from backend.models.role import Role
from backend.core.exceptions import InvalidStateTransition


class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"


class AccountState(str, enum.Enum):
    """Lifecycle of an account.

    FROZEN means the owner deactivated the account themselves and may come
    back by logging in; BANNED means another actor (an admin) froze it.
    """

    PENDING_CONFIRMATION = "pending_confirmation"
    ACTIVE = "active"
    FROZEN = "frozen"
    BANNED = "banned"

    def can_transition_to(self, target: "AccountState") -> bool:
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    AccountState.PENDING_CONFIRMATION: {AccountState.ACTIVE},
    AccountState.ACTIVE: {AccountState.FROZEN, AccountState.BANNED},
    AccountState.FROZEN: {AccountState.ACTIVE, AccountState.BANNED},
    AccountState.BANNED: {AccountState.ACTIVE},
}


class User(Base):
    """Platform user; receives messages and owns refresh sessions."""
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    first_name = Column(String(20), nullable=False)
    last_name = Column(String(20), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    gender = Column(Enum(Gender, native_enum=False, length=10), default=Gender.MALE, nullable=False)
    phone = Column(String(15), nullable=True)
    role = Column(Enum(Role, native_enum=False, length=10), default=Role.USER, nullable=False)
    account_state = Column(
        Enum(AccountState, native_enum=False, length=32),
        default=AccountState.PENDING_CONFIRMATION,
        nullable=False,
        index=True,
    )

    # Email confirmation OTP
    otp_code_hash = Column(String(255), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)

    # Password reset OTP
    password_reset_code_hash = Column(String(255), nullable=True)
    password_reset_expires_at = Column(DateTime, nullable=True)
    password_reset_attempts = Column(Integer, default=0, nullable=False)
    password_reset_verified = Column(Boolean, nullable=True)

    # Freeze / restore audit
    deleted_by = Column(String(24), nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    restored_by = Column(String(24), nullable=True)
    restored_at = Column(DateTime, nullable=True)

    avatar_url = Column(String(500), nullable=True)
    avatar_storage_id = Column(String(500), nullable=True)
    google_id = Column(String(255), unique=True, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_confirmed(self) -> bool:
        return self.account_state != AccountState.PENDING_CONFIRMATION

    @property
    def is_deleted(self) -> bool:
        return self.account_state in (AccountState.FROZEN, AccountState.BANNED)

    @property
    def is_active(self) -> bool:
        return self.account_state == AccountState.ACTIVE

    def transition_to(self, target: AccountState) -> None:
        """Move the account to ``target`` or raise InvalidStateTransition."""
        current = self.account_state
        if not current.can_transition_to(target):
            raise InvalidStateTransition(
                f"Account cannot move from {current.value} to {target.value}"
            )
        self.account_state = target
