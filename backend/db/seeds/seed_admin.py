"""Seed the admin user from settings."""

from sqlalchemy.orm import Session
from backend.models.role import Role
from backend.models.user import AccountState, User
from backend.core.config import Settings
from backend.core.security import hash_password


def seed_admin(db: Session, settings: Settings) -> bool:
    """Create the confirmed admin user if not already present.

    Returns True when a user was created.
    """
    email = settings.ADMIN_EMAIL.lower()
    if db.query(User).filter(User.email == email).first():
        return False

    admin = User(
        first_name="Saraha",
        last_name="Admin",
        email=email,
        hashed_password=hash_password(settings.ADMIN_PASSWORD, settings.PASSWORD_HASH_ROUNDS),
        role=Role.ADMIN,
        account_state=AccountState.ACTIVE,
        otp_attempts=0,
        avatar_url=settings.DEFAULT_AVATAR_URL,
    )
    db.add(admin)
    db.commit()
    return True
