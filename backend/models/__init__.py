"""Models package — import all models so metadata.create_all can discover them."""

from backend.models.role import Role
from backend.models.user import User, AccountState, Gender
from backend.models.refresh_token import RefreshToken
from backend.models.message import Message

__all__ = [
    "Role", "User", "AccountState", "Gender",
    "RefreshToken", "Message",
]
