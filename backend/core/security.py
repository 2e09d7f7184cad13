"""Password hashing, bearer-token authentication, and RBAC helpers."""

import logging
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from backend.core.config import Settings
from backend.core.exceptions import AuthenticationError, AuthorizationError
from backend.db.session import get_db
from backend.models.role import Role
from backend.models.user import User
from backend.services.token_service import TokenService

logger = logging.getLogger("saraha.security")

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password (or OTP code) using bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash; a missing hash never matches."""
    if not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)


def _resolve_user(token: str, db: Session, tokens: TokenService) -> User:
    payload = tokens.verify_access_token(token)
    user = db.query(User).filter(User.id == payload["id"]).first()
    if not user or not user.is_active:
        raise AuthenticationError(
            "The user belonging to this token no longer exists or freezed"
        )
    return user


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """Resolve the bearer token to an active user or fail with 401."""
    if credentials is None:
        raise AuthenticationError("Not authorized, no token provided")
    return _resolve_user(credentials.credentials, db, tokens)


def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[User]:
    """Like require_auth, but anonymous callers get None.

    A token that is present but bad still fails.
    """
    if credentials is None:
        return None
    return _resolve_user(credentials.credentials, db, tokens)


class RequireRole:
    """Dependency that checks the authenticated user's role."""

    def __init__(self, *roles: Role):
        self.roles = set(roles)

    def __call__(self, user: Optional[User] = Depends(optional_auth)) -> User:
        return self.check(user)

    def check(self, user: Optional[User]) -> User:
        if user is None:
            raise AuthenticationError("User not authenticated. Please login first.")
        if Role(user.role) not in self.roles:
            raise AuthorizationError("You do not have permission to perform this action")
        return user


# Convenience dependency
require_admin = RequireRole(Role.ADMIN)
