"""Token service — JWT issuing, verification, and refresh rotation."""

import enum
import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from backend.core.config import Settings
from backend.core.exceptions import (
    MalformedTokenError, TokenExpiredError, TokenInvalidError, TokenReusedError,
)
from backend.db.base import utcnow
from backend.models.refresh_token import RefreshToken
from backend.models.role import Role
from backend.models.user import User

logger = logging.getLogger("saraha.tokens")


class TokenKind(enum.Enum):
    """Signing key slot: one per role and token kind."""

    USER_ACCESS = "user_access"
    USER_REFRESH = "user_refresh"
    ADMIN_ACCESS = "admin_access"
    ADMIN_REFRESH = "admin_refresh"

    @classmethod
    def for_role(cls, role: Role, refresh: bool) -> "TokenKind":
        if role == Role.ADMIN:
            return cls.ADMIN_REFRESH if refresh else cls.ADMIN_ACCESS
        return cls.USER_REFRESH if refresh else cls.USER_ACCESS


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode()).hexdigest()


class TokenService:
    """Mints access/refresh tokens and keeps the refresh session table."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._secrets = {
            TokenKind.USER_ACCESS: settings.ACCESS_JWT_SECRET_USER,
            TokenKind.USER_REFRESH: settings.REFRESH_JWT_SECRET_USER,
            TokenKind.ADMIN_ACCESS: settings.ACCESS_JWT_SECRET_ADMIN,
            TokenKind.ADMIN_REFRESH: settings.REFRESH_JWT_SECRET_ADMIN,
        }

    def secret_for(self, kind: TokenKind) -> str:
        return self._secrets[kind]

    def issue_access_token(self, user: User) -> str:
        """Create a short-lived, stateless access token."""
        expire = utcnow() + timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRY_MINUTES)
        claims = {"id": user.id, "role": Role(user.role).value, "exp": expire}
        kind = TokenKind.for_role(Role(user.role), refresh=False)
        return jwt.encode(claims, self.secret_for(kind), algorithm=self.settings.JWT_ALGORITHM)

    def issue_refresh_token(self, db: Session, user: User) -> str:
        """Create a refresh token and persist its hash as a new session.

        Returns the raw token; it is never stored.
        """
        created_at = utcnow()
        expires_at = created_at + timedelta(days=self.settings.REFRESH_TOKEN_EXPIRY_DAYS)
        claims = {
            "id": user.id,
            "role": Role(user.role).value,
            # Two tokens minted in the same second must still hash differently
            "jti": secrets.token_hex(8),
            "exp": expires_at,
        }
        kind = TokenKind.for_role(Role(user.role), refresh=True)
        raw_token = jwt.encode(claims, self.secret_for(kind), algorithm=self.settings.JWT_ALGORITHM)

        self.purge_expired(db, commit=False)
        db.add(RefreshToken(
            user_id=user.id,
            token_hash=hash_token(raw_token),
            created_at=created_at,
            expires_at=expires_at,
        ))
        db.commit()
        return raw_token

    def _decode(self, token: str, refresh: bool) -> Dict[str, Any]:
        """Pick the secret from the unverified role claim, then verify."""
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError:
            raise MalformedTokenError("Invalid token structure")

        role_value = unverified.get("role")
        if not role_value or not unverified.get("id"):
            raise MalformedTokenError("Invalid token structure")
        try:
            role = Role(role_value)
        except ValueError:
            raise MalformedTokenError("Invalid token structure")

        kind = TokenKind.for_role(role, refresh=refresh)
        try:
            return jwt.decode(
                token, self.secret_for(kind), algorithms=[self.settings.JWT_ALGORITHM]
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token expired, please login again")
        except JWTError as e:
            logger.debug("JWT verification failed: %s", e)
            raise TokenInvalidError("Invalid token signature")

    def verify_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, refresh=False)

    def verify_and_rotate_refresh_token(self, db: Session, raw_token: str) -> str:
        """Consume a refresh token and return its user id.

        The session row is removed with one conditional DELETE, so two
        concurrent rotations of the same token cannot both succeed.
        """
        payload = self._decode(raw_token, refresh=True)
        user_id = payload["id"]

        deleted = (
            db.query(RefreshToken)
            .filter(
                RefreshToken.user_id == user_id,
                RefreshToken.token_hash == hash_token(raw_token),
                RefreshToken.expires_at > utcnow(),
            )
            .delete(synchronize_session=False)
        )
        db.commit()

        if not deleted:
            logger.warning("Refresh token reuse or unknown session for user %s", user_id)
            raise TokenReusedError("Refresh token is not valid or reused!")
        return user_id

    def revoke(self, db: Session, raw_token: str, user_id: str) -> None:
        """Delete one session; missing sessions are ignored."""
        db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.token_hash == hash_token(raw_token),
        ).delete(synchronize_session=False)
        db.commit()

    def revoke_all(self, db: Session, user_id: str, commit: bool = True) -> int:
        """Delete every session of a user."""
        count = (
            db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id)
            .delete(synchronize_session=False)
        )
        if commit:
            db.commit()
        return count

    def purge_expired(self, db: Session, commit: bool = True) -> int:
        """Delete sessions past their absolute expiry."""
        count = (
            db.query(RefreshToken)
            .filter(RefreshToken.expires_at <= utcnow())
            .delete(synchronize_session=False)
        )
        if commit:
            db.commit()
        return count
