"""Auth service — signup, OTP confirmation, login, refresh, password reset."""

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from backend.core.config import Settings
from backend.core.exceptions import (
    AlreadyConfirmedError, AuthorizationError, CodeExpiredError,
    EmailDeliveryError, InvalidCodeError, InvalidCredentialsError,
    ResourceConflictError, ResourceNotFoundError, TooManyAttemptsError,
)
from backend.core.security import hash_password, verify_password
from backend.db.base import utcnow
from backend.models.role import Role
from backend.models.user import AccountState, Gender, User
from backend.services.email_service import EmailService, render_otp_email
from backend.services.identity_service import GoogleIdentityProvider
from backend.services.token_service import TokenService

logger = logging.getLogger("saraha.auth")


def generate_otp() -> str:
    """Random 6-digit numeric code."""
    return str(secrets.randbelow(900000) + 100000)


class AuthService:
    """Handles the account authentication protocol."""

    def __init__(
        self,
        settings: Settings,
        tokens: TokenService,
        email: EmailService,
        identity: Optional[GoogleIdentityProvider] = None,
    ):
        self.settings = settings
        self.tokens = tokens
        self.email = email
        self.identity = identity

    # ---- helpers ----
    def _find_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    def _issue_pair(self, db: Session, user: User) -> Dict[str, Any]:
        return {
            "access_token": self.tokens.issue_access_token(user),
            "refresh_token": self.tokens.issue_refresh_token(db, user),
            "user": user,
        }

    def _otp_deadline(self):
        return utcnow() + timedelta(minutes=self.settings.OTP_EXPIRY_MINUTES)

    def _send_otp(self, user: User, otp: str, subject: str, title: str) -> bool:
        html = render_otp_email(
            receiver_name=user.full_name,
            otp=otp,
            expire_minutes=self.settings.OTP_EXPIRY_MINUTES,
            title=title,
        )
        return self.email.send(to=user.email, subject=subject, html=html)

    def _resume_account(self, db: Session, user: User) -> None:
        """Auto-restore a self-frozen account; refuse a banned one."""
        if user.account_state == AccountState.FROZEN:
            user.transition_to(AccountState.ACTIVE)
            user.restored_by = user.id
            user.restored_at = utcnow()
            user.deleted_by = None
            user.deleted_at = None
            db.commit()
            logger.info("User %s restored their frozen account on login", user.id)
        elif user.account_state == AccountState.BANNED:
            raise AuthorizationError("Your account has been banned by admin.")

    # ---- signup / confirmation ----
    def signup(
        self,
        db: Session,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        gender: Gender = Gender.MALE,
        phone: Optional[str] = None,
    ) -> User:
        """Create an unconfirmed user and email them an OTP.

        If the email cannot be sent the user is removed again.
        """
        if self._find_by_email(db, email):
            raise ResourceConflictError("Email already exists")

        otp = generate_otp()
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email.lower(),
            hashed_password=hash_password(password, self.settings.PASSWORD_HASH_ROUNDS),
            gender=gender,
            phone=phone,
            role=Role.USER,
            account_state=AccountState.PENDING_CONFIRMATION,
            otp_code_hash=hash_password(otp, self.settings.OTP_HASH_ROUNDS),
            otp_expires_at=self._otp_deadline(),
            otp_attempts=0,
            avatar_url=self.settings.DEFAULT_AVATAR_URL,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        if not self._send_otp(user, otp, "Saraha App - Verify your email", "Verify Your Email"):
            db.delete(user)
            db.commit()
            raise EmailDeliveryError("Failed to send verification email.")

        logger.info("User %s signed up", user.id)
        return user

    def confirm_email(self, db: Session, email: str, code: str) -> str:
        user = self._find_by_email(db, email)
        if not user:
            raise ResourceNotFoundError("User not found")
        if user.is_confirmed:
            raise AlreadyConfirmedError("Email is already confirmed")

        max_attempts = self.settings.OTP_MAX_ATTEMPTS
        if user.otp_attempts >= max_attempts:
            raise TooManyAttemptsError("Too many failed attempts. Please request a new code.")
        if not user.otp_expires_at or user.otp_expires_at < utcnow():
            raise CodeExpiredError("Code expired. Please request a new one.")

        if not verify_password(code, user.otp_code_hash):
            user.otp_attempts += 1
            db.commit()
            raise InvalidCodeError(f"Invalid code. {max_attempts - user.otp_attempts} attempts left.")

        user.transition_to(AccountState.ACTIVE)
        user.otp_code_hash = None
        user.otp_expires_at = None
        user.otp_attempts = 0
        db.commit()
        return "Email confirmed successfully. You can login now."

    def resend_code(self, db: Session, email: str) -> str:
        user = self._find_by_email(db, email)
        if not user:
            raise ResourceNotFoundError("User not found")
        if user.is_confirmed:
            raise AlreadyConfirmedError("Email is already confirmed")

        otp = generate_otp()
        user.otp_code_hash = hash_password(otp, self.settings.OTP_HASH_ROUNDS)
        user.otp_expires_at = self._otp_deadline()
        user.otp_attempts = 0
        db.commit()

        if not self._send_otp(user, otp, "Saraha App - Verify your email", "Verify Your Email"):
            raise EmailDeliveryError("Failed to send email. Please try again later.")
        return "New code sent to your email."

    # ---- sessions ----
    def login(self, db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a token pair.

        Raises:
            InvalidCredentialsError: unknown email, unconfirmed account, or
                wrong password; the cases are not distinguished.
            AuthorizationError: account banned by an admin.
        """
        user = self._find_by_email(db, email)
        if not user or not user.is_confirmed:
            raise InvalidCredentialsError("Invalid credentials or email not confirmed")
        if not verify_password(password, user.hashed_password):
            raise InvalidCredentialsError("Invalid credentials or email not confirmed")

        self._resume_account(db, user)
        return self._issue_pair(db, user)

    def refresh(self, db: Session, raw_refresh_token: str) -> Dict[str, Any]:
        user_id = self.tokens.verify_and_rotate_refresh_token(db, raw_refresh_token)
        user = db.query(User).filter(User.id == user_id).first()
        if not user or user.is_deleted:
            raise AuthorizationError("User not found or deactivated")
        return self._issue_pair(db, user)

    def logout(self, db: Session, raw_refresh_token: str, user_id: str) -> str:
        self.tokens.revoke(db, raw_refresh_token, user_id)
        return "Logged out successfully"

    def logout_all(self, db: Session, user_id: str) -> str:
        self.tokens.revoke_all(db, user_id)
        return "Logged out from all devices successfully"

    # ---- password reset ----
    def forgot_password(self, db: Session, email: str) -> str:
        user = self._find_by_email(db, email)
        if not user or user.is_deleted:
            raise ResourceNotFoundError("Email not found or account is not active")

        code = generate_otp()
        user.password_reset_code_hash = hash_password(code, self.settings.PASSWORD_HASH_ROUNDS)
        user.password_reset_expires_at = self._otp_deadline()
        user.password_reset_attempts = 0
        user.password_reset_verified = False
        db.commit()

        if not self._send_otp(user, code, "Password Reset Code", "Password Reset Code"):
            user.password_reset_code_hash = None
            user.password_reset_expires_at = None
            user.password_reset_verified = None
            db.commit()
            raise EmailDeliveryError("Error sending email")
        return "Password reset code sent to your email"

    def reset_password(self, db: Session, email: str, code: str, new_password: str) -> str:
        user = self._find_by_email(db, email)
        if not user or user.is_deleted:
            raise ResourceNotFoundError("Email not found or account is not active")

        max_attempts = self.settings.OTP_MAX_ATTEMPTS
        if user.password_reset_attempts >= max_attempts:
            raise TooManyAttemptsError("Too many failed attempts. Please request a new code.")
        if not user.password_reset_expires_at or user.password_reset_expires_at < utcnow():
            raise CodeExpiredError("Code expired or invalid")
        if not verify_password(code, user.password_reset_code_hash):
            user.password_reset_attempts += 1
            db.commit()
            raise InvalidCodeError("Invalid code")

        user.hashed_password = hash_password(new_password, self.settings.PASSWORD_HASH_ROUNDS)
        user.password_reset_code_hash = None
        user.password_reset_expires_at = None
        user.password_reset_attempts = 0
        user.password_reset_verified = None
        self.tokens.revoke_all(db, user.id, commit=False)
        db.commit()
        logger.info("User %s reset their password", user.id)
        return "Password reset successfully"

    # ---- federated ----
    def login_with_google(self, db: Session, id_token: str) -> Dict[str, Any]:
        identity = self.identity.verify(id_token)

        user = self._find_by_email(db, identity.email)
        if user:
            if not user.google_id:
                user.google_id = identity.subject_id
            if not user.is_confirmed:
                user.transition_to(AccountState.ACTIVE)
                user.otp_code_hash = None
                user.otp_expires_at = None
                user.otp_attempts = 0
            db.commit()
            self._resume_account(db, user)
        else:
            user = User(
                first_name=(identity.given_name or "User")[:20],
                last_name=(identity.family_name or "Google")[:20],
                email=identity.email,
                google_id=identity.subject_id,
                # Random secret nobody knows: password login stays impossible
                hashed_password=hash_password(
                    secrets.token_urlsafe(32), self.settings.PASSWORD_HASH_ROUNDS
                ),
                gender=Gender.MALE,
                role=Role.USER,
                account_state=AccountState.ACTIVE,
                otp_attempts=0,
                avatar_url=identity.picture or self.settings.DEFAULT_AVATAR_URL,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info("User %s created from Google sign-in", user.id)

        return self._issue_pair(db, user)
