"""Auth API router — signup, OTP, login, refresh, password reset, logout."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backend.api.deps import get_auth_service
from backend.db.session import get_db
from backend.schemas.schemas import (
    SignupRequest, SignupResponse, LoginRequest, RefreshRequest,
    VerifyEmailRequest, EmailRequest, ResetPasswordRequest, GoogleLoginRequest,
    TokenPairResponse, UserSummary, MessageResponse,
)
from backend.services.auth_service import AuthService
from backend.core.rate_limiter import limiter, AUTH_RATE_LIMIT
from backend.core.security import require_auth
from backend.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=201)
@limiter.limit(AUTH_RATE_LIMIT)
def signup(
    request: Request,
    body: SignupRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Register a new user and email a verification code."""
    user = auth.signup(
        db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        gender=body.gender,
        phone=body.phone,
    )
    return SignupResponse(
        message="User created. Please check your email to verify account.",
        user=UserSummary.model_validate(user),
    )


@router.post("/login", response_model=TokenPairResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Authenticate and return JWT tokens."""
    result = auth.login(db, body.email, body.password)
    return TokenPairResponse(
        message="Logged in successfully",
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
        user=UserSummary.model_validate(result["user"]),
    )


@router.post("/refresh-token", response_model=TokenPairResponse)
def refresh_token(
    body: RefreshRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Rotate a refresh token into a new token pair."""
    result = auth.refresh(db, body.token)
    return TokenPairResponse(
        message="Token refreshed successfully",
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
    )


@router.post("/verify-email", response_model=MessageResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def verify_email(
    request: Request,
    body: VerifyEmailRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageResponse(message=auth.confirm_email(db, body.email, body.code))


@router.post("/resend-code", response_model=MessageResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def resend_code(
    request: Request,
    body: EmailRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageResponse(message=auth.resend_code(db, body.email))


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def forgot_password(
    request: Request,
    body: EmailRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    return MessageResponse(message=auth.forgot_password(db, body.email))


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    message = auth.reset_password(db, body.email, body.code, body.new_password)
    return MessageResponse(message=message)


@router.post("/logout", response_model=MessageResponse)
def logout(
    body: RefreshRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke the given refresh token."""
    return MessageResponse(message=auth.logout(db, body.token, user.id))


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    db: Session = Depends(get_db),
    user: User = Depends(require_auth),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke all refresh tokens."""
    return MessageResponse(message=auth.logout_all(db, user.id))


@router.post("/google", response_model=TokenPairResponse)
def login_with_google(
    body: GoogleLoginRequest,
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    result = auth.login_with_google(db, body.id_token)
    return TokenPairResponse(
        message="Logged in with Google successfully",
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
        user=UserSummary.model_validate(result["user"]),
    )
