"""Service providers for route dependencies."""

from fastapi import Depends, Request

from backend.core.config import Settings
from backend.core.security import get_settings, get_token_service
from backend.services.auth_service import AuthService
from backend.services.token_service import TokenService
from backend.services.user_service import UserService


def get_auth_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(
        settings,
        tokens,
        email=request.app.state.email_service,
        identity=request.app.state.identity_provider,
    )


def get_user_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> UserService:
    return UserService(settings, tokens, storage=request.app.state.avatar_storage)
