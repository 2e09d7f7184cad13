"""Per-client rate limiting for credential and OTP endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.core.config import Settings

AUTH_RATE_LIMIT = "10/minute"

# Route decorators bind to this instance at import time, so there is one
# limiter per process, shared by every app built with create_app.
limiter = Limiter(key_func=get_remote_address)


def configure_limiter(settings: Settings) -> Limiter:
    """Apply RATE_LIMIT_ENABLED to the process-wide limiter.

    The most recent call wins for every app in the process.
    """
    limiter.enabled = settings.RATE_LIMIT_ENABLED
    return limiter
