"""Custom exception classes for the Saraha API.

Every class here is an operational error: its message is safe to return to
the client, and ``status_code`` decides the HTTP status the global handler
responds with.
"""


class SarahaError(Exception):
    """Base exception for Saraha API."""

    status_code = 500

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ValidationError(SarahaError):
    """Raised when input validation fails."""
    status_code = 400


class ResourceConflictError(SarahaError):
    """Raised when a resource already exists."""
    status_code = 409


class AuthenticationError(SarahaError):
    """Raised when authentication fails."""
    status_code = 401


class AuthorizationError(SarahaError):
    """Raised when user lacks permission."""
    status_code = 403


class ResourceNotFoundError(SarahaError):
    """Raised when a requested resource is not found."""
    status_code = 404


class RateLimitedError(SarahaError):
    """Raised when a caller exhausted its attempts."""
    status_code = 429


class DependencyError(SarahaError):
    """Raised when a downstream service (email, storage, provider) fails."""
    status_code = 500


class InvalidStateTransition(SarahaError):
    """Raised when an account is moved to a state it cannot reach."""
    status_code = 500


# ---- Auth protocol ----
class InvalidCredentialsError(AuthenticationError):
    pass


class AlreadyConfirmedError(ValidationError):
    pass


class CodeExpiredError(ValidationError):
    pass


class InvalidCodeError(ValidationError):
    pass


class TooManyAttemptsError(RateLimitedError):
    pass


class EmailDeliveryError(DependencyError):
    pass


# ---- Tokens ----
class MalformedTokenError(AuthenticationError):
    pass


class TokenInvalidError(AuthenticationError):
    pass


class TokenExpiredError(AuthenticationError):
    pass


class TokenReusedError(AuthenticationError):
    pass


# ---- Messaging ----
class InvalidTargetError(ValidationError):
    pass


# ---- Collaborators ----
class StorageError(DependencyError):
    """Raised when MinIO/storage operation fails."""
    pass


class IdentityProviderError(DependencyError):
    """Raised when the identity provider cannot be reached."""
    pass
