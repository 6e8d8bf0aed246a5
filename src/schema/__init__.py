from .schema import (
    User,
    ProviderCredentialKind,
    GoogleAuthRequest,
    GoogleAuthResponse,
    CurrentUserResponse,
    ErrorResponse,
    DatabaseStatus,
    HealthResponse,
    LoginResult,
    VerificationStatus,
    VerificationResult,
)

__all__ = [
    "User",
    "ProviderCredentialKind",
    "GoogleAuthRequest",
    "GoogleAuthResponse",
    "CurrentUserResponse",
    "ErrorResponse",
    "DatabaseStatus",
    "HealthResponse",
    "LoginResult",
    "VerificationStatus",
    "VerificationResult",
]
