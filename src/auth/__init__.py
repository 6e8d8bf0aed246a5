from .auth import (
    AuthConfig,
    BaseAuth,
    GoogleIdTokenAuth,
    GoogleAccessTokenAuth,
    create_auth_config,
)
from .exceptions import (
    AuthError,
    InvalidProviderCredentialError,
    ProviderUnavailableError,
    InvalidSessionTokenError,
)
from .tokens import SessionTokenService

__all__ = [
    "AuthConfig",
    "BaseAuth",
    "GoogleIdTokenAuth",
    "GoogleAccessTokenAuth",
    "create_auth_config",
    "AuthError",
    "InvalidProviderCredentialError",
    "ProviderUnavailableError",
    "InvalidSessionTokenError",
    "SessionTokenService",
]
