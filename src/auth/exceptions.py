class AuthError(Exception):
    """Base class for backend authentication errors."""


class InvalidProviderCredentialError(AuthError):
    """The Google credential is invalid, expired, for the wrong audience, or lacks an email."""

    def __init__(self, message: str, public_message: str = "Invalid or expired Google token"):
        super().__init__(message)
        self.public_message = public_message


class ProviderUnavailableError(AuthError):
    """Google could not be reached or answered unexpectedly; says nothing about the credential."""


class InvalidSessionTokenError(AuthError):
    """The backend session token is missing, malformed, expired or badly signed."""
