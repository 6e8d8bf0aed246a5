class SessionError(Exception):
    """Base class for errors raised by the rideshare client."""


class InvalidInputError(SessionError):
    """The caller supplied no usable credential; nothing was sent to the backend."""


class AuthRejectedError(SessionError):
    """The backend (or the identity provider behind it) rejected the credential with HTTP 401."""


class ServerError(SessionError):
    """
    Indeterminate failure: network error, timeout, unexpected status or
    malformed payload. Never evidence that a session is invalid.
    """

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class StorageError(SessionError):
    """The credential store could not persist or remove an entry."""


class LoginInProgressError(SessionError):
    """A login is already running; concurrent logins are rejected."""
