from .client import IdentityClient
from .credential_store import (
    SecureCredentialStore,
    InMemoryKeyValue,
    EncryptedDiskKeyValue,
    create_key_value,
)
from .exceptions import (
    SessionError,
    InvalidInputError,
    AuthRejectedError,
    ServerError,
    StorageError,
    LoginInProgressError,
)

__all__ = [
    "IdentityClient",
    "SecureCredentialStore",
    "InMemoryKeyValue",
    "EncryptedDiskKeyValue",
    "create_key_value",
    "SessionError",
    "InvalidInputError",
    "AuthRejectedError",
    "ServerError",
    "StorageError",
    "LoginInProgressError",
]
