import hashlib
import json
import logging
import os
from typing import Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from schema import User
from .exceptions import StorageError

logger = logging.getLogger('rideshare.client.credential_store')

TOKEN_KEY = "token"
USER_KEY = "user"


class AsyncKeyValue(Protocol):
    """Minimal async string key-value interface backing the credential store."""

    async def get(self, key: str) -> Optional[str]: ...
    async def put(self, key: str, value: str) -> None: ...
    async def delete(self, key: str) -> bool: ...


class InMemoryKeyValue:
    """Process-local storage. Does not survive restarts; meant for tests and throwaway clients."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None


class EncryptedDiskKeyValue:
    """Encrypted per-installation storage, one Fernet-encrypted file per key."""

    def __init__(self, storage_path: str, encryption_key: str, namespace: str = "rideshare"):
        if not encryption_key:
            raise ValueError("Encryption key is required for encrypted disk storage")

        self._storage_path = storage_path
        self._namespace = namespace
        self._fernet = Fernet(encryption_key.encode())

        os.makedirs(storage_path, exist_ok=True, mode=0o700)

    def _get_file_path(self, key: str) -> str:
        safe_key = hashlib.sha256(f"{self._namespace}:{key}".encode()).hexdigest()
        return os.path.join(self._storage_path, f"{safe_key}.enc")

    async def get(self, key: str) -> Optional[str]:
        try:
            with open(self._get_file_path(key), 'rb') as f:
                encrypted = f.read()
        except FileNotFoundError:
            return None
        try:
            return self._fernet.decrypt(encrypted).decode('utf-8')
        except InvalidToken as e:
            raise StorageError(f"Stored entry '{key}' could not be decrypted") from e

    async def put(self, key: str, value: str) -> None:
        file_path = self._get_file_path(key)
        encrypted = self._fernet.encrypt(value.encode('utf-8'))
        with open(file_path, 'wb') as f:
            f.write(encrypted)
        os.chmod(file_path, 0o600)

    async def delete(self, key: str) -> bool:
        try:
            os.remove(self._get_file_path(key))
            return True
        except FileNotFoundError:
            return False


def create_key_value(storage_type: str = "encrypted_disk", **kwargs) -> AsyncKeyValue:
    """
    Create the key-value backend for the credential store.

    Args:
        storage_type: "memory" or "encrypted_disk".
        storage_path: Directory for encrypted_disk storage.
        encryption_key: Fernet key for encrypted_disk storage.
    """
    if storage_type == "memory":
        logger.warning("Using in-memory credential storage - sessions will not survive a restart")
        return InMemoryKeyValue()

    if storage_type == "encrypted_disk":
        storage_path = kwargs.get("storage_path")
        if not storage_path:
            raise ValueError("storage_path must be provided for encrypted_disk storage")
        return EncryptedDiskKeyValue(
            storage_path,
            kwargs.get("encryption_key") or "",
            namespace=kwargs.get("namespace", "rideshare"),
        )

    raise ValueError(f"Unknown storage_type '{storage_type}' for credential store")


class SecureCredentialStore:
    """
    Durable record of "is logged in": the bearer token and a cached user snapshot.

    Reads never raise: any failure is logged and reported as a missing entry,
    so a broken store looks like a logged-out installation. Writes raise
    `StorageError`. Removals are best-effort and only log failures.
    """

    def __init__(self, backend: AsyncKeyValue):
        self._backend = backend

    async def set_token(self, token: str) -> None:
        try:
            await self._backend.put(TOKEN_KEY, token)
        except Exception as e:
            logger.error(f"Error saving token: {e}")
            raise StorageError("Failed to save token") from e

    async def get_token(self) -> Optional[str]:
        try:
            return await self._backend.get(TOKEN_KEY)
        except Exception as e:
            logger.error(f"Error getting token: {e}")
            return None

    async def remove_token(self) -> None:
        try:
            await self._backend.delete(TOKEN_KEY)
        except Exception as e:
            logger.error(f"Error removing token: {e}")

    async def set_user(self, user: User) -> None:
        try:
            await self._backend.put(USER_KEY, user.model_dump_json())
        except Exception as e:
            logger.error(f"Error saving user: {e}")
            raise StorageError("Failed to save user") from e

    async def get_user(self) -> Optional[User]:
        try:
            user_str = await self._backend.get(USER_KEY)
            if not user_str:
                return None
            return User.model_validate(json.loads(user_str))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Stored user is corrupted, ignoring it: {e}")
            return None
        except Exception as e:
            logger.error(f"Error getting user: {e}")
            return None

    async def remove_user(self) -> None:
        try:
            await self._backend.delete(USER_KEY)
        except Exception as e:
            logger.error(f"Error removing user: {e}")

    async def clear_auth_data(self) -> None:
        """Remove both entries. A failure on one key does not stop removal of the other."""
        await self.remove_token()
        await self.remove_user()
