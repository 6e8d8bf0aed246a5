"""
Client-side configuration.

Values come from environment variables (a `.env` file is honoured):
- RIDESHARE_API_BASE_URL: backend base URL
- RIDESHARE_CREDENTIAL_STORAGE: "encrypted_disk" (default) or "memory"
- RIDESHARE_CREDENTIAL_DIR: directory of the encrypted credential files
- RIDESHARE_CREDENTIAL_KEY: Fernet key used to encrypt them
- RIDESHARE_REQUEST_TIMEOUT: optional request timeout in seconds
"""
import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from .client import IdentityClient
from .credential_store import SecureCredentialStore, create_key_value

load_dotenv()

logger = logging.getLogger('rideshare.client.config')


class ClientSettings(BaseModel):
    api_base_url: str = "http://localhost:5000"
    storage_type: str = "encrypted_disk"
    credential_dir: str = str(Path.home() / ".rideshare" / "credentials")
    credential_key: Optional[str] = None
    request_timeout: Optional[float] = None

    @classmethod
    def from_env(cls) -> "ClientSettings":
        timeout = os.getenv("RIDESHARE_REQUEST_TIMEOUT")
        settings = cls(
            api_base_url=os.getenv("RIDESHARE_API_BASE_URL", cls.model_fields["api_base_url"].default),
            storage_type=os.getenv("RIDESHARE_CREDENTIAL_STORAGE", "encrypted_disk"),
            credential_dir=os.getenv("RIDESHARE_CREDENTIAL_DIR", cls.model_fields["credential_dir"].default),
            credential_key=os.getenv("RIDESHARE_CREDENTIAL_KEY"),
            request_timeout=float(timeout) if timeout else None,
        )
        if settings.storage_type == "encrypted_disk" and not settings.credential_key:
            raise ValueError('RIDESHARE_CREDENTIAL_KEY not set in environment variables')
        return settings


def build_credential_store(settings: ClientSettings) -> SecureCredentialStore:
    backend = create_key_value(
        settings.storage_type,
        storage_path=settings.credential_dir,
        encryption_key=settings.credential_key,
    )
    logger.debug(f"Credential store backend: {settings.storage_type}")
    return SecureCredentialStore(backend)


def build_identity_client(settings: ClientSettings) -> IdentityClient:
    return IdentityClient(base_url=settings.api_base_url, timeout=settings.request_timeout)
