"""
Configuration setup for the rideshare backend.

This module handles configuration initialization including:
- Required environment variables validation
- CORS settings
- Authentication and user store construction
"""
import os
import logging
from functools import lru_cache
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel

from auth import AuthConfig, SessionTokenService, create_auth_config
from users import InMemoryUserRepository, RedisUserRepository, UserRepository
from .redis_client import get_redis_client

load_dotenv()

logger = logging.getLogger('rideshare.service.config')

REQUIRED_ENV_VARS = [
    'GOOGLE_CLIENT_ID',
    'JWT_SECRET',
]


def _split_env(name: str, default: str = "") -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class ServiceSettings(BaseModel):
    port: int = 5000
    google_client_id: str
    # Extra OAuth client ids (e.g. the Android client) whose tokens are accepted
    google_extra_audiences: List[str] = []
    jwt_secret: str
    redis_url: Optional[str] = None

    @property
    def google_audiences(self) -> List[str]:
        return [self.google_client_id, *self.google_extra_audiences]

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        missing = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]
        if missing:
            raise ValueError(f'Missing required environment variables: {", ".join(missing)}')

        logger.info("All required environment variables are defined")
        return cls(
            port=int(os.getenv("PORT", 5000)),
            google_client_id=os.environ["GOOGLE_CLIENT_ID"],
            google_extra_audiences=_split_env("GOOGLE_EXTRA_AUDIENCES"),
            jwt_secret=os.environ["JWT_SECRET"],
            redis_url=os.getenv("REDIS_URL") or None,
        )


@lru_cache
def get_service_settings() -> ServiceSettings:
    return ServiceSettings.from_env()


def get_cors_config() -> Tuple[list[str], list[str], list[str]]:
    """
    Parse and return CORS configuration from environment variables.

    Returns:
        Tuple containing (origins, methods, headers) lists
    """
    cors_allowed_origins = _split_env("CORS_ALLOWED_ORIGINS")

    # Development fallback, mirrors FRONTEND_URL defaulting to any origin
    if not cors_allowed_origins:
        logger.warning("CORS_ALLOWED_ORIGINS not set, allowing all origins")
        cors_allowed_origins = ["*"]

    cors_allowed_methods = _split_env("CORS_ALLOWED_METHODS", "GET,POST,PUT,DELETE,OPTIONS")
    cors_allowed_headers = _split_env("CORS_ALLOWED_HEADERS", "Content-Type,Authorization")

    return cors_allowed_origins, cors_allowed_methods, cors_allowed_headers


def setup_auth(settings: ServiceSettings) -> AuthConfig:
    return create_auth_config(settings.google_audiences)


def setup_token_service(settings: ServiceSettings) -> SessionTokenService:
    return SessionTokenService(settings.jwt_secret)


def setup_user_repository(settings: ServiceSettings) -> UserRepository:
    """Redis-backed user store when REDIS_URL is set, otherwise an in-memory one."""
    if settings.redis_url:
        logger.info("Using Redis user store")
        return RedisUserRepository(get_redis_client(settings.redis_url))

    logger.warning("REDIS_URL not set, using in-memory user store - users are lost on restart")
    return InMemoryUserRepository()
