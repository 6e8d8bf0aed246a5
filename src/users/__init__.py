"""Server-side user records and their persistence."""

from .models import UserRecord
from .repository import (
    UserRepository,
    UserRepositoryError,
    InMemoryUserRepository,
    sync_user_from_identity,
)
from .backends.redis_backend import RedisUserRepository

__all__ = [
    "UserRecord",
    "UserRepository",
    "UserRepositoryError",
    "InMemoryUserRepository",
    "RedisUserRepository",
    "sync_user_from_identity",
]
