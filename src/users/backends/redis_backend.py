import logging
from datetime import datetime
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
from redis import RedisError, ConnectionError as RedisConnectionError
from pydantic import ValidationError

from ..models import UserRecord
from ..repository import UserRepositoryError

logger = logging.getLogger(__name__)


def _to_redis_mapping(user: UserRecord) -> Dict[str, str]:
    # Note: Check bool BEFORE int since bool is a subclass of int in Python
    mapping = {}
    for k, v in user.model_dump().items():
        if v is None:
            continue
        if isinstance(v, bool):
            mapping[k] = "true" if v else "false"
        elif isinstance(v, datetime):
            mapping[k] = v.isoformat()
        else:
            mapping[k] = str(v)
    return mapping


class RedisUserRepository:
    """Users stored as one Redis hash each, with a unique email -> id index."""

    backend_name = "redis"

    def __init__(self, redis_client: aioredis.Redis, key_prefix: str = "rideshare:user"):
        self.redis_client = redis_client
        self.key_prefix = key_prefix

    def _user_key(self, user_id: str) -> str:
        return f"{self.key_prefix}:{user_id}"

    def _email_key(self, email: str) -> str:
        return f"{self.key_prefix}:email:{email.lower()}"

    def _handle_redis_error(self, operation: str, subject: str, error: Exception) -> None:
        """Centralized error handling for Redis operations."""
        if isinstance(error, RedisConnectionError):
            logger.error(f"Redis connection failed during {operation} for {subject}: {error}")
            raise UserRepositoryError(f"Database connection error during {operation}") from error
        elif isinstance(error, RedisError):
            logger.error(f"Redis error during {operation} for {subject}: {error}")
            raise UserRepositoryError(f"Database error during {operation}") from error
        else:
            logger.error(f"Unexpected error during {operation} for {subject}: {error}")
            raise UserRepositoryError(f"Unexpected error during {operation}") from error

    def _parse(self, user_id: str, data: Dict[str, Any]) -> UserRecord:
        try:
            return UserRecord.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid user data found for user {user_id}: {e}")
            raise UserRepositoryError("Corrupted user data")

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        try:
            data = await self.redis_client.hgetall(self._user_key(user_id))  # type: ignore[misc]
        except RedisError as e:
            self._handle_redis_error("user read", user_id, e)
            raise  # Never reached, but helps type checker
        if not data:
            return None
        return self._parse(user_id, data)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        try:
            user_id = await self.redis_client.get(self._email_key(email))
        except RedisError as e:
            self._handle_redis_error("user lookup", email, e)
            raise  # Never reached, but helps type checker
        if not user_id:
            return None
        return await self.find_by_id(user_id)

    async def save(self, user: UserRecord) -> UserRecord:
        try:
            claimed = await self.redis_client.set(self._email_key(user.email), user.id, nx=True)
            if not claimed:
                owner = await self.redis_client.get(self._email_key(user.email))
                if owner != user.id:
                    raise UserRepositoryError(f"Email {user.email} already belongs to another user")

            await self.redis_client.hset(self._user_key(user.id), mapping=_to_redis_mapping(user))  # type: ignore[misc]
            logger.debug(f"User {user.id} saved successfully")
            return user
        except UserRepositoryError:
            raise
        except (RedisError, ValueError) as e:
            self._handle_redis_error("user save", user.id, e)
            raise  # Never reached, but helps type checker

    async def ping(self) -> bool:
        try:
            return bool(await self.redis_client.ping())  # type: ignore[misc]
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
