import logging
from typing import Dict, Optional, Protocol

from auth.schema import GoogleIdentity
from .models import UserRecord

logger = logging.getLogger('rideshare.users.repository')


class UserRepositoryError(Exception):
    """The user store failed to read or write a record."""


class UserRepository(Protocol):
    backend_name: str

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]: ...
    async def find_by_email(self, email: str) -> Optional[UserRecord]: ...
    async def save(self, user: UserRecord) -> UserRecord: ...
    async def ping(self) -> bool: ...


class InMemoryUserRepository:
    """Process-local user store for development and tests."""

    backend_name = "memory"

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}
        self._ids_by_email: Dict[str, str] = {}

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        user_id = self._ids_by_email.get(email.lower())
        return await self.find_by_id(user_id) if user_id else None

    async def save(self, user: UserRecord) -> UserRecord:
        owner = self._ids_by_email.get(user.email)
        if owner is not None and owner != user.id:
            raise UserRepositoryError(f"Email {user.email} already belongs to another user")

        previous = self._users.get(user.id)
        if previous is not None and previous.email != user.email:
            self._ids_by_email.pop(previous.email, None)

        self._users[user.id] = user.model_copy(deep=True)
        self._ids_by_email[user.email] = user.id
        return user

    async def ping(self) -> bool:
        return True


async def sync_user_from_identity(repository: UserRepository, identity: GoogleIdentity) -> UserRecord:
    """
    Find the user for a verified Google identity, creating it on first sign-in.

    An existing user gets its Google id replaced when it differs, and its name
    and photo replaced only when Google supplies a non-empty, different value.
    """
    user = await repository.find_by_email(identity.email)

    if user is None:
        user = UserRecord(
            google_id=identity.google_id,
            email=identity.email,
            name=identity.name or '',
            photo=identity.photo,
            provider='google',
        )
        logger.info(f"Creating user for {identity.email}")
    else:
        if user.google_id != identity.google_id:
            user.google_id = identity.google_id
        if identity.name and user.name != identity.name:
            user.name = identity.name
        if identity.photo and user.photo != identity.photo:
            user.photo = identity.photo
        user.touch()

    return await repository.save(user)
