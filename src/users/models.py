import secrets
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from schema import User


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_user_id() -> str:
    # 24 hex characters, same shape as the document ids the mobile client already stores
    return secrets.token_hex(12)


class UserRecord(BaseModel):
    id: str = Field(default_factory=new_user_id, description="Unique identifier of the user")
    google_id: Optional[str] = Field(default=None, description="Google subject identifier, unique when set")
    name: str
    email: str = Field(description="Unique, lower-cased email address")
    photo: Optional[str] = None
    provider: str = "google"
    is_rider: bool = True
    is_passenger: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def touch(self):
        self.updated_at = _now()

    def get_safe_user(self) -> User:
        """Public view of the record, without provider ids or timestamps."""
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            photo=self.photo,
            is_rider=self.is_rider,
            is_passenger=self.is_passenger,
        )
