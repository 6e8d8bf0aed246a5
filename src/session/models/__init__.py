from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schema import User


class SessionState(str, Enum):
    RESTORING = "restoring"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class Session(BaseModel):
    """Immutable snapshot of the client session handed to the presentation layer."""

    model_config = ConfigDict(frozen=True)

    user: Optional[User] = None
    session_token: Optional[str] = None
    is_restoring: bool = Field(default=True, description="True until the first restore attempt has resolved")
    is_refreshing: bool = Field(default=False, description="True while a background verification is in flight")

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.session_token is not None

    @property
    def state(self) -> SessionState:
        if self.is_authenticated:
            return SessionState.AUTHENTICATED
        if self.is_restoring:
            return SessionState.RESTORING
        return SessionState.ANONYMOUS
