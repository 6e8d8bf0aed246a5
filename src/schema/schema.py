from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class User(BaseModel):
    """Authenticated person, as exchanged between the backend and the client."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(
        description="Unique identifier of the user.",
        examples=["665f1c2e9b1e8a0012ab34cd"],
    )
    name: str = Field(
        description="Display name.",
        examples=["Ada Lovelace"],
    )
    email: str = Field(
        description="Email address, unique per user.",
        examples=["ada@example.com"],
    )
    photo: str | None = Field(
        description="Profile photo URL supplied by the identity provider.",
        default=None,
    )
    is_rider: bool = Field(
        description="Whether the user can offer rides.",
        default=True,
    )
    is_passenger: bool = Field(
        description="Whether the user can request rides.",
        default=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_mongo_style_id(cls, data: Any) -> Any:
        # The backend sends both `_id` and `id`; older payloads only carry `_id`
        if isinstance(data, dict) and "id" not in data and "_id" in data:
            data = {**data, "id": data["_id"]}
        return data

    def to_wire(self) -> dict[str, Any]:
        """Safe user shape returned by the backend (`_id` and `id` both set)."""
        payload = self.model_dump()
        return {"_id": payload["id"], **payload}


class ProviderCredentialKind(str, Enum):
    ID_TOKEN = "id_token"
    ACCESS_TOKEN = "access_token"


class GoogleAuthRequest(BaseModel):
    """Body of `POST /auth/google`. Exactly one credential is expected."""

    idToken: str | None = Field(default=None, description="Google ID token (JWT).")
    accessToken: str | None = Field(default=None, description="Google OAuth access token.")

    def credential(self) -> tuple[ProviderCredentialKind, str] | None:
        if self.idToken:
            return ProviderCredentialKind.ID_TOKEN, self.idToken
        if self.accessToken:
            return ProviderCredentialKind.ACCESS_TOKEN, self.accessToken
        return None


class GoogleAuthResponse(BaseModel):
    success: bool = True
    token: str = Field(description="Backend-issued session token.")
    user: User


class CurrentUserResponse(BaseModel):
    success: bool = True
    user: User


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class DatabaseStatus(BaseModel):
    backend: Literal["memory", "redis"]
    connected: bool


class HealthResponse(BaseModel):
    server: str = "running"
    database: DatabaseStatus
    timestamp: str


class LoginResult(BaseModel):
    """Successful exchange of a provider credential for a session token."""

    session_token: str
    user: User


class VerificationStatus(str, Enum):
    SUCCESS = "success"
    AUTH_REJECTED = "auth_rejected"
    INDETERMINATE = "indeterminate"


class VerificationResult(BaseModel):
    """
    Outcome of fetching the current user for a session token.

    Only `AUTH_REJECTED` is authoritative enough to end a session. A network
    failure with no response at all is reported with `http_status == 0`.
    """

    status: VerificationStatus
    http_status: int = 0
    user: User | None = None
    error: str | None = None

    @classmethod
    def success(cls, user: User, http_status: int = 200) -> "VerificationResult":
        return cls(status=VerificationStatus.SUCCESS, http_status=http_status, user=user)

    @classmethod
    def rejected(cls, error: str | None = None) -> "VerificationResult":
        return cls(status=VerificationStatus.AUTH_REJECTED, http_status=401, error=error)

    @classmethod
    def indeterminate(cls, http_status: int = 0, error: str | None = None) -> "VerificationResult":
        return cls(status=VerificationStatus.INDETERMINATE, http_status=http_status, error=error)
