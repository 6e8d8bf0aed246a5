from datetime import datetime
from pydantic import BaseModel, Field
from typing import Optional


class GoogleIdentity(BaseModel):
    """Verified identity extracted from a Google credential."""
    google_id: str = Field(description="Google's stable subject identifier (`sub`).")
    email: str
    name: Optional[str] = None
    photo: Optional[str] = None


class SessionTokenClaims(BaseModel):
    userId: str
    email: str
    iat: datetime
    exp: datetime
