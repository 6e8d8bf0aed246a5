import logging
from datetime import datetime, timedelta, timezone

import jwt
from pydantic import ValidationError

from .exceptions import InvalidSessionTokenError
from .schema import SessionTokenClaims

logger = logging.getLogger('rideshare.auth.tokens')

SESSION_TOKEN_LIFETIME = timedelta(days=7)


class SessionTokenService:
    """Issues and verifies the backend's signed session tokens (HS256 JWTs)."""

    def __init__(self, secret: str, lifetime: timedelta = SESSION_TOKEN_LIFETIME, algorithm: str = "HS256"):
        if not secret:
            raise ValueError('JWT secret is required')
        self._secret = secret
        self.lifetime = lifetime
        self.algorithm = algorithm

    def issue(self, user_id: str, email: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "email": email,
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionTokenClaims:
        if not token:
            raise InvalidSessionTokenError("No token provided")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "userId"]},
            )
            return SessionTokenClaims.model_validate(payload)
        except jwt.ExpiredSignatureError as e:
            logger.info("Session token expired")
            raise InvalidSessionTokenError("Invalid or expired token") from e
        except (jwt.PyJWTError, ValidationError) as e:
            logger.info(f"Session token rejected: {e}")
            raise InvalidSessionTokenError("Invalid or expired token") from e
