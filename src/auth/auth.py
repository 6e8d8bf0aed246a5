import asyncio
import logging
from typing import Dict, Optional, Sequence

import aiohttp
import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError

from schema import ProviderCredentialKind
from utils import mask_token
from .exceptions import InvalidProviderCredentialError, ProviderUnavailableError
from .schema import GoogleIdentity

logger = logging.getLogger('rideshare.auth')

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class BaseAuth():
    def __init__(self, async_requests_client: Optional[aiohttp.ClientSession] = None):
        """
        Initialize the provider verification strategy.

        Args:
            async_requests_client (aiohttp.ClientSession): An instance of aiohttp.ClientSession
                to be used for making asynchronous HTTP requests to the provider.
        """
        self.async_requests_client = async_requests_client

    async def get_client(self):
        if not self.async_requests_client:
            self.async_requests_client = aiohttp.ClientSession()
        return self.async_requests_client

    async def verify(self, credential: str) -> GoogleIdentity:
        """
        Verify a provider credential and return the identity it asserts.

        Raises:
            InvalidProviderCredentialError: The credential must not be trusted.
            ProviderUnavailableError: The provider could not give an answer.
        """
        raise NotImplementedError

    async def close(self) -> None:
        if self.async_requests_client and not self.async_requests_client.closed:
            await self.async_requests_client.close()


class AuthConfig:
    # Verification strategies keyed by the kind of credential they accept

    def __init__(self):
        self.auth_strategies: Dict[str, BaseAuth] = {}

    def register_auth_strategy(self, name: str, auth_strategy: BaseAuth):
        """
        Register a new verification strategy.

        Args:
            name (str): The credential kind handled by the strategy.
            auth_strategy (BaseAuth): An instance of a class that inherits from BaseAuth.
        """
        if not isinstance(auth_strategy, BaseAuth):
            raise TypeError(f"{name} must be an instance of BaseAuth")
        self.auth_strategies[name] = auth_strategy

    def get_strategy(self, kind: ProviderCredentialKind) -> BaseAuth:
        try:
            return self.auth_strategies[kind.value]
        except KeyError:
            raise ValueError(f"No auth strategy registered for '{kind.value}'")

    async def close(self) -> None:
        for strategy in self.auth_strategies.values():
            await strategy.close()


class GoogleIdTokenAuth(BaseAuth):
    """Verifies Google ID tokens against Google's published signing certificates."""

    def __init__(
        self,
        audiences: Sequence[str],
        jwks_client: Optional[PyJWKClient] = None,
        *,
        async_requests_client: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(async_requests_client)
        if not audiences:
            raise ValueError('At least one Google client ID is required as audience')
        self.audiences = list(audiences)
        self.jwks_client = jwks_client or PyJWKClient(GOOGLE_CERTS_URL, cache_keys=True)

    async def verify(self, credential: str) -> GoogleIdentity:
        logger.debug(f"Verifying Google idToken: {mask_token(credential)}")
        try:
            # PyJWKClient fetches certificates with blocking I/O
            signing_key = await asyncio.to_thread(self.jwks_client.get_signing_key_from_jwt, credential)
            payload = jwt.decode(
                credential,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.audiences,
                options={"require": ["exp", "iat", "sub", "iss"]},
            )
        except PyJWKClientConnectionError as e:
            logger.error(f"Could not fetch Google signing certificates: {e}")
            raise ProviderUnavailableError("Google certificates unavailable") from e
        except jwt.PyJWTError as e:
            logger.info(f"Google idToken rejected: {e}")
            raise InvalidProviderCredentialError(f"Invalid idToken: {e}") from e

        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise InvalidProviderCredentialError("Invalid idToken - wrong issuer")

        email = payload.get("email")
        if not email:
            message = "Invalid idToken - no email found"
            raise InvalidProviderCredentialError(message, public_message=message)

        return GoogleIdentity(
            google_id=str(payload["sub"]),
            email=email.lower(),
            name=payload.get("name"),
            photo=payload.get("picture"),
        )


class GoogleAccessTokenAuth(BaseAuth):
    """
    Verifies Google OAuth access tokens by introspection.

    The token's audience is checked with the tokeninfo endpoint, then the
    profile is read from the OpenID userinfo endpoint.
    """

    def __init__(
        self,
        audiences: Sequence[str],
        *,
        tokeninfo_url: str = GOOGLE_TOKENINFO_URL,
        userinfo_url: str = GOOGLE_USERINFO_URL,
        async_requests_client: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(async_requests_client)
        if not audiences:
            raise ValueError('At least one Google client ID is required as audience')
        self.audiences = set(audiences)
        self.tokeninfo_url = tokeninfo_url
        self.userinfo_url = userinfo_url

    async def verify(self, credential: str) -> GoogleIdentity:
        logger.debug(f"Verifying Google accessToken: {mask_token(credential)}")
        client = await self.get_client()
        try:
            async with client.get(self.tokeninfo_url, params={"access_token": credential}) as response:
                if response.status in (400, 401):
                    raise InvalidProviderCredentialError("Invalid or expired accessToken")
                if response.status != 200:
                    raise ProviderUnavailableError(f"Google tokeninfo returned {response.status}")
                token_info = await response.json()

            audience = token_info.get("aud") or token_info.get("azp")
            if audience not in self.audiences:
                logger.info(f"Google accessToken issued for another client: {audience}")
                raise InvalidProviderCredentialError("Invalid accessToken - wrong audience")

            headers = {"Authorization": f"Bearer {credential}"}
            async with client.get(self.userinfo_url, headers=headers) as response:
                if response.status == 401:
                    raise InvalidProviderCredentialError("Invalid or expired accessToken")
                if response.status != 200:
                    raise ProviderUnavailableError(f"Google userinfo returned {response.status}")
                profile = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google token introspection failed: {e}")
            raise ProviderUnavailableError("Google token introspection unavailable") from e

        email = profile.get("email")
        if not email:
            message = "Invalid accessToken - no email found"
            raise InvalidProviderCredentialError(message, public_message=message)
        google_id = profile.get("sub") or token_info.get("sub")
        if not google_id:
            raise InvalidProviderCredentialError("Invalid accessToken - no subject")

        return GoogleIdentity(
            google_id=str(google_id),
            email=email.lower(),
            name=profile.get("name"),
            photo=profile.get("picture"),
        )


def create_auth_config(audiences: Sequence[str]) -> AuthConfig:
    auth_config = AuthConfig()
    auth_config.register_auth_strategy(ProviderCredentialKind.ID_TOKEN.value, GoogleIdTokenAuth(audiences))
    auth_config.register_auth_strategy(ProviderCredentialKind.ACCESS_TOKEN.value, GoogleAccessTokenAuth(audiences))
    logger.info("Authentication configured with Google idToken and accessToken strategies")
    return auth_config
