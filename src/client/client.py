import asyncio
import logging
from typing import Dict, Optional

import aiohttp
from pydantic import ValidationError

from schema import (
    CurrentUserResponse,
    GoogleAuthResponse,
    LoginResult,
    ProviderCredentialKind,
    VerificationResult,
)
from utils import mask_token
from .exceptions import AuthRejectedError, InvalidInputError, ServerError

logger = logging.getLogger('rideshare.client')

NETWORK_ERROR_MESSAGE = "Network error. Please check your internet connection."


class IdentityClient:
    """Client for the backend's identity endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        async_requests_client: Optional[aiohttp.ClientSession] = None,
        timeout: float | None = None,
        current_user_path: str = "/api/me",
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url (str): Base URL of the rideshare backend.
            async_requests_client (aiohttp.ClientSession, optional): Session to reuse for
                requests. One is created lazily when omitted.
            timeout (float, optional): Total timeout in seconds for each request. No timeout
                beyond aiohttp's defaults when omitted.
            current_user_path (str): Path of the current-user endpoint (`/api/me` or `/me`).
        """
        self.base_url = base_url.rstrip("/")
        self.async_requests_client = async_requests_client
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        self.login_url = f"{self.base_url}/auth/google"
        self.current_user_url = f"{self.base_url}{current_user_path}"

    async def get_client(self) -> aiohttp.ClientSession:
        if not self.async_requests_client:
            if self.timeout:
                self.async_requests_client = aiohttp.ClientSession(timeout=self.timeout)
            else:
                self.async_requests_client = aiohttp.ClientSession()
        return self.async_requests_client

    def construct_headers(self, token: str) -> Dict[str, str]:
        if not token:
            raise ValueError('Token is required')
        return {'Authorization': f'Bearer {token}'}

    async def exchange_provider_credential(
        self,
        provider_credential: str,
        kind: ProviderCredentialKind = ProviderCredentialKind.ID_TOKEN,
    ) -> LoginResult:
        """
        Exchange a Google credential for a backend session token and user record.

        Raises:
            InvalidInputError: No credential given, or the backend answered 400.
            AuthRejectedError: The backend answered 401.
            ServerError: Any other failure, including network errors and malformed payloads.
        """
        if not provider_credential:
            raise InvalidInputError(
                "idToken is required" if kind == ProviderCredentialKind.ID_TOKEN else "accessToken is required"
            )

        body_key = "idToken" if kind == ProviderCredentialKind.ID_TOKEN else "accessToken"
        logger.info(f"Sending {body_key} to backend: {mask_token(provider_credential)}")

        status = 0
        client = await self.get_client()
        try:
            async with client.post(self.login_url, json={body_key: provider_credential}) as response:
                if not 200 <= response.status < 300:
                    message = await self._error_message(response)
                    logger.error(f"Google login failed - Status: {response.status}, message: {message}")
                    if response.status == 400:
                        raise InvalidInputError(message)
                    if response.status == 401:
                        raise AuthRejectedError(message)
                    raise ServerError(message, status=response.status)
                status = response.status
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google login network error: {e}")
            raise ServerError(NETWORK_ERROR_MESSAGE) from e
        except ValueError as e:
            logger.error(f"Google login returned a non-JSON body: {e}")
            raise ServerError("Malformed response from server", status=status) from e

        try:
            parsed = GoogleAuthResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"Google login returned an unexpected payload: {e}")
            raise ServerError("Malformed response from server", status=status) from e

        logger.info(f"Google login successful for user: {parsed.user.email}")
        return LoginResult(session_token=parsed.token, user=parsed.user)

    async def fetch_current_user(self, session_token: str) -> VerificationResult:
        """
        Fetch the authoritative user record for a session token.

        Never raises for transport problems. Network failures come back as
        an indeterminate result with `http_status == 0`.
        """
        headers = self.construct_headers(session_token)
        logger.debug(f"Verifying session token {mask_token(session_token)} at {self.current_user_url}")

        client = await self.get_client()
        try:
            async with client.get(self.current_user_url, headers=headers) as response:
                if response.status == 401:
                    logger.info("Session token rejected by backend")
                    return VerificationResult.rejected(error=await self._error_message(response))
                if response.status != 200:
                    logger.warning(f"Current user lookup failed - Status: {response.status}")
                    return VerificationResult.indeterminate(
                        http_status=response.status, error=f"HTTP error: {response.status}"
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Get current user error: {e}")
            return VerificationResult.indeterminate(http_status=0, error=str(e) or NETWORK_ERROR_MESSAGE)
        except ValueError as e:
            logger.error(f"Current user lookup returned a non-JSON body: {e}")
            return VerificationResult.indeterminate(http_status=200, error="Malformed response from server")

        try:
            parsed = CurrentUserResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"Current user lookup returned an unexpected payload: {e}")
            return VerificationResult.indeterminate(http_status=200, error="Malformed response from server")

        return VerificationResult.success(parsed.user)

    async def _error_message(self, response: aiohttp.ClientResponse) -> str:
        try:
            error_data = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            return f"HTTP error! status: {response.status}"
        if isinstance(error_data, dict) and error_data.get("message"):
            return str(error_data["message"])
        return f"HTTP error! status: {response.status}"

    async def close(self) -> None:
        if self.async_requests_client and not self.async_requests_client.closed:
            await self.async_requests_client.close()
        self.async_requests_client = None
