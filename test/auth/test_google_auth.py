import logging
import time
from unittest.mock import Mock

import aiohttp
import jwt
import pytest
import pytest_asyncio
from aiohttp import test_utils, web
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import PyJWKClientConnectionError

from auth import (
    AuthConfig,
    BaseAuth,
    GoogleAccessTokenAuth,
    GoogleIdTokenAuth,
    InvalidProviderCredentialError,
    ProviderUnavailableError,
    create_auth_config,
)
from schema import ProviderCredentialKind

CLIENT_ID = "test-client-id.apps.googleusercontent.com"


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def jwks_client(rsa_key):
    client = Mock()
    client.get_signing_key_from_jwt.return_value = Mock(key=rsa_key.public_key())
    return client


def google_id_token(rsa_key, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": "https://accounts.google.com",
        "aud": CLIENT_ID,
        "sub": "1234567890",
        "email": "Rider@Example.com",
        "name": "Ada Lovelace",
        "picture": "https://lh3.googleusercontent.com/a/photo",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, rsa_key, algorithm="RS256", headers={"kid": "test-key"})


@pytest.mark.asyncio
async def test_id_token_verification_success(rsa_key, jwks_client):
    auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client=jwks_client)
    token = google_id_token(rsa_key)

    identity = await auth.verify(token)

    assert identity.google_id == "1234567890"
    assert identity.email == "rider@example.com"
    assert identity.name == "Ada Lovelace"
    assert identity.photo == "https://lh3.googleusercontent.com/a/photo"
    jwks_client.get_signing_key_from_jwt.assert_called_once_with(token)


@pytest.mark.asyncio
async def test_id_token_accepts_any_configured_audience(rsa_key, jwks_client):
    auth = GoogleIdTokenAuth([CLIENT_ID, "ios-client-id"], jwks_client=jwks_client)

    identity = await auth.verify(google_id_token(rsa_key, aud="ios-client-id"))

    assert identity.google_id == "1234567890"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "someone-elses-client"},
        {"exp": int(time.time()) - 60, "iat": int(time.time()) - 3600},
        {"iss": "https://evil.example.com"},
        {"sub": None},
    ],
)
async def test_id_token_rejections(rsa_key, jwks_client, overrides):
    auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client=jwks_client)

    with pytest.raises(InvalidProviderCredentialError) as exc_info:
        await auth.verify(google_id_token(rsa_key, **overrides))

    assert exc_info.value.public_message == "Invalid or expired Google token"


@pytest.mark.asyncio
async def test_id_token_signed_by_another_key_is_rejected(jwks_client):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client=jwks_client)

    with pytest.raises(InvalidProviderCredentialError):
        await auth.verify(google_id_token(other_key))


@pytest.mark.asyncio
async def test_id_token_without_email(rsa_key, jwks_client):
    auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client=jwks_client)

    with pytest.raises(InvalidProviderCredentialError) as exc_info:
        await auth.verify(google_id_token(rsa_key, email=None))

    assert exc_info.value.public_message == "Invalid idToken - no email found"


@pytest.mark.asyncio
async def test_id_token_certificates_unavailable(rsa_key, jwks_client):
    jwks_client.get_signing_key_from_jwt.side_effect = PyJWKClientConnectionError("connection refused")
    auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client=jwks_client)

    with pytest.raises(ProviderUnavailableError):
        await auth.verify(google_id_token(rsa_key))


def test_strategies_require_an_audience():
    with pytest.raises(ValueError):
        GoogleIdTokenAuth([], jwks_client=Mock())
    with pytest.raises(ValueError):
        GoogleAccessTokenAuth([])


class FakeGoogle:
    def __init__(self):
        self.tokeninfo_status = 200
        self.tokeninfo = {"aud": CLIENT_ID, "sub": "42", "expires_in": "3599"}
        self.userinfo_status = 200
        self.userinfo = {
            "sub": "42",
            "email": "Passenger@Example.com",
            "name": "Grace Hopper",
            "picture": "https://example.com/grace.png",
        }
        self.authorization_headers = []

    async def handle_tokeninfo(self, request: web.Request) -> web.Response:
        return web.json_response(self.tokeninfo, status=self.tokeninfo_status)

    async def handle_userinfo(self, request: web.Request) -> web.Response:
        self.authorization_headers.append(request.headers.get("Authorization"))
        return web.json_response(self.userinfo, status=self.userinfo_status)


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle()


@pytest_asyncio.fixture
async def access_token_auth(google):
    app = web.Application()
    app.router.add_get("/tokeninfo", google.handle_tokeninfo)
    app.router.add_get("/userinfo", google.handle_userinfo)
    server = test_utils.TestServer(app)
    await server.start_server()
    auth = GoogleAccessTokenAuth(
        [CLIENT_ID],
        tokeninfo_url=str(server.make_url("/tokeninfo")),
        userinfo_url=str(server.make_url("/userinfo")),
    )
    yield auth
    await auth.close()
    await server.close()


@pytest.mark.asyncio
async def test_access_token_verification_success(access_token_auth, google):
    identity = await access_token_auth.verify("ya29.access")

    assert identity.google_id == "42"
    assert identity.email == "passenger@example.com"
    assert identity.name == "Grace Hopper"
    assert google.authorization_headers == ["Bearer ya29.access"]


@pytest.mark.asyncio
async def test_access_token_for_other_client_is_rejected(access_token_auth, google):
    google.tokeninfo = {"aud": "another-app", "sub": "42"}

    with pytest.raises(InvalidProviderCredentialError):
        await access_token_auth.verify("ya29.access")

    assert google.authorization_headers == []


@pytest.mark.asyncio
async def test_access_token_rejected_by_tokeninfo(access_token_auth, google):
    google.tokeninfo_status = 400
    google.tokeninfo = {"error": "invalid_token"}

    with pytest.raises(InvalidProviderCredentialError):
        await access_token_auth.verify("expired")


@pytest.mark.asyncio
async def test_access_token_google_outage(access_token_auth, google):
    google.tokeninfo_status = 503

    with pytest.raises(ProviderUnavailableError):
        await access_token_auth.verify("ya29.access")


@pytest.mark.asyncio
async def test_access_token_without_email(access_token_auth, google):
    google.userinfo = {"sub": "42"}

    with pytest.raises(InvalidProviderCredentialError) as exc_info:
        await access_token_auth.verify("ya29.access")

    assert exc_info.value.public_message == "Invalid accessToken - no email found"


@pytest.mark.asyncio
async def test_access_token_network_failure():
    auth = GoogleAccessTokenAuth(
        [CLIENT_ID],
        tokeninfo_url="http://127.0.0.1:1/tokeninfo",
        userinfo_url="http://127.0.0.1:1/userinfo",
    )
    try:
        with pytest.raises(ProviderUnavailableError):
            await auth.verify("ya29.access")
    finally:
        await auth.close()


def test_auth_config_registration():
    auth_config = AuthConfig()

    with pytest.raises(TypeError):
        auth_config.register_auth_strategy("id_token", object())
    with pytest.raises(ValueError):
        auth_config.get_strategy(ProviderCredentialKind.ID_TOKEN)

    strategy = BaseAuth()
    auth_config.register_auth_strategy("id_token", strategy)
    assert auth_config.get_strategy(ProviderCredentialKind.ID_TOKEN) is strategy


@pytest.mark.asyncio
async def test_create_auth_config_registers_both_kinds():
    auth_config = create_auth_config([CLIENT_ID])
    try:
        assert isinstance(auth_config.get_strategy(ProviderCredentialKind.ID_TOKEN), GoogleIdTokenAuth)
        assert isinstance(auth_config.get_strategy(ProviderCredentialKind.ACCESS_TOKEN), GoogleAccessTokenAuth)
    finally:
        await auth_config.close()


@pytest.mark.asyncio
async def test_id_token_is_masked_in_logs(rsa_key, jwks_client, caplog):
    auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client=jwks_client)
    token = google_id_token(rsa_key)

    with caplog.at_level(logging.DEBUG, logger="rideshare.auth"):
        await auth.verify(token)

    assert token[:20] in caplog.text
    assert token not in caplog.text


@pytest.mark.asyncio
async def test_strategies_reuse_an_injected_client_session(google, jwks_client):
    app = web.Application()
    app.router.add_get("/tokeninfo", google.handle_tokeninfo)
    app.router.add_get("/userinfo", google.handle_userinfo)
    server = test_utils.TestServer(app)
    await server.start_server()
    session = aiohttp.ClientSession()
    try:
        access_auth = GoogleAccessTokenAuth(
            [CLIENT_ID],
            tokeninfo_url=str(server.make_url("/tokeninfo")),
            userinfo_url=str(server.make_url("/userinfo")),
            async_requests_client=session,
        )
        id_auth = GoogleIdTokenAuth([CLIENT_ID], jwks_client, async_requests_client=session)

        assert await access_auth.get_client() is session
        assert await id_auth.get_client() is session
        identity = await access_auth.verify("ya29.access")
        assert identity.email == "passenger@example.com"
    finally:
        await session.close()
        await server.close()
