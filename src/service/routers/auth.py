from fastapi import APIRouter, Depends, HTTPException
import logging

from auth import AuthConfig, InvalidProviderCredentialError, SessionTokenService
from schema import ErrorResponse, GoogleAuthRequest, GoogleAuthResponse
from users import UserRepository, sync_user_from_identity
from utils import mask_token
from service.dependencies import get_auth_config, get_token_service, get_user_repository

logger = logging.getLogger('rideshare.service.routers.auth')

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post(
    "/google",
    responses={
        200: {"model": GoogleAuthResponse},
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def google_login(
    body: GoogleAuthRequest | None = None,
    auth_config: AuthConfig = Depends(get_auth_config),
    token_service: SessionTokenService = Depends(get_token_service),
    user_repository: UserRepository = Depends(get_user_repository),
):
    """
    Verify a Google credential and sign the user in.

    Accepts `{"idToken": ...}` or `{"accessToken": ...}`. Creates the user on
    first sign-in and returns a 7-day session token with the user record.
    """
    credential = body.credential() if body else None
    if credential is None:
        raise HTTPException(status_code=400, detail="idToken is required")

    kind, value = credential
    logger.info(f"Received {kind.value}: {mask_token(value)}")

    try:
        identity = await auth_config.get_strategy(kind).verify(value)
    except InvalidProviderCredentialError as e:
        logger.info(f"Google credential rejected: {e}")
        raise HTTPException(status_code=401, detail=e.public_message)

    logger.info(f"Google user verified: {identity.email}")

    user = await sync_user_from_identity(user_repository, identity)
    token = token_service.issue(user.id, user.email)

    return {
        "success": True,
        "token": token,
        "user": user.get_safe_user().to_wire(),
    }
