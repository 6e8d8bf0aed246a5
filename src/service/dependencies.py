"""
FastAPI dependencies for the rideshare backend.

The shared services are built once by `create_app` and kept on `app.state`.
"""
from fastapi import Depends, HTTPException, Request

from auth import AuthConfig, InvalidSessionTokenError, SessionTokenService
from users import UserRecord, UserRepository


def get_auth_config(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def get_token_service(request: Request) -> SessionTokenService:
    return request.app.state.token_service


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


async def get_current_user(
    request: Request,
    token_service: SessionTokenService = Depends(get_token_service),
    user_repository: UserRepository = Depends(get_user_repository),
) -> UserRecord:
    """
    Resolve the user behind the `Authorization: Bearer <token>` header.

    Only credential problems answer 401. User store failures propagate and
    become a 500, so clients never mistake an outage for a revoked session.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided")

    token = auth_header.split(" ", 1)[1].strip()
    try:
        claims = token_service.verify(token)
    except InvalidSessionTokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await user_repository.find_by_id(claims.userId)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    return user
