from fastapi import APIRouter, Depends
import logging

from schema import CurrentUserResponse, ErrorResponse
from users import UserRecord
from service.dependencies import get_current_user

logger = logging.getLogger('rideshare.service.routers.user')

router = APIRouter(
    tags=["user"],
)


@router.get("/api/me", responses={200: {"model": CurrentUserResponse}, 401: {"model": ErrorResponse}})
@router.get("/me", responses={200: {"model": CurrentUserResponse}, 401: {"model": ErrorResponse}})
async def get_me(user: UserRecord = Depends(get_current_user)):
    """Current user info for the bearer token."""
    return {
        "success": True,
        "user": user.get_safe_user().to_wire(),
    }
