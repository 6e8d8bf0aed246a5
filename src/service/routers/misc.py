from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
import logging

from schema import DatabaseStatus, HealthResponse
from users import UserRepository
from service.dependencies import get_user_repository

logger = logging.getLogger('rideshare.service.routers.misc')

router = APIRouter(tags=["misc"])


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "Rideshare Backend API"


@router.get("/api/health")
async def get_health(user_repository: UserRepository = Depends(get_user_repository)) -> HealthResponse:
    """Health check with user store connectivity."""
    connected = await user_repository.ping()
    if not connected:
        logger.warning(f"Health check: {user_repository.backend_name} user store unreachable")

    return HealthResponse(
        database=DatabaseStatus(backend=user_repository.backend_name, connected=connected),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
