import logging
from typing import AsyncGenerator
from fastapi import FastAPI
from contextlib import asynccontextmanager

from .redis_client import close_redis_clients

logger = logging.getLogger("rideshare.service.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    user_repository = app.state.user_repository
    if await user_repository.ping():
        logger.info(f"{user_repository.backend_name} user store connected")
    else:
        # Keep serving: /auth/google and /api/me answer 500 until the store is back
        logger.error(f"{user_repository.backend_name} user store unreachable at startup")

    yield

    await app.state.auth_config.close()
    await close_redis_clients()
    logger.info("Rideshare backend shut down")
