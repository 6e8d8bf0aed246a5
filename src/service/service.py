import logging
from typing import Optional

from fastapi import FastAPI

from auth import AuthConfig, SessionTokenService
from users import UserRepository

from .config import (
    ServiceSettings,
    get_cors_config,
    get_service_settings,
    setup_auth,
    setup_token_service,
    setup_user_repository,
)
from .lifecycle import lifespan
from .middleware import setup_middleware
from .routers import auth as auth_routes, misc, user

logger = logging.getLogger('rideshare.service')


def create_app(
    settings: Optional[ServiceSettings] = None,
    auth_config: Optional[AuthConfig] = None,
    token_service: Optional[SessionTokenService] = None,
    user_repository: Optional[UserRepository] = None,
) -> FastAPI:
    """
    Build the backend application.

    Anything not passed in is constructed from the environment, so
    `uvicorn --factory service.service:create_app` works as is.
    """
    settings = settings or get_service_settings()

    app = FastAPI(title="Rideshare Backend", lifespan=lifespan)
    app.state.settings = settings
    app.state.auth_config = auth_config or setup_auth(settings)
    app.state.token_service = token_service or setup_token_service(settings)
    app.state.user_repository = user_repository or setup_user_repository(settings)

    cors_allowed_origins, cors_allowed_methods, cors_allowed_headers = get_cors_config()
    setup_middleware(app, cors_allowed_origins, cors_allowed_methods, cors_allowed_headers)

    app.include_router(misc.router)
    app.include_router(auth_routes.router)
    app.include_router(user.router)

    logger.info("Rideshare backend configured")
    return app
