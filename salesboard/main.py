from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from salesboard.api.dependencies import get_dashboard_repository
from salesboard.api.router import api_router
from salesboard.core.config import get_cors_origins, get_settings
from salesboard.core.errors import AppError, app_error_handler, validation_error_handler
from salesboard.core.logging import configure_logging


logger = logging.getLogger(__name__)


async def close_remote_client() -> None:
    """Close the shared remote API client if any request created it."""
    if not get_dashboard_repository.cache_info().currsize:
        return
    await get_dashboard_repository().client.aclose()
    get_dashboard_repository.cache_clear()
    logger.info("Closed remote API client")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("Starting %s (%s) against %s", settings.app_name, settings.environment, settings.api_base_url)
    yield
    await close_remote_client()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=settings.api_prefix)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    return app


app = create_app()
