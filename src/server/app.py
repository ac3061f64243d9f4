"""Meraki RMA HTTP API.

JSON endpoints under `/api` for organization discovery, device pair
validation and device replacement. Every response body has a `success`
boolean; errors never carry stack traces.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import AppSettings
from core.errors import RmaError
from core.services.rma_pipeline import RmaService
from server.exceptions import (
    http_exception_handler,
    rma_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from server.routes import router

logger = logging.getLogger(__name__)


async def log_organization_access(service: RmaService) -> bool:
    """Log start-up accessibility of every organization; False if none answer."""
    infos = await service.directory.organizations_info()
    for info in infos:
        if info.accessible:
            logger.info(
                "Organization %s (ID: %s) - %d networks - API Key: %s",
                info.name,
                info.id,
                info.network_count,
                info.api_key_masked,
            )
        else:
            logger.warning("Organization %s - %s - API Key: %s", info.id, info.error, info.api_key_masked)
    accessible = [i for i in infos if i.accessible]
    if not accessible:
        logger.error("No organizations are accessible! Please check API keys and permissions.")
        return False
    logger.info("Using %d API keys for %d organizations", len(accessible), len(infos))
    return True


def create_app(
    settings: AppSettings | None = None,
    *,
    service: RmaService | None = None,
    verify_on_startup: bool = True,
) -> FastAPI:
    """Create and configure FastAPI application.

    A pre-built `service` (tests) is used as is and not closed on shutdown.
    """
    settings = settings or AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.service is None
        if owned:
            app.state.service = RmaService.from_settings(settings)
        logger.info("Meraki RMA API started (%d organizations)", len(app.state.service.registry))
        if verify_on_startup:
            await log_organization_access(app.state.service)
        try:
            yield
        finally:
            if owned:
                await app.state.service.aclose()
                app.state.service = None
            logger.info("Meraki RMA API stopped")

    app = FastAPI(
        title="Meraki RMA API",
        description="Locate a failed device across organizations and transfer its configuration to a replacement.",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "monitoring", "description": "Health checks"},
            {"name": "organizations", "description": "Configured organizations and networks"},
            {"name": "devices", "description": "Device search, validation and replacement"},
        ],
    )
    app.state.service = service

    app.include_router(router)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RmaError, rma_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    return app
