#!/usr/bin/env python3
"""
Follow-Up Service API
=====================

FastAPI app exposing the pipeline trigger, the follow-up records and the
chat approval callback.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..core.config import Settings
from ..core.observability import configure_logging, init_tracing
from .dependencies import Services, build_services
from .middleware import TraceMiddleware, register_error_handlers
from .routers import health_router, pipeline_router, records_router, webhooks_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI app.

    When ``services`` is omitted, settings are loaded from the environment,
    checked, and the production collaborators are constructed. Missing
    required settings raise ConfigurationError before the app is returned.
    """
    if services is None:
        settings = (settings or Settings.from_env()).require()
        configure_logging(settings.LOG_LEVEL, settings.LOG_STRUCTURED)
        init_tracing(service_version=__version__, otlp_endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT)
        services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan - startup and shutdown."""
        logger.info("Follow-up service starting")
        yield
        await app.state.services.aclose()
        logger.info("Follow-up service stopped")

    app = FastAPI(
        title="Follow-Up Service API",
        description="Stale-deal detection with human-approved follow-up emails",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(TraceMiddleware)
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(pipeline_router)
    app.include_router(records_router)
    app.include_router(webhooks_router)

    return app
