"""
clinicpay - Main Application Entry Point

Payment-plan lifecycle service for clinics: plan status, overdue
detection, progress tracking and schedule operations.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from clinicpay import __version__
from clinicpay.core.config import settings
from clinicpay.core.logging import setup_logging
from clinicpay.core.metrics import get_metrics, get_metrics_content_type
from clinicpay.infrastructure.database import Base, db_manager
from clinicpay.presentation.api import api_router
from clinicpay.presentation.middleware import (
    LoggingMiddleware,
    RequestContextMiddleware,
    error_handler_middleware,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Set up logging
    - Initialize database connection pool (and tables, when enabled)
    - Clean up on shutdown
    """
    setup_logging()
    db_manager.init()

    logger = structlog.get_logger(__name__)

    if settings.auto_create_tables:
        async with db_manager.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_created")

    logger.info(
        "application_started",
        version=__version__,
        status_sweep_url=settings.status_sweep_url,
        metrics_enabled=settings.metrics_enabled,
    )

    yield

    await db_manager.close()
    logger.info("application_stopped")


app = FastAPI(
    title=settings.app_name,
    description="Payment-plan lifecycle service: status, overdue detection, progress and schedule operations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

error_handler_middleware(app)

app.include_router(api_router)


if settings.metrics_enabled:

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus exposition of the clinicpay_* series."""
        return Response(
            content=get_metrics(),
            media_type=get_metrics_content_type(),
        )


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""

    return RedirectResponse(url="/docs")


if __name__ == "__main__":
    uvicorn.run("clinicpay.main:app", host=settings.host, port=settings.port, reload=settings.debug)
