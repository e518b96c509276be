"""Liveness and readiness probes."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay import __version__
from clinicpay.infrastructure.database import get_db_session

logger = structlog.get_logger(__name__)

health_router = APIRouter(prefix="/health")


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str | None = None


@health_router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness",
    description="The process is up. Does not touch the database.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=__version__)


@health_router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness",
    description="The database answers a trivial query. 503 otherwise.",
    responses={503: {"model": HealthResponse}},
)
async def readiness_check(
    session: Annotated[AsyncSession, Depends(get_db_session)],
):
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("readiness_check_failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unavailable",
                version=__version__,
                database="unreachable",
            ).model_dump(),
        )

    return HealthResponse(status="healthy", version=__version__, database="ok")
