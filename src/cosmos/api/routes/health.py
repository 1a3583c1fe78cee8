from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cosmos.api.deps import session_dependency
from cosmos.db.models import ApplicationModel

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str = "0.1.0"


class ReadinessResponse(BaseModel):
    status: str
    database: str
    applications: int | None = None


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check() -> HealthResponse:
    """Liveness check; never touches the database."""
    return HealthResponse(status="healthy")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    session: AsyncSession = Depends(session_dependency),  # noqa: B008
) -> ReadinessResponse:
    """Ready once the application directory can be queried."""
    try:
        result = await session.execute(select(func.count()).select_from(ApplicationModel))
        applications = result.scalar()
    except (SQLAlchemyError, ConnectionError, TimeoutError, OSError) as e:
        logger.warning("readiness_check_failed", error=str(e))
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", database="disconnected")

    return ReadinessResponse(status="ready", database="connected", applications=applications)
