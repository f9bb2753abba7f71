import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.config.database import get_async_session

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str
    database: str
    version: str = "0.1.0"


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    response: Response,
    session: AsyncSession = Depends(get_async_session),
) -> HealthCheckResponse:
    """
    Health check for the API and its database.

    Door scanners poll this before an event starts, so an unreachable
    database is reported as 503 rather than at the first scan.
    """
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthCheckResponse(status="unhealthy", database="unreachable")
    return HealthCheckResponse(status="healthy", database="ok")
