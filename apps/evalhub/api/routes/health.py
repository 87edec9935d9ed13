"""Health check route."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from evalhub.database.db import get_db_session, ping
from evalhub.models.schemas import HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
async def health_check(session: AsyncSession = Depends(get_db_session)):
    """
    Health check endpoint.

    Returns:
        dict: Service status
    """
    try:
        await ping(session)
        return {"status": "healthy", "message": "API is running"}
    except Exception as e:
        logger.warning(f"Health check could not reach the database: {e}")
        return {"status": "unhealthy", "message": f"Error: {str(e)}"}
