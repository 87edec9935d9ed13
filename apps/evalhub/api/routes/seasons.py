"""Season route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from evalhub.database.db import get_db_session
from evalhub.models.schemas import SeasonResponse
from evalhub.services import data_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/associations/{association_id}/seasons/active", response_model=SeasonResponse)
async def get_active_season(association_id: int, session: AsyncSession = Depends(get_db_session)):
    """Get the association's active season. 404 when no season is active."""
    try:
        season = await data_service.get_active_season(session, association_id)
        if not season:
            raise HTTPException(status_code=404, detail="No active season")
        return season
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching active season: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching active season: {str(e)}")
