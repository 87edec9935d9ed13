"""Cohort route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from evalhub.database.db import get_db_session
from evalhub.models.schemas import CohortResponse, CohortPlanningSummaryResponse
from evalhub.services import wave_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/associations/{association_id}/cohorts", response_model=List[CohortResponse])
async def list_cohorts(association_id: int, session: AsyncSession = Depends(get_db_session)):
    """List active cohorts for an association, ordered by sort order then name."""
    try:
        return await wave_service.list_cohorts(session, association_id)
    except Exception as e:
        logger.error(f"Error fetching cohorts for association {association_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching cohorts: {str(e)}")


@router.get(
    "/api/associations/{association_id}/cohorts/planning",
    response_model=CohortPlanningSummaryResponse,
)
async def get_cohort_planning(association_id: int, session: AsyncSession = Depends(get_db_session)):
    """
    Capacity planning for every active cohort in the active season.

    Returns, per cohort: active athlete count, sessions per wave
    (ceil(athletes / session_capacity), 0 when capacity is 0) and the
    total sessions required across its standard waves.
    """
    try:
        return await wave_service.get_cohort_planning_summary(session, association_id)
    except wave_service.NoActiveSeasonError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading cohort planning: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading cohort planning: {str(e)}")
