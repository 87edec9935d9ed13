"""Wave planning and distribution route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from evalhub.api.routes import limiter, PLANNING_WRITE_LIMIT
from evalhub.database.db import get_db_session
from evalhub.models.schemas import (
    AssignSessionsResponse,
    CreateCustomWaveRequest,
    DistributeWaveRequest,
    DistributeWaveResponse,
    ProvisionWavesResponse,
    UpdateWaveConfigRequest,
    WaveOverviewResponse,
    WaveResponse,
    WaveSessionsResponse,
)
from evalhub.services import wave_service
from evalhub.services.operation_guard import OperationInProgressError

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Cohort waves
# ---------------------------------------------------------------------------


@router.get(
    "/api/associations/{association_id}/cohorts/{cohort_id}/waves",
    response_model=WaveOverviewResponse,
)
async def get_wave_overview(
    association_id: int,
    cohort_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Wave management overview for a cohort in the active season.

    Returns the active athlete count, required waves, session capacity,
    sessions per wave, the cohort's waves and every session with its
    current and proposed wave.
    """
    try:
        return await wave_service.get_wave_overview(session, association_id, cohort_id)
    except wave_service.CohortNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except wave_service.NoActiveSeasonError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading waves for cohort {cohort_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading waves: {str(e)}")


@router.post(
    "/api/associations/{association_id}/cohorts/{cohort_id}/waves/generate",
    response_model=ProvisionWavesResponse,
)
@limiter.limit(PLANNING_WRITE_LIMIT)
async def generate_standard_waves(
    request: Request,
    association_id: int,
    cohort_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create any missing standard waves (1..sessions_per_cohort) for the cohort.

    Safe to call repeatedly; existing waves are left alone.
    """
    try:
        return await wave_service.provision_standard_waves(session, association_id, cohort_id)
    except wave_service.CohortNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except wave_service.NoActiveSeasonError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (OperationInProgressError, wave_service.WaveConflictError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except wave_service.WaveWriteError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating waves for cohort {cohort_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating waves: {str(e)}")


@router.post(
    "/api/associations/{association_id}/cohorts/{cohort_id}/waves/assign-sessions",
    response_model=AssignSessionsResponse,
)
@limiter.limit(PLANNING_WRITE_LIMIT)
async def assign_sessions(
    request: Request,
    association_id: int,
    cohort_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Assign the cohort's sessions to waves in chronological order.

    Missing standard waves are created first. Only sessions whose wave
    changes are updated. Individual update failures are listed in "failed"
    and are not rolled back. When sessions per wave is 0 the response has
    skipped=true and a reason, and nothing is written.
    """
    try:
        return await wave_service.assign_sessions_to_waves(session, association_id, cohort_id)
    except wave_service.CohortNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except wave_service.NoActiveSeasonError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (OperationInProgressError, wave_service.WaveConflictError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except wave_service.WaveWriteError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error assigning sessions for cohort {cohort_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error assigning sessions: {str(e)}")


@router.post(
    "/api/associations/{association_id}/cohorts/{cohort_id}/waves/custom",
    response_model=WaveResponse,
)
@limiter.limit(PLANNING_WRITE_LIMIT)
async def create_custom_wave(
    request: Request,
    association_id: int,
    cohort_id: int,
    payload: CreateCustomWaveRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a custom (non-standard) wave for the cohort.
    Body: { name: str, distribution_algorithm?: str, teams_per_session?: int }
    """
    try:
        return await wave_service.create_custom_wave(
            session,
            association_id=association_id,
            cohort_id=cohort_id,
            name=payload.name,
            distribution_algorithm=payload.distribution_algorithm,
            teams_per_session=payload.teams_per_session,
        )
    except wave_service.CohortNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (
        wave_service.InvalidWaveNameError,
        wave_service.InvalidDistributionConfigError,
        wave_service.NoActiveSeasonError,
    ) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except wave_service.WaveConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except wave_service.WaveWriteError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating custom wave for cohort {cohort_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating custom wave: {str(e)}")


# ---------------------------------------------------------------------------
# Single wave
# ---------------------------------------------------------------------------


@router.get(
    "/api/associations/{association_id}/waves/{wave_id}/sessions",
    response_model=WaveSessionsResponse,
)
async def get_wave_sessions(
    association_id: int,
    wave_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    """Sessions assigned to a wave, in chronological order."""
    try:
        return await wave_service.list_wave_sessions(session, association_id, wave_id)
    except wave_service.WaveNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading sessions for wave {wave_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading wave sessions: {str(e)}")


@router.patch(
    "/api/associations/{association_id}/waves/{wave_id}",
    response_model=WaveResponse,
)
@limiter.limit(PLANNING_WRITE_LIMIT)
async def update_wave(
    request: Request,
    association_id: int,
    wave_id: int,
    payload: UpdateWaveConfigRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Update a wave's distribution configuration.
    Body: { distribution_algorithm: str, teams_per_session: int (1-6) }

    Rejected with 409 while a distribution for the wave is running.
    """
    try:
        return await wave_service.update_wave_configuration(
            session,
            association_id=association_id,
            wave_id=wave_id,
            distribution_algorithm=payload.distribution_algorithm,
            teams_per_session=payload.teams_per_session,
        )
    except wave_service.WaveNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except wave_service.InvalidDistributionConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OperationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except wave_service.WaveWriteError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating wave {wave_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating wave: {str(e)}")


@router.post(
    "/api/associations/{association_id}/waves/{wave_id}/distribute",
    response_model=DistributeWaveResponse,
)
@limiter.limit(PLANNING_WRITE_LIMIT)
async def distribute_wave(
    request: Request,
    association_id: int,
    wave_id: int,
    payload: DistributeWaveRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Distribute the cohort's athletes into the wave's sessions and teams.
    Body: { algorithm?: 'alphabetical' | 'random' | 'previous_level', teams_per_session?: int (1-6) }

    Omitted fields use the wave's saved configuration. The configuration is
    saved first, then the distribution procedure runs.
    """
    try:
        return await wave_service.distribute_wave_players(
            session,
            association_id=association_id,
            wave_id=wave_id,
            algorithm=payload.algorithm,
            teams_per_session=payload.teams_per_session,
        )
    except wave_service.WaveNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except wave_service.InvalidDistributionConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OperationInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except wave_service.DistributionError as e:
        raise HTTPException(status_code=502, detail=str(e) or "Failed to distribute players.")
    except wave_service.WaveWriteError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Distribution error for wave {wave_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to distribute players: {str(e)}")
