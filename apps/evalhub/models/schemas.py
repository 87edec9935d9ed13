"""
Pydantic models for API request/response validation.
"""

from typing import Optional, List
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str


# Cohorts and seasons


class CohortResponse(BaseModel):
    """Cohort configuration."""

    id: int
    association_id: int
    name: str
    description: Optional[str] = None
    status: str
    session_capacity: int
    sessions_per_cohort: int
    minimum_sessions_per_athlete: int
    sort_order: int


class SeasonResponse(BaseModel):
    """Season summary."""

    id: int
    association_id: int
    name: str
    status: str
    session_capacity: int
    activated_at: Optional[str] = None


class CohortPlanningResponse(CohortResponse):
    """Cohort with live capacity figures for the active season."""

    player_count: int
    sessions_per_wave: int
    sessions_required: int


class CohortPlanningSummaryResponse(BaseModel):
    """Capacity figures for every active cohort."""

    season: SeasonResponse
    cohorts: List[CohortPlanningResponse]


# Waves


class WaveResponse(BaseModel):
    """Wave configuration."""

    id: int
    association_id: int
    season_id: int
    cohort_id: int
    wave_number: Optional[int] = None
    wave_type: str
    custom_wave_name: Optional[str] = None
    status: str
    distribution_algorithm: Optional[str] = None
    teams_per_session: Optional[int] = None
    label: Optional[str] = None
    distribution_in_progress: bool = False


class SessionResponse(BaseModel):
    """Evaluation session."""

    id: int
    season_id: int
    cohort_id: Optional[int] = None
    wave_id: Optional[int] = None
    name: str
    location: Optional[str] = None
    scheduled_date: Optional[str] = None  # ISO date
    scheduled_time: Optional[str] = None  # ISO time
    status: str


class SessionPreviewResponse(SessionResponse):
    """Session row on the wave management screen."""

    drill_count: int = 0
    evaluator_count: int = 0
    intake_count: int = 0
    player_count: int = 0
    current_wave_number: Optional[int] = None
    current_wave_label: Optional[str] = None
    proposed_wave_number: Optional[int] = None


class WaveOverviewResponse(BaseModel):
    """Wave management screen for one cohort in the active season."""

    cohort: CohortResponse
    season: SeasonResponse
    player_count: int
    required_waves: int
    session_capacity: int
    sessions_per_wave: int
    assignment_blocked_reason: Optional[str] = None
    planning_in_progress: bool = False
    waves: List[WaveResponse]
    sessions: List[SessionPreviewResponse]


class ProvisionWavesResponse(BaseModel):
    """Result of generating standard waves."""

    created: List[int]
    waves: List[WaveResponse]


class SessionAssignment(BaseModel):
    """One session moved to a wave."""

    session_id: int
    wave_id: int
    wave_number: int


class FailedSessionAssignment(SessionAssignment):
    """A session update that was rejected."""

    error: str


class AssignSessionsResponse(BaseModel):
    """Result of assigning sessions to waves."""

    skipped: bool
    reason: Optional[str] = None
    player_count: int
    sessions_per_wave: int
    created_waves: List[int]
    updated: List[SessionAssignment]
    unchanged: List[int]
    unresolved: List[int]
    failed: List[FailedSessionAssignment]


class WaveSessionsResponse(BaseModel):
    """Sessions in one wave (the distribution scope)."""

    wave: WaveResponse
    sessions: List[SessionResponse]


class CreateCustomWaveRequest(BaseModel):
    """Request to create a custom wave."""

    name: str
    distribution_algorithm: Optional[str] = None
    teams_per_session: Optional[int] = None


class UpdateWaveConfigRequest(BaseModel):
    """Request to change how a wave is distributed."""

    distribution_algorithm: str
    teams_per_session: int


class DistributeWaveRequest(BaseModel):
    """Request to distribute athletes into a wave's sessions and teams."""

    # Unset fields keep the wave's saved configuration
    algorithm: Optional[str] = None  # 'alphabetical' | 'random' | 'previous_level'
    teams_per_session: Optional[int] = None  # 1-6


class DistributeWaveResponse(BaseModel):
    """Result of the distribution procedure."""

    status: str
    message: str
    wave_id: int
    algorithm: str
    teams_per_session: int
    session_count: int
