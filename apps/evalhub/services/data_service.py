"""
Data service layer for database operations.
Handles the reads and writes behind wave planning: cohorts, the active
season, athlete counts, waves and sessions, plus the call into the
distribution stored procedure.
"""

import logging
import os
import re
from typing import Dict, List, Optional

from sqlalchemy import select, update, func, text
from sqlalchemy.ext.asyncio import AsyncSession

from evalhub.database import db
from evalhub.database.models import (
    Cohort,
    CohortStatus,
    Season,
    SeasonStatus,
    Player,
    PlayerStatus,
    Wave,
    WaveType,
    WaveStatus,
    Session,
    SessionDrill,
    SessionEvaluator,
    SessionIntakePersonnel,
    PlayerSession,
)
from evalhub.utils.constants import (
    DEFAULT_DISTRIBUTION_ALGORITHM,
    DEFAULT_DISTRIBUTION_RPC_NAME,
    DEFAULT_TEAMS_PER_SESSION,
)

logger = logging.getLogger(__name__)

_RPC_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


#
# Serialization helpers
#

def cohort_to_dict(cohort: Cohort) -> Dict:
    return {
        "id": cohort.id,
        "association_id": cohort.association_id,
        "name": cohort.name,
        "description": cohort.description,
        "status": cohort.status,
        "session_capacity": cohort.session_capacity,
        "sessions_per_cohort": cohort.sessions_per_cohort,
        "minimum_sessions_per_athlete": cohort.minimum_sessions_per_athlete,
        "sort_order": cohort.sort_order,
    }


def season_to_dict(season: Season) -> Dict:
    return {
        "id": season.id,
        "association_id": season.association_id,
        "name": season.name,
        "status": season.status,
        "session_capacity": season.session_capacity,
        "activated_at": season.activated_at.isoformat() if season.activated_at else None,
    }


def wave_to_dict(wave: Wave) -> Dict:
    return {
        "id": wave.id,
        "association_id": wave.association_id,
        "season_id": wave.season_id,
        "cohort_id": wave.cohort_id,
        "wave_number": wave.wave_number,
        "wave_type": wave.wave_type,
        "custom_wave_name": wave.custom_wave_name,
        "status": wave.status,
        "distribution_algorithm": wave.distribution_algorithm,
        "teams_per_session": wave.teams_per_session,
    }


def session_to_dict(sess: Session) -> Dict:
    return {
        "id": sess.id,
        "season_id": sess.season_id,
        "cohort_id": sess.cohort_id,
        "wave_id": sess.wave_id,
        "name": sess.name,
        "location": sess.location,
        "scheduled_date": sess.scheduled_date.isoformat() if sess.scheduled_date else None,
        "scheduled_time": sess.scheduled_time.isoformat() if sess.scheduled_time else None,
        "status": sess.status,
    }


#
# Cohorts and seasons
#

async def list_active_cohorts(session: AsyncSession, association_id: int) -> List[Dict]:
    """Active cohorts for an association, ordered by sort_order then name."""
    result = await session.execute(
        select(Cohort)
        .where(
            Cohort.association_id == association_id,
            Cohort.status == CohortStatus.ACTIVE.value,
        )
        .order_by(Cohort.sort_order.asc(), Cohort.name.asc())
    )
    return [cohort_to_dict(c) for c in result.scalars().all()]


async def get_cohort(session: AsyncSession, association_id: int, cohort_id: int) -> Optional[Dict]:
    """Get a cohort, scoped to its association."""
    result = await session.execute(
        select(Cohort).where(
            Cohort.id == cohort_id,
            Cohort.association_id == association_id,
        )
    )
    cohort = result.scalar_one_or_none()
    return cohort_to_dict(cohort) if cohort else None


async def get_active_season(session: AsyncSession, association_id: int) -> Optional[Dict]:
    """
    Get the active season for an association.

    At most one season should be active; uniqueness is enforced by whoever
    activates seasons. If several are found the most recently activated wins.
    """
    result = await session.execute(
        select(Season)
        .where(
            Season.association_id == association_id,
            Season.status == SeasonStatus.ACTIVE.value,
        )
        .order_by(Season.activated_at.desc().nulls_last(), Season.id.desc())
        .limit(2)
    )
    seasons = result.scalars().all()
    if not seasons:
        return None
    if len(seasons) > 1:
        logger.warning(
            f"Association {association_id} has more than one active season; using season {seasons[0].id}"
        )
    return season_to_dict(seasons[0])


async def count_active_players(session: AsyncSession, cohort_id: int, season_id: int) -> int:
    """Live count of active athletes in a cohort for a season."""
    result = await session.execute(
        select(func.count(Player.id)).where(
            Player.cohort_id == cohort_id,
            Player.season_id == season_id,
            Player.status == PlayerStatus.ACTIVE.value,
        )
    )
    return result.scalar() or 0


async def count_active_players_by_cohort(session: AsyncSession, season_id: int) -> Dict[int, int]:
    """Active athlete counts for every cohort in a season, keyed by cohort id."""
    result = await session.execute(
        select(Player.cohort_id, func.count(Player.id))
        .where(
            Player.season_id == season_id,
            Player.status == PlayerStatus.ACTIVE.value,
            Player.cohort_id.isnot(None),
        )
        .group_by(Player.cohort_id)
    )
    return {cohort_id: count for cohort_id, count in result.all()}


#
# Waves
#

async def list_waves(session: AsyncSession, cohort_id: int, season_id: int) -> List[Dict]:
    """Waves for a cohort/season ordered by wave number (custom waves last)."""
    result = await session.execute(
        select(Wave)
        .where(Wave.cohort_id == cohort_id, Wave.season_id == season_id)
        .order_by(Wave.wave_number.asc().nulls_last(), Wave.id.asc())
    )
    return [wave_to_dict(w) for w in result.scalars().all()]


async def get_wave(session: AsyncSession, association_id: int, wave_id: int) -> Optional[Dict]:
    """Get a wave, scoped to its association."""
    result = await session.execute(
        select(Wave).where(Wave.id == wave_id, Wave.association_id == association_id)
    )
    wave = result.scalar_one_or_none()
    return wave_to_dict(wave) if wave else None


async def create_waves(session: AsyncSession, rows: List[Dict]) -> List[Dict]:
    """
    Insert a batch of waves in one transaction.

    Raises sqlalchemy.exc.IntegrityError when a (cohort, season, wave_number)
    already exists; nothing from the batch is kept in that case.
    """
    if not rows:
        return []
    waves = [Wave(**row) for row in rows]
    session.add_all(waves)
    await session.flush()
    await session.commit()
    return [wave_to_dict(w) for w in waves]


async def create_custom_wave(
    session: AsyncSession,
    association_id: int,
    season_id: int,
    cohort_id: int,
    name: str,
    distribution_algorithm: Optional[str] = None,
    teams_per_session: Optional[int] = None,
) -> Dict:
    """Create a non-standard wave identified by its custom name."""
    wave = Wave(
        association_id=association_id,
        season_id=season_id,
        cohort_id=cohort_id,
        wave_number=None,
        wave_type=WaveType.CUSTOM.value,
        custom_wave_name=name,
        status=WaveStatus.NOT_STARTED.value,
        distribution_algorithm=distribution_algorithm or DEFAULT_DISTRIBUTION_ALGORITHM,
        teams_per_session=teams_per_session or DEFAULT_TEAMS_PER_SESSION,
    )
    session.add(wave)
    await session.flush()
    await session.commit()
    await session.refresh(wave)
    return wave_to_dict(wave)


async def update_wave_configuration(
    session: AsyncSession,
    wave_id: int,
    distribution_algorithm: str,
    teams_per_session: int,
) -> bool:
    """Persist a wave's distribution settings. Returns False if the wave is gone."""
    result = await session.execute(
        update(Wave)
        .where(Wave.id == wave_id)
        .values(
            distribution_algorithm=distribution_algorithm,
            teams_per_session=teams_per_session,
        )
    )
    await session.commit()
    return result.rowcount > 0


async def call_distribution_procedure(
    session: AsyncSession,
    wave_id: int,
    algorithm: str,
    teams_per_session: int,
) -> None:
    """
    Invoke the athlete distribution stored procedure for a wave.

    The procedure's result set is not interpreted; any database error it
    raises propagates to the caller.
    """
    rpc_name = os.getenv("DISTRIBUTION_RPC_NAME", DEFAULT_DISTRIBUTION_RPC_NAME)
    if not _RPC_NAME_RE.match(rpc_name):
        raise ValueError(f"Invalid distribution procedure name: {rpc_name!r}")

    await session.execute(
        text(f"SELECT {rpc_name}(:p_wave_id, :p_algorithm, :p_teams_per_session)"),
        {
            "p_wave_id": wave_id,
            "p_algorithm": algorithm,
            "p_teams_per_session": teams_per_session,
        },
    )
    await session.commit()


#
# Sessions
#

def _count_subquery(model, label: str):
    return (
        select(func.count(model.id))
        .where(model.session_id == Session.id)
        .correlate(Session)
        .scalar_subquery()
        .label(label)
    )


async def list_sessions_with_counts(session: AsyncSession, cohort_id: int, season_id: int) -> List[Dict]:
    """
    Sessions for a cohort/season in chronological order, with related counts.

    Ordering is (scheduled_date, scheduled_time) ascending with id as a
    tiebreaker, which is the order the session assigner buckets by.
    """
    query = (
        select(
            Session,
            _count_subquery(SessionDrill, "drill_count"),
            _count_subquery(SessionEvaluator, "evaluator_count"),
            _count_subquery(SessionIntakePersonnel, "intake_count"),
            _count_subquery(PlayerSession, "player_count"),
        )
        .where(Session.cohort_id == cohort_id, Session.season_id == season_id)
        .order_by(Session.scheduled_date.asc(), Session.scheduled_time.asc(), Session.id.asc())
    )
    result = await session.execute(query)

    sessions = []
    for sess, drill_count, evaluator_count, intake_count, player_count in result.all():
        sess_dict = session_to_dict(sess)
        sess_dict.update({
            "drill_count": drill_count or 0,
            "evaluator_count": evaluator_count or 0,
            "intake_count": intake_count or 0,
            "player_count": player_count or 0,
        })
        sessions.append(sess_dict)
    return sessions


async def list_wave_sessions(session: AsyncSession, wave_id: int) -> List[Dict]:
    """Sessions assigned to a wave, in chronological order."""
    result = await session.execute(
        select(Session)
        .where(Session.wave_id == wave_id)
        .order_by(Session.scheduled_date.asc(), Session.scheduled_time.asc(), Session.id.asc())
    )
    return [session_to_dict(s) for s in result.scalars().all()]


async def update_session_wave(session_id: int, wave_id: int) -> bool:
    """
    Point a single session at a wave.

    Runs in its own database session and transaction so that several of
    these can be awaited concurrently and fail independently.
    """
    async with db.AsyncSessionLocal() as session:
        result = await session.execute(
            update(Session).where(Session.id == session_id).values(wave_id=wave_id)
        )
        await session.commit()
        return result.rowcount > 0
