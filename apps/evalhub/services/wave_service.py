"""
Wave planning service.

Orchestrates the read-then-compute-then-write operations behind the wave
management screen:

- overview: live athlete count, sessions per wave, waves and the
  chronological session preview
- provisioning: create the missing standard waves for a cohort/season
- session assignment: bucket sessions into waves and write only the changes
- distribution: persist a wave's algorithm/team count and hand the wave to
  the distribution stored procedure

Nothing is cached between calls; every operation re-reads what it needs.
There is no optimistic locking, so concurrent edits are last-write-wins.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from evalhub.database.models import DistributionAlgorithm, WaveType
from evalhub.services import data_service
from evalhub.services.operation_guard import get_operation_guard
from evalhub.services.wave_planning import (
    build_standard_wave_rows,
    compute_sessions_per_wave,
    compute_sessions_required,
    missing_wave_numbers,
    plan_session_assignments,
    propose_wave_number,
)
from evalhub.utils.constants import (
    DEFAULT_DISTRIBUTION_ALGORITHM,
    DEFAULT_TEAMS_PER_SESSION,
    MAX_TEAMS_PER_SESSION,
    MIN_TEAMS_PER_SESSION,
)

logger = logging.getLogger(__name__)


# --- Custom exceptions ---


class CohortNotFoundError(ValueError):
    """Raised when a cohort does not exist in the association."""


class WaveNotFoundError(ValueError):
    """Raised when a wave does not exist in the association."""


class NoActiveSeasonError(ValueError):
    """Raised when the association has no active season."""


class InvalidDistributionConfigError(ValueError):
    """Raised for an unknown algorithm or a team count outside 1-6."""


class InvalidWaveNameError(ValueError):
    """Raised when a custom wave is given a blank name."""


class WaveConflictError(ValueError):
    """Raised when a wave insert collides with an existing wave."""


class WaveWriteError(RuntimeError):
    """Raised when a wave write is rejected by the database."""


class DistributionError(RuntimeError):
    """Raised when the distribution stored procedure reports an error."""


PLANNING_LABEL = "Wave planning for this cohort"
DISTRIBUTION_LABEL = "Player distribution for this wave"


#
# Helpers
#

def wave_label(wave: Dict) -> str:
    """Display name of a wave: 'Wave N' for standard waves, the custom name otherwise."""
    if wave.get("wave_type") == WaveType.STANDARD.value and wave.get("wave_number") is not None:
        return f"Wave {wave['wave_number']}"
    return wave.get("custom_wave_name") or "Custom wave"


def validate_distribution_config(algorithm: str, teams_per_session: int) -> None:
    """Check an algorithm name and team count before anything is written."""
    valid_algorithms = [a.value for a in DistributionAlgorithm]
    if algorithm not in valid_algorithms:
        raise InvalidDistributionConfigError(
            f"Unknown distribution algorithm '{algorithm}'. "
            f"Expected one of: {', '.join(valid_algorithms)}"
        )
    if (
        isinstance(teams_per_session, bool)
        or not isinstance(teams_per_session, int)
        or not MIN_TEAMS_PER_SESSION <= teams_per_session <= MAX_TEAMS_PER_SESSION
    ):
        raise InvalidDistributionConfigError(
            f"Teams per session must be between {MIN_TEAMS_PER_SESSION} and {MAX_TEAMS_PER_SESSION}"
        )


def resolve_distribution_config(
    wave: Dict, algorithm: Optional[str], teams_per_session: Optional[int]
) -> Tuple[str, int]:
    """Fill unset distribution settings from the wave's saved config, then the defaults."""
    if algorithm is None:
        algorithm = wave.get("distribution_algorithm") or DEFAULT_DISTRIBUTION_ALGORITHM
    if teams_per_session is None:
        saved = wave.get("teams_per_session")
        teams_per_session = saved if saved is not None else DEFAULT_TEAMS_PER_SESSION
    return algorithm, teams_per_session


def assignment_block_reason(cohort: Dict, player_count: int) -> Optional[str]:
    """Why sessions cannot be bucketed into waves right now, or None if they can."""
    if not cohort.get("session_capacity"):
        return "Session capacity is 0 for this cohort; set a capacity before assigning sessions to waves"
    if not player_count:
        return "There are no active athletes in this cohort for the active season"
    return None


def _planning_key(cohort_id: int, season_id: int) -> Tuple:
    return ("wave_planning", cohort_id, season_id)


def _distribution_key(wave_id: int) -> Tuple:
    return ("distribute", wave_id)


async def _load_planning_context(
    session: AsyncSession, association_id: int, cohort_id: int
) -> Tuple[Dict, Dict]:
    cohort = await data_service.get_cohort(session, association_id, cohort_id)
    if not cohort:
        raise CohortNotFoundError(f"Cohort {cohort_id} not found")
    season = await data_service.get_active_season(session, association_id)
    if not season:
        raise NoActiveSeasonError("You need an active season to manage waves")
    return cohort, season


#
# Cohorts
#

async def list_cohorts(session: AsyncSession, association_id: int) -> List[Dict]:
    """Active cohorts for the cohort picker."""
    return await data_service.list_active_cohorts(session, association_id)


async def get_cohort_planning_summary(session: AsyncSession, association_id: int) -> Dict:
    """
    Per-cohort capacity figures for the active season.

    Returns:
        dict with the season and, for each active cohort, its athlete count,
        sessions per wave and total sessions required
    """
    season = await data_service.get_active_season(session, association_id)
    if not season:
        raise NoActiveSeasonError("You need an active season to plan cohorts")

    cohorts = await data_service.list_active_cohorts(session, association_id)
    counts = await data_service.count_active_players_by_cohort(session, season["id"])

    summary = []
    for cohort in cohorts:
        player_count = counts.get(cohort["id"], 0)
        summary.append({
            **cohort,
            "player_count": player_count,
            "sessions_per_wave": compute_sessions_per_wave(player_count, cohort["session_capacity"]),
            "sessions_required": compute_sessions_required(
                player_count, cohort["session_capacity"], cohort["sessions_per_cohort"]
            ),
        })
    return {"season": season, "cohorts": summary}


#
# Overview
#

async def get_wave_overview(session: AsyncSession, association_id: int, cohort_id: int) -> Dict:
    """
    Everything the wave management screen shows for one cohort.

    Proposed wave numbers are only filled in when sessions_per_wave is
    positive; otherwise assignment_blocked_reason explains why.
    planning_in_progress and each wave's distribution_in_progress report
    runs still in flight in this process.
    """
    cohort, season = await _load_planning_context(session, association_id, cohort_id)

    player_count = await data_service.count_active_players(session, cohort["id"], season["id"])
    waves = await data_service.list_waves(session, cohort["id"], season["id"])
    sessions = await data_service.list_sessions_with_counts(session, cohort["id"], season["id"])

    sessions_per_wave = compute_sessions_per_wave(player_count, cohort["session_capacity"])
    waves_by_id = {w["id"]: w for w in waves}

    guard = get_operation_guard()
    for wave in waves:
        wave["label"] = wave_label(wave)
        wave["distribution_in_progress"] = guard.is_running(_distribution_key(wave["id"]))

    for index, sess in enumerate(sessions):
        current = waves_by_id.get(sess["wave_id"])
        sess["current_wave_number"] = current["wave_number"] if current else None
        sess["current_wave_label"] = current["label"] if current else None
        sess["proposed_wave_number"] = (
            propose_wave_number(index, sessions_per_wave) if sessions_per_wave > 0 else None
        )

    return {
        "cohort": cohort,
        "season": season,
        "player_count": player_count,
        "required_waves": cohort["sessions_per_cohort"],
        "session_capacity": cohort["session_capacity"],
        "sessions_per_wave": sessions_per_wave,
        "assignment_blocked_reason": assignment_block_reason(cohort, player_count),
        "planning_in_progress": guard.is_running(_planning_key(cohort["id"], season["id"])),
        "waves": waves,
        "sessions": sessions,
    }


#
# Wave Provisioner
#

async def _provision_missing_waves(session: AsyncSession, cohort: Dict, season: Dict) -> Dict:
    existing = await data_service.list_waves(session, cohort["id"], season["id"])
    numbers = missing_wave_numbers(
        cohort["sessions_per_cohort"],
        [w["wave_number"] for w in existing if w["wave_type"] == WaveType.STANDARD.value],
    )
    if not numbers:
        logger.info(
            f"Cohort {cohort['id']} season {season['id']}: all {cohort['sessions_per_cohort']} standard waves exist"
        )
        return {"created": [], "waves": existing}

    rows = build_standard_wave_rows(cohort["association_id"], season["id"], cohort["id"], numbers)
    try:
        await data_service.create_waves(session, rows)
    except IntegrityError as e:
        await session.rollback()
        logger.warning(
            f"Wave number conflict creating waves {numbers} for cohort {cohort['id']} season {season['id']}: {e}"
        )
        raise WaveConflictError(
            "Some of these waves were created by someone else in the meantime; reload and try again"
        ) from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error creating waves for cohort {cohort['id']}: {e}", exc_info=True)
        raise WaveWriteError("Failed to create waves") from e

    logger.info(f"Created waves {numbers} for cohort {cohort['id']} season {season['id']}")
    fresh = await data_service.list_waves(session, cohort["id"], season["id"])
    return {"created": numbers, "waves": fresh}


async def provision_standard_waves(session: AsyncSession, association_id: int, cohort_id: int) -> Dict:
    """
    Create the standard waves 1..sessions_per_cohort that do not exist yet.

    Idempotent: a second run with no state change inserts nothing.

    Returns:
        dict with "created" (new wave numbers) and "waves" (re-read wave list)

    Raises:
        WaveConflictError: a concurrent run already inserted one of the numbers
        WaveWriteError: the batch insert failed for another reason
    """
    cohort, season = await _load_planning_context(session, association_id, cohort_id)
    async with get_operation_guard().hold(_planning_key(cohort["id"], season["id"]), PLANNING_LABEL):
        return await _provision_missing_waves(session, cohort, season)


#
# Session Assigner
#

async def _apply_session_updates(updates: List[Dict]) -> Tuple[List[Dict], List[Dict]]:
    """Issue the per-session updates concurrently; each one succeeds or fails on its own."""
    if not updates:
        return [], []

    results = await asyncio.gather(
        *[data_service.update_session_wave(u["session_id"], u["wave_id"]) for u in updates],
        return_exceptions=True,
    )

    applied = []
    failed = []
    for upd, res in zip(updates, results):
        if isinstance(res, Exception):
            logger.error(
                "Failed to assign session %s to wave %s: %s", upd["session_id"], upd["wave_id"], res,
                exc_info=res,
            )
            failed.append({**upd, "error": str(res)})
        elif not res:
            failed.append({**upd, "error": "Session not found"})
        else:
            applied.append(upd)
    return applied, failed


async def assign_sessions_to_waves(session: AsyncSession, association_id: int, cohort_id: int) -> Dict:
    """
    Assign the cohort's sessions to waves by chronological position.

    The session at zero-based position i goes to wave i // sessions_per_wave + 1.
    Missing standard waves are provisioned first and the wave list is re-read
    before wave numbers are resolved. Only sessions whose wave_id changes are
    written. Writes are independent: a failed update is reported in "failed"
    and the rest are kept.

    When sessions_per_wave is 0 nothing is computed or written and the result
    carries skipped=True with a reason.
    """
    cohort, season = await _load_planning_context(session, association_id, cohort_id)

    async with get_operation_guard().hold(_planning_key(cohort["id"], season["id"]), PLANNING_LABEL):
        player_count = await data_service.count_active_players(session, cohort["id"], season["id"])
        sessions_per_wave = compute_sessions_per_wave(player_count, cohort["session_capacity"])

        result = {
            "skipped": False,
            "reason": None,
            "player_count": player_count,
            "sessions_per_wave": sessions_per_wave,
            "created_waves": [],
            "updated": [],
            "unchanged": [],
            "unresolved": [],
            "failed": [],
        }

        if sessions_per_wave <= 0:
            result["skipped"] = True
            result["reason"] = assignment_block_reason(cohort, player_count)
            logger.info(f"Skipping session assignment for cohort {cohort['id']}: {result['reason']}")
            return result

        provisioned = await _provision_missing_waves(session, cohort, season)
        result["created_waves"] = provisioned["created"]

        # Both reads finish before any wave number is resolved
        sessions = await data_service.list_sessions_with_counts(session, cohort["id"], season["id"])
        fresh_waves = await data_service.list_waves(session, cohort["id"], season["id"])

        plan = plan_session_assignments(sessions, fresh_waves, sessions_per_wave)
        applied, failed = await _apply_session_updates(plan["updates"])

        result.update({
            "updated": applied,
            "unchanged": plan["unchanged"],
            "unresolved": plan["unresolved"],
            "failed": failed,
        })
        logger.info(
            f"Assigned sessions for cohort {cohort['id']} season {season['id']}: "
            f"{len(applied)} updated, {len(plan['unchanged'])} unchanged, "
            f"{len(plan['unresolved'])} without a wave, {len(failed)} failed"
        )
        return result


#
# Custom waves and wave configuration
#

async def create_custom_wave(
    session: AsyncSession,
    association_id: int,
    cohort_id: int,
    name: str,
    distribution_algorithm: Optional[str] = None,
    teams_per_session: Optional[int] = None,
) -> Dict:
    """Create a non-standard wave for the cohort in the active season."""
    name = (name or "").strip()
    if not name:
        raise InvalidWaveNameError("Custom waves need a name")
    if distribution_algorithm is not None or teams_per_session is not None:
        validate_distribution_config(
            distribution_algorithm or DEFAULT_DISTRIBUTION_ALGORITHM,
            teams_per_session if teams_per_session is not None else DEFAULT_TEAMS_PER_SESSION,
        )

    cohort, season = await _load_planning_context(session, association_id, cohort_id)
    try:
        wave = await data_service.create_custom_wave(
            session,
            association_id=association_id,
            season_id=season["id"],
            cohort_id=cohort["id"],
            name=name,
            distribution_algorithm=distribution_algorithm,
            teams_per_session=teams_per_session,
        )
    except IntegrityError as e:
        await session.rollback()
        raise WaveConflictError(f"A custom wave named '{name}' already exists for this cohort") from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error creating custom wave for cohort {cohort_id}: {e}", exc_info=True)
        raise WaveWriteError("Failed to create custom wave") from e

    wave["label"] = wave_label(wave)
    logger.info(f"Created custom wave {wave['id']} '{name}' for cohort {cohort_id}")
    return wave


async def _require_wave(session: AsyncSession, association_id: int, wave_id: int) -> Dict:
    wave = await data_service.get_wave(session, association_id, wave_id)
    if not wave:
        raise WaveNotFoundError(f"Wave {wave_id} not found")
    return wave


async def _save_wave_configuration(
    session: AsyncSession, wave_id: int, algorithm: str, teams_per_session: int
) -> None:
    try:
        updated = await data_service.update_wave_configuration(session, wave_id, algorithm, teams_per_session)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Error updating wave {wave_id} configuration: {e}", exc_info=True)
        raise WaveWriteError("Failed to save wave configuration") from e
    if not updated:
        raise WaveNotFoundError(f"Wave {wave_id} not found")


async def update_wave_configuration(
    session: AsyncSession,
    association_id: int,
    wave_id: int,
    distribution_algorithm: str,
    teams_per_session: int,
) -> Dict:
    """Change a wave's distribution algorithm and team count without distributing."""
    validate_distribution_config(distribution_algorithm, teams_per_session)
    await _require_wave(session, association_id, wave_id)
    async with get_operation_guard().hold(_distribution_key(wave_id), DISTRIBUTION_LABEL):
        await _save_wave_configuration(session, wave_id, distribution_algorithm, teams_per_session)
    wave = await _require_wave(session, association_id, wave_id)
    wave["label"] = wave_label(wave)
    return wave


async def list_wave_sessions(session: AsyncSession, association_id: int, wave_id: int) -> Dict:
    """The wave and the sessions in it, in chronological order."""
    wave = await _require_wave(session, association_id, wave_id)
    wave["label"] = wave_label(wave)
    sessions = await data_service.list_wave_sessions(session, wave_id)
    return {"wave": wave, "sessions": sessions}


#
# Distribution hand-off
#

async def distribute_wave_players(
    session: AsyncSession,
    association_id: int,
    wave_id: int,
    algorithm: Optional[str] = None,
    teams_per_session: Optional[int] = None,
) -> Dict:
    """
    Save the wave's distribution settings, then run the distribution procedure.

    Settings left as None fall back to what the wave already has saved, then
    to the defaults for a new wave.

    The procedure is a black box: success means it returned without error.
    Athlete placements are not read back or verified.

    Raises:
        InvalidDistributionConfigError: before any write, for bad settings
        WaveNotFoundError: the wave is not in this association
        WaveWriteError: the configuration update failed
        DistributionError: the procedure reported an error
    """
    wave = await _require_wave(session, association_id, wave_id)
    algorithm, teams_per_session = resolve_distribution_config(wave, algorithm, teams_per_session)
    validate_distribution_config(algorithm, teams_per_session)

    async with get_operation_guard().hold(_distribution_key(wave_id), DISTRIBUTION_LABEL):
        await _save_wave_configuration(session, wave_id, algorithm, teams_per_session)

        try:
            await data_service.call_distribution_procedure(session, wave_id, algorithm, teams_per_session)
        except SQLAlchemyError as e:
            await session.rollback()
            message = str(getattr(e, "orig", None) or e)
            logger.error(f"Distribution failed for wave {wave_id}: {message}", exc_info=True)
            raise DistributionError(message or "Failed to distribute players.") from e

        session_count = len(await data_service.list_wave_sessions(session, wave_id))
        logger.info(
            f"Distributed players for wave {wave_id} using {algorithm} "
            f"with {teams_per_session} teams per session across {session_count} sessions"
        )
        return {
            "status": "success",
            "message": "Players distributed successfully.",
            "wave_id": wave_id,
            "algorithm": algorithm,
            "teams_per_session": teams_per_session,
            "session_count": session_count,
        }
