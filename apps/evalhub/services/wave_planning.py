"""
Wave planning calculations.

Pure functions for capacity arithmetic, wave provisioning and the
chronological session-to-wave mapping. No database access happens here;
wave_service reads rows, hands them to these helpers and writes back the
resulting deltas.
"""

from typing import Dict, Iterable, List, Optional

from evalhub.database.models import WaveStatus, WaveType
from evalhub.utils.constants import (
    DEFAULT_DISTRIBUTION_ALGORITHM,
    DEFAULT_TEAMS_PER_SESSION,
)


class AssignmentUnavailableError(ValueError):
    """Raised when sessions cannot be bucketed because sessions_per_wave is zero."""


# ============================================================================
# Capacity Calculator
# ============================================================================

def compute_sessions_per_wave(player_count: Optional[int], session_capacity: Optional[int]) -> int:
    """
    Number of sessions each wave needs to seat every active athlete once.

    ceil(player_count / session_capacity), or 0 when the capacity is not
    positive. A partially filled final session is expected.

    Args:
        player_count: Live count of active athletes in the cohort/season
        session_capacity: Max athletes per session for the cohort

    Returns:
        Sessions per wave (0 when not computable)
    """
    player_count = player_count or 0
    session_capacity = session_capacity or 0
    if player_count < 0 or session_capacity < 0:
        raise ValueError("player_count and session_capacity must not be negative")
    if session_capacity == 0:
        return 0
    # Integer ceiling division; avoids float rounding on large counts
    return -(-player_count // session_capacity)


def compute_sessions_required(
    player_count: Optional[int],
    session_capacity: Optional[int],
    sessions_per_cohort: Optional[int],
) -> int:
    """Total sessions a cohort needs across all of its standard waves."""
    return compute_sessions_per_wave(player_count, session_capacity) * (sessions_per_cohort or 0)


# ============================================================================
# Wave Provisioner
# ============================================================================

def missing_wave_numbers(required_count: Optional[int], existing_numbers: Iterable[Optional[int]]) -> List[int]:
    """
    Standard wave numbers in 1..required_count that do not exist yet.

    Custom waves carry no wave number and never fill a standard slot.
    """
    present = {n for n in existing_numbers if n is not None}
    return [n for n in range(1, (required_count or 0) + 1) if n not in present]


def build_standard_wave_rows(
    association_id: int,
    season_id: int,
    cohort_id: int,
    wave_numbers: Iterable[int],
) -> List[Dict]:
    """Insert payloads for new standard waves with their starting configuration."""
    return [
        {
            "association_id": association_id,
            "season_id": season_id,
            "cohort_id": cohort_id,
            "wave_number": number,
            "wave_type": WaveType.STANDARD.value,
            "status": WaveStatus.NOT_STARTED.value,
            "teams_per_session": DEFAULT_TEAMS_PER_SESSION,
            "distribution_algorithm": DEFAULT_DISTRIBUTION_ALGORITHM,
        }
        for number in wave_numbers
    ]


# ============================================================================
# Session Assigner
# ============================================================================

def propose_wave_number(index: int, sessions_per_wave: int) -> int:
    """Wave number for the session at zero-based chronological position index."""
    if not sessions_per_wave or sessions_per_wave <= 0:
        raise AssignmentUnavailableError(
            "Sessions per wave is 0; set a session capacity and enroll active athletes first"
        )
    return index // sessions_per_wave + 1


def propose_wave_numbers(session_count: int, sessions_per_wave: int) -> List[int]:
    """Proposed wave numbers for session_count chronologically ordered sessions."""
    if not sessions_per_wave or sessions_per_wave <= 0:
        raise AssignmentUnavailableError(
            "Sessions per wave is 0; set a session capacity and enroll active athletes first"
        )
    return [propose_wave_number(i, sessions_per_wave) for i in range(session_count)]


def plan_session_assignments(
    sessions: List[Dict],
    waves: List[Dict],
    sessions_per_wave: int,
) -> Dict:
    """
    Map chronologically ordered sessions onto standard waves.

    Only sessions whose current wave_id differs from the proposed wave's id
    produce an update. Sessions whose proposed wave number has no wave row
    are reported as unresolved and left untouched.

    Args:
        sessions: Session dicts ordered by (scheduled_date, scheduled_time),
            each with "id" and "wave_id"
        waves: Wave dicts for the same cohort/season, each with "id",
            "wave_number" and "wave_type"
        sessions_per_wave: Output of compute_sessions_per_wave

    Returns:
        dict with "updates" (session_id, wave_id, wave_number), "unchanged"
        (session ids) and "unresolved" (session ids)
    """
    proposed_numbers = propose_wave_numbers(len(sessions), sessions_per_wave)
    waves_by_number = {
        w["wave_number"]: w
        for w in waves
        if w.get("wave_number") is not None
        and w.get("wave_type", WaveType.STANDARD.value) == WaveType.STANDARD.value
    }

    updates = []
    unchanged = []
    unresolved = []
    for session, wave_number in zip(sessions, proposed_numbers):
        wave = waves_by_number.get(wave_number)
        if wave is None:
            unresolved.append(session["id"])
        elif session.get("wave_id") == wave["id"]:
            unchanged.append(session["id"])
        else:
            updates.append({
                "session_id": session["id"],
                "wave_id": wave["id"],
                "wave_number": wave_number,
            })

    return {"updates": updates, "unchanged": unchanged, "unresolved": unresolved}
