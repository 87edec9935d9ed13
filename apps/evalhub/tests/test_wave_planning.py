"""
Tests for wave_planning: capacity arithmetic, missing wave numbers and the
chronological session-to-wave plan.
"""

from datetime import date, time

import pytest

from evalhub.services.wave_planning import (
    AssignmentUnavailableError,
    build_standard_wave_rows,
    compute_sessions_per_wave,
    compute_sessions_required,
    missing_wave_numbers,
    plan_session_assignments,
    propose_wave_number,
    propose_wave_numbers,
)
from evalhub.utils.datetime_utils import format_session_slot


def make_waves(*numbers, start_id=100):
    return [
        {"id": start_id + n, "wave_number": n, "wave_type": "standard"}
        for n in numbers
    ]


def make_sessions(count, wave_ids=None):
    wave_ids = wave_ids or [None] * count
    return [{"id": i + 1, "wave_id": wave_ids[i]} for i in range(count)]


# ============================================================================
# Capacity Calculator
# ============================================================================

class TestComputeSessionsPerWave:

    @pytest.mark.parametrize(
        "players,capacity,expected",
        [
            (45, 20, 3),
            (40, 20, 2),
            (1, 20, 1),
            (35, 10, 4),
            (0, 20, 0),
        ],
    )
    def test_ceiling_of_players_over_capacity(self, players, capacity, expected):
        assert compute_sessions_per_wave(players, capacity) == expected

    def test_zero_capacity_yields_zero(self):
        assert compute_sessions_per_wave(45, 0) == 0

    def test_missing_values_are_treated_as_zero(self):
        assert compute_sessions_per_wave(None, 20) == 0
        assert compute_sessions_per_wave(45, None) == 0

    def test_negative_values_raise(self):
        with pytest.raises(ValueError):
            compute_sessions_per_wave(-1, 20)

    def test_large_counts_use_exact_integer_ceiling(self):
        assert compute_sessions_per_wave(10**18 + 1, 10**9) == 10**9 + 1

    def test_sessions_required_multiplies_by_sessions_per_cohort(self):
        assert compute_sessions_required(45, 20, 4) == 12
        assert compute_sessions_required(45, 0, 4) == 0
        assert compute_sessions_required(45, 20, None) == 0


# ============================================================================
# Wave Provisioner
# ============================================================================

class TestMissingWaveNumbers:

    def test_fills_gaps_up_to_required_count(self):
        assert missing_wave_numbers(3, [1, 2]) == [3]

    def test_nothing_missing_after_provisioning(self):
        assert missing_wave_numbers(3, [1, 2, 3]) == []

    def test_non_contiguous_existing_numbers(self):
        assert missing_wave_numbers(5, [2, 4]) == [1, 3, 5]

    def test_custom_waves_without_number_do_not_fill_slots(self):
        assert missing_wave_numbers(2, [None, 1]) == [2]

    def test_numbers_above_required_are_ignored(self):
        assert missing_wave_numbers(2, [1, 2, 7]) == []

    def test_zero_required_creates_nothing(self):
        assert missing_wave_numbers(0, []) == []
        assert missing_wave_numbers(None, []) == []

    def test_new_wave_rows_use_standard_defaults(self):
        rows = build_standard_wave_rows(1, 2, 3, [4, 5])
        assert [r["wave_number"] for r in rows] == [4, 5]
        for row in rows:
            assert row["association_id"] == 1
            assert row["season_id"] == 2
            assert row["cohort_id"] == 3
            assert row["wave_type"] == "standard"
            assert row["status"] == "not_started"
            assert row["teams_per_session"] == 2
            assert row["distribution_algorithm"] == "alphabetical"


# ============================================================================
# Session Assigner
# ============================================================================

class TestProposeWaveNumbers:

    def test_buckets_by_chronological_position(self):
        assert propose_wave_numbers(5, 2) == [1, 1, 2, 2, 3]

    def test_single_index(self):
        assert propose_wave_number(0, 3) == 1
        assert propose_wave_number(2, 3) == 1
        assert propose_wave_number(3, 3) == 2

    def test_no_sessions(self):
        assert propose_wave_numbers(0, 2) == []

    def test_zero_sessions_per_wave_is_unavailable(self):
        with pytest.raises(AssignmentUnavailableError):
            propose_wave_numbers(5, 0)
        with pytest.raises(AssignmentUnavailableError):
            propose_wave_number(0, 0)


class TestPlanSessionAssignments:

    def test_demo_cohort_plan(self):
        """35 athletes, capacity 10, 4 waves and 8 sessions."""
        waves = make_waves(1, 2, 3, 4)
        sessions = make_sessions(8)
        spw = compute_sessions_per_wave(35, 10)

        plan = plan_session_assignments(sessions, waves, spw)

        assert spw == 4
        assert [u["wave_number"] for u in plan["updates"]] == [1, 1, 1, 1, 2, 2, 2, 2]
        assert [u["session_id"] for u in plan["updates"]] == list(range(1, 9))
        assert plan["updates"][0]["wave_id"] == 101
        assert plan["updates"][4]["wave_id"] == 102
        assert plan["unchanged"] == []
        assert plan["unresolved"] == []

    def test_only_changed_sessions_are_updated(self):
        waves = make_waves(1, 2)
        sessions = make_sessions(4, wave_ids=[101, 102, 102, 102])

        plan = plan_session_assignments(sessions, waves, 2)

        assert plan["updates"] == [{"session_id": 2, "wave_id": 101, "wave_number": 1}]
        assert plan["unchanged"] == [1, 3, 4]

    def test_already_correct_plan_has_no_updates(self):
        waves = make_waves(1, 2)
        sessions = make_sessions(3, wave_ids=[101, 101, 102])

        plan = plan_session_assignments(sessions, waves, 2)

        assert plan["updates"] == []
        assert plan["unchanged"] == [1, 2, 3]

    def test_sessions_past_last_wave_are_unresolved(self):
        waves = make_waves(1, 2)
        sessions = make_sessions(5)

        plan = plan_session_assignments(sessions, waves, 2)

        assert [u["session_id"] for u in plan["updates"]] == [1, 2, 3, 4]
        assert plan["unresolved"] == [5]

    def test_custom_waves_are_never_targets(self):
        waves = make_waves(1) + [
            {"id": 900, "wave_number": 2, "wave_type": "custom", "custom_wave_name": "Goalies"}
        ]
        sessions = make_sessions(2)

        plan = plan_session_assignments(sessions, waves, 1)

        assert plan["updates"] == [{"session_id": 1, "wave_id": 101, "wave_number": 1}]
        assert plan["unresolved"] == [2]

    def test_zero_sessions_per_wave_raises(self):
        with pytest.raises(AssignmentUnavailableError):
            plan_session_assignments(make_sessions(2), make_waves(1), 0)


# ============================================================================
# Session slot formatting
# ============================================================================

class TestFormatSessionSlot:

    def test_iso_strings(self):
        assert format_session_slot("2026-11-01", "09:00:00") == "11/1/2026 9:00 AM"

    def test_afternoon_and_midnight(self):
        assert format_session_slot(date(2026, 11, 1), time(13, 5)) == "11/1/2026 1:05 PM"
        assert format_session_slot(date(2026, 11, 1), time(0, 30)) == "11/1/2026 12:30 AM"
        assert format_session_slot(date(2026, 11, 1), time(12, 0)) == "11/1/2026 12:00 PM"

    def test_date_only(self):
        assert format_session_slot(date(2026, 1, 9)) == "1/9/2026"
