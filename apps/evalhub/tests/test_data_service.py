"""
Database tests for data_service and the wave planning flow end to end.
Skipped unless TEST_DATABASE_URL points at a PostgreSQL test database.
"""

from datetime import date, time

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from evalhub.api.main import app
from evalhub.database import db
from evalhub.database.db import get_db_session
from evalhub.database.models import (
    Association,
    Cohort,
    Player,
    PlayerStatus,
    Season,
    SeasonStatus,
    Session,
    SessionDrill,
    Wave,
)
from evalhub.services import data_service, wave_service
from evalhub.services.wave_planning import build_standard_wave_rows
from evalhub.utils.datetime_utils import utcnow


# ============================================================================
# Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def association(db_session):
    a = Association(name="Test Minor Hockey", abbreviation="TMH")
    db_session.add(a)
    await db_session.commit()
    await db_session.refresh(a)
    return a


@pytest_asyncio.fixture
async def season(db_session, association):
    s = Season(
        association_id=association.id,
        name="Test Season",
        status=SeasonStatus.ACTIVE.value,
        session_capacity=10,
        activated_at=utcnow(),
    )
    db_session.add(s)
    await db_session.commit()
    await db_session.refresh(s)
    return s


@pytest_asyncio.fixture
async def cohort(db_session, association):
    c = Cohort(association_id=association.id, name="U11", session_capacity=10, sessions_per_cohort=4)
    db_session.add(c)
    await db_session.commit()
    await db_session.refresh(c)
    return c


@pytest_asyncio.fixture
async def athletes(db_session, association, season, cohort):
    """35 active athletes plus one withdrawn athlete that must not be counted."""
    players = [
        Player(
            association_id=association.id,
            season_id=season.id,
            cohort_id=cohort.id,
            first_name="Athlete",
            last_name=str(i),
            birth_year=2016,
        )
        for i in range(35)
    ]
    players.append(Player(
        association_id=association.id,
        season_id=season.id,
        cohort_id=cohort.id,
        first_name="Withdrawn",
        last_name="Athlete",
        birth_year=2016,
        status=PlayerStatus.WITHDRAWN.value,
    ))
    db_session.add_all(players)
    await db_session.commit()
    return players


@pytest_asyncio.fixture
async def sessions(db_session, association, season, cohort):
    """Eight sessions inserted out of chronological order."""
    slots = [
        (date(2026, 11, 4), time(11, 0)),
        (date(2026, 11, 1), time(9, 0)),
        (date(2026, 11, 3), time(9, 0)),
        (date(2026, 11, 1), time(11, 0)),
        (date(2026, 11, 2), time(9, 0)),
        (date(2026, 11, 4), time(9, 0)),
        (date(2026, 11, 2), time(11, 0)),
        (date(2026, 11, 3), time(11, 0)),
    ]
    rows = [
        Session(
            association_id=association.id,
            season_id=season.id,
            cohort_id=cohort.id,
            name=f"{d.isoformat()} {t.isoformat()}",
            scheduled_date=d,
            scheduled_time=t,
        )
        for d, t in slots
    ]
    db_session.add_all(rows)
    await db_session.commit()
    return rows


# ============================================================================
# data_service
# ============================================================================


@pytest.mark.asyncio
async def test_get_active_season(db_session, association, season):
    active = await data_service.get_active_season(db_session, association.id)
    assert active["id"] == season.id


@pytest.mark.asyncio
async def test_no_active_season(db_session, association):
    db_session.add(Season(association_id=association.id, name="Draft", status=SeasonStatus.DRAFT.value))
    await db_session.commit()

    assert await data_service.get_active_season(db_session, association.id) is None


@pytest.mark.asyncio
async def test_count_active_players_excludes_inactive(db_session, season, cohort, athletes):
    assert await data_service.count_active_players(db_session, cohort.id, season.id) == 35
    counts = await data_service.count_active_players_by_cohort(db_session, season.id)
    assert counts == {cohort.id: 35}


@pytest.mark.asyncio
async def test_sessions_are_listed_chronologically_with_counts(db_session, season, cohort, sessions):
    db_session.add(SessionDrill(session_id=sessions[1].id, drill_name="Skating", weight_percent=25))
    await db_session.commit()

    listed = await data_service.list_sessions_with_counts(db_session, cohort.id, season.id)

    keys = [(s["scheduled_date"], s["scheduled_time"]) for s in listed]
    assert keys == sorted(keys)
    first = listed[0]
    assert first["id"] == sessions[1].id
    assert first["drill_count"] == 1
    assert first["player_count"] == 0


@pytest.mark.asyncio
async def test_duplicate_wave_number_is_rejected(db_session, association, season, cohort):
    await data_service.create_waves(db_session, build_standard_wave_rows(association.id, season.id, cohort.id, [1]))

    with pytest.raises(IntegrityError):
        await data_service.create_waves(
            db_session, build_standard_wave_rows(association.id, season.id, cohort.id, [1])
        )


@pytest.mark.asyncio
async def test_duplicate_custom_wave_name_is_rejected(db_session, association, season, cohort):
    await data_service.create_custom_wave(
        db_session, association_id=association.id, season_id=season.id, cohort_id=cohort.id, name="Goalies"
    )

    with pytest.raises(IntegrityError):
        await data_service.create_custom_wave(
            db_session, association_id=association.id, season_id=season.id, cohort_id=cohort.id, name="Goalies"
        )
    await db_session.rollback()

    # The name only has to be unique within one cohort
    other = Cohort(association_id=association.id, name="U13", session_capacity=10, sessions_per_cohort=4)
    db_session.add(other)
    await db_session.commit()
    await db_session.refresh(other)
    wave = await data_service.create_custom_wave(
        db_session, association_id=association.id, season_id=season.id, cohort_id=other.id, name="Goalies"
    )
    assert wave["custom_wave_name"] == "Goalies"


@pytest.mark.asyncio
async def test_duplicate_custom_wave_name_is_a_conflict(db_session, association, season, cohort):
    await wave_service.create_custom_wave(db_session, association.id, cohort.id, "Goalies")

    with pytest.raises(wave_service.WaveConflictError):
        await wave_service.create_custom_wave(db_session, association.id, cohort.id, " Goalies ")

    waves = await data_service.list_waves(db_session, cohort.id, season.id)
    assert [w["custom_wave_name"] for w in waves] == ["Goalies"]


@pytest.mark.asyncio
async def test_create_custom_wave_twice_over_http_returns_409(db_session, association, season, cohort):
    async def override_get_db_session():
        async with db.AsyncSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    url = f"/api/associations/{association.id}/cohorts/{cohort.id}/waves/custom"
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            first = await client.post(url, json={"name": "Goalies"})
            second = await client.post(url, json={"name": "Goalies"})
    finally:
        app.dependency_overrides.clear()

    assert first.status_code == 200
    assert first.json()["label"] == "Goalies"
    assert second.status_code == 409
    assert "Goalies" in second.json()["detail"]


@pytest.mark.asyncio
async def test_update_session_wave_uses_its_own_session(db_session, association, season, cohort, sessions):
    [wave] = await data_service.create_waves(
        db_session, build_standard_wave_rows(association.id, season.id, cohort.id, [1])
    )

    assert await data_service.update_session_wave(sessions[0].id, wave["id"]) is True
    assert await data_service.update_session_wave(999999, wave["id"]) is False

    assigned = await data_service.list_wave_sessions(db_session, wave["id"])
    assert [s["id"] for s in assigned] == [sessions[0].id]


# ============================================================================
# End-to-end wave planning
# ============================================================================


@pytest.mark.asyncio
async def test_generate_then_assign(db_session, association, season, cohort, athletes, sessions):
    provisioned = await wave_service.provision_standard_waves(db_session, association.id, cohort.id)
    assert provisioned["created"] == [1, 2, 3, 4]

    again = await wave_service.provision_standard_waves(db_session, association.id, cohort.id)
    assert again["created"] == []

    result = await wave_service.assign_sessions_to_waves(db_session, association.id, cohort.id)
    assert result["sessions_per_wave"] == 4
    assert len(result["updated"]) == 8
    assert result["failed"] == []

    db_session.expire_all()
    waves = (await db_session.execute(select(Wave).where(Wave.cohort_id == cohort.id))).scalars().all()
    number_by_id = {w.id: w.wave_number for w in waves}
    rows = (
        await db_session.execute(
            select(Session)
            .where(Session.cohort_id == cohort.id)
            .order_by(Session.scheduled_date, Session.scheduled_time)
        )
    ).scalars().all()
    assert [number_by_id[s.wave_id] for s in rows] == [1, 1, 1, 1, 2, 2, 2, 2]

    rerun = await wave_service.assign_sessions_to_waves(db_session, association.id, cohort.id)
    assert rerun["updated"] == []
    assert len(rerun["unchanged"]) == 8


@pytest.mark.asyncio
async def test_overview_matches_plan(db_session, association, season, cohort, athletes, sessions):
    overview = await wave_service.get_wave_overview(db_session, association.id, cohort.id)

    assert overview["player_count"] == 35
    assert overview["sessions_per_wave"] == 4
    assert [s["proposed_wave_number"] for s in overview["sessions"]] == [1, 1, 1, 1, 2, 2, 2, 2]
    assert overview["waves"] == []
