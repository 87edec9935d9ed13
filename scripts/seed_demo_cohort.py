#!/usr/bin/env python3
"""
Seed local dev database with one association, an active season and a cohort
ready for wave planning.

Creates a U11 cohort (capacity 10, 4 standard waves), 35 active athletes and
8 scheduled sessions, which plans out to 4 sessions per wave.
Idempotent: skips the seed if the demo association already exists.

Usage:
    PYTHONPATH=apps python scripts/seed_demo_cohort.py
"""

import asyncio
import os
import sys
from datetime import date, time, timedelta

# Add apps/ to path so the evalhub package resolves
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(project_root, "apps"))

from sqlalchemy import select  # noqa: E402
from evalhub.database.db import AsyncSessionLocal, init_database  # noqa: E402
from evalhub.database.models import (  # noqa: E402
    Association,
    Cohort,
    Season,
    SeasonStatus,
    PreviousLevel,
    Player,
    Session,
)
from evalhub.utils.datetime_utils import format_session_slot, utcnow  # noqa: E402

DEMO_ASSOCIATION = "Demo Minor Hockey"
LEVELS = ["AA", "A", "B", "C"]
FIRST_NAMES = ["Avery", "Blake", "Casey", "Devon", "Emery", "Finley", "Harper"]
LAST_NAMES = ["Nguyen", "Okafor", "Patel", "Quinn", "Rossi"]


async def main():
    """Create the demo association, season, cohort, athletes and sessions."""
    print("\n🏒  Seeding demo cohort...\n")
    await init_database()

    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(Association).where(Association.name == DEMO_ASSOCIATION)
        )
        if result.scalar_one_or_none():
            print(f"  ⏭️  {DEMO_ASSOCIATION} already exists, skipping")
            return

        association = Association(name=DEMO_ASSOCIATION, abbreviation="DMH")
        session.add(association)
        await session.flush()

        season = Season(
            association_id=association.id,
            name="2026-27 Evaluations",
            status=SeasonStatus.ACTIVE.value,
            session_capacity=10,
            activated_at=utcnow(),
        )
        cohort = Cohort(
            association_id=association.id,
            name="U11",
            session_capacity=10,
            sessions_per_cohort=4,
            sort_order=1,
        )
        session.add_all([season, cohort])
        await session.flush()

        levels = [
            PreviousLevel(association_id=association.id, name=name, rank_order=rank)
            for rank, name in enumerate(LEVELS, start=1)
        ]
        session.add_all(levels)
        await session.flush()

        for i in range(35):
            session.add(Player(
                association_id=association.id,
                season_id=season.id,
                cohort_id=cohort.id,
                previous_level_id=levels[i % len(levels)].id,
                first_name=FIRST_NAMES[i % len(FIRST_NAMES)],
                last_name=f"{LAST_NAMES[i % len(LAST_NAMES)]}-{i + 1}",
                birth_year=2016,
            ))

        first_day = date.today() + timedelta(days=14)
        for i in range(8):
            scheduled_date = first_day + timedelta(days=i // 2)
            scheduled_time = time(9, 0) if i % 2 == 0 else time(11, 0)
            session.add(Session(
                association_id=association.id,
                season_id=season.id,
                cohort_id=cohort.id,
                name=f"U11 {format_session_slot(scheduled_date, scheduled_time)}",
                location="Main Arena",
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
            ))

        await session.commit()
        print(f"  ✅ Association {association.id}, cohort {cohort.id}, season {season.id}")
        print("  ✅ 35 athletes and 8 sessions created\n")


if __name__ == "__main__":
    asyncio.run(main())
