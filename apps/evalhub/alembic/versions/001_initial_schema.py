"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the wave planning schema from the current models:
- associations, cohorts, seasons, previous_levels, players
- waves (unique per cohort/season/wave_number, custom waves unique per
  cohort/season/custom_wave_name via a partial index) and sessions
- session_drills, session_evaluators, session_intake_personnel, player_sessions

The distribute_wave_players stored procedure is deployed separately and is
not created here.
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from scratch."""
    # Import models to register them with Base.metadata
    from evalhub.database.db import Base
    from evalhub.database import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.create_all(bind=bind, checkfirst=True)


def downgrade() -> None:
    """Drop all tables."""
    from evalhub.database.db import Base
    from evalhub.database import models  # noqa: F401

    bind = op.get_bind()
    Base.metadata.drop_all(bind=bind, checkfirst=True)
