"""
SQLAlchemy ORM models for the evaluation platform.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    Time,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from evalhub.database.db import Base


class CohortStatus(str, enum.Enum):
    """Cohort status enum."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class SeasonStatus(str, enum.Enum):
    """Season lifecycle status. Only one season per association may be ACTIVE."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class PlayerStatus(str, enum.Enum):
    """Athlete roster status."""

    ACTIVE = "active"
    WITHDRAWN = "withdrawn"
    OTHER = "other"


class WaveType(str, enum.Enum):
    """Wave type enum."""

    STANDARD = "standard"
    CUSTOM = "custom"


class WaveStatus(str, enum.Enum):
    """Wave status enum."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DistributionAlgorithm(str, enum.Enum):
    """Strategy used by the distribution procedure to place athletes."""

    ALPHABETICAL = "alphabetical"
    RANDOM = "random"
    PREVIOUS_LEVEL = "previous_level"


class SessionStatus(str, enum.Enum):
    """Evaluation session status enum."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Association(Base):
    """Sports associations (tenants)."""

    __tablename__ = "associations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    abbreviation = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    cohorts = relationship("Cohort", back_populates="association")
    seasons = relationship("Season", back_populates="association")


class Cohort(Base):
    """Named athlete groupings (e.g. U11) scheduled together within a season."""

    __tablename__ = "cohorts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_id = Column(Integer, ForeignKey("associations.id"), nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=CohortStatus.ACTIVE.value,
                    server_default=CohortStatus.ACTIVE.value)
    session_capacity = Column(Integer, nullable=False, default=20, server_default="20")  # Max athletes per session
    sessions_per_cohort = Column(Integer, nullable=False, default=1, server_default="1")  # Required standard waves
    minimum_sessions_per_athlete = Column(Integer, nullable=False, default=1, server_default="1")
    sort_order = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    association = relationship("Association", back_populates="cohorts")
    waves = relationship("Wave", back_populates="cohort")
    sessions = relationship("Session", back_populates="cohort")

    __table_args__ = (
        CheckConstraint("session_capacity >= 0", name="check_cohort_session_capacity"),
        CheckConstraint("sessions_per_cohort >= 0", name="check_cohort_sessions_per_cohort"),
        Index("idx_cohorts_association", "association_id"),
    )


class Season(Base):
    """Time-bounded evaluation periods within an association."""

    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_id = Column(Integer, ForeignKey("associations.id"), nullable=False)
    name = Column(String, nullable=False)
    status = Column(String(20), nullable=False, default=SeasonStatus.DRAFT.value,
                    server_default=SeasonStatus.DRAFT.value)
    session_capacity = Column(Integer, nullable=False, default=20, server_default="20")
    minimum_sessions_per_athlete = Column(Integer, nullable=False, default=1, server_default="1")
    minimum_evaluators_per_athlete = Column(Integer, nullable=False, default=1, server_default="1")
    activated_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    association = relationship("Association", back_populates="seasons")

    # Table constraints - build check constraint from enum values
    __table_args__ = (
        CheckConstraint(
            f"status IN ({', '.join(repr(e.value) for e in SeasonStatus)})",
            name="check_season_status_valid",
        ),
        Index("idx_seasons_association_status", "association_id", "status"),
    )


class PreviousLevel(Base):
    """Ranked prior competitive tiers, used as a balancing input."""

    __tablename__ = "previous_levels"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_id = Column(Integer, ForeignKey("associations.id"), nullable=False)
    name = Column(String, nullable=False)
    rank_order = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("association_id", "rank_order", name="uq_previous_levels_rank"),
    )


class Player(Base):
    """Athletes registered for a season."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_id = Column(Integer, ForeignKey("associations.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    cohort_id = Column(Integer, ForeignKey("cohorts.id"), nullable=True)
    previous_level_id = Column(Integer, ForeignKey("previous_levels.id"), nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    birth_year = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=PlayerStatus.ACTIVE.value,
                    server_default=PlayerStatus.ACTIVE.value)
    status_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_players_cohort_season_status", "cohort_id", "season_id", "status"),
    )


class Wave(Base):
    """Ordered batches of sessions within a cohort/season."""

    __tablename__ = "waves"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_id = Column(Integer, ForeignKey("associations.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    cohort_id = Column(Integer, ForeignKey("cohorts.id"), nullable=False)
    wave_number = Column(Integer, nullable=True)  # Null for custom waves
    wave_type = Column(String(20), nullable=False, default=WaveType.STANDARD.value)
    custom_wave_name = Column(String, nullable=True)
    status = Column(String(20), nullable=False, default=WaveStatus.NOT_STARTED.value,
                    server_default=WaveStatus.NOT_STARTED.value)
    distribution_algorithm = Column(String(20), nullable=True)
    teams_per_session = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    cohort = relationship("Cohort", back_populates="waves")
    sessions = relationship("Session", back_populates="wave", passive_deletes=True)

    __table_args__ = (
        # Postgres treats NULLs as distinct, so custom waves never collide here
        UniqueConstraint("cohort_id", "season_id", "wave_number", name="uq_waves_cohort_season_number"),
        CheckConstraint(
            "teams_per_session IS NULL OR teams_per_session BETWEEN 1 AND 6",
            name="check_wave_teams_per_session",
        ),
        CheckConstraint(
            "distribution_algorithm IS NULL OR distribution_algorithm IN "
            f"({', '.join(repr(e.value) for e in DistributionAlgorithm)})",
            name="check_wave_distribution_algorithm",
        ),
        CheckConstraint(
            f"wave_type IN ({', '.join(repr(e.value) for e in WaveType)})",
            name="check_wave_type_valid",
        ),
        Index("idx_waves_cohort_season", "cohort_id", "season_id"),
        # Custom waves are identified by name within a cohort/season
        Index(
            "uq_waves_cohort_season_custom_name",
            "cohort_id",
            "season_id",
            "custom_wave_name",
            unique=True,
            postgresql_where=text(f"wave_type = '{WaveType.CUSTOM.value}'"),
        ),
    )


class Session(Base):
    """Scheduled evaluation events, optionally linked to a wave."""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    association_id = Column(Integer, ForeignKey("associations.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    cohort_id = Column(Integer, ForeignKey("cohorts.id"), nullable=True)
    wave_id = Column(Integer, ForeignKey("waves.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    location = Column(String, nullable=False, default="")
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=SessionStatus.SCHEDULED.value,
                    server_default=SessionStatus.SCHEDULED.value)
    drill_config_locked = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    cohort = relationship("Cohort", back_populates="sessions")
    wave = relationship("Wave", back_populates="sessions")

    __table_args__ = (
        Index("idx_sessions_cohort_season_schedule", "cohort_id", "season_id",
              "scheduled_date", "scheduled_time"),
        Index("idx_sessions_wave", "wave_id"),
    )


class SessionDrill(Base):
    """Drills configured for a session."""

    __tablename__ = "session_drills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    drill_name = Column(String, nullable=False)
    weight_percent = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("idx_session_drills_session", "session_id"),)


class SessionEvaluator(Base):
    """Evaluators assigned to a session."""

    __tablename__ = "session_evaluators"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    user_email = Column(String, nullable=False)

    __table_args__ = (Index("idx_session_evaluators_session", "session_id"),)


class SessionIntakePersonnel(Base):
    """Intake staff assigned to a session."""

    __tablename__ = "session_intake_personnel"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    user_email = Column(String, nullable=False)

    __table_args__ = (Index("idx_session_intake_session", "session_id"),)


class PlayerSession(Base):
    """Athlete placements within a session (written by the distribution procedure)."""

    __tablename__ = "player_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    team_number = Column(Integer, nullable=True)
    checked_in = Column(Boolean, nullable=False, default=False, server_default="false")
    no_show = Column(Boolean, nullable=False, default=False, server_default="false")

    __table_args__ = (
        UniqueConstraint("session_id", "player_id", name="uq_player_sessions_session_player"),
        Index("idx_player_sessions_session", "session_id"),
    )
