"""
Database models for Footy Edge
SQLAlchemy ORM; SQLite by default, any SQLAlchemy URL via DATABASE_URL.
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    Float,
    DateTime,
    Boolean,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime, timezone
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///footy_edge.db")

engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# competition_id stored for team-wide settings (applies to every competition)
ALL_COMPETITIONS = 0


def _utcnow():
    return datetime.now(timezone.utc)


class TeamAlgoSetting(Base):
    """Optimized algo settings for a team, optionally scoped to one competition"""

    __tablename__ = "team_algo_settings"
    __table_args__ = (
        UniqueConstraint("team_id", "competition_id", name="_team_competition_uc"),
    )

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, nullable=False, index=True)
    competition_id = Column(Integer, nullable=False, default=ALL_COMPETITIONS, index=True)

    # camelCase payload as written by the optimizer / web client
    settings = Column(JSON, nullable=False)

    # Backtest summary of the stored settings
    meets_criteria = Column(Boolean, default=False)
    hit_rate = Column(Float)
    coverage = Column(Float)
    picks = Column(Integer)
    evaluated = Column(Integer)

    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


def init_db(bind=None):
    """Create all tables (no-op for tables that already exist)."""
    Base.metadata.create_all(bind=bind or engine)
