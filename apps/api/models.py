from sqlalchemy import Column, Integer, Boolean, DateTime, Index, JSON, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid

# JSONB on Postgres, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class CheckinQuestion(Base):
    """
    Reusable check-in question definition.

    Referenced by historical responses; edits only affect future scoring.
    Free-text types (text, textarea) are stored with weight 0.
    """
    __tablename__ = "checkin_question"

    id = Column(Text, primary_key=True)
    coach_id = Column(Text, nullable=True, index=True)
    text = Column(Text, nullable=True)
    type = Column(Text, nullable=False)                      # scale, number, boolean, ...
    weight = Column(Integer, nullable=True)                  # 0-10, None = type default
    options = Column(JSONType, nullable=True)                # [{"value", "text", "weight"}]
    yes_is_positive = Column(Boolean, nullable=True)         # boolean type only
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ClientScoring(Base):
    """
    Per-client traffic-light configuration.

    Created lazily with a profile default, changed only by explicit coach
    configuration, never deleted. `thresholds` may hold any of the historical
    shapes ({redMax, orangeMax} or legacy {red, yellow, green}); readers go
    through the threshold resolver rather than trusting the stored shape.
    """
    __tablename__ = "client_scoring"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Text, nullable=False, unique=True, index=True)
    scoring_profile = Column(Text, nullable=True)            # lifestyle | high-performance | moderate | custom
    thresholds = Column(JSONType, nullable=True)
    migration_note = Column(Text, nullable=True)
    migrated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class SwotAnalysis(Base):
    """
    Cached AI-generated SWOT analysis for a client.

    Regeneration updates the latest row in place. Several rows per client can
    exist after concurrent first generations; the most recent generated_at is
    authoritative.
    """
    __tablename__ = "swot_analysis"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Text, nullable=False, index=True)
    coach_id = Column(Text, nullable=True)
    analysis = Column(JSONType, nullable=False)
    metrics = Column(JSONType, nullable=True)                # currentScore, averageScore, trend, checkInsCount
    data_fingerprint = Column(Text, nullable=True)
    generated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_swot_analysis_client_generated", "client_id", "generated_at"),
    )
