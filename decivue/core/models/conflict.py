"""Conflict models for pairs of assumptions and pairs of decisions.

Each pair keeps the orientation it was created with; the services look
up both orientations so two entities map to at most one row.
"""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base, utcnow
from decivue.core.models.decision import enum_column


class ConflictType(str, enum.Enum):
    CONTRADICTORY = "CONTRADICTORY"
    MUTUALLY_EXCLUSIVE = "MUTUALLY_EXCLUSIVE"
    INCOMPATIBLE = "INCOMPATIBLE"
    RESOURCE_COMPETITION = "RESOURCE_COMPETITION"
    OBJECTIVE_UNDERMINING = "OBJECTIVE_UNDERMINING"
    PREMISE_INVALIDATION = "PREMISE_INVALIDATION"


class AssumptionResolutionAction(str, enum.Enum):
    VALIDATE_A = "VALIDATE_A"
    VALIDATE_B = "VALIDATE_B"
    MERGE = "MERGE"
    DEPRECATE_BOTH = "DEPRECATE_BOTH"
    KEEP_BOTH = "KEEP_BOTH"


class DecisionResolutionAction(str, enum.Enum):
    PRIORITIZE_A = "PRIORITIZE_A"
    PRIORITIZE_B = "PRIORITIZE_B"
    MODIFY_BOTH = "MODIFY_BOTH"
    DEPRECATE_BOTH = "DEPRECATE_BOTH"
    KEEP_BOTH = "KEEP_BOTH"


class AssumptionConflict(Base):
    __tablename__ = "assumption_conflicts"
    __table_args__ = (
        UniqueConstraint("assumption_a_id", "assumption_b_id"),
        CheckConstraint("confidence_score >= 0 AND confidence_score <= 1"),
    )

    assumption_a_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assumptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assumption_b_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assumptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    conflict_type = Column(enum_column(ConflictType), nullable=False)
    confidence_score = Column(Float, nullable=False)
    explanation = Column(Text, nullable=True)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolution_action = Column(enum_column(AssumptionResolutionAction), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_by = Column(String(255), nullable=True)


class DecisionConflict(Base):
    __tablename__ = "decision_conflicts"
    __table_args__ = (
        UniqueConstraint("decision_a_id", "decision_b_id"),
        CheckConstraint("confidence_score >= 0 AND confidence_score <= 1"),
    )

    decision_a_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    decision_b_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    conflict_type = Column(enum_column(ConflictType), nullable=False)
    confidence_score = Column(Float, nullable=False)
    explanation = Column(Text, nullable=True)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolution_action = Column(enum_column(DecisionResolutionAction), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_by = Column(String(255), nullable=True)
