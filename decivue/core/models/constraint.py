"""Constraint, decision link and violation models."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base, utcnow
from decivue.core.models.decision import enum_column


class ConstraintType(str, enum.Enum):
    BUDGET = "BUDGET"
    POLICY = "POLICY"
    LEGAL = "LEGAL"
    COMPLIANCE = "COMPLIANCE"
    TECHNICAL = "TECHNICAL"
    OTHER = "OTHER"


class Constraint(Base):
    """Organizational rule a decision must satisfy."""

    __tablename__ = "constraints"

    name = Column(String(200), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    constraint_type = Column(
        enum_column(ConstraintType), nullable=False, default=ConstraintType.OTHER, index=True
    )
    rule = Column(JSON, nullable=True)  # {"type": "budget_threshold", ...}
    is_immutable = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Constraint(id={self.id}, name='{self.name}')>"


class DecisionConstraint(Base):
    __tablename__ = "decision_constraints"
    __table_args__ = (UniqueConstraint("decision_id", "constraint_id"),)

    decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    constraint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("constraints.id", ondelete="CASCADE"), nullable=False, index=True
    )


class ConstraintViolation(Base):
    """A detected breach of a constraint by a decision.

    Active while ``resolved_at`` is null.
    """

    __tablename__ = "constraint_violations"

    decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    constraint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("constraints.id", ondelete="CASCADE"), nullable=False, index=True
    )
    violation_reason = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_active(self) -> bool:
        return self.resolved_at is None
