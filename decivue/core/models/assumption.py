"""Assumption model and its link table to decisions."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base
from decivue.core.models.decision import enum_column


class AssumptionStatus(str, enum.Enum):
    VALID = "VALID"
    SHAKY = "SHAKY"
    BROKEN = "BROKEN"


class AssumptionScope(str, enum.Enum):
    UNIVERSAL = "UNIVERSAL"  # applies to every decision it is linked to
    DECISION_SPECIFIC = "DECISION_SPECIFIC"


class Assumption(Base):
    """A belief one or more decisions depend on."""

    __tablename__ = "assumptions"

    description = Column(Text, nullable=False, unique=True)
    status = Column(
        enum_column(AssumptionStatus), nullable=False, default=AssumptionStatus.VALID, index=True
    )
    scope = Column(
        enum_column(AssumptionScope),
        nullable=False,
        default=AssumptionScope.DECISION_SPECIFIC,
        index=True,
    )
    category = Column(String(30), nullable=True, index=True)
    parameters = Column(JSON, nullable=True)
    context = Column(JSON, nullable=True)
    validated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Assumption(id={self.id}, status='{self.status.value}', scope='{self.scope.value}')>"


class DecisionAssumption(Base):
    """Many-to-many link between decisions and assumptions."""

    __tablename__ = "decision_assumptions"
    __table_args__ = (UniqueConstraint("decision_id", "assumption_id"),)

    decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assumption_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assumptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
