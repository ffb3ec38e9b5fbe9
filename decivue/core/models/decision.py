"""Decision model definition.

A decision carries a health signal (0-100) and a lifecycle that the
evaluator recomputes from the assumptions, constraints and conflicts
linked to it. RETIRED is terminal.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base


class DecisionLifecycle(str, enum.Enum):
    STABLE = "STABLE"
    UNDER_REVIEW = "UNDER_REVIEW"
    AT_RISK = "AT_RISK"
    INVALIDATED = "INVALIDATED"
    RETIRED = "RETIRED"


class GovernanceTier(str, enum.Enum):
    STANDARD = "standard"
    HIGH_IMPACT = "high_impact"
    CRITICAL = "critical"


def enum_column(enum_cls: type[enum.Enum], length: int = 30) -> Enum:
    """Store an enum by value in a plain string column."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class Decision(Base):
    """Business decision tracked for health over time."""

    __tablename__ = "decisions"

    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(30), nullable=True, index=True)
    parameters = Column(JSON, nullable=True)  # structured parameters, tagged by category
    context = Column(JSON, nullable=True)  # free-form fields read by constraint rules

    lifecycle = Column(
        enum_column(DecisionLifecycle),
        nullable=False,
        default=DecisionLifecycle.STABLE,
        index=True,
    )
    health_signal = Column(Integer, nullable=False, default=100)
    invalidated_reason = Column(Text, nullable=True)

    expiry_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_evaluated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    needs_evaluation = Column(Boolean, nullable=False, default=True, index=True)

    # Review scheduling
    review_urgency_score = Column(Integer, nullable=True)
    review_frequency_days = Column(Integer, nullable=True)
    next_review_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    urgency_factors = Column(JSON, nullable=True)
    consecutive_deferrals = Column(Integer, nullable=False, default=0)

    # Governance
    governance_tier = Column(
        enum_column(GovernanceTier), nullable=False, default=GovernanceTier.STANDARD
    )
    requires_second_reviewer = Column(Boolean, nullable=False, default=False)
    locked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    locked_by = Column(String(255), nullable=True)
    lock_reason = Column(Text, nullable=True)

    @property
    def is_locked(self) -> bool:
        return self.locked_at is not None

    def __repr__(self) -> str:
        return (
            f"<Decision(id={self.id}, title='{self.title}', "
            f"lifecycle='{self.lifecycle.value if self.lifecycle else None}', "
            f"health={self.health_signal})>"
        )
