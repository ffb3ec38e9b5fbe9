"""Append-only evaluation history."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base, utcnow
from decivue.core.models.decision import DecisionLifecycle, enum_column


class EvaluationHistory(Base):
    """One row per evaluation run of a decision."""

    __tablename__ = "evaluation_history"

    decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_health_signal = Column(Integer, nullable=False)
    new_health_signal = Column(Integer, nullable=False)
    old_lifecycle = Column(enum_column(DecisionLifecycle), nullable=False)
    new_lifecycle = Column(enum_column(DecisionLifecycle), nullable=False)
    rule = Column(String(50), nullable=False)
    invalidated_reason = Column(Text, nullable=True)
    trace = Column(JSON, nullable=False, default=list)
    triggered_by = Column(String(50), nullable=False, default="manual")
    evaluated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
