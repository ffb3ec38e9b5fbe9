"""Dependencies between decisions.

A row says the source decision depends on the target decision. The
target's health caps the source's health during evaluation.
"""

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base


class DecisionDependency(Base):
    __tablename__ = "decision_dependencies"
    __table_args__ = (
        UniqueConstraint("source_decision_id", "target_decision_id"),
        CheckConstraint("source_decision_id <> target_decision_id"),
    )

    source_decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target_decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by = Column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<DecisionDependency({self.source_decision_id} -> {self.target_decision_id})>"
