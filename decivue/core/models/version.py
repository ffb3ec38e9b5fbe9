"""Decision version and audit trail."""

import uuid

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from decivue.core.database.base import Base


class DecisionVersion(Base):
    """Snapshot of a decision after a change, numbered per decision."""

    __tablename__ = "decision_versions"
    __table_args__ = (UniqueConstraint("decision_id", "version_number"),)

    decision_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("decisions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_number = Column(Integer, nullable=False)
    change_type = Column(String(40), nullable=False)  # created | updated | retired | reviewed | ...
    change_summary = Column(Text, nullable=True)
    changed_fields = Column(JSON, nullable=True)
    snapshot = Column(JSON, nullable=False)
    changed_by = Column(String(255), nullable=True)
