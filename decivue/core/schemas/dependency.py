"""Decision dependency schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from decivue.core.models.decision import DecisionLifecycle


class DependencyCreate(BaseModel):
    depends_on_id: UUID
    created_by: str | None = None


class DependencyResponse(BaseModel):
    id: UUID
    source_decision_id: UUID
    target_decision_id: UUID
    created_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DependencyEdge(BaseModel):
    """The decision at the other end of a dependency."""

    dependency_id: UUID
    decision_id: UUID
    title: str
    lifecycle: DecisionLifecycle
    health_signal: int


class DecisionDependencies(BaseModel):
    decision_id: UUID
    depends_on: list[DependencyEdge]
    blocks: list[DependencyEdge]
