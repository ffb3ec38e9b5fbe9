"""Conflict schemas for assumption and decision pairs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from decivue.core.models.conflict import (
    AssumptionResolutionAction,
    ConflictType,
    DecisionResolutionAction,
)


class AssumptionConflictCreate(BaseModel):
    """A manually recorded conflict. VALIDATE_A / VALIDATE_B refer to a / b as given here."""

    assumption_a_id: UUID
    assumption_b_id: UUID
    conflict_type: ConflictType
    confidence_score: float = Field(..., ge=0, le=1)
    explanation: str | None = None


class DecisionConflictCreate(BaseModel):
    decision_a_id: UUID
    decision_b_id: UUID
    conflict_type: ConflictType
    confidence_score: float = Field(..., ge=0, le=1)
    explanation: str | None = None


class AssumptionConflictResolve(BaseModel):
    action: AssumptionResolutionAction
    notes: str | None = None
    resolved_by: str | None = None


class DecisionConflictResolve(BaseModel):
    action: DecisionResolutionAction
    notes: str | None = None
    resolved_by: str | None = None


class AssumptionConflictResponse(BaseModel):
    id: UUID
    assumption_a_id: UUID
    assumption_b_id: UUID
    conflict_type: ConflictType
    confidence_score: float
    explanation: str | None
    detected_at: datetime
    resolved_at: datetime | None
    resolution_action: AssumptionResolutionAction | None
    resolution_notes: str | None

    model_config = {"from_attributes": True}


class DecisionConflictResponse(BaseModel):
    id: UUID
    decision_a_id: UUID
    decision_b_id: UUID
    conflict_type: ConflictType
    confidence_score: float
    explanation: str | None
    detected_at: datetime
    resolved_at: datetime | None
    resolution_action: DecisionResolutionAction | None
    resolution_notes: str | None

    model_config = {"from_attributes": True}


class DetectionRequest(BaseModel):
    ids: list[UUID] | None = Field(None, description="Limit detection to these entities")


class DetectionReport(BaseModel):
    compared: int
    detected: int
    conflicts: list[dict]
