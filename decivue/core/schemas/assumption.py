"""Assumption schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from decivue.core.models.assumption import AssumptionScope, AssumptionStatus
from decivue.core.schemas.parameters import StructuredParameters


class AssumptionBase(BaseModel):
    description: str = Field(..., min_length=1)
    status: AssumptionStatus = AssumptionStatus.VALID
    scope: AssumptionScope = AssumptionScope.DECISION_SPECIFIC
    category: str | None = Field(None, max_length=30)
    parameters: StructuredParameters | None = None
    context: dict | None = None


class AssumptionCreate(AssumptionBase):
    decision_ids: list[UUID] = Field(default_factory=list, description="Decisions to link")


class AssumptionUpdate(BaseModel):
    description: str | None = Field(None, min_length=1)
    status: AssumptionStatus | None = None
    scope: AssumptionScope | None = None
    category: str | None = Field(None, max_length=30)
    parameters: StructuredParameters | None = None
    context: dict | None = None


class AssumptionLink(BaseModel):
    decision_id: UUID


class AssumptionResponse(BaseModel):
    id: UUID
    description: str
    status: AssumptionStatus
    scope: AssumptionScope
    category: str | None
    parameters: dict | None
    context: dict | None
    validated_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
