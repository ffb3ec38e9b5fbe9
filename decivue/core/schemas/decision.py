"""Decision schemas for API request/response models."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from decivue.core.models.decision import DecisionLifecycle, GovernanceTier
from decivue.core.schemas.parameters import StructuredParameters


class DecisionBase(BaseModel):
    """Base schema for Decision with common fields."""

    title: str = Field(..., min_length=1, max_length=200, description="Decision title")
    description: str | None = Field(None, description="What was decided and why")
    category: str | None = Field(None, max_length=30)
    parameters: StructuredParameters | None = None
    context: dict | None = Field(None, description="Fields checked by constraint rules")
    expiry_date: datetime | None = None


class DecisionCreate(DecisionBase):
    """Schema for creating a new decision."""

    assumption_ids: list[UUID] = Field(default_factory=list)
    constraint_ids: list[UUID] = Field(default_factory=list)
    governance_tier: GovernanceTier = GovernanceTier.STANDARD
    requires_second_reviewer: bool = False
    created_by: str | None = None


class DecisionUpdate(BaseModel):
    """Schema for updating a decision. Lifecycle and health are evaluator-owned."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(None, max_length=30)
    parameters: StructuredParameters | None = None
    context: dict | None = None
    expiry_date: datetime | None = None
    updated_by: str | None = None


class DecisionRetire(BaseModel):
    reason: str | None = None
    retired_by: str | None = None


class DecisionReview(BaseModel):
    """Explicit human review of a decision."""

    reviewer: str = Field(..., min_length=1)
    outcome: Literal["reaffirmed", "revised", "escalated", "deferred"]
    comment: str | None = None
    second_reviewer: str | None = None


class DecisionLock(BaseModel):
    actor: str = Field(..., min_length=1)
    reason: str | None = None


class GovernanceUpdate(BaseModel):
    governance_tier: GovernanceTier | None = None
    requires_second_reviewer: bool | None = None
    actor: str | None = None


class DecisionResponse(BaseModel):
    """Schema for decision responses."""

    id: UUID
    title: str
    description: str | None
    category: str | None
    parameters: dict | None
    context: dict | None
    lifecycle: DecisionLifecycle
    health_signal: int
    invalidated_reason: str | None
    expiry_date: datetime | None
    last_reviewed_at: datetime | None
    last_evaluated_at: datetime | None
    needs_evaluation: bool
    review_urgency_score: int | None
    review_frequency_days: int | None
    next_review_date: datetime | None
    consecutive_deferrals: int
    governance_tier: GovernanceTier
    requires_second_reviewer: bool
    locked_at: datetime | None
    locked_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DecisionList(BaseModel):
    """Schema for paginated decision list."""

    items: list[DecisionResponse]
    total: int
    page: int
    per_page: int


class ReviewUrgencyResponse(BaseModel):
    decision_id: UUID
    score: int
    review_frequency_days: int
    next_review_date: datetime
    factors: dict[str, int]


class DecisionVersionResponse(BaseModel):
    id: UUID
    decision_id: UUID
    version_number: int
    change_type: str
    change_summary: str | None
    changed_fields: list[str] | None
    snapshot: dict
    changed_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
