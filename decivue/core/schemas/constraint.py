"""Constraint and violation schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from decivue.core.models.constraint import ConstraintType


class ConstraintRule(BaseModel):
    """Validation config evaluated against a decision's context."""

    type: Literal[
        "budget_threshold",
        "policy_regex",
        "technical_compatibility",
        "compliance_required_fields",
    ]
    field: str | None = None
    operator: Literal["<", "<=", ">", ">=", "==", "!="] | None = None
    value: float | None = None
    pattern: str | None = None
    flags: str | None = None
    allowed_values: list[str] | None = None
    fields: list[str] | None = None


class ConstraintBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    constraint_type: ConstraintType = ConstraintType.OTHER
    rule: ConstraintRule | None = None
    is_immutable: bool = False


class ConstraintCreate(ConstraintBase):
    pass


class ConstraintUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    constraint_type: ConstraintType | None = None
    rule: ConstraintRule | None = None


class ConstraintLink(BaseModel):
    decision_id: UUID


class ConstraintResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    constraint_type: ConstraintType
    rule: dict | None
    is_immutable: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ViolationResponse(BaseModel):
    id: UUID
    decision_id: UUID
    constraint_id: UUID
    violation_reason: str
    details: dict | None
    detected_at: datetime
    resolved_at: datetime | None

    model_config = {"from_attributes": True}


class ValidationReport(BaseModel):
    decision_id: UUID
    checked: int
    new_violations: list[ViolationResponse]
    resolved: int
