"""Evaluation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from decivue.core.models.decision import DecisionLifecycle


class TraceStep(BaseModel):
    step: str
    passed: bool
    details: dict = Field(default_factory=dict)


class EvaluationResult(BaseModel):
    decision_id: UUID
    old_health_signal: int
    new_health_signal: int
    old_lifecycle: DecisionLifecycle
    new_lifecycle: DecisionLifecycle
    rule: str
    invalidated_reason: str | None
    trace: list[TraceStep]
    changed: bool


class BatchEvaluateRequest(BaseModel):
    decision_ids: list[UUID] = Field(..., min_length=1)


class BatchEvaluationResult(BaseModel):
    evaluated: int
    failed: int
    results: list[EvaluationResult]
    errors: dict[str, str]


class EvaluationHistoryResponse(BaseModel):
    id: UUID
    decision_id: UUID
    old_health_signal: int
    new_health_signal: int
    old_lifecycle: DecisionLifecycle
    new_lifecycle: DecisionLifecycle
    rule: str
    invalidated_reason: str | None
    trace: list[dict]
    triggered_by: str
    evaluated_at: datetime

    model_config = {"from_attributes": True}
