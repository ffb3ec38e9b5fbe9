"""Assumption conflict API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from decivue.api.dependencies import get_conflict_service
from decivue.api.v1.endpoints.decisions import publish_evaluation
from decivue.core.schemas.conflict import (
    AssumptionConflictCreate,
    AssumptionConflictResolve,
    AssumptionConflictResponse,
    DetectionReport,
    DetectionRequest,
)
from decivue.core.schemas.evaluation import EvaluationResult
from decivue.core.services import ConflictService
from decivue.core.services.event_bus import CONFLICT_DETECTED, CONFLICT_RESOLVED, event_bus
from decivue.utils.exceptions import NotFoundError

router = APIRouter()


class AssumptionConflictResolution(BaseModel):
    conflict: AssumptionConflictResponse
    reevaluated: list[EvaluationResult]


@router.get("/", response_model=list[AssumptionConflictResponse])
async def list_conflicts(
    include_resolved: bool = Query(False),
    service: ConflictService = Depends(get_conflict_service),
) -> list[AssumptionConflictResponse]:
    conflicts = await service.list_assumption_conflicts(include_resolved=include_resolved)
    return [AssumptionConflictResponse.model_validate(c) for c in conflicts]


@router.post("/", response_model=AssumptionConflictResponse, status_code=status.HTTP_201_CREATED)
async def report_conflict(
    data: AssumptionConflictCreate,
    service: ConflictService = Depends(get_conflict_service),
) -> AssumptionConflictResponse:
    """Record a conflict spotted by a person."""
    try:
        conflict = await service.create_assumption_conflict(data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AssumptionConflictResponse.model_validate(conflict)


@router.post("/detect", response_model=DetectionReport)
async def detect_conflicts(
    request: DetectionRequest | None = None,
    service: ConflictService = Depends(get_conflict_service),
) -> DetectionReport:
    """Compare assumption parameters pairwise and store new conflicts."""
    report = await service.detect_assumption_conflicts(request.ids if request else None)
    for conflict in report.conflicts:
        await event_bus.publish(CONFLICT_DETECTED, {"kind": "assumption", **conflict})
    return report


@router.post("/{conflict_id}/resolve", response_model=AssumptionConflictResolution)
async def resolve_conflict(
    conflict_id: UUID,
    resolution: AssumptionConflictResolve,
    service: ConflictService = Depends(get_conflict_service),
) -> AssumptionConflictResolution:
    """Resolve a conflict and re-evaluate decisions that depend on either side."""
    try:
        conflict, results = await service.resolve_assumption_conflict(
            conflict_id, resolution.action, resolution.notes, resolution.resolved_by
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await event_bus.publish(
        CONFLICT_RESOLVED,
        {"kind": "assumption", "conflict_id": str(conflict.id), "action": resolution.action.value},
    )
    for result in results:
        await publish_evaluation(result)
    return AssumptionConflictResolution(
        conflict=AssumptionConflictResponse.model_validate(conflict), reevaluated=results
    )


@router.delete("/{conflict_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conflict(
    conflict_id: UUID,
    service: ConflictService = Depends(get_conflict_service),
) -> None:
    """Discard a false positive."""
    try:
        await service.delete_assumption_conflict(conflict_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
