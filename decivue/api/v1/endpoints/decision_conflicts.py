"""Decision conflict API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from decivue.api.dependencies import get_conflict_service
from decivue.core.schemas.conflict import (
    DecisionConflictCreate,
    DecisionConflictResolve,
    DecisionConflictResponse,
    DetectionReport,
    DetectionRequest,
)
from decivue.core.services import ConflictService
from decivue.core.services.event_bus import CONFLICT_DETECTED, CONFLICT_RESOLVED, event_bus
from decivue.utils.exceptions import NotFoundError

router = APIRouter()


@router.get("/", response_model=list[DecisionConflictResponse])
async def list_conflicts(
    include_resolved: bool = Query(False),
    decision_id: UUID | None = Query(None),
    service: ConflictService = Depends(get_conflict_service),
) -> list[DecisionConflictResponse]:
    conflicts = await service.list_decision_conflicts(
        include_resolved=include_resolved, decision_id=decision_id
    )
    return [DecisionConflictResponse.model_validate(c) for c in conflicts]


@router.post("/", response_model=DecisionConflictResponse, status_code=status.HTTP_201_CREATED)
async def report_conflict(
    data: DecisionConflictCreate,
    service: ConflictService = Depends(get_conflict_service),
) -> DecisionConflictResponse:
    try:
        conflict = await service.create_decision_conflict(data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return DecisionConflictResponse.model_validate(conflict)


@router.post("/detect", response_model=DetectionReport)
async def detect_conflicts(
    request: DetectionRequest | None = None,
    service: ConflictService = Depends(get_conflict_service),
) -> DetectionReport:
    """Compare active decisions pairwise and store new conflicts."""
    report = await service.detect_decision_conflicts(request.ids if request else None)
    for conflict in report.conflicts:
        await event_bus.publish(CONFLICT_DETECTED, {"kind": "decision", **conflict})
    return report


@router.post("/{conflict_id}/resolve", response_model=DecisionConflictResponse)
async def resolve_conflict(
    conflict_id: UUID,
    resolution: DecisionConflictResolve,
    service: ConflictService = Depends(get_conflict_service),
) -> DecisionConflictResponse:
    try:
        conflict = await service.resolve_decision_conflict(
            conflict_id, resolution.action, resolution.notes, resolution.resolved_by
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await event_bus.publish(
        CONFLICT_RESOLVED,
        {"kind": "decision", "conflict_id": str(conflict.id), "action": resolution.action.value},
    )
    return DecisionConflictResponse.model_validate(conflict)


@router.delete("/{conflict_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conflict(
    conflict_id: UUID,
    service: ConflictService = Depends(get_conflict_service),
) -> None:
    try:
        await service.delete_decision_conflict(conflict_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
