"""Constraint and violation API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from decivue.api.dependencies import get_constraint_service
from decivue.core.schemas.constraint import (
    ConstraintCreate,
    ConstraintLink,
    ConstraintResponse,
    ConstraintUpdate,
    ValidationReport,
    ViolationResponse,
)
from decivue.core.services import ConstraintService
from decivue.core.services.event_bus import CONSTRAINT_VIOLATED, event_bus
from decivue.utils.exceptions import NotFoundError

router = APIRouter()


@router.post("/", response_model=ConstraintResponse, status_code=status.HTTP_201_CREATED)
async def create_constraint(
    data: ConstraintCreate,
    service: ConstraintService = Depends(get_constraint_service),
) -> ConstraintResponse:
    constraint = await service.create_constraint(data)
    return ConstraintResponse.model_validate(constraint)


@router.get("/", response_model=list[ConstraintResponse])
async def list_constraints(
    decision_id: UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ConstraintService = Depends(get_constraint_service),
) -> list[ConstraintResponse]:
    constraints = await service.list_constraints(decision_id=decision_id, limit=limit, offset=offset)
    return [ConstraintResponse.model_validate(c) for c in constraints]


@router.get("/violations", response_model=list[ViolationResponse])
async def list_violations(
    decision_id: UUID | None = Query(None),
    constraint_id: UUID | None = Query(None),
    active_only: bool = Query(True),
    service: ConstraintService = Depends(get_constraint_service),
) -> list[ViolationResponse]:
    violations = await service.list_violations(
        decision_id=decision_id, constraint_id=constraint_id, active_only=active_only
    )
    return [ViolationResponse.model_validate(v) for v in violations]


@router.post("/violations/{violation_id}/resolve", response_model=ViolationResponse)
async def resolve_violation(
    violation_id: UUID,
    service: ConstraintService = Depends(get_constraint_service),
) -> ViolationResponse:
    try:
        violation = await service.resolve_violation(violation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ViolationResponse.model_validate(violation)


@router.delete("/violations/{violation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_violation(
    violation_id: UUID,
    service: ConstraintService = Depends(get_constraint_service),
) -> None:
    try:
        await service.delete_violation(violation_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/validate/{decision_id}", response_model=ValidationReport)
async def validate_decision(
    decision_id: UUID,
    service: ConstraintService = Depends(get_constraint_service),
) -> ValidationReport:
    """Check a decision against its linked constraints."""
    try:
        report = await service.validate_decision(decision_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    for violation in report.new_violations:
        await event_bus.publish(CONSTRAINT_VIOLATED, violation.model_dump(mode="json"))
    return report


@router.get("/{constraint_id}", response_model=ConstraintResponse)
async def get_constraint(
    constraint_id: UUID,
    service: ConstraintService = Depends(get_constraint_service),
) -> ConstraintResponse:
    try:
        constraint = await service.get_constraint(constraint_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ConstraintResponse.model_validate(constraint)


@router.patch("/{constraint_id}", response_model=ConstraintResponse)
async def update_constraint(
    constraint_id: UUID,
    data: ConstraintUpdate,
    service: ConstraintService = Depends(get_constraint_service),
) -> ConstraintResponse:
    try:
        constraint = await service.update_constraint(constraint_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return ConstraintResponse.model_validate(constraint)


@router.delete("/{constraint_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_constraint(
    constraint_id: UUID,
    service: ConstraintService = Depends(get_constraint_service),
) -> None:
    try:
        await service.delete_constraint(constraint_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{constraint_id}/link", status_code=status.HTTP_201_CREATED)
async def link_constraint(
    constraint_id: UUID,
    link: ConstraintLink,
    service: ConstraintService = Depends(get_constraint_service),
) -> dict:
    try:
        linked = await service.link(constraint_id, link.decision_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"linked": linked, "constraint_id": str(constraint_id), "decision_id": str(link.decision_id)}


@router.delete("/{constraint_id}/link/{decision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_constraint(
    constraint_id: UUID,
    decision_id: UUID,
    service: ConstraintService = Depends(get_constraint_service),
) -> None:
    if not await service.unlink(constraint_id, decision_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Constraint {constraint_id} is not linked to decision {decision_id}",
        )
