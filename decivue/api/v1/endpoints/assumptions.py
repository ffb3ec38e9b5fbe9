"""Assumption API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from decivue.api.dependencies import get_assumption_service, get_conflict_service
from decivue.core.models.assumption import AssumptionScope
from decivue.core.schemas.assumption import (
    AssumptionCreate,
    AssumptionLink,
    AssumptionResponse,
    AssumptionUpdate,
)
from decivue.core.schemas.conflict import AssumptionConflictResponse
from decivue.core.services import AssumptionService, ConflictService
from decivue.utils.exceptions import NotFoundError

router = APIRouter()


@router.post("/", response_model=AssumptionResponse, status_code=status.HTTP_201_CREATED)
async def create_assumption(
    data: AssumptionCreate,
    service: AssumptionService = Depends(get_assumption_service),
) -> AssumptionResponse:
    """Create an assumption, optionally linking it to decisions."""
    try:
        assumption = await service.create_assumption(data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AssumptionResponse.model_validate(assumption)


@router.get("/", response_model=list[AssumptionResponse])
async def list_assumptions(
    scope: AssumptionScope | None = Query(None),
    decision_id: UUID | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: AssumptionService = Depends(get_assumption_service),
) -> list[AssumptionResponse]:
    assumptions = await service.list_assumptions(
        scope=scope, decision_id=decision_id, limit=limit, offset=offset
    )
    return [AssumptionResponse.model_validate(a) for a in assumptions]


@router.get("/{assumption_id}", response_model=AssumptionResponse)
async def get_assumption(
    assumption_id: UUID,
    service: AssumptionService = Depends(get_assumption_service),
) -> AssumptionResponse:
    try:
        assumption = await service.get_assumption(assumption_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AssumptionResponse.model_validate(assumption)


@router.patch("/{assumption_id}", response_model=AssumptionResponse)
async def update_assumption(
    assumption_id: UUID,
    data: AssumptionUpdate,
    service: AssumptionService = Depends(get_assumption_service),
) -> AssumptionResponse:
    """Update an assumption. Linked decisions are flagged for re-evaluation."""
    try:
        assumption = await service.update_assumption(assumption_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AssumptionResponse.model_validate(assumption)


@router.delete("/{assumption_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assumption(
    assumption_id: UUID,
    service: AssumptionService = Depends(get_assumption_service),
) -> None:
    try:
        await service.delete_assumption(assumption_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{assumption_id}/link", status_code=status.HTTP_201_CREATED)
async def link_assumption(
    assumption_id: UUID,
    link: AssumptionLink,
    service: AssumptionService = Depends(get_assumption_service),
) -> dict:
    try:
        linked = await service.link(assumption_id, link.decision_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"linked": linked, "assumption_id": str(assumption_id), "decision_id": str(link.decision_id)}


@router.delete("/{assumption_id}/link/{decision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_assumption(
    assumption_id: UUID,
    decision_id: UUID,
    service: AssumptionService = Depends(get_assumption_service),
) -> None:
    if not await service.unlink(assumption_id, decision_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Assumption {assumption_id} is not linked to decision {decision_id}",
        )


@router.get("/{assumption_id}/conflicts", response_model=list[AssumptionConflictResponse])
async def get_assumption_conflicts(
    assumption_id: UUID,
    include_resolved: bool = Query(False),
    service: ConflictService = Depends(get_conflict_service),
) -> list[AssumptionConflictResponse]:
    conflicts = await service.list_assumption_conflicts(
        include_resolved=include_resolved, assumption_id=assumption_id
    )
    return [AssumptionConflictResponse.model_validate(c) for c in conflicts]
