"""Decision dependency endpoints, mounted under /decisions."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from decivue.api.dependencies import get_dependency_service
from decivue.core.schemas.dependency import (
    DecisionDependencies,
    DependencyCreate,
    DependencyResponse,
)
from decivue.core.services import DependencyService
from decivue.utils.exceptions import DecisionNotFoundError, DependencyNotFoundError

router = APIRouter()


@router.get("/{decision_id}/dependencies", response_model=DecisionDependencies)
async def list_dependencies(
    decision_id: UUID,
    service: DependencyService = Depends(get_dependency_service),
) -> DecisionDependencies:
    """Decisions this one depends on, and decisions it blocks."""
    try:
        return await service.list_dependencies(decision_id)
    except DecisionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{decision_id}/dependencies",
    response_model=DependencyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_dependency(
    decision_id: UUID,
    data: DependencyCreate,
    service: DependencyService = Depends(get_dependency_service),
) -> DependencyResponse:
    """Record that this decision depends on another one."""
    try:
        dependency = await service.add_dependency(
            decision_id, data.depends_on_id, actor=data.created_by
        )
    except DecisionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return DependencyResponse.model_validate(dependency)


@router.delete(
    "/{decision_id}/dependencies/{dependency_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_dependency(
    decision_id: UUID,
    dependency_id: UUID,
    actor: str | None = Query(None),
    service: DependencyService = Depends(get_dependency_service),
) -> None:
    try:
        await service.remove_dependency(decision_id, dependency_id, actor=actor)
    except (DecisionNotFoundError, DependencyNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
