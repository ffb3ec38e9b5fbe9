"""Decision API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from decivue.api.dependencies import (
    get_decision_service,
    get_evaluation_service,
    get_governance_service,
    get_review_service,
)
from decivue.core.models.decision import DecisionLifecycle
from decivue.core.schemas.decision import (
    DecisionCreate,
    DecisionList,
    DecisionLock,
    DecisionResponse,
    DecisionRetire,
    DecisionReview,
    DecisionUpdate,
    DecisionVersionResponse,
    GovernanceUpdate,
    ReviewUrgencyResponse,
)
from decivue.core.schemas.evaluation import (
    BatchEvaluateRequest,
    BatchEvaluationResult,
    EvaluationHistoryResponse,
    EvaluationResult,
)
from decivue.core.services import (
    DecisionService,
    EvaluationService,
    GovernanceService,
    ReviewService,
)
from decivue.core.services.event_bus import (
    DECISION_EVALUATED,
    DECISION_LIFECYCLE_CHANGED,
    DECISION_RETIRED,
    DECISION_REVIEWED,
    event_bus,
)
from decivue.utils.exceptions import DecisionNotFoundError

router = APIRouter()


def _not_found(decision_id: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Decision {decision_id} not found",
    )


async def publish_evaluation(result: EvaluationResult) -> None:
    """Announce an evaluation result to downstream consumers."""
    payload = result.model_dump(mode="json", exclude={"trace"})
    await event_bus.publish(DECISION_EVALUATED, payload)
    if result.old_lifecycle != result.new_lifecycle:
        await event_bus.publish(DECISION_LIFECYCLE_CHANGED, payload)


@router.post("/", response_model=DecisionResponse, status_code=status.HTTP_201_CREATED)
async def create_decision(
    decision_data: DecisionCreate,
    service: DecisionService = Depends(get_decision_service),
) -> DecisionResponse:
    """Create a new decision."""
    decision = await service.create_decision(decision_data)
    return DecisionResponse.model_validate(decision)


@router.get("/", response_model=DecisionList)
async def list_decisions(
    lifecycle: DecisionLifecycle | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    sort_by: str | None = Query(None),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: DecisionService = Depends(get_decision_service),
) -> DecisionList:
    """List decisions, optionally filtered by lifecycle."""
    decisions, total = await service.list_decisions(
        lifecycle=lifecycle,
        limit=per_page,
        offset=(page - 1) * per_page,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return DecisionList(
        items=[DecisionResponse.model_validate(d) for d in decisions],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/batch-evaluate", response_model=BatchEvaluationResult)
async def batch_evaluate(
    request: BatchEvaluateRequest,
    service: EvaluationService = Depends(get_evaluation_service),
) -> BatchEvaluationResult:
    """Evaluate several decisions; failures are reported per decision."""
    batch = await service.evaluate_batch(request.decision_ids)
    for result in batch.results:
        await publish_evaluation(result)
    return batch


@router.post("/evaluate-pending", response_model=BatchEvaluationResult)
async def evaluate_pending(
    service: EvaluationService = Depends(get_evaluation_service),
) -> BatchEvaluationResult:
    """Evaluate every decision flagged for re-evaluation."""
    batch = await service.evaluate_pending()
    for result in batch.results:
        await publish_evaluation(result)
    return batch


@router.get("/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: UUID,
    service: DecisionService = Depends(get_decision_service),
) -> DecisionResponse:
    """Get a decision by ID."""
    try:
        decision = await service.get_decision(decision_id)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return DecisionResponse.model_validate(decision)


@router.patch("/{decision_id}", response_model=DecisionResponse)
async def update_decision(
    decision_id: UUID,
    update_data: DecisionUpdate,
    service: DecisionService = Depends(get_decision_service),
) -> DecisionResponse:
    """Update a decision's descriptive fields."""
    try:
        decision = await service.update_decision(decision_id, update_data)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return DecisionResponse.model_validate(decision)


@router.delete("/{decision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_decision(
    decision_id: UUID,
    actor: str | None = Query(None),
    service: DecisionService = Depends(get_decision_service),
) -> None:
    """Delete a decision and its exclusively linked assumptions."""
    try:
        await service.delete_decision(decision_id, actor=actor)
    except DecisionNotFoundError:
        raise _not_found(decision_id)


@router.post("/{decision_id}/evaluate", response_model=EvaluationResult)
async def evaluate_decision(
    decision_id: UUID,
    service: EvaluationService = Depends(get_evaluation_service),
) -> EvaluationResult:
    """Recompute a decision's health signal and lifecycle."""
    try:
        result = await service.evaluate(decision_id, triggered_by="api")
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    await publish_evaluation(result)
    return result


@router.get("/{decision_id}/health-history", response_model=list[EvaluationHistoryResponse])
async def get_health_history(
    decision_id: UUID,
    limit: int = Query(50, ge=1, le=500),
    service: EvaluationService = Depends(get_evaluation_service),
) -> list[EvaluationHistoryResponse]:
    """Evaluation history, newest first."""
    try:
        history = await service.get_health_history(decision_id, limit=limit)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return [EvaluationHistoryResponse.model_validate(h) for h in history]


@router.post("/{decision_id}/retire", response_model=DecisionResponse)
async def retire_decision(
    decision_id: UUID,
    retire: DecisionRetire | None = None,
    service: DecisionService = Depends(get_decision_service),
) -> DecisionResponse:
    """Retire a decision. Retirement is terminal."""
    retire = retire or DecisionRetire()
    try:
        decision = await service.retire_decision(decision_id, retire.reason, retire.retired_by)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    await event_bus.publish(
        DECISION_RETIRED,
        {"decision_id": str(decision.id), "reason": decision.invalidated_reason},
    )
    return DecisionResponse.model_validate(decision)


@router.post("/{decision_id}/review", response_model=DecisionResponse)
async def review_decision(
    decision_id: UUID,
    review: DecisionReview,
    service: ReviewService = Depends(get_review_service),
) -> DecisionResponse:
    """Record an explicit human review."""
    try:
        decision = await service.mark_reviewed(
            decision_id,
            reviewer=review.reviewer,
            outcome=review.outcome,
            comment=review.comment,
            second_reviewer=review.second_reviewer,
        )
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    await event_bus.publish(
        DECISION_REVIEWED,
        {"decision_id": str(decision.id), "outcome": review.outcome, "reviewer": review.reviewer},
    )
    return DecisionResponse.model_validate(decision)


@router.get("/{decision_id}/review-urgency", response_model=ReviewUrgencyResponse)
async def get_review_urgency(
    decision_id: UUID,
    service: ReviewService = Depends(get_review_service),
) -> ReviewUrgencyResponse:
    """Recompute the review urgency score and next review date."""
    try:
        return await service.calculate_urgency(decision_id)
    except DecisionNotFoundError:
        raise _not_found(decision_id)


@router.post("/{decision_id}/lock", response_model=DecisionResponse)
async def lock_decision(
    decision_id: UUID,
    lock: DecisionLock,
    service: GovernanceService = Depends(get_governance_service),
) -> DecisionResponse:
    try:
        decision = await service.lock(decision_id, lock.actor, lock.reason)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return DecisionResponse.model_validate(decision)


@router.post("/{decision_id}/unlock", response_model=DecisionResponse)
async def unlock_decision(
    decision_id: UUID,
    lock: DecisionLock,
    force: bool = Query(False),
    service: GovernanceService = Depends(get_governance_service),
) -> DecisionResponse:
    try:
        decision = await service.unlock(decision_id, lock.actor, force=force)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return DecisionResponse.model_validate(decision)


@router.put("/{decision_id}/governance", response_model=DecisionResponse)
async def update_governance(
    decision_id: UUID,
    settings: GovernanceUpdate,
    service: GovernanceService = Depends(get_governance_service),
) -> DecisionResponse:
    """Change governance tier or second-reviewer requirement."""
    try:
        decision = await service.update_settings(
            decision_id,
            tier=settings.governance_tier,
            requires_second_reviewer=settings.requires_second_reviewer,
            actor=settings.actor,
        )
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return DecisionResponse.model_validate(decision)


@router.get("/{decision_id}/versions", response_model=list[DecisionVersionResponse])
async def list_versions(
    decision_id: UUID,
    service: DecisionService = Depends(get_decision_service),
) -> list[DecisionVersionResponse]:
    """Version and audit trail, newest first."""
    try:
        versions = await service.list_versions(decision_id)
    except DecisionNotFoundError:
        raise _not_found(decision_id)
    return [DecisionVersionResponse.model_validate(v) for v in versions]
