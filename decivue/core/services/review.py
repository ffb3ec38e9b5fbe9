"""Review urgency scoring and explicit human review."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.database.base import as_utc
from decivue.core.models.decision import Decision, DecisionLifecycle
from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.conflict import (
    AssumptionConflictRepository,
    DecisionConflictRepository,
)
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.schemas.decision import ReviewUrgencyResponse
from decivue.core.services.versioning import VersioningService
from decivue.utils.exceptions import DecisionNotFoundError, GovernanceError, InvalidOperationError

logger = logging.getLogger(__name__)

BASE_SCORE = 50

_LIFECYCLE_WEIGHTS = {
    DecisionLifecycle.INVALIDATED: 25,
    DecisionLifecycle.AT_RISK: 20,
    DecisionLifecycle.UNDER_REVIEW: 10,
    DecisionLifecycle.RETIRED: -50,
}


@dataclass
class UrgencyInput:
    lifecycle: DecisionLifecycle
    health_signal: int
    last_reviewed_at: datetime | None
    created_at: datetime
    expiry_date: datetime | None
    decision_conflicts: int
    assumption_conflicts: int
    needs_evaluation: bool
    consecutive_deferrals: int


@dataclass
class Urgency:
    score: int
    review_frequency_days: int
    next_review_date: datetime
    factors: dict[str, int]


def review_frequency_for(score: int) -> int:
    if score >= 80:
        return 7
    if score >= 60:
        return 30
    if score >= 40:
        return 60
    return 90


def calculate_review_urgency(inputs: UrgencyInput, now: datetime | None = None) -> Urgency:
    """Score how soon a decision needs human attention (0-100)."""
    now = now or datetime.now(timezone.utc)
    factors: dict[str, int] = {"base": BASE_SCORE}

    if inputs.lifecycle in _LIFECYCLE_WEIGHTS:
        factors["lifecycle"] = _LIFECYCLE_WEIGHTS[inputs.lifecycle]

    if inputs.health_signal < 30:
        factors["low_health"] = 20
    elif inputs.health_signal < 50:
        factors["low_health"] = 10

    reviewed = as_utc(inputs.last_reviewed_at) or as_utc(inputs.created_at)
    days_since_review = (now - reviewed).days
    if days_since_review > 180:
        factors["review_age"] = 15
    elif days_since_review > 90:
        factors["review_age"] = 8

    if inputs.expiry_date is not None:
        days_to_expiry = (as_utc(inputs.expiry_date) - now).days
        if days_to_expiry < 7:
            factors["expiry"] = 15
        elif days_to_expiry < 30:
            factors["expiry"] = 10
        elif days_to_expiry < 60:
            factors["expiry"] = 5

    if inputs.decision_conflicts > 2:
        factors["decision_conflicts"] = 15
    elif inputs.decision_conflicts > 0:
        factors["decision_conflicts"] = 8

    if inputs.assumption_conflicts > 1:
        factors["assumption_conflicts"] = 10
    elif inputs.assumption_conflicts > 0:
        factors["assumption_conflicts"] = 5

    if inputs.needs_evaluation:
        factors["needs_evaluation"] = 10

    if inputs.consecutive_deferrals >= 3:
        factors["deferrals"] = 20
    elif inputs.consecutive_deferrals >= 2:
        factors["deferrals"] = 10
    elif inputs.consecutive_deferrals >= 1:
        factors["deferrals"] = 5

    score = max(0, min(100, sum(factors.values())))
    frequency = review_frequency_for(score)
    return Urgency(
        score=score,
        review_frequency_days=frequency,
        next_review_date=now + timedelta(days=frequency),
        factors=factors,
    )


class ReviewService:
    """Explicit reviews and urgency bookkeeping on decisions."""

    def __init__(
        self,
        decision_repo: DecisionRepository,
        assumption_repo: AssumptionRepository,
        assumption_conflicts: AssumptionConflictRepository,
        decision_conflicts: DecisionConflictRepository,
        versioning: VersioningService,
    ) -> None:
        self._decision_repo = decision_repo
        self._assumption_repo = assumption_repo
        self._assumption_conflicts = assumption_conflicts
        self._decision_conflicts = decision_conflicts
        self._versioning = versioning

    @classmethod
    def from_session(cls, session: AsyncSession) -> "ReviewService":
        return cls(
            DecisionRepository(session),
            AssumptionRepository(session),
            AssumptionConflictRepository(session),
            DecisionConflictRepository(session),
            VersioningService.from_session(session),
        )

    async def _get_decision(self, decision_id: UUID) -> Decision:
        decision = await self._decision_repo.get_by_id(decision_id)
        if not decision:
            raise DecisionNotFoundError(decision_id)
        return decision

    async def _apply_urgency(self, decision: Decision) -> Urgency:
        assumptions = await self._assumption_repo.get_for_decision(decision.id)
        urgency = calculate_review_urgency(
            UrgencyInput(
                lifecycle=decision.lifecycle,
                health_signal=decision.health_signal,
                last_reviewed_at=decision.last_reviewed_at,
                created_at=decision.created_at,
                expiry_date=decision.expiry_date,
                decision_conflicts=await self._decision_conflicts.count_unresolved_for([decision.id]),
                assumption_conflicts=await self._assumption_conflicts.count_unresolved_for(
                    [a.id for a in assumptions]
                ),
                needs_evaluation=decision.needs_evaluation,
                consecutive_deferrals=decision.consecutive_deferrals,
            )
        )
        decision.review_urgency_score = urgency.score
        decision.review_frequency_days = urgency.review_frequency_days
        decision.next_review_date = urgency.next_review_date
        decision.urgency_factors = urgency.factors
        return urgency

    async def calculate_urgency(self, decision_id: UUID) -> ReviewUrgencyResponse:
        """Recompute and store a decision's review urgency."""
        decision = await self._get_decision(decision_id)
        urgency = await self._apply_urgency(decision)
        await self._decision_repo.save(decision)
        return ReviewUrgencyResponse(
            decision_id=decision.id,
            score=urgency.score,
            review_frequency_days=urgency.review_frequency_days,
            next_review_date=urgency.next_review_date,
            factors=urgency.factors,
        )

    async def mark_reviewed(
        self,
        decision_id: UUID,
        reviewer: str,
        outcome: str,
        comment: str | None = None,
        second_reviewer: str | None = None,
    ) -> Decision:
        """Record a human review. The only writer of ``last_reviewed_at``."""
        decision = await self._get_decision(decision_id)
        if decision.lifecycle == DecisionLifecycle.RETIRED:
            raise InvalidOperationError("Retired decisions cannot be reviewed")
        if decision.requires_second_reviewer:
            if not second_reviewer:
                raise GovernanceError("This decision requires a second reviewer")
            if second_reviewer == reviewer:
                raise GovernanceError("The second reviewer must differ from the reviewer")

        decision.last_reviewed_at = datetime.now(timezone.utc)
        if outcome == "deferred":
            decision.consecutive_deferrals = (decision.consecutive_deferrals or 0) + 1
        else:
            decision.consecutive_deferrals = 0
        if outcome == "revised":
            decision.needs_evaluation = True

        await self._apply_urgency(decision)

        summary = f"Reviewed: {outcome}"
        if comment:
            summary = f"{summary}. {comment}"
        actors = reviewer if not second_reviewer else f"{reviewer}, {second_reviewer}"
        await self._versioning.record_version(
            decision,
            "reviewed",
            summary,
            ["last_reviewed_at", "consecutive_deferrals"],
            actors,
        )
        await self._decision_repo.save(decision)
        logger.info("Decision reviewed: %s", outcome, extra={"decision_id": decision.id, "actor": reviewer})
        return decision
