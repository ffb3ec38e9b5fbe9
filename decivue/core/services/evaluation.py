"""Evaluation service: recompute decision health and record history."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.decision import DecisionLifecycle
from decivue.core.models.evaluation import EvaluationHistory
from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.conflict import AssumptionConflictRepository
from decivue.core.repositories.constraint import (
    ConstraintRepository,
    ConstraintViolationRepository,
)
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.repositories.dependency import DecisionDependencyRepository
from decivue.core.repositories.evaluation import EvaluationHistoryRepository
from decivue.core.schemas.evaluation import BatchEvaluationResult, EvaluationResult, TraceStep
from decivue.core.services.health_engine import (
    AssumptionSignal,
    DependencySignal,
    HealthInput,
    ViolationSignal,
    compute_health,
)
from decivue.utils.config import EvaluationSettings, get_settings
from decivue.utils.exceptions import DecisionNotFoundError, DecivueError

logger = logging.getLogger(__name__)


class EvaluationService:
    """Loads a decision's dependencies, scores it and writes the result.

    The decision update and its history row are committed together. The
    service never touches ``last_reviewed_at``; only an explicit review
    does.
    """

    def __init__(
        self,
        decision_repo: DecisionRepository,
        assumption_repo: AssumptionRepository,
        constraint_repo: ConstraintRepository,
        violation_repo: ConstraintViolationRepository,
        conflict_repo: AssumptionConflictRepository,
        history_repo: EvaluationHistoryRepository,
        dependency_repo: DecisionDependencyRepository | None = None,
        settings: EvaluationSettings | None = None,
    ) -> None:
        self._decision_repo = decision_repo
        self._assumption_repo = assumption_repo
        self._constraint_repo = constraint_repo
        self._violation_repo = violation_repo
        self._conflict_repo = conflict_repo
        self._history_repo = history_repo
        self._dependency_repo = dependency_repo
        self._settings = settings or get_settings().evaluation

    @classmethod
    def from_session(
        cls, session: AsyncSession, settings: EvaluationSettings | None = None
    ) -> "EvaluationService":
        return cls(
            DecisionRepository(session),
            AssumptionRepository(session),
            ConstraintRepository(session),
            ConstraintViolationRepository(session),
            AssumptionConflictRepository(session),
            EvaluationHistoryRepository(session),
            DecisionDependencyRepository(session),
            settings=settings,
        )

    async def _gather_inputs(self, decision) -> HealthInput:
        assumptions = await self._assumption_repo.get_for_decision(decision.id)

        linked_constraints = {
            c.id: c for c in await self._constraint_repo.get_for_decision(decision.id)
        }
        violations = [
            ViolationSignal(
                constraint_id=v.constraint_id,
                constraint_name=linked_constraints[v.constraint_id].name,
                reason=v.violation_reason,
            )
            for v in await self._violation_repo.get_active(decision.id)
            if v.constraint_id in linked_constraints
        ]

        conflicts = await self._conflict_repo.count_unresolved_for([a.id for a in assumptions])

        dependencies: list[DependencySignal] = []
        if self._dependency_repo is not None:
            dependencies = [
                DependencySignal(id=d.id, health_signal=d.health_signal, title=d.title)
                for _, d in await self._dependency_repo.get_depends_on(decision.id)
                if d.lifecycle != DecisionLifecycle.RETIRED
            ]

        return HealthInput(
            lifecycle=decision.lifecycle,
            health_signal=decision.health_signal,
            assumptions=[
                AssumptionSignal(id=a.id, status=a.status, scope=a.scope, description=a.description)
                for a in assumptions
            ],
            violations=violations,
            unresolved_conflicts=conflicts,
            invalidated_reason=decision.invalidated_reason,
            dependencies=dependencies,
        )

    async def evaluate(self, decision_id: UUID, triggered_by: str = "manual") -> EvaluationResult:
        """Recompute one decision's health and lifecycle.

        Raises:
            DecisionNotFoundError: No decision with this id; nothing is written.
        """
        decision = await self._decision_repo.get_by_id(decision_id)
        if not decision:
            raise DecisionNotFoundError(decision_id)

        inputs = await self._gather_inputs(decision)
        outcome = compute_health(inputs, self._settings)

        old_health = decision.health_signal
        old_lifecycle = decision.lifecycle
        now = datetime.now(timezone.utc)

        decision.health_signal = outcome.health_signal
        decision.lifecycle = outcome.lifecycle
        decision.invalidated_reason = outcome.invalidated_reason
        decision.last_evaluated_at = now
        decision.needs_evaluation = False

        self._history_repo.add(
            EvaluationHistory(
                decision_id=decision.id,
                old_health_signal=old_health,
                new_health_signal=outcome.health_signal,
                old_lifecycle=old_lifecycle,
                new_lifecycle=outcome.lifecycle,
                rule=outcome.rule,
                invalidated_reason=outcome.invalidated_reason,
                trace=outcome.trace,
                triggered_by=triggered_by,
                evaluated_at=now,
            )
        )
        if old_health != outcome.health_signal:
            await self._flag_dependents(decision.id)
        await self._decision_repo.save(decision)

        changed = old_health != outcome.health_signal or old_lifecycle != outcome.lifecycle
        log = logger.info if changed else logger.debug
        log(
            "Evaluated decision: health %d -> %d, lifecycle %s -> %s",
            old_health,
            outcome.health_signal,
            old_lifecycle.value,
            outcome.lifecycle.value,
            extra={"decision_id": decision.id, "rule": outcome.rule},
        )

        return EvaluationResult(
            decision_id=decision.id,
            old_health_signal=old_health,
            new_health_signal=outcome.health_signal,
            old_lifecycle=old_lifecycle,
            new_lifecycle=outcome.lifecycle,
            rule=outcome.rule,
            invalidated_reason=outcome.invalidated_reason,
            trace=[TraceStep(**step) for step in outcome.trace],
            changed=changed,
        )

    async def _flag_dependents(self, decision_id: UUID) -> None:
        """Stage needs_evaluation on decisions that depend on this one."""
        if self._dependency_repo is None:
            return
        dependent_ids = await self._dependency_repo.get_dependent_ids(decision_id)
        for dependent in await self._decision_repo.get_many(dependent_ids):
            if dependent.lifecycle != DecisionLifecycle.RETIRED:
                dependent.needs_evaluation = True

    async def evaluate_batch(
        self, decision_ids: list[UUID], triggered_by: str = "batch"
    ) -> BatchEvaluationResult:
        """Evaluate several decisions; a failure is reported, not retried."""
        results: list[EvaluationResult] = []
        errors: dict[str, str] = {}
        for decision_id in decision_ids:
            try:
                results.append(await self.evaluate(decision_id, triggered_by=triggered_by))
            except DecivueError as e:
                errors[str(decision_id)] = str(e)
                logger.warning("Evaluation failed: %s", e, extra={"decision_id": decision_id})
        return BatchEvaluationResult(
            evaluated=len(results), failed=len(errors), results=results, errors=errors
        )

    async def evaluate_pending(self) -> BatchEvaluationResult:
        """Evaluate every decision flagged with ``needs_evaluation``."""
        pending = await self._decision_repo.get_needing_evaluation()
        return await self.evaluate_batch([d.id for d in pending], triggered_by="pending")

    async def evaluate_all(self) -> BatchEvaluationResult:
        decisions = await self._decision_repo.get_all(sort_by="created_at", sort_order="asc")
        return await self.evaluate_batch([d.id for d in decisions], triggered_by="bulk")

    async def mark_for_evaluation(self, decision_ids: list[UUID]) -> int:
        return await self._decision_repo.mark_for_evaluation(decision_ids)

    async def mark_assumption_dependents(self, assumption_ids: list[UUID]) -> list[UUID]:
        """Flag every decision linked to the given assumptions."""
        decision_ids = await self._assumption_repo.get_decision_ids(assumption_ids)
        await self._decision_repo.mark_for_evaluation(decision_ids)
        return decision_ids

    async def get_health_history(
        self, decision_id: UUID, limit: int | None = None
    ) -> list[EvaluationHistory]:
        if not await self._decision_repo.exists(decision_id):
            raise DecisionNotFoundError(decision_id)
        return await self._history_repo.get_for_decision(decision_id, limit=limit)
