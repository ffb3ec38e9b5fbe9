"""Conflict service: detection, manual reporting and resolution."""

import logging
from datetime import datetime, timezone
from itertools import combinations
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.assumption import AssumptionStatus
from decivue.core.models.conflict import (
    AssumptionConflict,
    AssumptionResolutionAction,
    DecisionConflict,
    DecisionResolutionAction,
)
from decivue.core.models.decision import DecisionLifecycle
from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.conflict import (
    AssumptionConflictRepository,
    DecisionConflictRepository,
)
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.schemas.conflict import (
    AssumptionConflictCreate,
    DecisionConflictCreate,
    DetectionReport,
)
from decivue.core.schemas.evaluation import EvaluationResult
from decivue.core.services.conflict_detector import ConflictDetector
from decivue.core.services.evaluation import EvaluationService
from decivue.core.services.versioning import VersioningService
from decivue.utils.config import get_settings
from decivue.utils.exceptions import (
    AssumptionNotFoundError,
    ConflictNotFoundError,
    DecisionNotFoundError,
    DuplicateError,
    InvalidOperationError,
)

logger = logging.getLogger(__name__)

# status applied to (a, b) for each assumption resolution action
_ASSUMPTION_OUTCOMES = {
    AssumptionResolutionAction.VALIDATE_A: (AssumptionStatus.VALID, AssumptionStatus.BROKEN),
    AssumptionResolutionAction.VALIDATE_B: (AssumptionStatus.BROKEN, AssumptionStatus.VALID),
    AssumptionResolutionAction.MERGE: (AssumptionStatus.VALID, AssumptionStatus.VALID),
    AssumptionResolutionAction.DEPRECATE_BOTH: (AssumptionStatus.BROKEN, AssumptionStatus.BROKEN),
}


class ConflictService:
    """Finds and resolves contradictions between assumptions or decisions."""

    def __init__(
        self,
        assumption_repo: AssumptionRepository,
        decision_repo: DecisionRepository,
        assumption_conflicts: AssumptionConflictRepository,
        decision_conflicts: DecisionConflictRepository,
        evaluation_service: EvaluationService,
        versioning: VersioningService,
        detector: ConflictDetector | None = None,
    ) -> None:
        self._assumption_repo = assumption_repo
        self._decision_repo = decision_repo
        self._assumption_conflicts = assumption_conflicts
        self._decision_conflicts = decision_conflicts
        self._evaluation = evaluation_service
        self._versioning = versioning
        self._detector = detector or ConflictDetector(get_settings().conflicts)

    @classmethod
    def from_session(cls, session: AsyncSession, detector: ConflictDetector | None = None) -> "ConflictService":
        return cls(
            AssumptionRepository(session),
            DecisionRepository(session),
            AssumptionConflictRepository(session),
            DecisionConflictRepository(session),
            EvaluationService.from_session(session),
            VersioningService.from_session(session),
            detector=detector,
        )

    # --- Assumption conflicts ---

    async def detect_assumption_conflicts(self, ids: list[UUID] | None = None) -> DetectionReport:
        """Compare every pair of assumptions and store new conflicts."""
        if ids:
            assumptions = await self._assumption_repo.get_many(ids)
        else:
            assumptions = await self._assumption_repo.get_all(sort_by="created_at", sort_order="asc")

        compared = 0
        found: list[AssumptionConflict] = []
        for a, b in combinations(assumptions, 2):
            compared += 1
            finding = self._detector.detect(a.parameters, b.parameters, mode="assumption")
            if finding is None or await self._assumption_conflicts.get_pair(a.id, b.id):
                continue
            conflict = await self._assumption_conflicts.create_pair(
                a.id, b.id, finding.conflict_type, finding.confidence, finding.explanation, commit=False
            )
            found.append(conflict)
            logger.info(
                "Assumption conflict detected: %s", finding.explanation,
                extra={"conflict_id": conflict.id, "rule": finding.rule},
            )

        if found:
            await self._evaluation.mark_assumption_dependents(
                [x for c in found for x in (c.assumption_a_id, c.assumption_b_id)]
            )
        await self._assumption_repo.session.commit()
        return DetectionReport(
            compared=compared,
            detected=len(found),
            conflicts=[_conflict_summary(c) for c in found],
        )

    async def create_assumption_conflict(self, data: AssumptionConflictCreate) -> AssumptionConflict:
        if data.assumption_a_id == data.assumption_b_id:
            raise InvalidOperationError("An assumption cannot conflict with itself")
        for assumption_id in (data.assumption_a_id, data.assumption_b_id):
            if not await self._assumption_repo.exists(assumption_id):
                raise AssumptionNotFoundError(assumption_id)
        if await self._assumption_conflicts.get_pair(data.assumption_a_id, data.assumption_b_id):
            raise DuplicateError("Conflict between these assumptions already exists")

        conflict = await self._assumption_conflicts.create_pair(
            data.assumption_a_id,
            data.assumption_b_id,
            data.conflict_type,
            data.confidence_score,
            data.explanation,
        )
        await self._evaluation.mark_assumption_dependents([data.assumption_a_id, data.assumption_b_id])
        return conflict

    async def list_assumption_conflicts(
        self, include_resolved: bool = False, assumption_id: UUID | None = None
    ) -> list[AssumptionConflict]:
        if assumption_id is not None:
            return await self._assumption_conflicts.get_for_entity(assumption_id, include_resolved)
        return await self._assumption_conflicts.get_all(include_resolved)

    async def resolve_assumption_conflict(
        self,
        conflict_id: UUID,
        action: AssumptionResolutionAction,
        notes: str | None = None,
        resolved_by: str | None = None,
    ) -> tuple[AssumptionConflict, list[EvaluationResult]]:
        """Resolve a conflict, update the assumptions and re-evaluate dependents."""
        conflict = await self._assumption_conflicts.get_by_id(conflict_id)
        if not conflict:
            raise ConflictNotFoundError(conflict_id)
        if conflict.resolved_at is not None:
            raise InvalidOperationError(f"Conflict {conflict_id} is already resolved")

        pair = (conflict.assumption_a_id, conflict.assumption_b_id)
        statuses = _ASSUMPTION_OUTCOMES.get(action)
        if statuses:
            now = datetime.now(timezone.utc)
            for assumption in await self._assumption_repo.get_many(list(pair)):
                status = statuses[0] if assumption.id == conflict.assumption_a_id else statuses[1]
                assumption.status = status
                if status == AssumptionStatus.VALID:
                    assumption.validated_at = now

        await self._assumption_conflicts.mark_resolved(
            conflict, action, notes, resolved_by, commit=False
        )
        await self._assumption_repo.session.commit()
        logger.info(
            "Assumption conflict resolved with %s", action.value,
            extra={"conflict_id": conflict.id, "actor": resolved_by},
        )

        decision_ids = await self._evaluation.mark_assumption_dependents(list(pair))
        batch = await self._evaluation.evaluate_batch(decision_ids, triggered_by="conflict_resolution")
        return conflict, batch.results

    async def delete_assumption_conflict(self, conflict_id: UUID) -> None:
        conflict = await self._assumption_conflicts.get_by_id(conflict_id)
        if not conflict:
            raise ConflictNotFoundError(conflict_id)
        pair = [conflict.assumption_a_id, conflict.assumption_b_id]
        await self._assumption_conflicts.delete(conflict_id)
        await self._evaluation.mark_assumption_dependents(pair)

    # --- Decision conflicts ---

    async def detect_decision_conflicts(self, ids: list[UUID] | None = None) -> DetectionReport:
        """Compare every pair of active decisions and store new conflicts."""
        decisions = await self._decision_repo.get_active()
        if ids:
            wanted = set(ids)
            decisions = [d for d in decisions if d.id in wanted]

        compared = 0
        found: list[DecisionConflict] = []
        for a, b in combinations(decisions, 2):
            compared += 1
            finding = self._detector.detect(a.parameters, b.parameters, mode="decision")
            if finding is None or await self._decision_conflicts.get_pair(a.id, b.id):
                continue
            conflict = await self._decision_conflicts.create_pair(
                a.id, b.id, finding.conflict_type, finding.confidence, finding.explanation, commit=False
            )
            found.append(conflict)
            logger.info(
                "Decision conflict detected: %s", finding.explanation,
                extra={"conflict_id": conflict.id, "rule": finding.rule},
            )

        await self._decision_repo.session.commit()
        return DetectionReport(
            compared=compared,
            detected=len(found),
            conflicts=[_conflict_summary(c) for c in found],
        )

    async def create_decision_conflict(self, data: DecisionConflictCreate) -> DecisionConflict:
        if data.decision_a_id == data.decision_b_id:
            raise InvalidOperationError("A decision cannot conflict with itself")
        for decision_id in (data.decision_a_id, data.decision_b_id):
            if not await self._decision_repo.exists(decision_id):
                raise DecisionNotFoundError(decision_id)
        if await self._decision_conflicts.get_pair(data.decision_a_id, data.decision_b_id):
            raise DuplicateError("Conflict between these decisions already exists")
        return await self._decision_conflicts.create_pair(
            data.decision_a_id,
            data.decision_b_id,
            data.conflict_type,
            data.confidence_score,
            data.explanation,
        )

    async def list_decision_conflicts(
        self, include_resolved: bool = False, decision_id: UUID | None = None
    ) -> list[DecisionConflict]:
        if decision_id is not None:
            return await self._decision_conflicts.get_for_entity(decision_id, include_resolved)
        return await self._decision_conflicts.get_all(include_resolved)

    async def resolve_decision_conflict(
        self,
        conflict_id: UUID,
        action: DecisionResolutionAction,
        notes: str | None = None,
        resolved_by: str | None = None,
    ) -> DecisionConflict:
        conflict = await self._decision_conflicts.get_by_id(conflict_id)
        if not conflict:
            raise ConflictNotFoundError(conflict_id)
        if conflict.resolved_at is not None:
            raise InvalidOperationError(f"Conflict {conflict_id} is already resolved")

        decisions = await self._decision_repo.get_many([conflict.decision_a_id, conflict.decision_b_id])
        summary = f"Conflict resolved: {action.value}"
        if action == DecisionResolutionAction.PRIORITIZE_A:
            summary = f"{summary} (prioritized {conflict.decision_a_id})"
        elif action == DecisionResolutionAction.PRIORITIZE_B:
            summary = f"{summary} (prioritized {conflict.decision_b_id})"

        for decision in decisions:
            changed: list[str] = []
            if action == DecisionResolutionAction.DEPRECATE_BOTH and decision.lifecycle != DecisionLifecycle.RETIRED:
                decision.lifecycle = DecisionLifecycle.INVALIDATED
                decision.health_signal = 0
                decision.invalidated_reason = notes or "Deprecated while resolving a decision conflict"
                changed = ["lifecycle", "health_signal", "invalidated_reason"]
            elif action == DecisionResolutionAction.MODIFY_BOTH:
                decision.needs_evaluation = True
                changed = ["needs_evaluation"]
            await self._versioning.record_version(
                decision, "conflict_resolved", summary, changed, resolved_by
            )

        await self._decision_conflicts.mark_resolved(conflict, action, notes, resolved_by, commit=False)
        await self._decision_repo.session.commit()
        logger.info(
            "Decision conflict resolved with %s", action.value,
            extra={"conflict_id": conflict.id, "actor": resolved_by},
        )
        return conflict

    async def delete_decision_conflict(self, conflict_id: UUID) -> None:
        if not await self._decision_conflicts.delete(conflict_id):
            raise ConflictNotFoundError(conflict_id)


def _conflict_summary(conflict) -> dict:
    if isinstance(conflict, AssumptionConflict):
        pair = {"a": str(conflict.assumption_a_id), "b": str(conflict.assumption_b_id)}
    else:
        pair = {"a": str(conflict.decision_a_id), "b": str(conflict.decision_b_id)}
    return {
        "id": str(conflict.id),
        **pair,
        "conflict_type": conflict.conflict_type.value,
        "confidence_score": conflict.confidence_score,
        "explanation": conflict.explanation,
    }
