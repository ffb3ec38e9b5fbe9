"""Decision service: lifecycle-aware CRUD with version tracking."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.database.base import as_utc
from decivue.core.models.decision import Decision, DecisionLifecycle, GovernanceTier
from decivue.core.models.version import DecisionVersion
from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.constraint import ConstraintRepository
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.schemas.decision import DecisionCreate, DecisionUpdate
from decivue.core.services.governance import ensure_editable
from decivue.core.services.versioning import VersioningService
from decivue.utils.exceptions import (
    AssumptionNotFoundError,
    ConstraintNotFoundError,
    DecisionNotFoundError,
    InvalidOperationError,
)

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("title", "description", "category", "parameters", "context", "expiry_date")

# changes to these require a fresh evaluation
_EVALUATED_FIELDS = {"parameters", "context"}


class DecisionService:
    def __init__(
        self,
        decision_repo: DecisionRepository,
        assumption_repo: AssumptionRepository,
        constraint_repo: ConstraintRepository,
        versioning: VersioningService,
    ) -> None:
        self._decision_repo = decision_repo
        self._assumption_repo = assumption_repo
        self._constraint_repo = constraint_repo
        self._versioning = versioning

    @classmethod
    def from_session(cls, session: AsyncSession) -> "DecisionService":
        return cls(
            DecisionRepository(session),
            AssumptionRepository(session),
            ConstraintRepository(session),
            VersioningService.from_session(session),
        )

    async def create_decision(self, data: DecisionCreate) -> Decision:
        """Create a decision and link its initial assumptions and constraints."""
        for assumption_id in data.assumption_ids:
            if not await self._assumption_repo.exists(assumption_id):
                raise AssumptionNotFoundError(assumption_id)
        for constraint_id in data.constraint_ids:
            if not await self._constraint_repo.exists(constraint_id):
                raise ConstraintNotFoundError(constraint_id)

        session = self._decision_repo.session
        decision = self._decision_repo.build(data)
        if data.governance_tier == GovernanceTier.CRITICAL:
            decision.requires_second_reviewer = True
        session.add(decision)
        await session.flush()
        await session.refresh(decision)

        for assumption_id in data.assumption_ids:
            await self._assumption_repo.link(decision.id, assumption_id, commit=False)
        for constraint_id in data.constraint_ids:
            await self._constraint_repo.link(decision.id, constraint_id, commit=False)

        await self._versioning.record_version(
            decision, "created", "Decision created", list(TRACKED_FIELDS), data.created_by
        )
        await self._decision_repo.save(decision)
        logger.info("Decision created", extra={"decision_id": decision.id, "actor": data.created_by})
        return decision

    async def get_decision(self, decision_id: UUID) -> Decision:
        decision = await self._decision_repo.get_by_id(decision_id)
        if not decision:
            raise DecisionNotFoundError(decision_id)
        return decision

    async def list_decisions(
        self,
        lifecycle: DecisionLifecycle | None = None,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        sort_order: str = "desc",
    ) -> tuple[list[Decision], int]:
        if lifecycle is not None:
            items = await self._decision_repo.get_by_lifecycle(
                lifecycle, limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order
            )
            return items, await self._decision_repo.count_by_lifecycle(lifecycle)
        items = await self._decision_repo.get_all(
            limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order
        )
        return items, await self._decision_repo.count()

    async def update_decision(self, decision_id: UUID, data: DecisionUpdate) -> Decision:
        """Apply field changes; lifecycle and health stay evaluator-owned."""
        decision = await self.get_decision(decision_id)
        ensure_editable(decision, data.updated_by)
        if decision.lifecycle == DecisionLifecycle.RETIRED:
            raise InvalidOperationError("Retired decisions cannot be edited")

        fields = data.model_fields_set - {"updated_by"}
        updates = data.model_dump(include=fields) if fields else {}
        changed: list[str] = []
        for field in TRACKED_FIELDS:
            if field not in updates:
                continue
            new_value = updates[field]
            old_value = getattr(decision, field)
            if field == "expiry_date":
                new_value, old_value = as_utc(new_value), as_utc(old_value)
            if new_value != old_value:
                setattr(decision, field, new_value)
                changed.append(field)

        if not changed:
            return decision
        if _EVALUATED_FIELDS.intersection(changed):
            decision.needs_evaluation = True

        await self._versioning.record_version(
            decision,
            "updated",
            f"Updated {', '.join(changed)}",
            changed,
            data.updated_by,
        )
        await self._decision_repo.save(decision)
        return decision

    async def retire_decision(
        self, decision_id: UUID, reason: str | None = None, actor: str | None = None
    ) -> Decision:
        """Move a decision to the terminal RETIRED state."""
        decision = await self.get_decision(decision_id)
        ensure_editable(decision, actor)
        if decision.lifecycle == DecisionLifecycle.RETIRED:
            raise InvalidOperationError(f"Decision {decision_id} is already retired")

        decision.lifecycle = DecisionLifecycle.RETIRED
        decision.health_signal = 0
        decision.invalidated_reason = reason or "Manually retired"
        decision.needs_evaluation = False
        await self._versioning.record_version(
            decision,
            "retired",
            decision.invalidated_reason,
            ["lifecycle", "health_signal", "invalidated_reason"],
            actor,
        )
        await self._decision_repo.save(decision)
        logger.info("Decision retired", extra={"decision_id": decision.id, "actor": actor})
        return decision

    async def delete_decision(self, decision_id: UUID, actor: str | None = None) -> None:
        decision = await self.get_decision(decision_id)
        ensure_editable(decision, actor)
        await self._decision_repo.delete(decision_id)
        logger.info("Decision deleted", extra={"decision_id": decision_id, "actor": actor})

    async def list_versions(self, decision_id: UUID) -> list[DecisionVersion]:
        await self.get_decision(decision_id)
        return await self._versioning.list_versions(decision_id)
