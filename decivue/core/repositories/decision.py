"""Decision repository implementation."""

from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.assumption import Assumption, DecisionAssumption
from decivue.core.models.conflict import AssumptionConflict, DecisionConflict
from decivue.core.models.constraint import ConstraintViolation, DecisionConstraint
from decivue.core.models.decision import Decision, DecisionLifecycle
from decivue.core.models.dependency import DecisionDependency
from decivue.core.models.evaluation import EvaluationHistory
from decivue.core.models.version import DecisionVersion
from decivue.core.repositories.base import BaseRepository
from decivue.core.schemas.decision import DecisionCreate, DecisionUpdate


class DecisionRepository(BaseRepository[Decision, DecisionCreate, DecisionUpdate]):
    """Repository for decision data access."""

    non_column_fields = {"assumption_ids", "constraint_ids", "created_by", "updated_by"}

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Decision)

    async def get_by_lifecycle(
        self,
        lifecycle: DecisionLifecycle,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        sort_order: str = "desc",
    ) -> list[Decision]:
        """Get decisions in a lifecycle state."""
        stmt = select(self._model).where(self._model.lifecycle == lifecycle)
        stmt = self._apply_sorting(stmt, sort_by, sort_order)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_lifecycle(self, lifecycle: DecisionLifecycle) -> int:
        stmt = (
            select(func.count())
            .select_from(self._model)
            .where(self._model.lifecycle == lifecycle)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def get_needing_evaluation(self) -> list[Decision]:
        """Get non-retired decisions flagged for re-evaluation."""
        stmt = (
            select(self._model)
            .where(self._model.needs_evaluation.is_(True))
            .where(self._model.lifecycle != DecisionLifecycle.RETIRED)
            .order_by(self._model.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_active(self) -> list[Decision]:
        """Get decisions that are neither invalidated nor retired."""
        stmt = (
            select(self._model)
            .where(
                self._model.lifecycle.not_in(
                    [DecisionLifecycle.INVALIDATED, DecisionLifecycle.RETIRED]
                )
            )
            .order_by(self._model.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def mark_for_evaluation(self, ids: list[UUID]) -> int:
        """Flag decisions for re-evaluation. Retired decisions are skipped."""
        if not ids:
            return 0
        decisions = await self.get_many(ids)
        marked = 0
        for decision in decisions:
            if decision.lifecycle != DecisionLifecycle.RETIRED:
                decision.needs_evaluation = True
                marked += 1
        await self._session.commit()
        return marked

    async def save(self, decision: Decision) -> Decision:
        """Commit pending attribute changes on a loaded decision."""
        await self._session.commit()
        await self._session.refresh(decision)
        return decision

    async def delete(self, id: UUID) -> bool:
        """Delete a decision and everything hanging off it.

        Assumptions linked only to this decision are deleted with it;
        assumptions shared with another decision survive and only lose
        the link. Decisions that depended on it are flagged for
        re-evaluation.
        """
        if not await self.exists(id):
            return False

        link_rows = await self._session.execute(
            select(DecisionAssumption.assumption_id).where(DecisionAssumption.decision_id == id)
        )
        assumption_ids = list(link_rows.scalars().all())

        orphaned: list[UUID] = []
        for assumption_id in assumption_ids:
            count_stmt = (
                select(func.count())
                .select_from(DecisionAssumption)
                .where(DecisionAssumption.assumption_id == assumption_id)
            )
            if ((await self._session.execute(count_stmt)).scalar() or 0) <= 1:
                orphaned.append(assumption_id)

        await self._session.execute(
            delete(DecisionAssumption).where(DecisionAssumption.decision_id == id)
        )
        if orphaned:
            await self._session.execute(
                delete(AssumptionConflict).where(
                    or_(
                        AssumptionConflict.assumption_a_id.in_(orphaned),
                        AssumptionConflict.assumption_b_id.in_(orphaned),
                    )
                )
            )
            await self._session.execute(delete(Assumption).where(Assumption.id.in_(orphaned)))

        await self._session.execute(
            delete(DecisionConstraint).where(DecisionConstraint.decision_id == id)
        )
        await self._session.execute(
            delete(ConstraintViolation).where(ConstraintViolation.decision_id == id)
        )
        await self._session.execute(
            delete(DecisionConflict).where(
                or_(DecisionConflict.decision_a_id == id, DecisionConflict.decision_b_id == id)
            )
        )
        # dependents lose an upstream decision and must be rescored
        dependents = select(DecisionDependency.source_decision_id).where(
            DecisionDependency.target_decision_id == id
        )
        await self._session.execute(
            update(self._model)
            .where(self._model.id.in_(dependents))
            .where(self._model.lifecycle != DecisionLifecycle.RETIRED)
            .values(needs_evaluation=True)
            .execution_options(synchronize_session="fetch")
        )
        await self._session.execute(
            delete(DecisionDependency).where(
                or_(
                    DecisionDependency.source_decision_id == id,
                    DecisionDependency.target_decision_id == id,
                )
            )
        )
        await self._session.execute(
            delete(EvaluationHistory).where(EvaluationHistory.decision_id == id)
        )
        await self._session.execute(
            delete(DecisionVersion).where(DecisionVersion.decision_id == id)
        )
        result = await self._session.execute(delete(self._model).where(self._model.id == id))
        await self._session.commit()
        return result.rowcount > 0
