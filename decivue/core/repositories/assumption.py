"""Assumption repository implementation."""

from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.assumption import Assumption, AssumptionScope, DecisionAssumption
from decivue.core.models.conflict import AssumptionConflict
from decivue.core.repositories.base import BaseRepository
from decivue.core.schemas.assumption import AssumptionCreate, AssumptionUpdate


class AssumptionRepository(BaseRepository[Assumption, AssumptionCreate, AssumptionUpdate]):
    """Repository for assumptions and their decision links."""

    non_column_fields = {"decision_ids"}

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Assumption)

    async def get_by_description(self, description: str) -> Assumption | None:
        stmt = select(self._model).where(self._model.description == description)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_scope(self, scope: AssumptionScope) -> list[Assumption]:
        stmt = (
            select(self._model)
            .where(self._model.scope == scope)
            .order_by(self._model.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_decision(self, decision_id: UUID) -> list[Assumption]:
        """Get all assumptions linked to a decision."""
        stmt = (
            select(self._model)
            .join(DecisionAssumption, DecisionAssumption.assumption_id == self._model.id)
            .where(DecisionAssumption.decision_id == decision_id)
            .order_by(self._model.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_decision_ids(self, assumption_ids: list[UUID]) -> list[UUID]:
        """Get the distinct decisions linked to any of the given assumptions."""
        if not assumption_ids:
            return []
        stmt = (
            select(DecisionAssumption.decision_id)
            .where(DecisionAssumption.assumption_id.in_(assumption_ids))
            .distinct()
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_links(self, assumption_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(DecisionAssumption)
            .where(DecisionAssumption.assumption_id == assumption_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def is_linked(self, decision_id: UUID, assumption_id: UUID) -> bool:
        stmt = select(DecisionAssumption.id).where(
            DecisionAssumption.decision_id == decision_id,
            DecisionAssumption.assumption_id == assumption_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def link(self, decision_id: UUID, assumption_id: UUID, commit: bool = True) -> bool:
        """Link an assumption to a decision. Returns False if already linked."""
        if await self.is_linked(decision_id, assumption_id):
            return False
        self._session.add(DecisionAssumption(decision_id=decision_id, assumption_id=assumption_id))
        if commit:
            await self._session.commit()
        else:
            await self._session.flush()
        return True

    async def unlink(self, decision_id: UUID, assumption_id: UUID) -> bool:
        stmt = delete(DecisionAssumption).where(
            DecisionAssumption.decision_id == decision_id,
            DecisionAssumption.assumption_id == assumption_id,
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount > 0

    async def delete(self, id: UUID) -> bool:
        """Delete an assumption together with its links and conflicts."""
        await self._session.execute(
            delete(DecisionAssumption).where(DecisionAssumption.assumption_id == id)
        )
        await self._session.execute(
            delete(AssumptionConflict).where(
                or_(AssumptionConflict.assumption_a_id == id, AssumptionConflict.assumption_b_id == id)
            )
        )
        result = await self._session.execute(delete(self._model).where(self._model.id == id))
        await self._session.commit()
        return result.rowcount > 0
