"""Decision dependency repository."""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.decision import Decision
from decivue.core.models.dependency import DecisionDependency


class DecisionDependencyRepository:
    """Edges of the decision dependency graph (source depends on target)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, id: UUID) -> DecisionDependency | None:
        stmt = select(DecisionDependency).where(DecisionDependency.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_edge(self, source_id: UUID, target_id: UUID) -> DecisionDependency | None:
        stmt = select(DecisionDependency).where(
            DecisionDependency.source_decision_id == source_id,
            DecisionDependency.target_decision_id == target_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(
        self, source_id: UUID, target_id: UUID, created_by: str | None = None
    ) -> DecisionDependency:
        dependency = DecisionDependency(
            source_decision_id=source_id, target_decision_id=target_id, created_by=created_by
        )
        self._session.add(dependency)
        await self._session.flush()
        return dependency

    async def get_depends_on(self, decision_id: UUID) -> list[tuple[DecisionDependency, Decision]]:
        """Decisions the given decision depends on, with their edges."""
        stmt = (
            select(DecisionDependency, Decision)
            .join(Decision, Decision.id == DecisionDependency.target_decision_id)
            .where(DecisionDependency.source_decision_id == decision_id)
            .order_by(DecisionDependency.created_at)
        )
        result = await self._session.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def get_blocks(self, decision_id: UUID) -> list[tuple[DecisionDependency, Decision]]:
        """Decisions that depend on the given decision, with their edges."""
        stmt = (
            select(DecisionDependency, Decision)
            .join(Decision, Decision.id == DecisionDependency.source_decision_id)
            .where(DecisionDependency.target_decision_id == decision_id)
            .order_by(DecisionDependency.created_at)
        )
        result = await self._session.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def get_dependent_ids(self, decision_id: UUID) -> list[UUID]:
        stmt = select(DecisionDependency.source_decision_id).where(
            DecisionDependency.target_decision_id == decision_id
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def reaches(self, start_id: UUID, goal_id: UUID) -> bool:
        """True if ``goal_id`` is reachable from ``start_id`` along depends-on edges."""
        seen: set[UUID] = set()
        frontier = [start_id]
        while frontier:
            current = frontier.pop()
            if current == goal_id:
                return True
            if current in seen:
                continue
            seen.add(current)
            stmt = select(DecisionDependency.target_decision_id).where(
                DecisionDependency.source_decision_id == current
            )
            frontier.extend((await self._session.execute(stmt)).scalars().all())
        return False

    async def delete(self, id: UUID) -> bool:
        result = await self._session.execute(
            delete(DecisionDependency).where(DecisionDependency.id == id)
        )
        return result.rowcount > 0
