"""Conflict repositories for assumption pairs and decision pairs."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.conflict import AssumptionConflict, ConflictType, DecisionConflict


class _PairConflictRepository:
    """Shared queries for conflicts between two entities.

    A pair is stored in the orientation the caller gave, so resolution
    actions like VALIDATE_A refer to the caller's first entity. Lookups
    match either orientation.
    """

    model: type
    a_column: str
    b_column: str

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def _a(self):
        return getattr(self.model, self.a_column)

    @property
    def _b(self):
        return getattr(self.model, self.b_column)

    async def get_by_id(self, id: UUID):
        stmt = select(self.model).where(self.model.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_pair(self, a: UUID, b: UUID):
        """Find the conflict between two entities in either orientation."""
        stmt = select(self.model).where(
            or_(and_(self._a == a, self._b == b), and_(self._a == b, self._b == a))
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def create_pair(
        self,
        a: UUID,
        b: UUID,
        conflict_type: ConflictType,
        confidence_score: float,
        explanation: str | None = None,
        commit: bool = True,
    ):
        conflict = self.model(
            **{self.a_column: a, self.b_column: b},
            conflict_type=conflict_type,
            confidence_score=confidence_score,
            explanation=explanation,
        )
        self._session.add(conflict)
        if commit:
            await self._session.commit()
            await self._session.refresh(conflict)
        else:
            await self._session.flush()
        return conflict

    async def get_all(self, include_resolved: bool = False) -> list:
        stmt = select(self.model)
        if not include_resolved:
            stmt = stmt.where(self.model.resolved_at.is_(None))
        stmt = stmt.order_by(self.model.confidence_score.desc(), self.model.detected_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_entity(self, entity_id: UUID, include_resolved: bool = False) -> list:
        stmt = select(self.model).where(or_(self._a == entity_id, self._b == entity_id))
        if not include_resolved:
            stmt = stmt.where(self.model.resolved_at.is_(None))
        stmt = stmt.order_by(self.model.detected_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_unresolved_for(self, entity_ids: list[UUID]) -> int:
        """Count unresolved conflicts touching any of the given entities."""
        if not entity_ids:
            return 0
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.resolved_at.is_(None))
            .where(or_(self._a.in_(entity_ids), self._b.in_(entity_ids)))
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def mark_resolved(
        self,
        conflict,
        action,
        notes: str | None,
        resolved_by: str | None,
        commit: bool = True,
    ):
        conflict.resolved_at = datetime.now(timezone.utc)
        conflict.resolution_action = action
        conflict.resolution_notes = notes
        conflict.resolved_by = resolved_by
        if commit:
            await self._session.commit()
            await self._session.refresh(conflict)
        return conflict

    async def delete(self, id: UUID) -> bool:
        result = await self._session.execute(delete(self.model).where(self.model.id == id))
        await self._session.commit()
        return result.rowcount > 0


class AssumptionConflictRepository(_PairConflictRepository):
    model = AssumptionConflict
    a_column = "assumption_a_id"
    b_column = "assumption_b_id"


class DecisionConflictRepository(_PairConflictRepository):
    model = DecisionConflict
    a_column = "decision_a_id"
    b_column = "decision_b_id"
