"""Constraint and constraint violation repositories."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.constraint import Constraint, ConstraintViolation, DecisionConstraint
from decivue.core.repositories.base import BaseRepository
from decivue.core.schemas.constraint import ConstraintCreate, ConstraintUpdate


class ConstraintRepository(BaseRepository[Constraint, ConstraintCreate, ConstraintUpdate]):
    """Repository for constraints and their decision links."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Constraint)

    async def get_by_name(self, name: str) -> Constraint | None:
        stmt = select(self._model).where(self._model.name == name)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_decision(self, decision_id: UUID) -> list[Constraint]:
        stmt = (
            select(self._model)
            .join(DecisionConstraint, DecisionConstraint.constraint_id == self._model.id)
            .where(DecisionConstraint.decision_id == decision_id)
            .order_by(self._model.name)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def link(self, decision_id: UUID, constraint_id: UUID, commit: bool = True) -> bool:
        """Link a constraint to a decision. Returns False if already linked."""
        stmt = select(DecisionConstraint.id).where(
            DecisionConstraint.decision_id == decision_id,
            DecisionConstraint.constraint_id == constraint_id,
        )
        if (await self._session.execute(stmt)).scalar_one_or_none() is not None:
            return False
        self._session.add(DecisionConstraint(decision_id=decision_id, constraint_id=constraint_id))
        if commit:
            await self._session.commit()
        else:
            await self._session.flush()
        return True

    async def unlink(self, decision_id: UUID, constraint_id: UUID) -> bool:
        stmt = delete(DecisionConstraint).where(
            DecisionConstraint.decision_id == decision_id,
            DecisionConstraint.constraint_id == constraint_id,
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount > 0

    async def delete(self, id: UUID) -> bool:
        await self._session.execute(
            delete(DecisionConstraint).where(DecisionConstraint.constraint_id == id)
        )
        await self._session.execute(
            delete(ConstraintViolation).where(ConstraintViolation.constraint_id == id)
        )
        result = await self._session.execute(delete(self._model).where(self._model.id == id))
        await self._session.commit()
        return result.rowcount > 0


class ConstraintViolationRepository:
    """Repository for constraint violations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, id: UUID) -> ConstraintViolation | None:
        stmt = select(ConstraintViolation).where(ConstraintViolation.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def record(
        self,
        decision_id: UUID,
        constraint_id: UUID,
        reason: str,
        details: dict | None = None,
        commit: bool = True,
    ) -> ConstraintViolation:
        violation = ConstraintViolation(
            decision_id=decision_id,
            constraint_id=constraint_id,
            violation_reason=reason,
            details=details,
        )
        self._session.add(violation)
        if commit:
            await self._session.commit()
            await self._session.refresh(violation)
        else:
            await self._session.flush()
        return violation

    async def resolve(self, id: UUID, commit: bool = True) -> ConstraintViolation | None:
        violation = await self.get_by_id(id)
        if not violation:
            return None
        if violation.resolved_at is None:
            violation.resolved_at = datetime.now(timezone.utc)
        if commit:
            await self._session.commit()
            await self._session.refresh(violation)
        return violation

    async def get_active(self, decision_id: UUID | None = None) -> list[ConstraintViolation]:
        """Get unresolved violations, optionally for one decision."""
        stmt = select(ConstraintViolation).where(ConstraintViolation.resolved_at.is_(None))
        if decision_id is not None:
            stmt = stmt.where(ConstraintViolation.decision_id == decision_id)
        stmt = stmt.order_by(ConstraintViolation.detected_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(self, decision_id: UUID | None = None) -> list[ConstraintViolation]:
        stmt = select(ConstraintViolation)
        if decision_id is not None:
            stmt = stmt.where(ConstraintViolation.decision_id == decision_id)
        stmt = stmt.order_by(ConstraintViolation.detected_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_constraint(self, constraint_id: UUID) -> list[ConstraintViolation]:
        stmt = (
            select(ConstraintViolation)
            .where(ConstraintViolation.constraint_id == constraint_id)
            .order_by(ConstraintViolation.detected_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def find_active(self, decision_id: UUID, constraint_id: UUID) -> ConstraintViolation | None:
        stmt = select(ConstraintViolation).where(
            ConstraintViolation.decision_id == decision_id,
            ConstraintViolation.constraint_id == constraint_id,
            ConstraintViolation.resolved_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def delete(self, id: UUID) -> bool:
        result = await self._session.execute(
            delete(ConstraintViolation).where(ConstraintViolation.id == id)
        )
        await self._session.commit()
        return result.rowcount > 0
