"""Evaluation history and decision version repositories."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.evaluation import EvaluationHistory
from decivue.core.models.version import DecisionVersion


class EvaluationHistoryRepository:
    """Append-only store of evaluation runs."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def add(self, entry: EvaluationHistory) -> None:
        """Stage a history row; committed with the decision update."""
        self._session.add(entry)

    async def get_for_decision(
        self, decision_id: UUID, limit: int | None = None
    ) -> list[EvaluationHistory]:
        stmt = (
            select(EvaluationHistory)
            .where(EvaluationHistory.decision_id == decision_id)
            .order_by(EvaluationHistory.evaluated_at.desc(), EvaluationHistory.created_at.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_decision(self, decision_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(EvaluationHistory)
            .where(EvaluationHistory.decision_id == decision_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar() or 0


class DecisionVersionRepository:
    """Append-only decision versions."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def next_version_number(self, decision_id: UUID) -> int:
        stmt = select(func.max(DecisionVersion.version_number)).where(
            DecisionVersion.decision_id == decision_id
        )
        result = await self._session.execute(stmt)
        return (result.scalar() or 0) + 1

    async def add(self, version: DecisionVersion) -> DecisionVersion:
        self._session.add(version)
        await self._session.flush()
        return version

    async def get_for_decision(self, decision_id: UUID) -> list[DecisionVersion]:
        stmt = (
            select(DecisionVersion)
            .where(DecisionVersion.decision_id == decision_id)
            .order_by(DecisionVersion.version_number.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
