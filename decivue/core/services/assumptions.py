"""Assumption service."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.assumption import Assumption, AssumptionScope, AssumptionStatus
from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.schemas.assumption import AssumptionCreate, AssumptionUpdate
from decivue.utils.exceptions import (
    AssumptionNotFoundError,
    DecisionNotFoundError,
    DuplicateError,
)

logger = logging.getLogger(__name__)


class AssumptionService:
    """Assumption CRUD. Any change flags the linked decisions for evaluation."""

    def __init__(self, assumption_repo: AssumptionRepository, decision_repo: DecisionRepository) -> None:
        self._assumption_repo = assumption_repo
        self._decision_repo = decision_repo

    @classmethod
    def from_session(cls, session: AsyncSession) -> "AssumptionService":
        return cls(AssumptionRepository(session), DecisionRepository(session))

    async def _flag_dependents(self, assumption_ids: list[UUID]) -> list[UUID]:
        decision_ids = await self._assumption_repo.get_decision_ids(assumption_ids)
        await self._decision_repo.mark_for_evaluation(decision_ids)
        return decision_ids

    async def create_assumption(self, data: AssumptionCreate) -> Assumption:
        if await self._assumption_repo.get_by_description(data.description):
            raise DuplicateError("An assumption with this description already exists")
        for decision_id in data.decision_ids:
            if not await self._decision_repo.exists(decision_id):
                raise DecisionNotFoundError(decision_id)

        session = self._assumption_repo.session
        assumption = self._assumption_repo.build(data)
        if data.status == AssumptionStatus.VALID:
            assumption.validated_at = datetime.now(timezone.utc)
        session.add(assumption)
        await session.flush()
        for decision_id in data.decision_ids:
            await self._assumption_repo.link(decision_id, assumption.id, commit=False)
        await session.commit()
        await session.refresh(assumption)

        await self._decision_repo.mark_for_evaluation(data.decision_ids)
        return assumption

    async def get_assumption(self, assumption_id: UUID) -> Assumption:
        assumption = await self._assumption_repo.get_by_id(assumption_id)
        if not assumption:
            raise AssumptionNotFoundError(assumption_id)
        return assumption

    async def list_assumptions(
        self,
        scope: AssumptionScope | None = None,
        decision_id: UUID | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Assumption]:
        if decision_id is not None:
            assumptions = await self._assumption_repo.get_for_decision(decision_id)
            if scope is not None:
                assumptions = [a for a in assumptions if a.scope == scope]
            return assumptions
        if scope is not None:
            return await self._assumption_repo.get_by_scope(scope)
        return await self._assumption_repo.get_all(limit=limit, offset=offset)

    async def update_assumption(self, assumption_id: UUID, data: AssumptionUpdate) -> Assumption:
        assumption = await self.get_assumption(assumption_id)
        if data.description and data.description != assumption.description:
            if await self._assumption_repo.get_by_description(data.description):
                raise DuplicateError("An assumption with this description already exists")

        old_status = assumption.status
        if data.status == AssumptionStatus.VALID and old_status != AssumptionStatus.VALID:
            assumption.validated_at = datetime.now(timezone.utc)
        assumption = await self._assumption_repo.update(assumption_id, data)
        if assumption.status != old_status:
            logger.info(
                "Assumption status %s -> %s", old_status.value, assumption.status.value,
                extra={"assumption_id": assumption.id},
            )
        # status, scope and parameters all feed scoring or conflict detection
        await self._flag_dependents([assumption.id])
        return assumption

    async def delete_assumption(self, assumption_id: UUID) -> None:
        await self.get_assumption(assumption_id)
        decision_ids = await self._assumption_repo.get_decision_ids([assumption_id])
        await self._assumption_repo.delete(assumption_id)
        await self._decision_repo.mark_for_evaluation(decision_ids)

    async def link(self, assumption_id: UUID, decision_id: UUID) -> bool:
        await self.get_assumption(assumption_id)
        if not await self._decision_repo.exists(decision_id):
            raise DecisionNotFoundError(decision_id)
        linked = await self._assumption_repo.link(decision_id, assumption_id)
        if linked:
            await self._decision_repo.mark_for_evaluation([decision_id])
        return linked

    async def unlink(self, assumption_id: UUID, decision_id: UUID) -> bool:
        unlinked = await self._assumption_repo.unlink(decision_id, assumption_id)
        if unlinked:
            await self._decision_repo.mark_for_evaluation([decision_id])
        return unlinked
