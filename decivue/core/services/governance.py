"""Advisory locks and governance settings on decisions."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.decision import Decision, DecisionLifecycle, GovernanceTier
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.services.versioning import VersioningService
from decivue.utils.exceptions import (
    DecisionLockedError,
    DecisionNotFoundError,
    GovernanceError,
    InvalidOperationError,
)

logger = logging.getLogger(__name__)


def ensure_editable(decision: Decision, actor: str | None) -> None:
    """Raise if the decision is locked by someone other than ``actor``."""
    if decision.locked_at is not None and decision.locked_by != actor:
        raise DecisionLockedError(decision.id, decision.locked_by)


class GovernanceService:
    def __init__(self, decision_repo: DecisionRepository, versioning: VersioningService) -> None:
        self._decision_repo = decision_repo
        self._versioning = versioning

    @classmethod
    def from_session(cls, session: AsyncSession) -> "GovernanceService":
        return cls(DecisionRepository(session), VersioningService.from_session(session))

    async def _get_decision(self, decision_id: UUID) -> Decision:
        decision = await self._decision_repo.get_by_id(decision_id)
        if not decision:
            raise DecisionNotFoundError(decision_id)
        return decision

    async def lock(self, decision_id: UUID, actor: str, reason: str | None = None) -> Decision:
        """Lock a decision for editing. Re-locking by the holder is a no-op."""
        decision = await self._get_decision(decision_id)
        if decision.lifecycle == DecisionLifecycle.RETIRED:
            raise InvalidOperationError("Retired decisions cannot be locked")
        if decision.locked_at is not None:
            if decision.locked_by != actor:
                raise DecisionLockedError(decision.id, decision.locked_by)
            return decision

        decision.locked_at = datetime.now(timezone.utc)
        decision.locked_by = actor
        decision.lock_reason = reason
        await self._versioning.record_version(
            decision, "locked", reason or "Decision locked", ["locked_at", "locked_by"], actor
        )
        await self._decision_repo.save(decision)
        logger.info("Decision locked", extra={"decision_id": decision.id, "actor": actor})
        return decision

    async def unlock(self, decision_id: UUID, actor: str, force: bool = False) -> Decision:
        """Release a lock. Only the holder may unlock unless ``force`` is set."""
        decision = await self._get_decision(decision_id)
        if decision.locked_at is None:
            return decision
        if decision.locked_by != actor and not force:
            raise DecisionLockedError(decision.id, decision.locked_by)

        previous = decision.locked_by
        decision.locked_at = None
        decision.locked_by = None
        decision.lock_reason = None
        summary = "Decision unlocked" if previous == actor else f"Lock held by {previous} released"
        await self._versioning.record_version(
            decision, "unlocked", summary, ["locked_at", "locked_by"], actor
        )
        await self._decision_repo.save(decision)
        logger.info("Decision unlocked", extra={"decision_id": decision.id, "actor": actor})
        return decision

    async def update_settings(
        self,
        decision_id: UUID,
        tier: GovernanceTier | None = None,
        requires_second_reviewer: bool | None = None,
        actor: str | None = None,
    ) -> Decision:
        decision = await self._get_decision(decision_id)
        ensure_editable(decision, actor)

        new_tier = tier if tier is not None else decision.governance_tier
        second = (
            requires_second_reviewer
            if requires_second_reviewer is not None
            else decision.requires_second_reviewer
        )
        if new_tier == GovernanceTier.CRITICAL and not second:
            raise GovernanceError("Critical decisions require a second reviewer")

        changed: list[str] = []
        if new_tier != decision.governance_tier:
            decision.governance_tier = new_tier
            changed.append("governance_tier")
        if second != decision.requires_second_reviewer:
            decision.requires_second_reviewer = second
            changed.append("requires_second_reviewer")
        if not changed:
            return decision

        await self._versioning.record_version(
            decision, "governance_updated", "Governance settings changed", changed, actor
        )
        await self._decision_repo.save(decision)
        return decision
