"""Decision version and audit records."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.decision import Decision
from decivue.core.models.version import DecisionVersion
from decivue.core.repositories.evaluation import DecisionVersionRepository
from decivue.core.schemas.decision import DecisionResponse

logger = logging.getLogger(__name__)


def snapshot_decision(decision: Decision) -> dict:
    """JSON-safe copy of a decision's current state."""
    return DecisionResponse.model_validate(decision).model_dump(mode="json")


class VersioningService:
    """Writes numbered version entries for decisions.

    Entries are staged on the session; the caller's commit persists them
    together with the change they describe.
    """

    def __init__(self, repository: DecisionVersionRepository) -> None:
        self._repository = repository

    @classmethod
    def from_session(cls, session: AsyncSession) -> "VersioningService":
        return cls(DecisionVersionRepository(session))

    async def record_version(
        self,
        decision: Decision,
        change_type: str,
        summary: str | None = None,
        changed_fields: list[str] | None = None,
        actor: str | None = None,
    ) -> DecisionVersion:
        number = await self._repository.next_version_number(decision.id)
        version = DecisionVersion(
            decision_id=decision.id,
            version_number=number,
            change_type=change_type,
            change_summary=summary,
            changed_fields=changed_fields,
            snapshot=snapshot_decision(decision),
            changed_by=actor,
        )
        await self._repository.add(version)
        logger.debug(
            "Recorded version %d (%s)", number, change_type,
            extra={"decision_id": decision.id, "actor": actor},
        )
        return version

    async def list_versions(self, decision_id) -> list[DecisionVersion]:
        return await self._repository.get_for_decision(decision_id)
