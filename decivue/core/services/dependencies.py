"""Dependencies between decisions."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.decision import Decision, DecisionLifecycle
from decivue.core.models.dependency import DecisionDependency
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.repositories.dependency import DecisionDependencyRepository
from decivue.core.schemas.dependency import DecisionDependencies, DependencyEdge
from decivue.core.services.governance import ensure_editable
from decivue.core.services.versioning import VersioningService
from decivue.utils.exceptions import (
    DecisionNotFoundError,
    DependencyNotFoundError,
    DuplicateError,
    InvalidOperationError,
)

logger = logging.getLogger(__name__)


def _edge(dependency: DecisionDependency, decision: Decision) -> DependencyEdge:
    return DependencyEdge(
        dependency_id=dependency.id,
        decision_id=decision.id,
        title=decision.title,
        lifecycle=decision.lifecycle,
        health_signal=decision.health_signal,
    )


class DependencyService:
    """Records which decisions rest on which.

    Adding or removing a dependency changes the dependent decision's health
    baseline, so the dependent is flagged for re-evaluation and gets a
    version entry. Cycles are rejected.
    """

    def __init__(
        self,
        decision_repo: DecisionRepository,
        dependency_repo: DecisionDependencyRepository,
        versioning: VersioningService,
    ) -> None:
        self._decision_repo = decision_repo
        self._dependency_repo = dependency_repo
        self._versioning = versioning

    @classmethod
    def from_session(cls, session: AsyncSession) -> "DependencyService":
        return cls(
            DecisionRepository(session),
            DecisionDependencyRepository(session),
            VersioningService.from_session(session),
        )

    async def _get_decision(self, decision_id: UUID) -> Decision:
        decision = await self._decision_repo.get_by_id(decision_id)
        if not decision:
            raise DecisionNotFoundError(decision_id)
        return decision

    async def add_dependency(
        self, decision_id: UUID, depends_on_id: UUID, actor: str | None = None
    ) -> DecisionDependency:
        """Record that ``decision_id`` depends on ``depends_on_id``.

        Raises:
            DecisionNotFoundError: Either decision does not exist.
            InvalidOperationError: Self-dependency, a cycle, or a retired dependent.
            DuplicateError: The dependency already exists.
        """
        decision = await self._get_decision(decision_id)
        upstream = await self._get_decision(depends_on_id)
        ensure_editable(decision, actor)

        if decision.id == upstream.id:
            raise InvalidOperationError("A decision cannot depend on itself")
        if decision.lifecycle == DecisionLifecycle.RETIRED:
            raise InvalidOperationError(f"Decision {decision_id} is retired")
        if await self._dependency_repo.get_edge(decision.id, upstream.id):
            raise DuplicateError(f"Decision {decision_id} already depends on {depends_on_id}")
        if await self._dependency_repo.reaches(upstream.id, decision.id):
            raise InvalidOperationError(
                f"Decision {depends_on_id} already depends on {decision_id}; "
                "dependencies cannot form a cycle"
            )

        dependency = await self._dependency_repo.create(decision.id, upstream.id, created_by=actor)
        decision.needs_evaluation = True
        await self._versioning.record_version(
            decision,
            "dependency_added",
            f"Now depends on {upstream.title}",
            ["dependencies"],
            actor,
        )
        await self._decision_repo.save(decision)
        logger.info(
            "Dependency added on %s", upstream.id, extra={"decision_id": decision.id, "actor": actor}
        )
        return dependency

    async def list_dependencies(self, decision_id: UUID) -> DecisionDependencies:
        """Decisions this one depends on and decisions it blocks."""
        await self._get_decision(decision_id)
        depends_on = await self._dependency_repo.get_depends_on(decision_id)
        blocks = await self._dependency_repo.get_blocks(decision_id)
        return DecisionDependencies(
            decision_id=decision_id,
            depends_on=[_edge(dep, d) for dep, d in depends_on],
            blocks=[_edge(dep, d) for dep, d in blocks],
        )

    async def remove_dependency(
        self, decision_id: UUID, dependency_id: UUID, actor: str | None = None
    ) -> None:
        decision = await self._get_decision(decision_id)
        dependency = await self._dependency_repo.get_by_id(dependency_id)
        if not dependency or dependency.source_decision_id != decision.id:
            raise DependencyNotFoundError(dependency_id)
        ensure_editable(decision, actor)

        await self._dependency_repo.delete(dependency.id)
        if decision.lifecycle != DecisionLifecycle.RETIRED:
            decision.needs_evaluation = True
        await self._versioning.record_version(
            decision,
            "dependency_removed",
            f"No longer depends on {dependency.target_decision_id}",
            ["dependencies"],
            actor,
        )
        await self._decision_repo.save(decision)
        logger.info("Dependency removed", extra={"decision_id": decision.id, "actor": actor})
