"""Constraint service: CRUD, decision links and violation tracking."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.models.constraint import Constraint, ConstraintViolation
from decivue.core.repositories.constraint import (
    ConstraintRepository,
    ConstraintViolationRepository,
)
from decivue.core.repositories.decision import DecisionRepository
from decivue.core.schemas.constraint import (
    ConstraintCreate,
    ConstraintUpdate,
    ValidationReport,
    ViolationResponse,
)
from decivue.core.services.constraint_validator import validate_constraint
from decivue.utils.exceptions import (
    ConstraintNotFoundError,
    DecisionNotFoundError,
    DuplicateError,
    ImmutableConstraintError,
    ViolationNotFoundError,
)

logger = logging.getLogger(__name__)


class ConstraintService:
    def __init__(
        self,
        constraint_repo: ConstraintRepository,
        violation_repo: ConstraintViolationRepository,
        decision_repo: DecisionRepository,
    ) -> None:
        self._constraint_repo = constraint_repo
        self._violation_repo = violation_repo
        self._decision_repo = decision_repo

    @classmethod
    def from_session(cls, session: AsyncSession) -> "ConstraintService":
        return cls(
            ConstraintRepository(session),
            ConstraintViolationRepository(session),
            DecisionRepository(session),
        )

    async def create_constraint(self, data: ConstraintCreate) -> Constraint:
        if await self._constraint_repo.get_by_name(data.name):
            raise DuplicateError(f"Constraint '{data.name}' already exists")
        return await self._constraint_repo.create(data)

    async def get_constraint(self, constraint_id: UUID) -> Constraint:
        constraint = await self._constraint_repo.get_by_id(constraint_id)
        if not constraint:
            raise ConstraintNotFoundError(constraint_id)
        return constraint

    async def list_constraints(
        self, decision_id: UUID | None = None, limit: int | None = None, offset: int | None = None
    ) -> list[Constraint]:
        if decision_id is not None:
            return await self._constraint_repo.get_for_decision(decision_id)
        return await self._constraint_repo.get_all(
            limit=limit, offset=offset, sort_by="name", sort_order="asc"
        )

    async def update_constraint(self, constraint_id: UUID, data: ConstraintUpdate) -> Constraint:
        constraint = await self.get_constraint(constraint_id)
        if constraint.is_immutable and "rule" in data.model_fields_set:
            raise ImmutableConstraintError(f"Constraint '{constraint.name}' is immutable")
        if data.name and data.name != constraint.name and await self._constraint_repo.get_by_name(data.name):
            raise DuplicateError(f"Constraint '{data.name}' already exists")
        return await self._constraint_repo.update(constraint_id, data)

    async def delete_constraint(self, constraint_id: UUID) -> None:
        constraint = await self.get_constraint(constraint_id)
        if constraint.is_immutable:
            raise ImmutableConstraintError(f"Constraint '{constraint.name}' is immutable")
        await self._constraint_repo.delete(constraint_id)

    async def link(self, constraint_id: UUID, decision_id: UUID) -> bool:
        await self.get_constraint(constraint_id)
        if not await self._decision_repo.exists(decision_id):
            raise DecisionNotFoundError(decision_id)
        linked = await self._constraint_repo.link(decision_id, constraint_id)
        if linked:
            await self._decision_repo.mark_for_evaluation([decision_id])
        return linked

    async def unlink(self, constraint_id: UUID, decision_id: UUID) -> bool:
        unlinked = await self._constraint_repo.unlink(decision_id, constraint_id)
        if unlinked:
            await self._decision_repo.mark_for_evaluation([decision_id])
        return unlinked

    async def validate_decision(self, decision_id: UUID) -> ValidationReport:
        """Check every linked constraint and sync the violation records.

        A failing constraint gets one active violation; an active violation
        whose constraint now passes is resolved.
        """
        decision = await self._decision_repo.get_by_id(decision_id)
        if not decision:
            raise DecisionNotFoundError(decision_id)

        constraints = await self._constraint_repo.get_for_decision(decision_id)
        new_violations: list[ConstraintViolation] = []
        resolved = 0
        for constraint in constraints:
            result = validate_constraint(constraint, decision)
            existing = await self._violation_repo.find_active(decision_id, constraint.id)
            if not result.passed and existing is None:
                violation = await self._violation_repo.record(
                    decision_id, constraint.id, result.reason, result.details, commit=False
                )
                new_violations.append(violation)
                logger.warning(
                    "Constraint violated: %s", result.reason,
                    extra={"decision_id": decision_id, "rule": (constraint.rule or {}).get("type")},
                )
            elif result.passed and existing is not None:
                await self._violation_repo.resolve(existing.id, commit=False)
                resolved += 1

        if new_violations or resolved:
            decision.needs_evaluation = True
        await self._decision_repo.save(decision)

        return ValidationReport(
            decision_id=decision_id,
            checked=len(constraints),
            new_violations=[ViolationResponse.model_validate(v) for v in new_violations],
            resolved=resolved,
        )

    async def list_violations(
        self,
        decision_id: UUID | None = None,
        constraint_id: UUID | None = None,
        active_only: bool = True,
    ) -> list[ConstraintViolation]:
        if constraint_id is not None:
            violations = await self._violation_repo.get_by_constraint(constraint_id)
            if decision_id is not None:
                violations = [v for v in violations if v.decision_id == decision_id]
            if active_only:
                violations = [v for v in violations if v.is_active]
            return violations
        if active_only:
            return await self._violation_repo.get_active(decision_id)
        return await self._violation_repo.get_all(decision_id)

    async def resolve_violation(self, violation_id: UUID) -> ConstraintViolation:
        violation = await self._violation_repo.resolve(violation_id)
        if not violation:
            raise ViolationNotFoundError(violation_id)
        await self._decision_repo.mark_for_evaluation([violation.decision_id])
        return violation

    async def delete_violation(self, violation_id: UUID) -> None:
        violation = await self._violation_repo.get_by_id(violation_id)
        if not violation:
            raise ViolationNotFoundError(violation_id)
        await self._violation_repo.delete(violation_id)
        await self._decision_repo.mark_for_evaluation([violation.decision_id])
