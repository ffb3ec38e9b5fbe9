"""Scenario seeding.

One parameterized loader replaces per-scenario scripts. A scenario is a
JSON document::

    {
      "constraints": [{"name": "...", "constraint_type": "BUDGET", "rule": {...}}],
      "assumptions": [{"key": "a1", "description": "...", "scope": "UNIVERSAL"}],
      "decisions": [{"key": "d1", "title": "...", "assumptions": ["a1"],
                     "constraints": ["..."], "depends_on": ["d0"]}],
      "conflicts": [{"assumptions": ["a1", "a2"], "conflict_type": "CONTRADICTORY",
                     "confidence_score": 0.9}],
      "updates": [{"assumption": "a1", "status": "BROKEN"}],
      "validate": true,
      "evaluate": true
    }

Assumptions and decisions are referenced by ``key``, constraints by
``name``. Entities
that already exist (same description or name) are reused.
"""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from decivue.core.repositories.assumption import AssumptionRepository
from decivue.core.repositories.constraint import ConstraintRepository
from decivue.core.schemas.assumption import AssumptionCreate, AssumptionUpdate
from decivue.core.schemas.conflict import AssumptionConflictCreate
from decivue.core.schemas.constraint import ConstraintCreate
from decivue.core.schemas.decision import DecisionCreate
from decivue.core.services import (
    AssumptionService,
    ConflictService,
    ConstraintService,
    DecisionService,
    DependencyService,
    EvaluationService,
)
from decivue.utils.exceptions import DecivueError, DuplicateError

logger = logging.getLogger(__name__)


class SeedAssumption(AssumptionCreate):
    key: str


class SeedDecision(DecisionCreate):
    key: str
    assumptions: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)


class SeedConflict(BaseModel):
    assumptions: tuple[str, str]
    conflict_type: str = "CONTRADICTORY"
    confidence_score: float = Field(0.9, ge=0, le=1)
    explanation: str | None = None


class SeedUpdate(BaseModel):
    assumption: str
    status: str


class Scenario(BaseModel):
    constraints: list[ConstraintCreate] = Field(default_factory=list)
    assumptions: list[SeedAssumption] = Field(default_factory=list)
    decisions: list[SeedDecision] = Field(default_factory=list)
    conflicts: list[SeedConflict] = Field(default_factory=list)
    updates: list[SeedUpdate] = Field(default_factory=list)
    validate_constraints: bool = Field(True, alias="validate")
    evaluate: bool = True

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def check_references(self) -> "Scenario":
        """Reject references to undeclared assumption keys or constraint names."""
        assumption_keys = {a.key for a in self.assumptions}
        constraint_names = {c.name for c in self.constraints}
        problems: list[str] = []
        for decision in self.decisions:
            for key in decision.assumptions:
                if key not in assumption_keys:
                    problems.append(f"decision {decision.key!r} references unknown assumption {key!r}")
            for name in decision.constraints:
                if name not in constraint_names:
                    problems.append(f"decision {decision.key!r} references unknown constraint {name!r}")
        decision_keys = {d.key for d in self.decisions}
        for decision in self.decisions:
            for key in decision.depends_on:
                if key not in decision_keys:
                    problems.append(f"decision {decision.key!r} depends on unknown decision {key!r}")
                elif key == decision.key:
                    problems.append(f"decision {decision.key!r} depends on itself")
        for conflict in self.conflicts:
            for key in conflict.assumptions:
                if key not in assumption_keys:
                    problems.append(f"conflict references unknown assumption {key!r}")
        for update in self.updates:
            if update.assumption not in assumption_keys:
                problems.append(f"update references unknown assumption {update.assumption!r}")
        if problems:
            raise ValueError("; ".join(problems))
        return self


@dataclass
class SeedResult:
    constraints: dict[str, UUID] = field(default_factory=dict)
    assumptions: dict[str, UUID] = field(default_factory=dict)
    decisions: dict[str, UUID] = field(default_factory=dict)
    conflicts: int = 0
    evaluated: int = 0


def load_scenario(path: str | Path) -> Scenario:
    with open(path) as f:
        return Scenario.model_validate(json.load(f))


class ScenarioSeeder:
    """Writes a scenario through the regular services, reporting each step."""

    def __init__(self, session: AsyncSession, echo: Callable[[str], None] = print) -> None:
        self._session = session
        self._echo = echo

    async def seed(self, scenario: Scenario) -> SeedResult:
        result = SeedResult()
        constraint_service = ConstraintService.from_session(self._session)
        assumption_service = AssumptionService.from_session(self._session)
        decision_service = DecisionService.from_session(self._session)
        conflict_service = ConflictService.from_session(self._session)
        dependency_service = DependencyService.from_session(self._session)

        constraint_repo = ConstraintRepository(self._session)
        for data in scenario.constraints:
            existing = await constraint_repo.get_by_name(data.name)
            constraint = existing or await constraint_service.create_constraint(data)
            result.constraints[data.name] = constraint.id
            self._echo(f"{'Reused' if existing else 'Created'} constraint: {data.name}")

        assumption_repo = AssumptionRepository(self._session)
        for data in scenario.assumptions:
            existing = await assumption_repo.get_by_description(data.description)
            if existing:
                assumption = existing
            else:
                payload = data.model_dump(exclude_unset=True, exclude={"key"})
                assumption = await assumption_service.create_assumption(AssumptionCreate(**payload))
            result.assumptions[data.key] = assumption.id
            self._echo(f"{'Reused' if existing else 'Created'} assumption [{data.key}]: {data.description}")

        for data in scenario.decisions:
            payload = data.model_dump(
                exclude_unset=True, exclude={"key", "assumptions", "constraints", "depends_on"}
            )
            payload["assumption_ids"] = [
                *data.assumption_ids, *(result.assumptions[k] for k in data.assumptions)
            ]
            payload["constraint_ids"] = [
                *data.constraint_ids, *(result.constraints[n] for n in data.constraints)
            ]
            decision = await decision_service.create_decision(DecisionCreate(**payload))
            result.decisions[data.key] = decision.id
            self._echo(
                f"Created decision [{data.key}]: {data.title} "
                f"({len(payload['assumption_ids'])} assumptions, "
                f"{len(payload['constraint_ids'])} constraints)"
            )

        for data in scenario.decisions:
            for upstream in data.depends_on:
                try:
                    await dependency_service.add_dependency(
                        result.decisions[data.key], result.decisions[upstream], actor="seed"
                    )
                except DuplicateError:
                    continue
                self._echo(f"Decision [{data.key}] depends on [{upstream}]")

        for data in scenario.conflicts:
            a_key, b_key = data.assumptions
            try:
                await conflict_service.create_assumption_conflict(
                    AssumptionConflictCreate(
                        assumption_a_id=result.assumptions[a_key],
                        assumption_b_id=result.assumptions[b_key],
                        conflict_type=data.conflict_type,
                        confidence_score=data.confidence_score,
                        explanation=data.explanation,
                    )
                )
            except DuplicateError:
                self._echo(f"Conflict {a_key} <-> {b_key} already recorded")
                continue
            result.conflicts += 1
            self._echo(f"Recorded conflict {a_key} <-> {b_key}")

        for data in scenario.updates:
            await assumption_service.update_assumption(
                result.assumptions[data.assumption], AssumptionUpdate(status=data.status)
            )
            self._echo(f"Assumption [{data.assumption}] -> {data.status}")

        if scenario.validate_constraints:
            for key, decision_id in result.decisions.items():
                report = await constraint_service.validate_decision(decision_id)
                if report.new_violations:
                    self._echo(f"Decision [{key}]: {len(report.new_violations)} constraint violation(s)")

        if scenario.evaluate:
            evaluation = EvaluationService.from_session(self._session)
            for key, decision_id in result.decisions.items():
                try:
                    outcome = await evaluation.evaluate(decision_id, triggered_by="seed")
                except DecivueError as e:
                    self._echo(f"Decision [{key}]: evaluation failed: {e}")
                    continue
                result.evaluated += 1
                self._echo(
                    f"Decision [{key}]: health {outcome.new_health_signal}, "
                    f"{outcome.new_lifecycle.value}"
                )

        logger.info(
            "Seeded %d decisions, %d assumptions, %d constraints",
            len(result.decisions), len(result.assumptions), len(result.constraints),
        )
        return result
