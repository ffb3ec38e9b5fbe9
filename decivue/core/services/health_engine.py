"""Deterministic health scoring for decisions.

Pure functions only: the evaluation service gathers the linked
assumptions, violations, conflicts and upstream decisions, and this module
turns them into a health signal, a lifecycle and an explanation trace.
Identical inputs always produce identical outputs.

Rules, in order:

1. A RETIRED decision never changes.
2. An active violation of a linked constraint invalidates the decision.
3. Health starts from the lowest health among the decisions this one
   depends on (100 without dependencies). A weak dependency lowers health
   but never invalidates by itself; the worst it causes is AT_RISK.
4. With no linked assumptions, health and lifecycle stay as they are,
   unless the decision is INVALIDATED: nothing invalidates it any more,
   so it restarts from the dependency baseline.
5. A linked UNIVERSAL assumption that is BROKEN invalidates the decision.
6. Otherwise health loses
   ``floor(max_penalty * broken_specific / total_specific)``, then
   ``shaky_penalty`` per SHAKY assumption and ``conflict_penalty`` per
   unresolved assumption conflict, clamped to [0, 100]. The lifecycle
   follows from the thresholds.
"""

from dataclasses import dataclass, field
from uuid import UUID

from decivue.core.models.assumption import AssumptionScope, AssumptionStatus
from decivue.core.models.decision import DecisionLifecycle
from decivue.utils.config import EvaluationSettings

RULE_RETIRED = "retired"
RULE_CONSTRAINT_VIOLATION = "constraint_violation"
RULE_NO_ASSUMPTIONS = "no_assumptions"
RULE_INVALIDATION_CLEARED = "invalidation_cleared"
RULE_UNIVERSAL_BROKEN = "universal_assumption_broken"
RULE_HEALTH_SCORE = "health_score"


@dataclass(frozen=True)
class AssumptionSignal:
    id: UUID
    status: AssumptionStatus
    scope: AssumptionScope
    description: str = ""


@dataclass(frozen=True)
class ViolationSignal:
    constraint_id: UUID
    constraint_name: str
    reason: str


@dataclass(frozen=True)
class DependencySignal:
    id: UUID
    health_signal: int
    title: str = ""


@dataclass
class HealthInput:
    """Everything the scoring rules look at for one decision."""

    lifecycle: DecisionLifecycle
    health_signal: int
    assumptions: list[AssumptionSignal] = field(default_factory=list)
    violations: list[ViolationSignal] = field(default_factory=list)
    unresolved_conflicts: int = 0
    invalidated_reason: str | None = None
    dependencies: list[DependencySignal] = field(default_factory=list)


@dataclass
class HealthOutcome:
    health_signal: int
    lifecycle: DecisionLifecycle
    invalidated_reason: str | None
    rule: str
    trace: list[dict] = field(default_factory=list)


def _step(trace: list[dict], step: str, passed: bool, **details) -> None:
    trace.append({"step": step, "passed": passed, "details": details})


def clamp_health(value: int) -> int:
    return max(0, min(100, value))


def lifecycle_for_health(health: int, settings: EvaluationSettings) -> DecisionLifecycle:
    if health >= settings.stable_threshold:
        return DecisionLifecycle.STABLE
    if health >= settings.under_review_threshold:
        return DecisionLifecycle.UNDER_REVIEW
    if health >= settings.at_risk_threshold:
        return DecisionLifecycle.AT_RISK
    return DecisionLifecycle.INVALIDATED


def _non_invalidating_lifecycle(health: int, settings: EvaluationSettings) -> DecisionLifecycle:
    lifecycle = lifecycle_for_health(health, settings)
    if lifecycle == DecisionLifecycle.INVALIDATED:
        return DecisionLifecycle.AT_RISK
    return lifecycle


def compute_health(inputs: HealthInput, settings: EvaluationSettings | None = None) -> HealthOutcome:
    """Apply the scoring rules to one decision's inputs."""
    settings = settings or EvaluationSettings()
    trace: list[dict] = []

    if inputs.lifecycle == DecisionLifecycle.RETIRED:
        _step(trace, "lifecycle_check", False, lifecycle=inputs.lifecycle.value, terminal=True)
        return HealthOutcome(
            health_signal=inputs.health_signal,
            lifecycle=inputs.lifecycle,
            invalidated_reason=inputs.invalidated_reason,
            rule=RULE_RETIRED,
            trace=trace,
        )
    _step(trace, "lifecycle_check", True, lifecycle=inputs.lifecycle.value)

    if inputs.violations:
        names = sorted({v.constraint_name for v in inputs.violations})
        _step(
            trace,
            "constraint_check",
            False,
            violations=[
                {"constraint_id": str(v.constraint_id), "constraint": v.constraint_name, "reason": v.reason}
                for v in inputs.violations
            ],
        )
        return HealthOutcome(
            health_signal=0,
            lifecycle=DecisionLifecycle.INVALIDATED,
            invalidated_reason=f"Violates constraint(s): {', '.join(names)}",
            rule=RULE_CONSTRAINT_VIOLATION,
            trace=trace,
        )
    _step(trace, "constraint_check", True, violations=[])

    baseline = min([100, *(d.health_signal for d in inputs.dependencies)])
    _step(
        trace,
        "dependency_check",
        baseline == 100,
        dependencies=[
            {"decision_id": str(d.id), "title": d.title, "health": d.health_signal}
            for d in inputs.dependencies
        ],
        baseline=baseline,
    )

    if not inputs.assumptions:
        if inputs.lifecycle != DecisionLifecycle.INVALIDATED:
            _step(trace, "assumption_check", True, linked=0, note="no linked assumptions; health unchanged")
            return HealthOutcome(
                health_signal=inputs.health_signal,
                lifecycle=inputs.lifecycle,
                invalidated_reason=inputs.invalidated_reason,
                rule=RULE_NO_ASSUMPTIONS,
                trace=trace,
            )
        lifecycle = _non_invalidating_lifecycle(baseline, settings)
        _step(
            trace,
            "assumption_check",
            True,
            linked=0,
            note="no linked assumptions and nothing invalidates the decision; restarting from baseline",
            health=baseline,
            lifecycle=lifecycle.value,
        )
        return HealthOutcome(
            health_signal=baseline,
            lifecycle=lifecycle,
            invalidated_reason=None,
            rule=RULE_INVALIDATION_CLEARED,
            trace=trace,
        )

    broken_universal = [
        a
        for a in inputs.assumptions
        if a.scope == AssumptionScope.UNIVERSAL and a.status == AssumptionStatus.BROKEN
    ]
    if broken_universal:
        descriptions = "; ".join(a.description or str(a.id) for a in broken_universal)
        _step(
            trace,
            "universal_assumptions",
            False,
            broken=[str(a.id) for a in broken_universal],
        )
        return HealthOutcome(
            health_signal=0,
            lifecycle=DecisionLifecycle.INVALIDATED,
            invalidated_reason=f"Universal assumption broken: {descriptions}",
            rule=RULE_UNIVERSAL_BROKEN,
            trace=trace,
        )
    universal_count = sum(1 for a in inputs.assumptions if a.scope == AssumptionScope.UNIVERSAL)
    _step(trace, "universal_assumptions", True, checked=universal_count)

    specific = [a for a in inputs.assumptions if a.scope == AssumptionScope.DECISION_SPECIFIC]
    broken_specific = sum(1 for a in specific if a.status == AssumptionStatus.BROKEN)
    specific_penalty = 0
    if specific:
        specific_penalty = (settings.specific_broken_max_penalty * broken_specific) // len(specific)
    _step(
        trace,
        "specific_assumptions",
        broken_specific == 0,
        total=len(specific),
        broken=broken_specific,
        penalty=specific_penalty,
    )

    shaky = sum(1 for a in inputs.assumptions if a.status == AssumptionStatus.SHAKY)
    shaky_penalty = shaky * settings.shaky_penalty
    _step(trace, "shaky_assumptions", shaky == 0, count=shaky, penalty=shaky_penalty)

    conflict_penalty = inputs.unresolved_conflicts * settings.conflict_penalty
    _step(
        trace,
        "assumption_conflicts",
        inputs.unresolved_conflicts == 0,
        count=inputs.unresolved_conflicts,
        penalty=conflict_penalty,
    )

    own_health = clamp_health(100 - specific_penalty - shaky_penalty - conflict_penalty)
    health = clamp_health(baseline - specific_penalty - shaky_penalty - conflict_penalty)
    lifecycle = lifecycle_for_health(health, settings)
    reason = None
    if lifecycle == DecisionLifecycle.INVALIDATED:
        if lifecycle_for_health(own_health, settings) == DecisionLifecycle.INVALIDATED:
            reason = f"Health signal {health} fell below {settings.at_risk_threshold}"
        else:
            # the dependencies pulled it under the threshold
            lifecycle = DecisionLifecycle.AT_RISK
    _step(trace, "health_threshold", lifecycle != DecisionLifecycle.INVALIDATED, health=health, lifecycle=lifecycle.value)

    return HealthOutcome(
        health_signal=health,
        lifecycle=lifecycle,
        invalidated_reason=reason,
        rule=RULE_HEALTH_SCORE,
        trace=trace,
    )
