"""Integration tests for the evaluation service."""

from uuid import uuid4

import pytest

from decivue.core.models.assumption import AssumptionScope, AssumptionStatus
from decivue.core.models.decision import DecisionLifecycle
from decivue.core.repositories.evaluation import EvaluationHistoryRepository
from decivue.core.schemas.assumption import AssumptionUpdate
from decivue.core.schemas.decision import DecisionUpdate
from decivue.core.services import (
    AssumptionService,
    ConstraintService,
    DecisionService,
    EvaluationService,
)
from decivue.utils.exceptions import DecisionNotFoundError


@pytest.fixture
def evaluation(session):
    return EvaluationService.from_session(session)


@pytest.mark.asyncio
async def test_half_broken_decision(make_assumption, make_decision, evaluation, session):
    assumptions = [
        await make_assumption("Churn stays below 3%", status=AssumptionStatus.BROKEN),
        await make_assumption("Vendor keeps pricing", status=AssumptionStatus.BROKEN),
        await make_assumption("Team stays staffed"),
        await make_assumption("Regulation unchanged"),
    ]
    decision = await make_decision(assumption_ids=[a.id for a in assumptions])

    result = await evaluation.evaluate(decision.id)

    assert result.new_health_signal == 70
    assert result.new_lifecycle == DecisionLifecycle.UNDER_REVIEW
    assert result.changed is True

    await session.refresh(decision)
    assert decision.health_signal == 70
    assert decision.lifecycle == DecisionLifecycle.UNDER_REVIEW
    assert decision.needs_evaluation is False
    assert decision.last_evaluated_at is not None
    assert decision.last_reviewed_at is None


@pytest.mark.asyncio
async def test_universal_broken(make_assumption, make_decision, evaluation):
    universal = await make_assumption(
        "Interest rates stay flat", status=AssumptionStatus.BROKEN, scope=AssumptionScope.UNIVERSAL
    )
    others = [await make_assumption(f"Supporting belief {i}") for i in range(3)]
    decision = await make_decision(assumption_ids=[universal.id, *(a.id for a in others)])

    result = await evaluation.evaluate(decision.id)

    assert result.new_health_signal == 0
    assert result.new_lifecycle == DecisionLifecycle.INVALIDATED
    assert result.rule == "universal_assumption_broken"
    assert "Interest rates stay flat" in result.invalidated_reason


@pytest.mark.asyncio
async def test_unlinked_universal_does_not_count(make_assumption, make_decision, evaluation):
    await make_assumption(
        "Unrelated universal belief", status=AssumptionStatus.BROKEN, scope=AssumptionScope.UNIVERSAL
    )
    linked = await make_assumption("Linked belief")
    decision = await make_decision(assumption_ids=[linked.id])

    result = await evaluation.evaluate(decision.id)
    assert result.new_health_signal == 100
    assert result.new_lifecycle == DecisionLifecycle.STABLE


@pytest.mark.asyncio
async def test_missing_decision_writes_nothing(evaluation, session):
    missing = uuid4()
    with pytest.raises(DecisionNotFoundError):
        await evaluation.evaluate(missing)
    assert await EvaluationHistoryRepository(session).count_for_decision(missing) == 0


@pytest.mark.asyncio
async def test_reevaluation_is_idempotent(make_assumption, make_decision, evaluation, session):
    shaky = await make_assumption("Supplier ships on time", status=AssumptionStatus.SHAKY)
    decision = await make_decision(assumption_ids=[shaky.id])

    first = await evaluation.evaluate(decision.id)
    second = await evaluation.evaluate(decision.id)

    assert first.new_health_signal == second.new_health_signal == 95
    assert second.changed is False
    history = await evaluation.get_health_history(decision.id)
    assert len(history) == 2
    assert {h.rule for h in history} == {"health_score"}


@pytest.mark.asyncio
async def test_no_assumptions_keeps_state(make_decision, evaluation):
    decision = await make_decision()
    result = await evaluation.evaluate(decision.id)
    assert result.rule == "no_assumptions"
    assert result.new_health_signal == 100
    assert result.new_lifecycle == DecisionLifecycle.STABLE


@pytest.mark.asyncio
async def test_violation_invalidates(make_constraint, make_decision, evaluation, session):
    cap = await make_constraint("Spend cap", rule={"type": "budget_threshold", "value": 1000})
    decision = await make_decision(context={"cost": 2500}, constraint_ids=[cap.id])

    report = await ConstraintService.from_session(session).validate_decision(decision.id)
    assert len(report.new_violations) == 1

    result = await evaluation.evaluate(decision.id)
    assert result.rule == "constraint_violation"
    assert result.new_lifecycle == DecisionLifecycle.INVALIDATED
    assert "Spend cap" in result.invalidated_reason


@pytest.mark.asyncio
async def test_resolved_violation_restores_decision_without_assumptions(
    make_constraint, make_decision, evaluation, session
):
    cap = await make_constraint("Spend cap", rule={"type": "budget_threshold", "value": 1000})
    decision = await make_decision(context={"cost": 5000}, constraint_ids=[cap.id])
    constraints = ConstraintService.from_session(session)

    await constraints.validate_decision(decision.id)
    invalidated = await evaluation.evaluate(decision.id)
    assert invalidated.new_lifecycle == DecisionLifecycle.INVALIDATED

    await DecisionService.from_session(session).update_decision(
        decision.id, DecisionUpdate(context={"cost": 500})
    )
    report = await constraints.validate_decision(decision.id)
    assert report.resolved == 1

    result = await evaluation.evaluate(decision.id)
    assert result.rule == "invalidation_cleared"
    assert result.new_health_signal == 100
    assert result.new_lifecycle == DecisionLifecycle.STABLE
    assert result.invalidated_reason is None

    await session.refresh(decision)
    assert decision.lifecycle == DecisionLifecycle.STABLE
    assert decision.invalidated_reason is None


@pytest.mark.asyncio
async def test_retired_is_never_reevaluated(make_assumption, make_decision, evaluation, session):
    assumption = await make_assumption("Demand grows")
    decision = await make_decision(assumption_ids=[assumption.id])
    await DecisionService.from_session(session).retire_decision(decision.id, "Superseded")

    result = await evaluation.evaluate(decision.id)
    assert result.rule == "retired"
    assert result.new_lifecycle == DecisionLifecycle.RETIRED
    assert result.invalidated_reason == "Superseded"


@pytest.mark.asyncio
async def test_assumption_change_flags_dependents(make_assumption, make_decision, evaluation, session):
    assumption = await make_assumption("Hiring plan approved")
    decision = await make_decision(assumption_ids=[assumption.id])
    await evaluation.evaluate(decision.id)
    await session.refresh(decision)
    assert decision.needs_evaluation is False

    await AssumptionService.from_session(session).update_assumption(
        assumption.id, AssumptionUpdate(status=AssumptionStatus.BROKEN)
    )
    await session.refresh(decision)
    assert decision.needs_evaluation is True

    batch = await evaluation.evaluate_pending()
    assert batch.evaluated == 1
    assert batch.results[0].new_health_signal == 40
    assert batch.results[0].new_lifecycle == DecisionLifecycle.AT_RISK


@pytest.mark.asyncio
async def test_batch_reports_failures(make_decision, evaluation):
    decision = await make_decision()
    missing = uuid4()

    batch = await evaluation.evaluate_batch([decision.id, missing])

    assert batch.evaluated == 1
    assert batch.failed == 1
    assert str(missing) in batch.errors
