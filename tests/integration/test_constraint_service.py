"""Integration tests for constraints and violation tracking."""

import pytest

from decivue.core.schemas.constraint import ConstraintCreate, ConstraintUpdate
from decivue.core.schemas.decision import DecisionUpdate
from decivue.core.services import ConstraintService, DecisionService
from decivue.utils.exceptions import DuplicateError, ImmutableConstraintError

SPEND_CAP = {"type": "budget_threshold", "field": "context.cost", "operator": "<=", "value": 1000}


@pytest.fixture
def constraints(session):
    return ConstraintService.from_session(session)


@pytest.mark.asyncio
async def test_rule_is_stored_as_json(make_constraint):
    constraint = await make_constraint("Spend cap", rule=SPEND_CAP)
    assert constraint.rule == SPEND_CAP


@pytest.mark.asyncio
async def test_duplicate_name(make_constraint, constraints):
    await make_constraint("Spend cap")
    with pytest.raises(DuplicateError):
        await constraints.create_constraint(ConstraintCreate(name="Spend cap"))


@pytest.mark.asyncio
async def test_immutable_rule(make_constraint, constraints):
    constraint = await make_constraint(
        "GDPR",
        rule={"type": "compliance_required_fields", "fields": ["context.dpa"]},
        is_immutable=True,
    )

    updated = await constraints.update_constraint(
        constraint.id, ConstraintUpdate(description="Data protection")
    )
    assert updated.description == "Data protection"

    with pytest.raises(ImmutableConstraintError):
        await constraints.update_constraint(constraint.id, ConstraintUpdate(rule=None))
    with pytest.raises(ImmutableConstraintError):
        await constraints.delete_constraint(constraint.id)


@pytest.mark.asyncio
async def test_validation_records_and_resolves(make_constraint, make_decision, constraints, session):
    cap = await make_constraint("Spend cap", rule=SPEND_CAP)
    decision = await make_decision(context={"cost": 5000}, constraint_ids=[cap.id])

    report = await constraints.validate_decision(decision.id)
    assert report.checked == 1
    assert len(report.new_violations) == 1
    assert report.new_violations[0].details["actual"] == 5000

    # still failing: no duplicate violation
    report = await constraints.validate_decision(decision.id)
    assert report.new_violations == []
    assert len(await constraints.list_violations(decision_id=decision.id)) == 1

    await DecisionService.from_session(session).update_decision(
        decision.id, DecisionUpdate(context={"cost": 800})
    )
    report = await constraints.validate_decision(decision.id)
    assert report.resolved == 1
    assert await constraints.list_violations(decision_id=decision.id) == []
    assert len(await constraints.list_violations(decision_id=decision.id, active_only=False)) == 1


@pytest.mark.asyncio
async def test_unlinked_constraint_not_checked(make_constraint, make_decision, constraints):
    await make_constraint("Spend cap", rule=SPEND_CAP)
    decision = await make_decision(context={"cost": 5000})
    report = await constraints.validate_decision(decision.id)
    assert report.checked == 0


@pytest.mark.asyncio
async def test_link_flags_decision(make_constraint, make_decision, constraints, session):
    cap = await make_constraint("Spend cap", rule=SPEND_CAP)
    decision = await make_decision()
    decision.needs_evaluation = False
    await session.commit()

    assert await constraints.link(cap.id, decision.id) is True
    await session.refresh(decision)
    assert decision.needs_evaluation is True
    assert [c.id for c in await constraints.list_constraints(decision_id=decision.id)] == [cap.id]


@pytest.mark.asyncio
async def test_resolve_violation_manually(make_constraint, make_decision, constraints):
    cap = await make_constraint("Spend cap", rule=SPEND_CAP)
    decision = await make_decision(context={"cost": 5000}, constraint_ids=[cap.id])
    report = await constraints.validate_decision(decision.id)

    violation = await constraints.resolve_violation(report.new_violations[0].id)
    assert violation.resolved_at is not None
