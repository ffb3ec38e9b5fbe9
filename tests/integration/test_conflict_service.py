"""Integration tests for conflict detection and resolution."""

import pytest

from decivue.core.models.assumption import AssumptionStatus
from decivue.core.models.conflict import (
    AssumptionResolutionAction,
    ConflictType,
    DecisionResolutionAction,
)
from decivue.core.models.decision import DecisionLifecycle
from decivue.core.schemas.conflict import AssumptionConflictCreate, DecisionConflictCreate
from decivue.core.services import ConflictService, DecisionService, EvaluationService
from decivue.utils.exceptions import DuplicateError, InvalidOperationError

GROWTH = {"category": "MARKET", "metric": "demand", "direction": "increase", "timeframe": "2025"}
DECLINE = {"category": "MARKET", "metric": "demand", "direction": "decrease", "timeframe": "2025"}


@pytest.fixture
def conflicts(session):
    return ConflictService.from_session(session)


@pytest.fixture
async def opposed_pair(make_assumption, make_decision):
    growth = await make_assumption("Demand grows in 2025", parameters=GROWTH)
    decline = await make_assumption("Demand shrinks in 2025", parameters=DECLINE)
    decision = await make_decision(assumption_ids=[growth.id, decline.id])
    return growth, decline, decision


@pytest.mark.asyncio
async def test_detect_assumption_conflicts(conflicts, opposed_pair, make_assumption, session):
    growth, decline, decision = opposed_pair
    await make_assumption("Unrelated belief")
    decision.needs_evaluation = False
    await session.commit()

    report = await conflicts.detect_assumption_conflicts()

    assert report.compared == 3
    assert report.detected == 1
    found = report.conflicts[0]
    assert {found["a"], found["b"]} == {str(growth.id), str(decline.id)}
    assert found["conflict_type"] == ConflictType.CONTRADICTORY.value
    assert found["confidence_score"] == 0.94

    await session.refresh(decision)
    assert decision.needs_evaluation is True


@pytest.mark.asyncio
async def test_detection_skips_known_pairs(conflicts, opposed_pair):
    await conflicts.detect_assumption_conflicts()
    again = await conflicts.detect_assumption_conflicts()
    assert again.detected == 0
    assert len(await conflicts.list_assumption_conflicts()) == 1


@pytest.mark.asyncio
async def test_unresolved_conflict_lowers_health(conflicts, opposed_pair, session):
    _, _, decision = opposed_pair
    await conflicts.detect_assumption_conflicts()

    result = await EvaluationService.from_session(session).evaluate(decision.id)
    # one conflict touching the decision's assumptions
    assert result.new_health_signal == 90


@pytest.mark.asyncio
async def test_resolve_validate_a(conflicts, opposed_pair, session):
    growth, decline, decision = opposed_pair
    await conflicts.detect_assumption_conflicts()
    conflict = (await conflicts.list_assumption_conflicts())[0]

    resolved, results = await conflicts.resolve_assumption_conflict(
        conflict.id, AssumptionResolutionAction.VALIDATE_A, notes="Sales data", resolved_by="ana"
    )

    assert resolved.resolved_at is not None
    assert resolved.resolution_action == AssumptionResolutionAction.VALIDATE_A
    await session.refresh(growth)
    await session.refresh(decline)
    statuses = {growth.id: growth.status, decline.id: decline.status}
    assert statuses[conflict.assumption_a_id] == AssumptionStatus.VALID
    assert statuses[conflict.assumption_b_id] == AssumptionStatus.BROKEN

    # decision was re-evaluated: one of two specific assumptions broken, no open conflicts
    assert [r.decision_id for r in results] == [decision.id]
    assert results[0].new_health_signal == 70
    assert await conflicts.list_assumption_conflicts() == []


@pytest.mark.asyncio
async def test_resolve_twice_fails(conflicts, opposed_pair):
    await conflicts.detect_assumption_conflicts()
    conflict = (await conflicts.list_assumption_conflicts())[0]
    await conflicts.resolve_assumption_conflict(conflict.id, AssumptionResolutionAction.KEEP_BOTH)
    with pytest.raises(InvalidOperationError):
        await conflicts.resolve_assumption_conflict(conflict.id, AssumptionResolutionAction.KEEP_BOTH)


@pytest.mark.asyncio
async def test_manual_conflict_rules(conflicts, opposed_pair):
    growth, decline, _ = opposed_pair
    data = AssumptionConflictCreate(
        assumption_a_id=decline.id,
        assumption_b_id=growth.id,
        conflict_type=ConflictType.MUTUALLY_EXCLUSIVE,
        confidence_score=0.8,
    )
    conflict = await conflicts.create_assumption_conflict(data)
    assert conflict.conflict_type == ConflictType.MUTUALLY_EXCLUSIVE

    with pytest.raises(DuplicateError):
        await conflicts.create_assumption_conflict(data)

    with pytest.raises(InvalidOperationError):
        await conflicts.create_assumption_conflict(
            AssumptionConflictCreate(
                assumption_a_id=growth.id,
                assumption_b_id=growth.id,
                conflict_type=ConflictType.CONTRADICTORY,
                confidence_score=0.9,
            )
        )


@pytest.mark.asyncio
async def test_detect_decision_competition(conflicts, make_decision):
    first = await make_decision(
        "Migrate billing",
        parameters={"category": "RESOURCE", "resource_type": "engineers", "required": 4, "available": 6},
    )
    second = await make_decision(
        "Rebuild search",
        parameters={"category": "RESOURCE", "resource_type": "engineers", "required": 3},
    )

    report = await conflicts.detect_decision_conflicts()

    assert report.detected == 1
    assert report.conflicts[0]["conflict_type"] == ConflictType.RESOURCE_COMPETITION.value
    assert {report.conflicts[0]["a"], report.conflicts[0]["b"]} == {str(first.id), str(second.id)}


@pytest.mark.asyncio
async def test_resolve_decision_conflict_deprecate_both(conflicts, make_decision, session):
    first = await make_decision("Open Berlin office")
    second = await make_decision("Open Paris office")
    conflict = await conflicts.create_decision_conflict(
        DecisionConflictCreate(
            decision_a_id=first.id,
            decision_b_id=second.id,
            conflict_type=ConflictType.OBJECTIVE_UNDERMINING,
            confidence_score=0.9,
        )
    )

    await conflicts.resolve_decision_conflict(
        conflict.id, DecisionResolutionAction.DEPRECATE_BOTH, notes="Budget frozen", resolved_by="cfo"
    )

    for decision in (first, second):
        await session.refresh(decision)
        assert decision.lifecycle == DecisionLifecycle.INVALIDATED
        assert decision.health_signal == 0
        assert decision.invalidated_reason == "Budget frozen"

    versions = await DecisionService.from_session(session).list_versions(first.id)
    assert versions[0].change_type == "conflict_resolved"
    assert versions[0].changed_by == "cfo"


@pytest.mark.asyncio
async def test_manual_conflict_validate_a_keeps_callers_first(conflicts, opposed_pair, session):
    growth, decline, _ = opposed_pair
    for first, second in ((growth, decline), (decline, growth)):
        # run both orientations so one of them is against the id sort order
        conflict = await conflicts.create_assumption_conflict(
            AssumptionConflictCreate(
                assumption_a_id=first.id,
                assumption_b_id=second.id,
                conflict_type=ConflictType.CONTRADICTORY,
                confidence_score=0.9,
            )
        )
        assert conflict.assumption_a_id == first.id

        await conflicts.resolve_assumption_conflict(conflict.id, AssumptionResolutionAction.VALIDATE_A)
        await session.refresh(first)
        await session.refresh(second)
        assert first.status == AssumptionStatus.VALID
        assert second.status == AssumptionStatus.BROKEN

        await conflicts.delete_assumption_conflict(conflict.id)
