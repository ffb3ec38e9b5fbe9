"""Integration tests for repository behavior that spans tables."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from decivue.core.models.assumption import DecisionAssumption
from decivue.core.models.conflict import AssumptionConflict, ConflictType
from decivue.core.models.evaluation import EvaluationHistory
from decivue.core.models.version import DecisionVersion
from decivue.core.repositories import (
    AssumptionConflictRepository,
    AssumptionRepository,
    DecisionRepository,
)
from decivue.core.services import DecisionService, EvaluationService


async def count(session, model, *where) -> int:
    stmt = select(func.count()).select_from(model)
    for clause in where:
        stmt = stmt.where(clause)
    return (await session.execute(stmt)).scalar()


@pytest.mark.asyncio
async def test_delete_cascades_to_exclusive_assumptions(make_assumption, make_decision, session):
    exclusive = await make_assumption("Only this decision relies on me")
    shared = await make_assumption("Two decisions rely on me")
    other = await make_assumption("Conflicts with the exclusive one")
    doomed = await make_decision("Doomed", assumption_ids=[exclusive.id, shared.id])
    survivor = await make_decision("Survivor", assumption_ids=[shared.id, other.id])
    await AssumptionConflictRepository(session).create_pair(
        exclusive.id, other.id, ConflictType.CONTRADICTORY, 0.9
    )
    await EvaluationService.from_session(session).evaluate(doomed.id)

    assert await DecisionRepository(session).delete(doomed.id) is True

    assumptions = AssumptionRepository(session)
    assert not await assumptions.exists(exclusive.id)
    assert await assumptions.exists(shared.id)
    assert await assumptions.get_decision_ids([shared.id]) == [survivor.id]
    assert await count(session, AssumptionConflict) == 0
    assert await count(session, EvaluationHistory, EvaluationHistory.decision_id == doomed.id) == 0
    assert await count(session, DecisionVersion, DecisionVersion.decision_id == doomed.id) == 0
    assert await count(session, DecisionAssumption, DecisionAssumption.decision_id == doomed.id) == 0


@pytest.mark.asyncio
async def test_delete_missing_decision(session):
    assert await DecisionRepository(session).delete(uuid4()) is False


@pytest.mark.asyncio
async def test_link_is_idempotent(make_assumption, make_decision, session):
    assumption = await make_assumption("Exchange rate stable")
    decision = await make_decision()
    repo = AssumptionRepository(session)

    assert await repo.link(decision.id, assumption.id) is True
    assert await repo.link(decision.id, assumption.id) is False
    assert await repo.count_links(assumption.id) == 1

    assert await repo.unlink(decision.id, assumption.id) is True
    assert await repo.unlink(decision.id, assumption.id) is False


@pytest.mark.asyncio
async def test_conflict_pair_keeps_orientation(make_assumption, session):
    a = await make_assumption("Price rises")
    b = await make_assumption("Price falls")
    repo = AssumptionConflictRepository(session)

    conflict = await repo.create_pair(b.id, a.id, ConflictType.CONTRADICTORY, 0.95)

    assert (conflict.assumption_a_id, conflict.assumption_b_id) == (b.id, a.id)
    assert (await repo.get_pair(a.id, b.id)).id == conflict.id
    assert (await repo.get_pair(b.id, a.id)).id == conflict.id
    assert await repo.count_unresolved_for([a.id, b.id]) == 1


@pytest.mark.asyncio
async def test_mark_for_evaluation_skips_retired(make_decision, session):
    active = await make_decision("Active")
    retired = await make_decision("Retired")
    await DecisionService.from_session(session).retire_decision(retired.id)
    active.needs_evaluation = False
    await session.commit()

    marked = await DecisionRepository(session).mark_for_evaluation([active.id, retired.id])

    assert marked == 1
    assert active.needs_evaluation is True
    assert retired.needs_evaluation is False


@pytest.mark.asyncio
async def test_sort_by_unknown_column_falls_back(make_decision, session):
    await make_decision("First")
    await make_decision("Second")
    items = await DecisionRepository(session).get_all(sort_by="title; drop table decisions")
    assert len(items) == 2
