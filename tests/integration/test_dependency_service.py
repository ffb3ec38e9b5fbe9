"""Integration tests for decision dependencies and health propagation."""

from uuid import uuid4

import pytest

from decivue.core.models.assumption import AssumptionScope, AssumptionStatus
from decivue.core.models.decision import DecisionLifecycle
from decivue.core.repositories.dependency import DecisionDependencyRepository
from decivue.core.services import (
    DecisionService,
    DependencyService,
    EvaluationService,
    GovernanceService,
)
from decivue.utils.exceptions import (
    DecisionLockedError,
    DecisionNotFoundError,
    DependencyNotFoundError,
    DuplicateError,
    InvalidOperationError,
)


@pytest.fixture
def dependencies(session):
    return DependencyService.from_session(session)


@pytest.fixture
def evaluation(session):
    return EvaluationService.from_session(session)


@pytest.mark.asyncio
async def test_add_and_list(make_decision, dependencies, session):
    platform = await make_decision("Standardise on Postgres")
    service = await make_decision("Build billing service")

    edge = await dependencies.add_dependency(service.id, platform.id, actor="alice")
    assert edge.source_decision_id == service.id
    assert edge.target_decision_id == platform.id
    assert edge.created_by == "alice"

    listed = await dependencies.list_dependencies(service.id)
    assert [d.decision_id for d in listed.depends_on] == [platform.id]
    assert listed.depends_on[0].dependency_id == edge.id
    assert listed.blocks == []

    upstream = await dependencies.list_dependencies(platform.id)
    assert [d.decision_id for d in upstream.blocks] == [service.id]
    assert upstream.depends_on == []

    await session.refresh(service)
    assert service.needs_evaluation is True


@pytest.mark.asyncio
async def test_add_records_a_version(make_decision, dependencies, session):
    platform = await make_decision("Standardise on Postgres")
    service = await make_decision("Build billing service")
    await dependencies.add_dependency(service.id, platform.id, actor="alice")

    versions = await DecisionService.from_session(session).list_versions(service.id)
    latest = versions[0]
    assert latest.change_type == "dependency_added"
    assert latest.changed_by == "alice"
    assert "Standardise on Postgres" in latest.change_summary


@pytest.mark.asyncio
async def test_rejects_duplicates_self_and_cycles(make_decision, dependencies):
    a = await make_decision("A")
    b = await make_decision("B")
    c = await make_decision("C")
    await dependencies.add_dependency(a.id, b.id)
    await dependencies.add_dependency(b.id, c.id)

    with pytest.raises(DuplicateError):
        await dependencies.add_dependency(a.id, b.id)
    with pytest.raises(InvalidOperationError):
        await dependencies.add_dependency(a.id, a.id)
    # c -> a would close a -> b -> c -> a
    with pytest.raises(InvalidOperationError):
        await dependencies.add_dependency(c.id, a.id)


@pytest.mark.asyncio
async def test_unknown_decision(make_decision, dependencies):
    decision = await make_decision()
    with pytest.raises(DecisionNotFoundError):
        await dependencies.add_dependency(decision.id, uuid4())
    with pytest.raises(DecisionNotFoundError):
        await dependencies.add_dependency(uuid4(), decision.id)
    with pytest.raises(DecisionNotFoundError):
        await dependencies.list_dependencies(uuid4())


@pytest.mark.asyncio
async def test_retired_decision_cannot_gain_dependencies(make_decision, dependencies, session):
    upstream = await make_decision("Upstream")
    retired = await make_decision("Old plan")
    await DecisionService.from_session(session).retire_decision(retired.id, "Superseded")

    with pytest.raises(InvalidOperationError):
        await dependencies.add_dependency(retired.id, upstream.id)


@pytest.mark.asyncio
async def test_locked_decision_cannot_change_dependencies(make_decision, dependencies, session):
    upstream = await make_decision("Upstream")
    decision = await make_decision("Downstream")
    await GovernanceService.from_session(session).lock(decision.id, "alice")

    with pytest.raises(DecisionLockedError):
        await dependencies.add_dependency(decision.id, upstream.id, actor="bob")
    await dependencies.add_dependency(decision.id, upstream.id, actor="alice")


@pytest.mark.asyncio
async def test_remove(make_decision, dependencies, session):
    upstream = await make_decision("Upstream")
    decision = await make_decision("Downstream")
    other = await make_decision("Unrelated")
    edge = await dependencies.add_dependency(decision.id, upstream.id)

    with pytest.raises(DependencyNotFoundError):
        await dependencies.remove_dependency(other.id, edge.id)
    with pytest.raises(DependencyNotFoundError):
        await dependencies.remove_dependency(decision.id, uuid4())

    await dependencies.remove_dependency(decision.id, edge.id, actor="alice")
    listed = await dependencies.list_dependencies(decision.id)
    assert listed.depends_on == []

    versions = await DecisionService.from_session(session).list_versions(decision.id)
    assert "dependency_removed" in {v.change_type for v in versions}


@pytest.mark.asyncio
async def test_weak_dependency_caps_health(
    make_assumption, make_decision, dependencies, evaluation, session
):
    broken = await make_assumption("Vendor roadmap holds", status=AssumptionStatus.BROKEN)
    upstream = await make_decision("Adopt vendor X", assumption_ids=[broken.id])
    valid = await make_assumption("Team can learn the API")
    downstream = await make_decision("Build on vendor X", assumption_ids=[valid.id])
    await dependencies.add_dependency(downstream.id, upstream.id)

    upstream_result = await evaluation.evaluate(upstream.id)
    assert upstream_result.new_health_signal == 40

    result = await evaluation.evaluate(downstream.id)
    assert result.new_health_signal == 40
    assert result.new_lifecycle == DecisionLifecycle.AT_RISK
    step = next(s for s in result.trace if s.step == "dependency_check")
    assert step.passed is False
    assert step.details["baseline"] == 40


@pytest.mark.asyncio
async def test_invalidated_dependency_does_not_invalidate(
    make_assumption, make_decision, dependencies, evaluation
):
    universal = await make_assumption(
        "Interest rates stay flat", status=AssumptionStatus.BROKEN, scope=AssumptionScope.UNIVERSAL
    )
    upstream = await make_decision("Finance expansion with debt", assumption_ids=[universal.id])
    valid = await make_assumption("Site lease available")
    downstream = await make_decision("Open second warehouse", assumption_ids=[valid.id])
    await dependencies.add_dependency(downstream.id, upstream.id)

    assert (await evaluation.evaluate(upstream.id)).new_lifecycle == DecisionLifecycle.INVALIDATED

    result = await evaluation.evaluate(downstream.id)
    assert result.new_health_signal == 0
    assert result.new_lifecycle == DecisionLifecycle.AT_RISK
    assert result.invalidated_reason is None


@pytest.mark.asyncio
async def test_retired_dependency_is_ignored(
    make_assumption, make_decision, dependencies, evaluation, session
):
    upstream = await make_decision("Old platform")
    valid = await make_assumption("Team stays staffed")
    downstream = await make_decision("Migrate reports", assumption_ids=[valid.id])
    await dependencies.add_dependency(downstream.id, upstream.id)
    await DecisionService.from_session(session).retire_decision(upstream.id, "Replaced")

    result = await evaluation.evaluate(downstream.id)
    assert result.new_health_signal == 100
    assert result.new_lifecycle == DecisionLifecycle.STABLE


@pytest.mark.asyncio
async def test_health_change_flags_dependents(
    make_assumption, make_decision, dependencies, evaluation, session
):
    broken = await make_assumption("Budget approved", status=AssumptionStatus.BROKEN)
    upstream = await make_decision("Hire a data team", assumption_ids=[broken.id])
    valid = await make_assumption("Data is available")
    downstream = await make_decision("Launch churn model", assumption_ids=[valid.id])
    await dependencies.add_dependency(downstream.id, upstream.id)

    await evaluation.evaluate(downstream.id)
    await session.refresh(downstream)
    assert downstream.needs_evaluation is False

    await evaluation.evaluate(upstream.id)
    await session.refresh(downstream)
    assert downstream.needs_evaluation is True

    batch = await evaluation.evaluate_pending()
    assert [r.decision_id for r in batch.results] == [downstream.id]
    assert batch.results[0].new_health_signal == 40


@pytest.mark.asyncio
async def test_deleting_upstream_flags_dependents_and_drops_edges(
    make_decision, dependencies, evaluation, session
):
    upstream = await make_decision("Upstream")
    downstream = await make_decision("Downstream")
    await dependencies.add_dependency(downstream.id, upstream.id)
    await evaluation.evaluate(downstream.id)

    await DecisionService.from_session(session).delete_decision(upstream.id)

    await session.refresh(downstream)
    assert downstream.needs_evaluation is True
    assert await DecisionDependencyRepository(session).get_depends_on(downstream.id) == []
