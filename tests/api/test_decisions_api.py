"""API tests for decision endpoints."""

from uuid import uuid4

import pytest

from decivue.core.services.event_bus import event_bus

API = "/api/v1"


async def create_assumption(client, description, **fields):
    response = await client.post(f"{API}/assumptions/", json={"description": description, **fields})
    assert response.status_code == 201, response.text
    return response.json()


async def create_decision(client, title="Adopt vendor X", **fields):
    response = await client.post(f"{API}/decisions/", json={"title": title, **fields})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_root_and_health(client):
    assert (await client.get("/")).json()["message"] == "Decivue API"
    assert (await client.get("/health")).json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_create_and_get(client):
    created = await create_decision(
        client,
        parameters={"category": "BUDGET", "budget_line": "infra", "amount": 12000},
        context={"cost": 12000},
    )
    assert created["lifecycle"] == "STABLE"
    assert created["health_signal"] == 100
    assert created["parameters"]["currency"] == "USD"

    response = await client.get(f"{API}/decisions/{created['id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Adopt vendor X"


@pytest.mark.asyncio
async def test_invalid_parameters_rejected(client):
    response = await client.post(
        f"{API}/decisions/",
        json={"title": "Bad", "parameters": {"category": "MARKET", "metric": "x", "direction": "up"}},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_assumption_is_404(client):
    response = await client.post(
        f"{API}/decisions/", json={"title": "Broken link", "assumption_ids": [str(uuid4())]}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_missing(client):
    response = await client.get(f"{API}/decisions/{uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_and_filter(client):
    await create_decision(client, "First")
    second = await create_decision(client, "Second")
    await client.post(f"{API}/decisions/{second['id']}/retire", json={"reason": "Obsolete"})

    listing = (await client.get(f"{API}/decisions/", params={"per_page": 1})).json()
    assert listing["total"] == 2
    assert len(listing["items"]) == 1

    retired = (await client.get(f"{API}/decisions/", params={"lifecycle": "RETIRED"})).json()
    assert [d["title"] for d in retired["items"]] == ["Second"]
    assert retired["items"][0]["invalidated_reason"] == "Obsolete"


@pytest.mark.asyncio
async def test_evaluate_publishes_events(client):
    broken = await create_assumption(client, "Churn stays low", status="BROKEN")
    valid = await create_assumption(client, "Pricing holds")
    decision = await create_decision(client, assumption_ids=[broken["id"], valid["id"]])

    response = await client.post(f"{API}/decisions/{decision['id']}/evaluate")

    assert response.status_code == 200
    result = response.json()
    assert result["new_health_signal"] == 70
    assert result["new_lifecycle"] == "UNDER_REVIEW"
    assert result["trace"][0]["step"] == "lifecycle_check"

    types = [e["type"] for e in event_bus.get_recent_events()]
    assert types == ["decision.evaluated", "decision.lifecycle_changed"]

    history = (await client.get(f"{API}/decisions/{decision['id']}/health-history")).json()
    assert len(history) == 1
    assert history[0]["triggered_by"] == "api"


@pytest.mark.asyncio
async def test_evaluate_missing_is_404(client):
    response = await client.post(f"{API}/decisions/{uuid4()}/evaluate")
    assert response.status_code == 404
    assert event_bus.buffer_size == 0


@pytest.mark.asyncio
async def test_batch_evaluate(client):
    decision = await create_decision(client)
    missing = str(uuid4())

    response = await client.post(
        f"{API}/decisions/batch-evaluate", json={"decision_ids": [decision["id"], missing]}
    )

    body = response.json()
    assert response.status_code == 200
    assert body["evaluated"] == 1
    assert body["failed"] == 1
    assert missing in body["errors"]


@pytest.mark.asyncio
async def test_evaluate_pending(client):
    await create_decision(client, "One")
    await create_decision(client, "Two")

    first = (await client.post(f"{API}/decisions/evaluate-pending")).json()
    second = (await client.post(f"{API}/decisions/evaluate-pending")).json()

    assert first["evaluated"] == 2
    assert second["evaluated"] == 0


@pytest.mark.asyncio
async def test_retire_twice_is_400(client):
    decision = await create_decision(client)
    assert (await client.post(f"{API}/decisions/{decision['id']}/retire")).status_code == 200
    response = await client.post(f"{API}/decisions/{decision['id']}/retire")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_review_flow(client):
    decision = await create_decision(client, governance_tier="critical")

    response = await client.post(
        f"{API}/decisions/{decision['id']}/review",
        json={"reviewer": "ana", "outcome": "reaffirmed"},
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/decisions/{decision['id']}/review",
        json={"reviewer": "ana", "outcome": "reaffirmed", "second_reviewer": "ben"},
    )
    assert response.status_code == 200
    assert response.json()["last_reviewed_at"] is not None

    urgency = (await client.get(f"{API}/decisions/{decision['id']}/review-urgency")).json()
    assert urgency["factors"]["base"] == 50
    assert urgency["review_frequency_days"] in (7, 30, 60, 90)


@pytest.mark.asyncio
async def test_lock_conflict(client):
    decision = await create_decision(client)
    url = f"{API}/decisions/{decision['id']}"

    assert (await client.post(f"{url}/lock", json={"actor": "ana"})).status_code == 200

    response = await client.patch(url, json={"title": "Hijack", "updated_by": "ben"})
    assert response.status_code == 409

    response = await client.post(f"{url}/unlock", json={"actor": "ben"}, params={"force": True})
    assert response.status_code == 200
    assert response.json()["locked_by"] is None

    response = await client.patch(url, json={"title": "Edited", "updated_by": "ben"})
    assert response.status_code == 200

    versions = (await client.get(f"{url}/versions")).json()
    assert [v["change_type"] for v in versions] == ["updated", "unlocked", "locked", "created"]


@pytest.mark.asyncio
async def test_governance_update(client):
    decision = await create_decision(client)
    url = f"{API}/decisions/{decision['id']}/governance"

    response = await client.put(url, json={"governance_tier": "critical"})
    assert response.status_code == 403

    response = await client.put(
        url, json={"governance_tier": "critical", "requires_second_reviewer": True}
    )
    assert response.status_code == 200
    assert response.json()["governance_tier"] == "critical"


@pytest.mark.asyncio
async def test_delete(client):
    decision = await create_decision(client)
    response = await client.delete(f"{API}/decisions/{decision['id']}")
    assert response.status_code == 204
    assert (await client.get(f"{API}/decisions/{decision['id']}")).status_code == 404
