"""
HTTP API tests: caller resolution and error mapping.
"""

import pytest

from eventgate.auth.middleware import create_api_key_for_user


def _as(user) -> dict:
    return {"X-External-ID": user.external_id}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_missing_caller_is_401(client):
    response = await client.get("/v1/events")
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_unknown_or_malformed_credentials_are_401(client):
    for headers in (
        {"Authorization": "Bearer eg_not-a-real-key"},
        {"X-API-Key": "eg_not-a-real-key"},
        {"Authorization": "Bearer opaque-session"},
        {"Authorization": "Bearer a.b.c"},
    ):
        response = await client.get("/v1/events", headers=headers)
        assert response.status_code == 401, headers


@pytest.mark.asyncio
async def test_api_key_resolves_to_its_user(client, session, host_user):
    full_key, _ = await create_api_key_for_user(session, host_user)

    response = await client.get("/v1/users/me", headers={"Authorization": f"Bearer {full_key}"})

    assert response.status_code == 200
    assert response.json()["external_id"] == host_user.external_id
    assert response.json()["role"] == "host"


@pytest.mark.asyncio
async def test_sync_user_assigns_admin_by_email(client):
    response = await client.post(
        "/v1/users/sync",
        json={"external_id": "ext-sync-1", "name": "Synced Admin", "email": " Admin@Example.test "},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "admin"
    assert body["email"] == "admin@example.test"

    response = await client.post(
        "/v1/users/sync",
        json={"external_id": "ext-sync-2", "name": "Synced Host", "email": "host@example.test"},
    )
    assert response.json()["role"] == "host"


@pytest.mark.asyncio
async def test_onboarding(client, host_user):
    response = await client.post(
        "/v1/users/me/onboarding",
        headers=_as(host_user),
        json={"org_name": "  Builders Club ", "website": "", "socials": {"x": "@builders", "li": ""}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["org_name"] == "Builders Club"
    assert body["website"] is None
    assert body["socials"] == {"x": "@builders"}
    assert body["onboarding_completed"] is True


@pytest.mark.asyncio
async def test_lifecycle_error_mapping(client, host_user, other_host_user, admin_user, event_date):
    """Each error kind maps to its own status code and carries a code."""
    host, other, admin = _as(host_user), _as(other_host_user), _as(admin_user)

    response = await client.post("/v1/events", headers=host, json={"title": "AI Mixer"})
    assert response.status_code == 201
    event_id = response.json()["event_id"]
    assert response.json()["status"] == "draft"

    response = await client.post(f"/v1/events/{event_id}/submit", headers=host)
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_FAILED"
    assert "short_description" in body["fields"]
    assert "agreement" in body["fields"]

    response = await client.patch(
        f"/v1/events/{event_id}",
        headers=host,
        json={
            "short_description": "An evening of demos and conversation about applied machine learning.",
            "event_date": event_date.isoformat(),
            "venue": "Main Hall",
            "target_audience": "Founders",
            "formats": ["Networking Mixer"],
            "agreement_accepted": True,
        },
    )
    assert response.status_code == 200
    assert response.json()["agreement_accepted_at"] is not None

    response = await client.get(f"/v1/events/{event_id}", headers=other)
    assert response.status_code == 404
    assert response.json()["code"] == "EVENT_NOT_FOUND"

    response = await client.post(f"/v1/events/{event_id}/submit", headers=host)
    assert response.status_code == 200
    assert response.json()["status"] == "submitted"

    response = await client.post(f"/v1/events/{event_id}/approve", headers=host)
    assert response.status_code == 403
    assert response.json()["code"] == "UNAUTHORIZED"

    response = await client.delete(f"/v1/events/{event_id}", headers=host)
    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_STATE"

    response = await client.post(f"/v1/events/{event_id}/approve", headers=admin)
    assert response.status_code == 200
    assert len(response.json()["checklist"]) == 9

    response = await client.post(f"/v1/events/{event_id}/approve", headers=admin)
    assert response.status_code == 409

    response = await client.post(f"/v1/events/{event_id}/publish", headers=admin)
    assert response.status_code == 412
    assert response.json()["code"] == "PRECONDITION_FAILED"

    response = await client.put(
        f"/v1/events/{event_id}/registration-url",
        headers=host,
        json={"url": "https://lu.ma/ai-mixer"},
    )
    assert response.status_code == 200

    response = await client.post(f"/v1/events/{event_id}/publish", headers=admin)
    assert response.status_code == 200
    assert response.json()["status"] == "published"

    response = await client.get(f"/v1/events/{event_id}/audit", headers=host)
    assert response.status_code == 200
    assert response.json()[0]["to_value"] == "published"


@pytest.mark.asyncio
async def test_feedback_and_notification_routes(client, host_user, admin_user, submitted_event):
    host, admin = _as(host_user), _as(admin_user)

    response = await client.post(
        f"/v1/events/{submitted_event}/threads",
        headers=admin,
        json={"field_path": "venue", "message": "Which room?"},
    )
    assert response.status_code == 201
    thread_id = response.json()["thread_id"]

    response = await client.get(f"/v1/events/{submitted_event}/threads/open-count", headers=host)
    assert response.json() == {"count": 1}

    response = await client.post(
        f"/v1/threads/{thread_id}/comments", headers=host, json={"message": "Rooftop"}
    )
    assert response.status_code == 201
    assert response.json()["author_name"] == "Hana Host"

    response = await client.post(f"/v1/threads/{thread_id}/resolve", headers=admin)
    assert response.status_code == 200
    assert response.json()["status"] == "resolved"

    response = await client.post(
        f"/v1/threads/{thread_id}/comments", headers=host, json={"message": "Late"}
    )
    assert response.status_code == 409

    response = await client.get("/v1/notifications/unread-count", headers=host)
    assert response.json() == {"count": 1}

    response = await client.post("/v1/notifications/read-all", headers=host)
    assert response.json() == {"count": 1}


@pytest.mark.asyncio
async def test_review_queue_and_conflicts_routes(client, host_user, admin_user, submitted_event, event_date):
    response = await client.get("/v1/review-queue", headers=_as(admin_user))
    assert response.status_code == 200
    assert [entry["event_id"] for entry in response.json()] == [str(submitted_event)]

    response = await client.get("/v1/review-queue", headers=_as(host_user))
    assert response.status_code == 403

    response = await client.get(
        "/v1/conflicts",
        headers=_as(host_user),
        params={"event_date": event_date.isoformat(), "venue": "main hall"},
    )
    assert response.status_code == 200
    assert response.json()[0]["is_direct_conflict"] is True


@pytest.mark.asyncio
async def test_form_draft_routes(client, host_user):
    headers = _as(host_user)

    response = await client.put("/v1/drafts/forms/new-event", headers=headers, json={"data": {"title": "AI"}})
    assert response.status_code == 200

    response = await client.get("/v1/drafts/forms/new-event", headers=headers)
    assert response.json()["data"] == {"title": "AI"}

    response = await client.delete("/v1/drafts/forms/new-event", headers=headers)
    assert response.json() == {"ok": True}

    response = await client.get("/v1/drafts/forms/new-event", headers=headers)
    assert response.json() is None
