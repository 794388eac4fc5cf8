import uuid

from app.requests.model import EquipmentStatus
from app.requests.state_machine import RequestStatus
from tests.conftest import _auth_headers


def _create_payload(equipment_id, **overrides):
    payload = {
        "title": "Compressor won't start",
        "description": "Breaker trips as soon as the motor spins up",
        "type": "CORRECTIVE",
        "priority": "HIGH",
        "equipment_id": str(equipment_id),
    }
    payload.update(overrides)
    return payload


def test_create_request_returns_201(client, store, world):
    r = client.post(
        "/v1/requests",
        json=_create_payload(world.equipment_id),
        headers=_auth_headers(world.requester),
    )
    assert r.status_code == 201, r.text
    data = r.json()
    assert data["status"] == "NEW"
    assert data["team_id"] == str(world.team_id)
    assert data["is_terminal"] is False
    assert data["allowed_transitions"] == ["IN_PROGRESS"]
    assert store.commits >= 1


def test_create_on_scrapped_equipment_is_400(client, world):
    r = client.post(
        "/v1/requests",
        json=_create_payload(world.scrapped_equipment_id),
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "VALIDATION_ERROR"


def test_create_rejects_short_title(client, world):
    r = client.post(
        "/v1/requests",
        json=_create_payload(world.equipment_id, title="Fix"),
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 422, r.text


def test_missing_token_is_401(client, world):
    r = client.post("/v1/requests", json=_create_payload(world.equipment_id))
    assert r.status_code == 401, r.text


def test_unknown_user_is_401(client, world):
    from services.roles import Actor, Role

    ghost = Actor(user_id=uuid.uuid4(), role=Role.ADMIN)
    r = client.get(f"/v1/requests/{uuid.uuid4()}", headers=_auth_headers(ghost))
    assert r.status_code == 401, r.text


def test_get_missing_request_is_404(client, world):
    r = client.get(f"/v1/requests/{uuid.uuid4()}", headers=_auth_headers(world.manager))
    assert r.status_code == 404, r.text
    assert r.json()["detail"] == "NOT_FOUND"


def test_requester_cannot_read_others(client, world, make_request):
    request = make_request(created_by_id=world.other_requester.user_id)
    r = client.get(f"/v1/requests/{request.id}", headers=_auth_headers(world.requester))
    assert r.status_code == 403, r.text
    assert r.json()["detail"] == "FORBIDDEN"


def test_full_lifecycle_over_http(client, store, world, make_request):
    request = make_request()
    base = f"/v1/requests/{request.id}"

    r = client.post(f"{base}/transition", json={"status": "IN_PROGRESS"}, headers=_auth_headers(world.tech))
    assert r.status_code == 200, r.text
    assert r.json()["technician_id"] == str(world.tech.user_id)
    assert r.json()["started_at"] is not None

    r = client.post(f"{base}/transition", json={"status": "REPAIRED"}, headers=_auth_headers(world.tech))
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "MISSING_DURATION"

    r = client.post(
        f"{base}/transition",
        json={"status": "REPAIRED", "duration_minutes": 40, "repair_notes": "Cleaned contacts"},
        headers=_auth_headers(world.tech),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "REPAIRED"
    assert body["is_terminal"] is True
    assert body["allowed_transitions"] == []

    r = client.post(f"{base}/transition", json={"status": "SCRAP"}, headers=_auth_headers(world.manager))
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "TERMINAL_STATE"

    r = client.get(f"{base}/logs", headers=_auth_headers(world.requester))
    assert r.status_code == 200, r.text
    actions = [log["action"] for log in r.json()["logs"]]
    assert actions == ["STATUS_CHANGED", "STATUS_CHANGED"]


def test_invalid_transition_is_400(client, world, make_request):
    request = make_request()
    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "SCRAP"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 400, r.text
    body = r.json()
    assert body["detail"] == "INVALID_TRANSITION"
    assert body["data"]["allowed"] == ["IN_PROGRESS"]


def test_unknown_status_is_422(client, world, make_request):
    request = make_request()
    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "CLOSED"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 422, r.text


def test_scrap_over_http_marks_equipment(client, store, world, make_request):
    request = make_request(RequestStatus.IN_PROGRESS)
    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "SCRAP"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 200, r.text
    assert store.equipment[world.equipment_id].status == EquipmentStatus.SCRAPPED


def test_outsider_transition_is_403(client, world, make_request):
    request = make_request()
    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "IN_PROGRESS"},
        headers=_auth_headers(world.outsider),
    )
    assert r.status_code == 403, r.text


def test_assign_and_unassign(client, store, world, make_request):
    request = make_request()
    base = f"/v1/requests/{request.id}/assign"

    r = client.post(base, json={"technician_id": str(world.tech2.user_id)}, headers=_auth_headers(world.manager))
    assert r.status_code == 200, r.text
    assert r.json()["technician_id"] == str(world.tech2.user_id)

    r = client.post(base, json={"technician_id": None}, headers=_auth_headers(world.manager))
    assert r.status_code == 200, r.text
    assert r.json()["technician_id"] is None

    assert [log.action for log in store.logs_for(request.id)] == ["ASSIGNED", "UNASSIGNED"]


def test_assign_requires_explicit_technician_field(client, world, make_request):
    request = make_request()
    r = client.post(f"/v1/requests/{request.id}/assign", json={}, headers=_auth_headers(world.manager))
    assert r.status_code == 422, r.text


def test_assign_invalid_technician_is_400(client, world, make_request):
    request = make_request()
    r = client.post(
        f"/v1/requests/{request.id}/assign",
        json={"technician_id": str(world.outsider.user_id)},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "VALIDATION_ERROR"


def test_conflict_is_409(client, world, make_request, monkeypatch):
    from app.requests import repository

    request = make_request(RequestStatus.IN_PROGRESS)
    monkeypatch.setattr(repository, "update_request", lambda conn, request_id, **kwargs: None)

    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "SCRAP"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 409, r.text
    assert r.json()["detail"] == "CONFLICT"


def test_patch_updates_details(client, store, world, make_request):
    request = make_request()
    r = client.patch(
        f"/v1/requests/{request.id}",
        json={"priority": "LOW", "scheduled_date": "2026-05-01"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 200, r.text
    assert r.json()["priority"] == "LOW"
    assert r.json()["scheduled_date"] == "2026-05-01"
    assert [log.action for log in store.logs_for(request.id)] == ["UPDATED"]


def test_patch_rejects_status_field(client, world, make_request):
    request = make_request()
    r = client.patch(
        f"/v1/requests/{request.id}",
        json={"status": "SCRAP"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 422, r.text


def test_delete_flow(client, store, world, make_request):
    fresh = make_request()
    started = make_request(RequestStatus.IN_PROGRESS)

    r = client.delete(f"/v1/requests/{fresh.id}", headers=_auth_headers(world.manager))
    assert r.status_code == 403, r.text

    r = client.delete(f"/v1/requests/{started.id}", headers=_auth_headers(world.admin))
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "INVALID_STATE"

    r = client.delete(f"/v1/requests/{fresh.id}", headers=_auth_headers(world.admin))
    assert r.status_code == 204, r.text
    assert fresh.id not in store.requests


def test_unexpected_error_is_500_without_leak(client, world, make_request, monkeypatch):
    from app.requests import repository

    request = make_request()

    def blowup(conn, team_id):
        raise RuntimeError("SOME_RANDOM_DB_BLOWUP_123")

    monkeypatch.setattr(repository, "get_team_members", blowup)

    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "IN_PROGRESS"},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 500, r.text
    assert r.json().get("detail") == "Internal server error"
    assert "SOME_RANDOM_DB_BLOWUP_123" not in r.text


def test_terminal_state_wins_over_permissions(client, world, make_request):
    request = make_request(RequestStatus.REPAIRED, duration_minutes=25, technician_id=world.tech.user_id)
    for actor in (world.requester, world.outsider, world.tech2):
        r = client.post(
            f"/v1/requests/{request.id}/transition",
            json={"status": "IN_PROGRESS"},
            headers=_auth_headers(actor),
        )
        assert r.status_code == 400, r.text
        assert r.json()["detail"] == "TERMINAL_STATE"


def test_scrap_with_negative_duration_is_400(client, store, world, make_request):
    request = make_request(RequestStatus.IN_PROGRESS)
    r = client.post(
        f"/v1/requests/{request.id}/transition",
        json={"status": "SCRAP", "duration_minutes": -5},
        headers=_auth_headers(world.manager),
    )
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "VALIDATION_ERROR"
    assert store.requests[request.id].status == RequestStatus.IN_PROGRESS
