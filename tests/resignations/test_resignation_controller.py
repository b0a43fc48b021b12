from __future__ import annotations

import pytest

from src.offboarding_system.offboarding_system.main import create_app

ORG = 1
MANAGER_ENG = 101
HR_USER = 103
ADMIN_USER = 104
LENA = 201
TOMAS = 202


@pytest.fixture
def app(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user_id: int, role: str, organization_id: int = ORG) -> None:
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role
        sess["organization_id"] = organization_id


def _apply(client, user_id=LENA):
    login(client, user_id, "employee")
    resp = client.post("/resignations/apply", json={"resignation_date": "2026-03-02", "reason": "Relocating"})
    assert resp.status_code == 201
    return resp.get_json()["data"]["resignation_id"]


def test_requests_without_identity_are_rejected(client):
    resp = client.get("/resignations/pending")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_apply_and_walk_through_approvals(client):
    rid = _apply(client)

    login(client, MANAGER_ENG, "manager")
    resp = client.put(f"/resignations/{rid}/approve", json={"comment": "Good luck"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["current_level"] == "hr"

    login(client, HR_USER, "hr")
    assert client.put(f"/resignations/{rid}/approve", json={"level": "hr"}).status_code == 200

    login(client, ADMIN_USER, "admin")
    resp = client.put(f"/resignations/{rid}/approve", json={"actual_last_working_date": "2026-03-27"})
    data = resp.get_json()["data"]
    assert data["status"] == "approved"
    assert data["actual_last_working_date"] == "2026-03-27"
    assert data["approval_flow"]["manager"]["comment"] == "Good luck"

    resp = client.get(f"/resignations/{rid}")
    body = resp.get_json()["data"]
    assert body["employee_name"] == "Lena Developer"
    assert body["approval_flow"]["manager"]["actor_name"] == "Maya Lead"


def test_error_mapping(client):
    rid = _apply(client)

    login(client, HR_USER, "hr")
    resp = client.put(f"/resignations/{rid}/approve", json={})
    assert resp.status_code == 409  # not awaiting hr yet

    login(client, TOMAS, "employee")
    assert client.put(f"/resignations/{rid}/withdraw").status_code == 403
    assert client.get("/resignations/hr").status_code == 403

    login(client, MANAGER_ENG, "manager")
    assert client.put(f"/resignations/{rid}/reject", json={"reason": ""}).status_code == 400
    assert client.put("/resignations/999/approve", json={}).status_code == 404

    login(client, LENA, "employee")
    resp = client.post("/resignations/apply", json={"resignation_date": "2026-03-05", "reason": "Twice"})
    assert resp.status_code == 409
    resp = client.post("/resignations/apply", json={"resignation_date": "03/05/2026", "reason": "Bad date"})
    assert resp.status_code == 400


def test_bulk_update_reports_ineligible_count(client):
    lena_id = _apply(client, LENA)
    tomas_id = _apply(client, TOMAS)

    login(client, MANAGER_ENG, "manager")
    client.put(f"/resignations/{lena_id}/approve", json={})

    resp = client.put(
        "/resignations/bulk-update",
        json={"resignation_ids": [lena_id, tomas_id], "action": "approve", "level": "manager"},
    )
    assert resp.status_code == 409
    assert resp.get_json()["ineligible_count"] == 1

    resp = client.put(
        "/resignations/bulk-update",
        json={"resignation_ids": [tomas_id], "action": "reject", "reason": "Deadline"},
    )
    assert resp.status_code == 200
    assert resp.get_json()["count"] == 1


def test_role_lists_and_pagination(client):
    _apply(client, LENA)
    _apply(client, TOMAS)

    login(client, MANAGER_ENG, "manager")
    resp = client.get("/resignations/manager?status=pending&limit=1")
    body = resp.get_json()
    assert resp.status_code == 200
    assert len(body["data"]) == 1
    assert body["pagination"] == {"total": 2, "page": 1, "limit": 1, "totalPages": 2}

    assert client.get("/resignations/pending").get_json()["pagination"]["total"] == 2

    login(client, LENA, "employee")
    history = client.get("/resignations/employee/5").get_json()
    assert [r["employee_name"] for r in history["data"]] == ["Lena Developer"]

    login(client, ADMIN_USER, "admin")
    assert client.get("/resignations?status=pending").get_json()["pagination"]["total"] == 2
    assert client.get("/resignations/admin?department_id=1").get_json()["pagination"]["total"] == 0


def test_bulk_update_rejects_non_list_ids_without_writing(client):
    lena_id = _apply(client, LENA)
    tomas_id = _apply(client, TOMAS)
    ids = f"{lena_id}{tomas_id}"

    login(client, MANAGER_ENG, "manager")
    resp = client.put("/resignations/bulk-update", json={"resignation_ids": ids, "action": "approve"})
    assert resp.status_code == 400

    resp = client.put("/resignations/bulk-update", json={"resignation_ids": [lena_id, True], "action": "approve"})
    assert resp.status_code == 400

    for rid in (lena_id, tomas_id):
        data = client.get(f"/resignations/{rid}").get_json()["data"]
        assert data["current_level"] == "manager"
        assert data["approval_flow"]["manager"]["status"] == "pending"


def test_non_string_inputs_are_validation_errors(client):
    rid = _apply(client)

    login(client, MANAGER_ENG, "manager")
    assert client.put(f"/resignations/{rid}/approve", json={"actual_last_working_date": 20260325}).status_code == 400
    assert client.put(f"/resignations/{rid}/reject", json={"reason": 42}).status_code == 400
    assert client.get(f"/resignations/{rid}").get_json()["data"]["current_level"] == "manager"

    login(client, ADMIN_USER, "admin")
    resp = client.get("/resignations/admin?department_id=engineering")
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
