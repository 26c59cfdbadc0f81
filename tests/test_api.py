import re

import pytest
from fastapi.testclient import TestClient

from database import get_db
from dependencies import get_sms_gateway
from server import app

REGISTRATION = {
    "name": "Asha Das",
    "age": "14",
    "gender": "female",
    "address": "Jorhat",
    "mobile": "9876543210",
}


@pytest.fixture
def client(session_factory, sms_gateway):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_gateway] = lambda: sms_gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _register(client, sms_gateway, **overrides):
    fields = {**REGISTRATION, **overrides}
    response = client.post("/api/registrations/otp", json=fields)
    assert response.status_code == 200, response.text
    challenge_id = response.json()["challengeId"]
    return client.post(
        "/api/registrations",
        json={**fields, "challengeId": challenge_id, "otp": sms_gateway.last_code},
    )


def _admin_headers(client):
    response = client.post("/api/admin/login", json={"username": "adminkarate", "password": "helloworld131"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_health(client):
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_registration_flow_assigns_number(client, sms_gateway):
    response = _register(client, sms_gateway)

    assert response.status_code == 201, response.text
    body = response.json()
    assert re.match(r"^BKL\d{6}$", body["registrationNumber"])
    assert sms_gateway.messages[0][0] == "+919876543210"


def test_send_otp_rejects_invalid_mobile(client, sms_gateway):
    response = client.post("/api/registrations/otp", json={**REGISTRATION, "mobile": "12345"})
    assert response.status_code == 400
    assert sms_gateway.messages == []


def test_send_otp_rejects_missing_fields(client, sms_gateway):
    response = client.post("/api/registrations/otp", json={**REGISTRATION, "address": ""})
    assert response.status_code == 400
    assert sms_gateway.messages == []


def test_wrong_otp_is_rejected_and_can_be_retried(client, sms_gateway):
    challenge_id = client.post("/api/registrations/otp", json=REGISTRATION).json()["challengeId"]
    code = sms_gateway.last_code
    wrong = "0" * len(code) if code != "0" * len(code) else "1" * len(code)

    bad = client.post("/api/registrations", json={**REGISTRATION, "challengeId": challenge_id, "otp": wrong})
    assert bad.status_code == 400

    good = client.post("/api/registrations", json={**REGISTRATION, "challengeId": challenge_id, "otp": code})
    assert good.status_code == 201

    reused = client.post("/api/registrations", json={**REGISTRATION, "challengeId": challenge_id, "otp": code})
    assert reused.status_code == 400


def test_challenge_locks_after_repeated_wrong_codes(client, sms_gateway):
    challenge_id = client.post("/api/registrations/otp", json=REGISTRATION).json()["challengeId"]
    code = sms_gateway.last_code
    wrong = "0" * len(code) if code != "0" * len(code) else "1" * len(code)

    for _ in range(5):
        bad = client.post("/api/registrations", json={**REGISTRATION, "challengeId": challenge_id, "otp": wrong})
        assert bad.status_code == 400

    locked = client.post("/api/registrations", json={**REGISTRATION, "challengeId": challenge_id, "otp": code})
    assert locked.status_code == 400
    assert "Too many" in locked.json()["detail"]

    retry_id = client.post("/api/registrations/otp", json=REGISTRATION).json()["challengeId"]
    fresh = client.post(
        "/api/registrations",
        json={**REGISTRATION, "challengeId": retry_id, "otp": sms_gateway.last_code},
    )
    assert fresh.status_code == 201


def test_submit_rejects_unknown_challenge(client):
    response = client.post("/api/registrations", json={**REGISTRATION, "challengeId": "missing", "otp": "123456"})
    assert response.status_code == 400


def test_submit_rejects_mobile_other_than_challenge(client, sms_gateway):
    challenge_id = client.post("/api/registrations/otp", json=REGISTRATION).json()["challengeId"]
    response = client.post(
        "/api/registrations",
        json={**REGISTRATION, "mobile": "9123456780", "challengeId": challenge_id, "otp": sms_gateway.last_code},
    )
    assert response.status_code == 400


def test_admin_endpoints_require_login(client):
    assert client.get("/api/admin/registrations").status_code == 401
    assert client.get("/api/admin/registrations/stats").status_code == 401
    assert client.get("/api/admin/registrations/export").status_code == 401
    assert client.get("/api/admin/session").json() == {"isAuthenticated": False}


def test_admin_login_rejects_bad_credentials(client):
    response = client.post("/api/admin/login", json={"username": "adminkarate", "password": "nope"})
    assert response.status_code == 401


def test_admin_listing_and_search(client, sms_gateway):
    _register(client, sms_gateway)
    _register(client, sms_gateway, name="Bikash Gogoi", mobile="9123456780", gender="male")
    headers = _admin_headers(client)

    rows = client.get("/api/admin/registrations", headers=headers).json()
    assert [row["name"] for row in rows] == ["Bikash Gogoi", "Asha Das"]
    assert [row["giftRank"] for row in rows] == [0, 1]
    assert all(row["giftEligible"] for row in rows)
    assert all(row["phoneVerified"] for row in rows)

    filtered = client.get("/api/admin/registrations", params={"search": "ASHA"}, headers=headers).json()
    assert [row["name"] for row in filtered] == ["Asha Das"]
    assert filtered[0]["giftRank"] == 1

    stats = client.get("/api/admin/registrations/stats", headers=headers).json()
    assert stats == {"total": 2, "giftEligible": 2, "male": 1, "female": 1}


def test_admin_export_csv(client, sms_gateway):
    _register(client, sms_gateway)
    headers = _admin_headers(client)

    response = client.get("/api/admin/registrations/export", headers=headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert re.search(r"karate_registrations_\d{4}-\d{2}-\d{2}\.csv", response.headers["content-disposition"])
    lines = response.text.split("\n")
    assert len(lines) == 2
    assert lines[0].startswith('"Registration Number","Name"')
    assert '"Asha Das"' in lines[1]


def test_admin_export_xlsx(client, sms_gateway):
    _register(client, sms_gateway)
    headers = _admin_headers(client)

    response = client.get("/api/admin/registrations/export", params={"format": "xlsx"}, headers=headers)

    assert response.status_code == 200
    assert response.headers["content-disposition"].endswith(".xlsx")
    assert response.content[:2] == b"PK"


def test_admin_status_update_and_delete(client, sms_gateway):
    registration_id = _register(client, sms_gateway).json()["id"]
    headers = _admin_headers(client)

    updated = client.put(
        f"/api/admin/registrations/{registration_id}/status",
        json={"status": "confirmed"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "confirmed"

    invalid = client.put(
        f"/api/admin/registrations/{registration_id}/status",
        json={"status": "archived"},
        headers=headers,
    )
    assert invalid.status_code == 422

    unconfirmed = client.delete(f"/api/admin/registrations/{registration_id}", headers=headers)
    assert unconfirmed.status_code == 400

    deleted = client.delete(
        f"/api/admin/registrations/{registration_id}", params={"confirm": "true"}, headers=headers
    )
    assert deleted.status_code == 200
    assert client.get("/api/admin/registrations", headers=headers).json() == []

    missing = client.delete(
        f"/api/admin/registrations/{registration_id}", params={"confirm": "true"}, headers=headers
    )
    assert missing.status_code == 404


def test_admin_logout_ends_session(client):
    headers = _admin_headers(client)
    assert client.get("/api/admin/session", headers=headers).json() == {"isAuthenticated": True}

    assert client.post("/api/admin/logout", headers=headers).status_code == 200

    assert client.get("/api/admin/session", headers=headers).json() == {"isAuthenticated": False}
    assert client.get("/api/admin/registrations", headers=headers).status_code == 401


def test_admin_rejects_garbage_token(client):
    response = client.get("/api/admin/registrations", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
