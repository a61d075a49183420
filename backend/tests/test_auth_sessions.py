from fastapi.testclient import TestClient

from conftest import build_session_factory, build_test_app
from mocards.api.auth import get_password_hash
from mocards.models.actor import AdminUser, Clinic
from mocards.models.auth import RefreshSession

PASSWORD = "TestPass123!"


def _cookie_value(set_cookie_header: str, cookie_name: str) -> str:
    token_part = set_cookie_header.split(";", 1)[0]
    name, value = token_part.split("=", 1)
    assert name == cookie_name
    return value


def _build_test_client():
    testing_session_local = build_session_factory()
    db = testing_session_local()
    try:
        db.add(AdminUser(username="alpha", password_hash=get_password_hash(PASSWORD)))
        db.add(Clinic(clinic_code="CAV001", clinic_name="Cavite Smile Dental", password_hash=get_password_hash(PASSWORD)))
        db.add(Clinic(
            clinic_code="OLD001",
            clinic_name="Closed Clinic",
            password_hash=get_password_hash(PASSWORD),
            is_active=0,
        ))
        db.commit()
    finally:
        db.close()
    return TestClient(build_test_app(testing_session_local)), testing_session_local


def _admin_login(client: TestClient):
    login_response = client.post(
        "/api/auth/admin/login",
        json={"username": "alpha", "password": PASSWORD},
    )
    assert login_response.status_code == 200
    return login_response


def test_login_sets_secure_httponly_refresh_cookie():
    client, _ = _build_test_client()

    login_response = _admin_login(client)
    data = login_response.json()
    set_cookie = login_response.headers.get("set-cookie", "")

    assert "access_token" in data
    assert "refresh_token" not in data
    assert "mocards_refresh=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "Secure" in set_cookie
    assert "samesite=lax" in set_cookie.lower()


def test_wrong_password_is_rejected():
    client, _ = _build_test_client()

    response = client.post(
        "/api/auth/admin/login",
        json={"username": "alpha", "password": "wrong-password"},
    )

    assert response.status_code == 401


def test_clinic_login_normalizes_code_and_reports_role():
    client, _ = _build_test_client()

    login_response = client.post(
        "/api/auth/clinic/login",
        json={"clinic_code": " cav001 ", "password": PASSWORD},
    )
    assert login_response.status_code == 200

    me_response = client.get(
        "/api/auth/me",
        headers={"Authorization": f"Bearer {login_response.json()['access_token']}"},
    )
    assert me_response.status_code == 200
    assert me_response.json()["actor_type"] == "clinic"
    assert me_response.json()["name"] == "Cavite Smile Dental"


def test_inactive_clinic_cannot_log_in():
    client, _ = _build_test_client()

    response = client.post(
        "/api/auth/clinic/login",
        json={"clinic_code": "OLD001", "password": PASSWORD},
    )

    assert response.status_code == 401


def test_refresh_rotates_session_and_rejects_replay():
    client, _ = _build_test_client()

    login_response = _admin_login(client)
    old_cookie = _cookie_value(login_response.headers["set-cookie"], "mocards_refresh")

    refresh_response = client.post(
        "/api/auth/refresh",
        headers={"Cookie": f"mocards_refresh={old_cookie}"},
    )
    assert refresh_response.status_code == 200
    new_cookie = _cookie_value(refresh_response.headers["set-cookie"], "mocards_refresh")
    assert new_cookie != old_cookie

    replay_response = client.post(
        "/api/auth/refresh",
        headers={"Cookie": f"mocards_refresh={old_cookie}"},
    )
    assert replay_response.status_code == 401


def test_logout_revokes_all_refresh_sessions():
    client, testing_session_local = _build_test_client()

    first_login = _admin_login(client)
    first_access_token = first_login.json()["access_token"]
    second_login = _admin_login(client)
    second_cookie = _cookie_value(second_login.headers["set-cookie"], "mocards_refresh")

    logout_response = client.post(
        "/api/auth/logout",
        headers={"Authorization": f"Bearer {first_access_token}"},
    )
    assert logout_response.status_code == 200

    refresh_after_logout = client.post(
        "/api/auth/refresh",
        headers={"Cookie": f"mocards_refresh={second_cookie}"},
    )
    assert refresh_after_logout.status_code == 401

    db = testing_session_local()
    try:
        active_sessions = db.query(RefreshSession).filter(RefreshSession.revoked_at.is_(None)).count()
        assert active_sessions == 0
    finally:
        db.close()
