from medicore.core.security import create_access_token
from medicore.models.user import Role


def test_initial_admin_is_seeded(api_client, admin_user):
    assert admin_user.role == Role.admin
    assert admin_user.email == "admin@medicore.org"


def test_create_and_list_users(api_client, auth_headers):
    res = api_client.post(
        "/api/users",
        json={"email": "House@Medicore.org", "name": "Gregory House", "role": "doctor",
              "department": "Diagnostics"},
        headers=auth_headers,
    )
    assert res.status_code == 201, res.text
    created = res.json()["data"]
    assert created["email"] == "house@medicore.org"
    assert created["isActive"] is True

    res = api_client.post(
        "/api/users",
        json={"email": "house@medicore.org", "name": "Duplicate"},
        headers=auth_headers,
    )
    assert res.status_code == 409

    res = api_client.get("/api/users", params={"role": "doctor"}, headers=auth_headers)
    assert [u["name"] for u in res.json()["data"]] == ["Gregory House"]

    res = api_client.get(f"/api/users/{created['id']}", headers=auth_headers)
    assert res.json()["data"]["department"] == "Diagnostics"
    assert api_client.get("/api/users/9999", headers=auth_headers).status_code == 404


def test_doctor_directory_is_open_to_staff(api_client, receptionist_headers, make_user):
    make_user(Role.doctor, name="Active Doc")
    make_user(Role.doctor, name="Retired Doc", is_active=False)
    make_user(Role.receptionist)

    res = api_client.get("/api/users/doctors", headers=receptionist_headers)
    assert res.status_code == 200
    assert [u["name"] for u in res.json()["data"]] == ["Active Doc"]

    assert api_client.get("/api/users", headers=receptionist_headers).status_code == 403


def test_role_change_is_audited(api_client, auth_headers, make_user):
    user = make_user(Role.receptionist)
    res = api_client.patch(
        f"/api/users/{user.id}", json={"role": "doctor", "department": "ER"}, headers=auth_headers
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["role"] == "doctor"

    res = api_client.get("/api/reports/logs", headers=auth_headers)
    actions = [entry["action"] for entry in res.json()["data"]]
    assert "user.role_changed" in actions


def test_token_failures(api_client, make_user, headers_for):
    inactive = make_user(Role.doctor, is_active=False)
    res = api_client.get("/api/users/doctors", headers=headers_for(inactive))
    assert res.status_code == 401
    assert res.json()["message"] == "Inactive user"

    res = api_client.get("/api/users/doctors", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid or expired token"

    forged = create_access_token(subject="1", secret="x" * 40, alg="HS256", expires_minutes=5)
    res = api_client.get("/api/users/doctors", headers={"Authorization": f"Bearer {forged}"})
    assert res.status_code == 401
