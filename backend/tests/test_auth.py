"""
Login, session and user-management tests.
"""

from datetime import timedelta

import pytest

from tillpoint.models import SessionToken, User
from tillpoint.errors import AuthError, ConflictError
from tillpoint.services import auth_service, session_service
from tillpoint.services.auth_service import PasswordValidationError
from tillpoint.time_utils import utcnow

PASSWORD = "Password123!"


@pytest.mark.parametrize("password", ["Short1!", "password123!", "PASSWORD123!", "Password!!!", "Password123"])
def test_weak_passwords_rejected(password):
    with pytest.raises(PasswordValidationError):
        auth_service.validate_password_strength(password)


def test_hash_and_verify(app):
    hashed = auth_service.hash_password(PASSWORD)
    assert hashed != PASSWORD
    assert auth_service.verify_password(PASSWORD, hashed)
    assert not auth_service.verify_password("Wrong123!", hashed)
    assert not auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash")


def test_first_admin_registration_only_once(client, db_session):
    assert client.get("/api/users/check-admin").get_json() == {"admin_exists": False}

    response = client.post("/api/users/register-admin", json={"username": "owner", "password": PASSWORD})
    assert response.status_code == 201
    assert response.get_json()["user"]["role"] == "admin"

    assert client.get("/api/users/check-admin").get_json() == {"admin_exists": True}

    again = client.post("/api/users/register-admin", json={"username": "owner2", "password": PASSWORD})
    assert again.status_code == 403


def test_login_session_logout(client, cashier):
    bad = client.post("/api/users/login", json={"username": "cashier", "password": "Wrong123!"})
    assert bad.status_code == 401

    response = client.post("/api/users/login", json={"username": "cashier", "password": PASSWORD})
    assert response.status_code == 200
    token = response.get_json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    session = client.get("/api/users/session", headers=headers)
    assert session.get_json()["user"]["username"] == "cashier"
    assert session.get_json()["user"]["last_login_at"] is not None

    assert client.post("/api/users/logout", headers=headers).status_code == 200
    assert client.get("/api/users/session", headers=headers).status_code == 401


def test_token_is_stored_hashed(db_session, cashier):
    _, token = session_service.create_session(cashier)
    row = db_session.query(SessionToken).one()
    assert row.token_hash == session_service.hash_token(token)
    assert row.token_hash != token


def test_expired_session_is_rejected_and_cleaned_up(db_session, cashier):
    record, token = session_service.create_session(cashier)
    record.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    assert session_service.validate_session(token) is None
    assert session_service.cleanup_expired_sessions() == 1


def test_authenticate_errors(db_session, cashier):
    with pytest.raises(AuthError):
        auth_service.authenticate("", "")
    with pytest.raises(AuthError):
        auth_service.authenticate("nobody", PASSWORD)


def test_admin_creates_users(client, admin_headers, cashier_headers):
    response = client.post("/api/users", headers=admin_headers, json={
        "username": "new_cashier", "password": PASSWORD,
    })
    assert response.status_code == 201
    assert response.get_json()["user"]["role"] == "cashier"

    duplicate = client.post("/api/users", headers=admin_headers, json={
        "username": "new_cashier", "password": PASSWORD,
    })
    assert duplicate.status_code == 409

    assert client.post("/api/users", headers=cashier_headers, json={
        "username": "sneaky", "password": PASSWORD,
    }).status_code == 403

    listing = client.get("/api/users", headers=admin_headers).get_json()
    assert {u["username"] for u in listing["items"]} == {"admin", "cashier", "new_cashier"}


def test_last_admin_cannot_be_demoted(db_session, admin, cashier):
    with pytest.raises(ConflictError):
        auth_service.update_role(admin.id, "cashier", actor_id=admin.id)

    auth_service.update_role(cashier.id, "admin", actor_id=admin.id)
    auth_service.update_role(admin.id, "cashier", actor_id=cashier.id)
    assert db_session.get(User, admin.id).role == "cashier"


def test_role_route_validation(client, admin_headers, cashier):
    assert client.put(f"/api/users/{cashier.id}/role", headers=admin_headers, json={
        "role": "owner",
    }).status_code == 400
    assert client.put("/api/users/999/role", headers=admin_headers, json={
        "role": "admin",
    }).status_code == 404
