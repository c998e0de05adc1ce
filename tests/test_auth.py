from datetime import timedelta
from taxitao.services.auth_errors import PASSWORD_REQUIREMENTS_MESSAGE
from taxitao.services.utils import AuthHelpers
from conftest import PASSWORD, headers_for

auth = AuthHelpers()

NEW_USER = {
    "email": "Jane@Example.com",
    "password": PASSWORD,
    "full_name": "Jane Mwende",
    "phone": "0712 345 678",
}


def _sign_in(client, email="jane@example.com", password=PASSWORD):
    return client.post("/v1/auth/sign-in", json={"email": email, "password": password})


def _use_refresh(client, raw):
    client.cookies.clear()
    client.cookies.set("refresh_token", raw)
    return client.post("/v1/auth/refresh")


def test_register_verify_and_sign_in(client, db):
    res = client.post("/v1/auth/register", json=NEW_USER)
    assert res.status_code == 201

    user = auth.get_user_by_email(db, "jane@example.com")
    assert user.phone == "+254712345678"
    assert user.role == "customer"

    res = _sign_in(client)
    assert res.status_code == 403
    assert "verify your email" in res.json()["detail"]

    token = auth.encode_token(user.id, {"email": user.email, "purpose": "email_verification"})
    res = client.get("/v1/auth/verify-email", params={"token": token["access_token"]})
    assert res.json() == {"message": "Email verified successfully"}

    res = _sign_in(client)
    assert res.status_code == 200
    session = res.json()["data"]["session"]
    assert session["type"] == "Bearer"
    assert res.json()["data"]["user_data"]["role"] == "customer"

    me = client.get("/v1/auth/me", headers={"Authorization": f"Bearer {session['access_token']}"})
    assert me.json()["email"] == "jane@example.com"


def test_register_rejects_weak_password(client):
    res = client.post("/v1/auth/register", json={**NEW_USER, "password": "weakpass1!"})
    assert res.status_code == 400
    assert res.json()["detail"] == PASSWORD_REQUIREMENTS_MESSAGE


def test_register_rejects_duplicates(client, make_user):
    make_user(email="jane@example.com")
    res = client.post("/v1/auth/register", json=NEW_USER)
    assert res.status_code == 409
    assert res.json()["detail"] == "This email is already registered. Please sign in instead."


def test_admin_cannot_self_register(client):
    res = client.post("/v1/auth/register", json={**NEW_USER, "role": "admin"})
    assert res.status_code == 422


def test_wrong_password_is_sanitized(client, make_user):
    make_user()
    res = _sign_in(client, password="Wrong!Pass1")
    assert res.status_code == 401
    assert res.json()["detail"].startswith("Invalid email or password")


def test_protected_route_needs_token(client):
    res = client.get("/v1/auth/me")
    assert res.status_code == 401
    assert res.json()["detail"] == "Missing authentication token"


def test_refresh_rotation_and_reuse(client, make_user):
    make_user()
    first = _sign_in(client).cookies["refresh_token"]

    res = _use_refresh(client, first)
    assert res.status_code == 200
    assert res.json()["data"]["session"]["token_type"] == "bearer"
    second = res.cookies["refresh_token"]
    assert second != first

    res = _use_refresh(client, first)
    assert res.status_code == 401
    assert res.json()["detail"] == "Reused refresh detected"

    res = _use_refresh(client, second)
    assert res.status_code == 401


def test_sign_out_revokes_refresh(client, make_user):
    user = make_user()
    raw = _sign_in(client).cookies["refresh_token"]

    client.cookies.clear()
    client.cookies.set("refresh_token", raw)
    assert client.post("/v1/auth/sign-out", headers=headers_for(user)).status_code == 200

    assert _use_refresh(client, raw).status_code == 401


def test_change_password(client, make_user):
    user = make_user()
    headers = headers_for(user)

    res = client.put(
        "/v1/auth/change-password",
        json={"old_password": "Wrong!Pass1", "new_password": "N3w!Password"},
        headers=headers,
    )
    assert res.status_code == 401

    res = client.put(
        "/v1/auth/change-password",
        json={"old_password": PASSWORD, "new_password": "N3w!Password"},
        headers=headers,
    )
    assert res.status_code == 200
    assert _sign_in(client, password="N3w!Password").status_code == 200


def test_password_reset_is_single_use(client, db, make_user):
    user = make_user()
    res = client.post("/v1/auth/forgot-password", params={"email": "jane@example.com"})
    assert res.status_code == 200

    db.refresh(user)
    token = auth.encode_token(
        user.id,
        {"email": user.email, "purpose": "password_reset", "nonce": user.password_reset_nonce},
        expires_in=timedelta(minutes=60),
    )["access_token"]

    res = client.post("/v1/auth/reset-password", json={"token": token, "new_password": "R3set!Pass"})
    assert res.status_code == 200
    assert _sign_in(client, password="R3set!Pass").status_code == 200

    res = client.post("/v1/auth/reset-password", json={"token": token, "new_password": "Again!Pass2"})
    assert res.status_code == 400


def test_update_profile_and_saved_drivers(client, db, make_user, make_driver):
    user = make_user()
    driver = make_driver()
    headers = headers_for(user)

    res = client.put("/v1/auth/me", json={"full_name": "Jane W.", "phone": "0799 000 111"}, headers=headers)
    assert res.json()["phone"] == "+254799000111"

    res = client.post(f"/v1/auth/me/saved-drivers/{driver.id}", headers=headers)
    assert res.json()["saved_drivers"] == [driver.id]

    res = client.delete(f"/v1/auth/me/saved-drivers/{driver.id}", headers=headers)
    assert res.json()["saved_drivers"] == []

    db.refresh(user)
    assert user.saved_drivers == []
