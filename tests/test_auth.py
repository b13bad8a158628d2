from conftest import PASSWORD, auth_headers

from app.models.user import User


def register_payload(**overrides):
    payload = {
        "email": "new@example.com",
        "password": "Secret123",
        "confirmPassword": "Secret123",
        "firstName": "Nora",
        "lastName": "New",
        "city": "Lisbon",
    }
    payload.update(overrides)
    return payload


def test_register_creates_user_and_sets_cookie(client, db):
    res = client.post("/api/auth/register", json=register_payload())

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "new@example.com"
    assert body["data"]["user"]["firstName"] == "Nora"
    assert body["data"]["user"]["role"] == "USER"
    assert "password" not in body["data"]["user"]
    assert body["data"]["token"]
    assert "token" in res.cookies

    stored = db.query(User).filter(User.email == "new@example.com").one()
    assert stored.password != "Secret123"


def test_register_rejects_weak_password(client):
    res = client.post("/api/auth/register", json=register_payload(password="secret123", confirmPassword="secret123"))

    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Validation error"
    assert "password: Password must contain at least one uppercase letter" in body["errors"]


def test_register_rejects_mismatched_passwords(client):
    res = client.post("/api/auth/register", json=register_payload(confirmPassword="Different123"))

    assert res.status_code == 400
    assert any("Passwords don't match" in e for e in res.json()["errors"])


def test_register_rejects_duplicate_email(client, user):
    res = client.post("/api/auth/register", json=register_payload(email=user.email))

    assert res.status_code == 400
    assert res.json()["message"] == "User with this email already exists"


def test_login_sets_cookie_used_by_me(client, user):
    res = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["id"] == user.id
    assert data["token"]
    assert "token" in res.cookies

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["data"]["email"] == user.email


def test_login_wrong_password(client, user):
    res = client.post("/api/auth/login", json={"email": user.email, "password": "Nope12345"})

    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Invalid credentials"}


def test_login_unknown_email(client):
    res = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})

    assert res.status_code == 401
    assert res.json()["message"] == "Invalid credentials"


def test_me_requires_token(client):
    res = client.get("/api/auth/me")

    assert res.status_code == 401
    assert res.json()["message"] == "Not authorized, no token"


def test_me_rejects_invalid_token(client):
    res = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"


def test_me_with_bearer_header(client, user):
    res = client.get("/api/auth/me", headers=auth_headers(user))

    assert res.status_code == 200
    assert res.json()["data"]["firstName"] == "Sam"


def test_token_of_deleted_user_is_rejected(client, db, user):
    headers = auth_headers(user)
    db.delete(user)
    db.commit()

    res = client.get("/api/auth/me", headers=headers)

    assert res.status_code == 401
    assert res.json()["message"] == "User not found"


def test_logout_clears_cookie(client, user):
    client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert client.get("/api/auth/me").status_code == 200

    res = client.post("/api/auth/logout")

    assert res.status_code == 200
    assert res.json()["data"]["message"] == "Logged out successfully"
    assert client.get("/api/auth/me").status_code == 401
