from sqlalchemy.exc import IntegrityError

from conftest import PASSWORD, auth_headers, make_user, make_product

from app.models.orders import Order, OrderItem, OrderStatus
from app.models.user import User, UserRole


def new_user_payload(**overrides):
    payload = {
        "email": "fresh@example.com",
        "password": "secret1",
        "firstName": "Fred",
        "lastName": "Fresh",
    }
    payload.update(overrides)
    return payload


def test_public_create_user_forces_user_role(client):
    res = client.post("/api/users", json=new_user_payload(role="ADMIN"))

    assert res.status_code == 201
    data = res.json()["data"]
    assert data["message"] == "User created successfully"
    assert data["user"]["role"] == "USER"


def test_admin_can_create_admin(client, admin_headers):
    res = client.post("/api/users", json=new_user_payload(role="ADMIN"), headers=admin_headers)

    assert res.status_code == 201
    assert res.json()["data"]["user"]["role"] == "ADMIN"


def test_create_user_duplicate_email(client, user):
    res = client.post("/api/users", json=new_user_payload(email=user.email))

    assert res.status_code == 400
    assert res.json()["message"] == "User with this email already exists"


def test_create_user_short_password(client):
    res = client.post("/api/users", json=new_user_payload(password="abc"))

    assert res.status_code == 400
    assert res.json()["message"] == "Validation error"


def test_list_users_admin_only(client, user, user_headers, admin_headers):
    assert client.get("/api/users", headers=user_headers).status_code == 403

    res = client.get("/api/users", headers=admin_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["count"] == 2
    assert {u["email"] for u in body["data"]} == {"shopper@example.com", "boss@example.com"}


def test_non_admin_gets_admin_error_message(client, user_headers):
    res = client.get("/api/users", headers=user_headers)

    assert res.json() == {"success": False, "message": "Not authorized as an admin"}


def test_get_single_user_includes_orders(client, db, user, admin_headers):
    product = make_product(db)
    order = Order(user_id=user.id, total=product.price, status=OrderStatus.PENDING,
                  order_items=[OrderItem(product_id=product.id, quantity=1, price=product.price)])
    db.add(order)
    db.commit()

    res = client.get(f"/api/users/{user.id}", headers=admin_headers)

    assert res.status_code == 200
    orders = res.json()["data"]["orders"]
    assert len(orders) == 1
    assert orders[0]["status"] == "PENDING"
    assert orders[0]["total"] == 25.0


def test_get_single_user_not_found(client, admin_headers):
    res = client.get("/api/users/999", headers=admin_headers)

    assert res.status_code == 404
    assert res.json()["message"] == "User not found"


def test_invalid_id_format(client, admin_headers):
    res = client.get("/api/users/abc", headers=admin_headers)

    assert res.status_code == 400
    assert res.json()["message"] == "Invalid ID format"


def test_user_updates_own_profile_but_not_role(client, user, user_headers):
    res = client.put(f"/api/users/{user.id}", json={"city": "Porto", "role": "ADMIN"}, headers=user_headers)

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["city"] == "Porto"
    assert data["role"] == "USER"


def test_user_cannot_update_someone_else(client, other_user, user_headers):
    res = client.put(f"/api/users/{other_user.id}", json={"city": "Porto"}, headers=user_headers)

    assert res.status_code == 403
    assert res.json()["message"] == "Not authorized to update this user"


def test_admin_can_promote_user(client, user, admin_headers):
    res = client.put(f"/api/users/{user.id}", json={"role": "ADMIN"}, headers=admin_headers)

    assert res.status_code == 200
    assert res.json()["data"]["role"] == "ADMIN"


def test_update_requires_a_field(client, user, user_headers):
    res = client.put(f"/api/users/{user.id}", json={}, headers=user_headers)

    assert res.status_code == 400
    assert any("At least one field" in e for e in res.json()["errors"])


def test_update_rejects_taken_email(client, user, other_user, user_headers):
    res = client.put(f"/api/users/{user.id}", json={"email": other_user.email}, headers=user_headers)

    assert res.status_code == 400


def test_update_email_race_is_a_bad_request(client, db, user, user_headers, monkeypatch):
    # The uniqueness check passes, then another request claims the email first
    def conflicting_commit():
        raise IntegrityError("UPDATE users", {}, Exception("UNIQUE constraint failed: users.email"))

    monkeypatch.setattr(db, "commit", conflicting_commit)
    res = client.put(f"/api/users/{user.id}", json={"email": "fresh@example.com"}, headers=user_headers)

    assert res.status_code == 400
    assert res.json()["message"] == "User with this email already exists"
    monkeypatch.undo()
    db.expire_all()
    assert db.get(User, user.id).email == "shopper@example.com"


def test_update_password_is_hashed(client, db, user, user_headers):
    res = client.put(f"/api/users/{user.id}", json={"password": "another1"}, headers=user_headers)

    assert res.status_code == 200
    login = client.post("/api/auth/login", json={"email": user.email, "password": "another1"})
    assert login.status_code == 200


def test_user_deletes_own_account(client, db, user, user_headers):
    res = client.delete(f"/api/users/{user.id}", headers=user_headers)

    assert res.status_code == 200
    assert res.json()["data"]["message"] == "User deleted successfully"
    assert db.query(User).filter(User.email == "shopper@example.com").first() is None


def test_user_cannot_delete_someone_else(client, other_user, user_headers):
    res = client.delete(f"/api/users/{other_user.id}", headers=user_headers)

    assert res.status_code == 403


def test_admin_deletes_user(client, db, other_user, admin_headers):
    res = client.delete(f"/api/users/{other_user.id}", headers=admin_headers)

    assert res.status_code == 200
    assert db.query(User).count() == 1


def test_change_password(client, user, user_headers):
    res = client.post(
        "/api/users/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "BrandNew123"},
        headers=user_headers,
    )

    assert res.status_code == 200
    assert res.json()["data"]["message"] == "Password changed successfully"
    assert client.post("/api/auth/login", json={"email": user.email, "password": "BrandNew123"}).status_code == 200


def test_change_password_wrong_current(client, user_headers):
    res = client.post(
        "/api/users/change-password",
        json={"currentPassword": "wrong-one", "newPassword": "BrandNew123"},
        headers=user_headers,
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Current password is incorrect"


def test_change_password_requires_both_fields(client, user_headers):
    res = client.post("/api/users/change-password", json={"newPassword": "BrandNew123"}, headers=user_headers)

    assert res.status_code == 400
    assert res.json()["message"] == "Current password and new password are required"
