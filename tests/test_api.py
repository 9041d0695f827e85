"""Tests for the REST API."""

import time

import pytest


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def manager_token(service):
    service.sign_up_manager("owner@example.com", "hunter22")
    token, _ = service.sign_in_manager("owner@example.com", "hunter22")
    return token


@pytest.fixture
def store_id(service):
    return service.register_store("Cafe", "cafe@example.com", "password1", "1 Main", "555").id


@pytest.fixture
def seat_id(service, store_id):
    return service.create_seat(store_id, "Table 4").id


@pytest.fixture
def session_token(api_client, store_id, seat_id):
    response = api_client.get(
        "/api/v1/public/session", params={"store_id": store_id, "seat_id": seat_id}
    )
    assert response.status_code == 200
    return response.json()["data"]["token"]


@pytest.fixture
def order_id(api_client, session_token):
    response = api_client.post(
        "/api/v1/private/session/orders",
        json={"items": [
            {"product_id": "p1", "quantity": 2, "price": 100},
            {"product_id": "p2", "quantity": 1, "price": 50},
        ]},
        headers=auth(session_token),
    )
    assert response.status_code == 201
    return response.json()["data"]["id"]


class TestPublic:
    def test_health(self, api_client):
        response = api_client.get("/api/v1/public/health")
        assert response.status_code == 200
        assert response.json() == {
            "message": "success, public health",
            "data": {"message": "OK"},
        }

    def test_signup(self, api_client):
        response = api_client.post(
            "/api/v1/public/signup",
            json={"email": "new@example.com", "password": "hunter22"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "new@example.com"
        assert "password" not in data

    def test_signup_duplicate(self, api_client):
        body = {"email": "new@example.com", "password": "hunter22"}
        api_client.post("/api/v1/public/signup", json=body)
        response = api_client.post("/api/v1/public/signup", json=body)
        assert response.status_code == 409
        assert response.json()["error_type"] == "EntityExistsError"

    def test_signup_blank(self, api_client):
        response = api_client.post("/api/v1/public/signup", json={})
        assert response.status_code == 400
        assert response.json()["error_type"] == "ValidationError"

    def test_signin(self, api_client, service):
        service.sign_up_manager("owner@example.com", "hunter22")
        response = api_client.post(
            "/api/v1/public/signin",
            json={"email": "owner@example.com", "password": "hunter22"},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token_type"] == "bearer"
        assert "password" not in data["manager"]
        assert response.cookies.get("jwt_token") == data["token"]

    def test_signin_wrong_password(self, api_client, service):
        service.sign_up_manager("owner@example.com", "hunter22")
        response = api_client.post(
            "/api/v1/public/signin",
            json={"email": "owner@example.com", "password": "wrong"},
        )
        assert response.status_code == 401
        body = response.json()
        assert body["message"] == "POST /api/v1/public/signin failed"
        assert body["error_type"] == "InvalidCredentialsError"

    def test_session_message(self, api_client, store_id, seat_id):
        response = api_client.get(
            "/api/v1/public/session", params={"store_id": store_id, "seat_id": seat_id}
        )
        expected = f"Session started for store_id={store_id}, seat_id={seat_id}"
        assert response.json()["message"] == expected
        assert "session_jwt" in response.headers["set-cookie"]

    def test_session_with_explicit_exp(self, api_client, store_id, seat_id):
        exp = int(time.time()) + 300
        response = api_client.get(
            "/api/v1/public/session",
            params={"store_id": store_id, "seat_id": seat_id, "exp": exp},
        )
        assert response.status_code == 200

    @pytest.mark.parametrize("exp", [10**12, 32503680000, -5])
    def test_session_rejects_bad_exp(self, api_client, store_id, seat_id, exp):
        response = api_client.get(
            "/api/v1/public/session",
            params={"store_id": store_id, "seat_id": seat_id, "exp": exp},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error_type"] == "InvalidArgumentError"
        assert "data" not in body

    def test_session_missing_ids(self, api_client):
        response = api_client.get("/api/v1/public/session", params={"store_id": "store_1"})
        assert response.status_code == 400
        assert response.json()["error_type"] == "InvalidArgumentError"

    def test_session_unknown_seat(self, api_client, store_id):
        response = api_client.get(
            "/api/v1/public/session", params={"store_id": store_id, "seat_id": "seat_x"}
        )
        assert response.status_code == 404


class TestManagerRoutes:
    def test_requires_token(self, api_client):
        response = api_client.get("/api/v1/private/manager/health")
        assert response.status_code == 401
        assert response.json()["error_type"] == "InvalidTokenError"

    def test_rejects_session_token(self, api_client, session_token):
        response = api_client.get(
            "/api/v1/private/manager/health", headers=auth(session_token)
        )
        assert response.status_code == 401

    def test_health(self, api_client, manager_token):
        response = api_client.get(
            "/api/v1/private/manager/health", headers=auth(manager_token)
        )
        assert response.status_code == 200
        assert response.json()["data"]["email"] == "owner@example.com"

    def test_store_crud(self, api_client, manager_token):
        headers = auth(manager_token)
        body = {
            "name": "Cafe",
            "email": "cafe@example.com",
            "password": "password1",
            "address": "1 Main",
            "phone": "555",
        }
        created = api_client.post("/api/v1/private/manager/store", json=body, headers=headers)
        assert created.status_code == 200
        store = created.json()["data"]
        assert "password" not in store

        listed = api_client.get("/api/v1/private/manager/store", headers=headers)
        assert [s["id"] for s in listed.json()["data"]] == [store["id"]]

        body["name"] = "Bistro"
        updated = api_client.put(
            f"/api/v1/private/manager/store/{store['id']}", json=body, headers=headers
        )
        assert updated.json()["data"]["name"] == "Bistro"

        deleted = api_client.delete(
            f"/api/v1/private/manager/store/{store['id']}", headers=headers
        )
        assert deleted.json()["message"] == "Store deleted successfully"

        missing = api_client.get(
            f"/api/v1/private/manager/store/{store['id']}", headers=headers
        )
        assert missing.status_code == 404

    def test_store_short_password(self, api_client, manager_token):
        response = api_client.post(
            "/api/v1/private/manager/store",
            json={"name": "a", "email": "b", "password": "short", "address": "c", "phone": "d"},
            headers=auth(manager_token),
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "PasswordPolicyError"

    def test_seats_and_qr(self, api_client, manager_token, store_id):
        headers = auth(manager_token)
        created = api_client.post(
            f"/api/v1/private/manager/store/{store_id}/seat",
            json={"name": "Table 9"},
            headers=headers,
        )
        seat = created.json()["data"]
        assert seat["store_id"] == store_id

        listed = api_client.get(f"/api/v1/private/manager/store/{store_id}/seat", headers=headers)
        assert [s["name"] for s in listed.json()["data"]] == ["Table 9"]

        qr = api_client.get(
            f"/api/v1/private/manager/store/{store_id}/seat/{seat['id']}/qr", headers=headers
        )
        data = qr.json()["data"]
        assert data["token"]
        assert data["url"].startswith("https://order.example.com/order?")

    def test_order_lifecycle(self, api_client, manager_token, order_id):
        headers = auth(manager_token)
        base = f"/api/v1/private/manager/orders/{order_id}"

        response = api_client.post(f"{base}/status", json={"status": "confirmed"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "confirmed"

        response = api_client.post(f"{base}/status", json={"status": "served"}, headers=headers)
        assert response.status_code == 409
        assert response.json()["error_type"] == "InvalidStatusTransitionError"

        response = api_client.post(f"{base}/status", json={"status": "bogus"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error_type"] == "UnknownStatusError"

        response = api_client.post(f"{base}/refund", json={"amount": 999}, headers=headers)
        assert response.status_code == 422

        response = api_client.post(f"{base}/refund", json={"amount": 50}, headers=headers)
        assert response.json()["data"]["status"] == "partially_refunded"

    def test_final_order_conflict(self, api_client, manager_token, order_id):
        headers = auth(manager_token)
        base = f"/api/v1/private/manager/orders/{order_id}"
        api_client.post(f"{base}/status", json={"status": "cancelled"}, headers=headers)

        response = api_client.post(f"{base}/status", json={"status": "confirmed"}, headers=headers)
        assert response.status_code == 409
        assert response.json()["error_type"] == "OrderAlreadyFinalError"

    def test_list_orders(self, api_client, manager_token, order_id, store_id):
        response = api_client.get(
            "/api/v1/private/manager/orders",
            params={"store_id": store_id},
            headers=auth(manager_token),
        )
        assert [o["id"] for o in response.json()["data"]] == [order_id]


class TestSessionRoutes:
    def test_requires_token(self, api_client):
        response = api_client.get("/api/v1/private/session/health")
        assert response.status_code == 401

    def test_health_reports_scope(self, api_client, session_token, store_id, seat_id):
        response = api_client.get(
            "/api/v1/private/session/health", headers=auth(session_token)
        )
        data = response.json()["data"]
        assert data["store_id"] == store_id
        assert data["seat_id"] == seat_id

    def test_open_order(self, api_client, session_token, order_id):
        response = api_client.get(
            f"/api/v1/private/session/orders/{order_id}", headers=auth(session_token)
        )
        data = response.json()["data"]
        assert data["total_amount"] == 250
        assert data["status"] == "created"
        assert [i["subtotal"] for i in data["items"]] == [200, 50]

    def test_open_order_without_items(self, api_client, session_token):
        response = api_client.post(
            "/api/v1/private/session/orders", json={"items": []}, headers=auth(session_token)
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "NoItemsError"

    def test_invalid_item_body(self, api_client, session_token, order_id):
        response = api_client.post(
            f"/api/v1/private/session/orders/{order_id}/items",
            json={"product_id": "p3", "quantity": -1, "price": 10},
            headers=auth(session_token),
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "RequestValidationError"

    def test_add_item(self, api_client, session_token, order_id):
        response = api_client.post(
            f"/api/v1/private/session/orders/{order_id}/items",
            json={"product_id": "p3", "quantity": 2, "price": 30},
            headers=auth(session_token),
        )
        assert response.status_code == 200
        assert response.json()["data"]["total_amount"] == 310

    def test_add_item_after_preparing(self, api_client, service, session_token, order_id):
        service.change_status(order_id, "confirmed")
        service.change_status(order_id, "preparing")
        response = api_client.post(
            f"/api/v1/private/session/orders/{order_id}/items",
            json={"product_id": "p3", "quantity": 1, "price": 10},
            headers=auth(session_token),
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "CannotAddItemError"

    def test_other_seat_cannot_see_order(self, api_client, service, store_id, order_id):
        other_seat = service.create_seat(store_id, "Table 5")
        token, _ = service.start_session(store_id, other_seat.id)
        response = api_client.get(
            f"/api/v1/private/session/orders/{order_id}", headers=auth(token)
        )
        assert response.status_code == 404

    def test_manager_token_is_not_a_session(self, api_client, manager_token):
        response = api_client.get(
            "/api/v1/private/session/health", headers=auth(manager_token)
        )
        assert response.status_code == 401
