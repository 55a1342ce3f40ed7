import httpx
import pytest
from fastapi.testclient import TestClient

from pos_backend.main import app
from pos_backend.services.customer_service import DuplicateCustomerError, customer_service
from pos_backend.services.order_service import OrderNotFoundError, order_service
from pos_backend.services.woo_service import woo_service


@pytest.fixture
def client(mock_settings):
    with TestClient(app) as test_client:
        yield test_client


def test_health_and_root(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["services"]["scheduler"] == "stopped"

    assert "is running" in client.get("/").json()["message"]


def test_api_requires_bearer_token(client):
    response = client.get("/api/orders")

    assert response.status_code == 401
    assert response.json()["success"] is False

    response = client.get("/api/orders", headers={"Authorization": "Bearer forged.token"})
    assert response.status_code == 401


def test_login_refresh_logout(client):
    assert client.post("/api/auth/login", json={"username": "admin", "password": "nope"}).status_code == 401

    login = client.post("/api/auth/login", json={"username": "admin", "password": "s3cret"})
    assert login.status_code == 200
    assert login.json()["tokenType"] == "Bearer"
    assert "refreshToken" in login.cookies

    refreshed = client.post("/api/auth/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["accessToken"]

    assert client.post("/api/auth/logout").json()["message"] == "Logged out successfully"


def test_refresh_without_cookie(client):
    client.cookies.clear()
    assert client.post("/api/auth/refresh").status_code == 401


def test_create_order_returns_201(client, auth_headers, mocker):
    create = mocker.patch.object(order_service, "create_order", new_callable=mocker.AsyncMock,
                                 return_value={"success": True, "woo": {"ok": True}, "baserow": {"ok": False}})

    response = client.post("/api/orders", headers=auth_headers,
                           json={"items": [{"product_id": 11, "qty": 1}], "paymentMethod": "cash"})

    assert response.status_code == 201
    assert response.json()["baserow"]["ok"] is False
    assert create.await_args.args[0].payment_method == "cash"


def test_create_order_rejects_empty_cart(client, auth_headers):
    response = client.post("/api/orders", headers=auth_headers, json={"items": []})
    assert response.status_code == 422


def test_fms_status_alias_is_not_an_order_id(client, auth_headers, mocker):
    check = mocker.patch.object(order_service, "check_fms_status", new_callable=mocker.AsyncMock,
                                return_value={"checked": 0, "orders_with_fms": 0, "orders": []})

    for path in ("/api/orders/check-fms-status", "/api/orders-fms-check/status"):
        response = client.get(path, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

    assert check.await_count == 2


def test_complete_missing_order_is_404(client, auth_headers, mocker):
    mocker.patch.object(order_service, "complete_order", new_callable=mocker.AsyncMock,
                        side_effect=OrderNotFoundError("Order 5 not found"))

    response = client.patch("/api/orders/5/complete", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Order 5 not found"


def test_duplicate_customer_phone_is_409(client, auth_headers, mocker):
    mocker.patch.object(customer_service, "create_customer", new_callable=mocker.AsyncMock,
                        side_effect=DuplicateCustomerError({"id": 3, "phone": "98765"}))

    response = client.post("/api/customers", headers=auth_headers, json={"first_name": "A", "phone": "98765"})

    assert response.status_code == 409
    assert response.json()["customer"] == {"id": 3, "phone": "98765"}


def test_customer_delete_is_405(client, auth_headers, mocker):
    woo_request = mocker.patch.object(woo_service, "_request", new_callable=mocker.AsyncMock)

    response = client.delete("/api/customers/3", headers=auth_headers)

    assert response.status_code == 405
    assert response.json()["success"] is False
    woo_request.assert_not_awaited()
    assert not hasattr(woo_service, "delete_customer")


def test_coupon_validation_error_is_400(client, auth_headers):
    response = client.post("/api/coupons", headers=auth_headers, json={"code": "X", "amount": "-5"})

    assert response.status_code == 400
    assert response.json()["message"] == "Valid discount amount is required"


def test_upstream_client_error_keeps_status(client, auth_headers, mocker):
    request = httpx.Request("GET", "https://shop.test/wp-json/wc/v3/coupons/9")
    response = httpx.Response(404, request=request, json={"code": "not_found", "message": "Invalid ID."})
    mocker.patch.object(woo_service, "fetch_coupon", new_callable=mocker.AsyncMock,
                        side_effect=httpx.HTTPStatusError("404", request=request, response=response))

    result = client.get("/api/coupons/9", headers=auth_headers)

    assert result.status_code == 404
    assert result.json()["message"] == "Invalid ID."


def test_upstream_server_error_is_502(client, auth_headers, mocker):
    request = httpx.Request("GET", "https://shop.test/wp-json/wc/v3/products/1")
    response = httpx.Response(503, request=request, text="maintenance")
    mocker.patch.object(woo_service, "fetch_product", new_callable=mocker.AsyncMock,
                        side_effect=httpx.HTTPStatusError("503", request=request, response=response))

    assert client.get("/api/products/1", headers=auth_headers).status_code == 502


def test_categories_are_cached(client, auth_headers, mocker):
    fetch = mocker.patch.object(woo_service, "fetch_categories", new_callable=mocker.AsyncMock,
                                return_value=[{"id": 1, "name": "Men"}])

    first = client.get("/api/categories", headers=auth_headers)
    second = client.get("/api/categories", headers=auth_headers)

    assert first.json() == second.json() == [{"id": 1, "name": "Men"}]
    fetch.assert_awaited_once()


def test_product_page_has_next(client, auth_headers, mocker):
    mocker.patch.object(woo_service, "fetch_products", new_callable=mocker.AsyncMock,
                        return_value=[{"id": i, "price": "10"} for i in range(2)])

    body = client.get("/api/products?limit=2", headers=auth_headers).json()

    assert body["meta"] == {"page": 1, "limit": 2, "hasNext": True}
    assert len(body["data"]) == 2


def test_dashboard_gathers_reports(client, auth_headers, mocker):
    mocker.patch.object(woo_service, "fetch_sales_report", new_callable=mocker.AsyncMock, return_value=[{"s": 1}])
    mocker.patch.object(woo_service, "fetch_top_sellers_report", new_callable=mocker.AsyncMock, return_value=[])
    mocker.patch.object(woo_service, "fetch_totals", new_callable=mocker.AsyncMock, return_value=[{"total": 3}])

    data = client.get("/api/reports/dashboard", headers=auth_headers).json()["data"]

    assert data["sales"] == [{"s": 1}]
    assert set(data["totals"]) == {"orders", "customers", "products", "coupons"}


def test_non_ascii_login_is_rejected_not_crashed(client):
    response = client.post("/api/auth/login", json={"username": "josé", "password": "s3cret"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


def test_non_ascii_bearer_token_is_401(client):
    response = client.get("/api/orders", headers={"Authorization": "Bearer abc.éé".encode("utf-8")})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


def test_forged_refresh_cookie_is_401(client):
    client.cookies.set("refreshToken", "abc.def.ghi")
    response = client.post("/api/auth/refresh")

    assert response.status_code == 401
