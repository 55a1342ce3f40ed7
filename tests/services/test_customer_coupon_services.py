import httpx
import pytest

from pos_backend.models.api_models import CouponCreateRequest, CustomerCreateRequest, CustomerUpdateRequest
from pos_backend.services.coupon_service import (
    CouponService,
    CouponValidationError,
    DuplicateCouponError,
    build_coupon_payload,
)
from pos_backend.services.customer_service import (
    CustomerService,
    CustomerValidationError,
    DuplicateCustomerError,
    build_customer_payload,
)
from pos_backend.services.sync_service import SyncService


@pytest.fixture
def woo(mocker):
    return mocker.AsyncMock()


@pytest.fixture
def customers(woo, fake_baserow):
    return CustomerService(woo=woo, baserow=fake_baserow, sync=SyncService(baserow=fake_baserow))


def _woo_customer(customer_id=42, phone="9876543210"):
    return {
        "id": customer_id,
        "first_name": "Asha",
        "last_name": "Rao",
        "email": "asha@example.com",
        "billing": {"first_name": "Asha", "last_name": "Rao", "phone": phone, "country": "IN"},
        "meta_data": [{"key": "customer_type", "value": "Regular"}],
    }


def test_customer_payload_shape():
    payload = build_customer_payload(CustomerCreateRequest(
        first_name=" Asha ", phone=" 98765 ", email="not-an-email", customer_type="Regular",
    ))

    assert payload["username"] == "customer_98765"
    assert len(payload["password"]) == 16
    assert payload["billing"]["phone"] == "98765"
    assert payload["billing"]["country"] == "IN"
    assert payload["shipping"]["first_name"] == "Asha"
    assert "email" not in payload
    assert payload["meta_data"] == [{"key": "customer_type", "value": "Regular"}]


def test_customer_payload_requires_name_and_phone():
    with pytest.raises(CustomerValidationError, match="First name"):
        build_customer_payload(CustomerCreateRequest(phone="1"))
    with pytest.raises(CustomerValidationError, match="Phone"):
        build_customer_payload(CustomerCreateRequest(first_name="A", phone="  "))


@pytest.mark.asyncio
async def test_create_customer_mirrors_woo_customer(customers, woo, fake_baserow):
    woo.create_customer.return_value = _woo_customer()

    row = await customers.create_customer(CustomerCreateRequest(
        first_name="Asha", last_name="Rao", phone="9876543210", email="asha@example.com",
    ))

    sent = woo.create_customer.await_args.args[0]
    assert sent["email"] == "asha@example.com"
    assert row["woo_customer_id"] == 42
    assert row["customer_type"] == "Regular"
    assert len(fake_baserow.tables["customers"]) == 1


@pytest.mark.asyncio
async def test_duplicate_phone_is_rejected_before_woo(customers, woo, fake_baserow):
    await fake_baserow.create_row("customers", {"phone": "9876543210", "first_name": "Asha"})

    with pytest.raises(DuplicateCustomerError) as excinfo:
        await customers.create_customer(CustomerCreateRequest(first_name="Asha", phone="9876543210"))

    assert excinfo.value.existing["first_name"] == "Asha"
    woo.create_customer.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_customer_falls_back_when_mirror_fails(customers, woo, fake_baserow, mocker):
    woo.create_customer.return_value = _woo_customer(customer_id=43)
    mocker.patch.object(fake_baserow, "create_row", new_callable=mocker.AsyncMock,
                        side_effect=httpx.ConnectError("down"))

    row = await customers.create_customer(CustomerCreateRequest(first_name="Asha", phone="9876543210"))

    assert row["woo_customer_id"] == 43
    assert row["phone"] == "9876543210"
    assert row["customer_type"] == "Walk-in customer"


@pytest.mark.asyncio
async def test_update_customer_validates_then_resyncs(customers, woo, fake_baserow):
    woo.update_customer.return_value = {"id": 42, "billing": {"email": "new@example.com"}}
    woo.fetch_customer.return_value = _woo_customer()

    result = await customers.update_customer("42", CustomerUpdateRequest(
        first_name="Asha", phone="9876543210", email="new@example.com",
        meta_data=[{"key": "customer_type", "value": "Regular"}],
    ))

    sent = woo.update_customer.await_args.args[1]
    assert sent["billing"]["email"] == "new@example.com"
    assert sent["meta_data"] == [{"key": "customer_type", "value": "Regular"}]
    assert result["email"] == "new@example.com"
    assert len(fake_baserow.tables["customers"]) == 1

    with pytest.raises(CustomerValidationError):
        await customers.update_customer("abc", CustomerUpdateRequest())
    with pytest.raises(CustomerValidationError):
        await customers.update_customer("42", CustomerUpdateRequest(email="bad email"))


@pytest.mark.asyncio
async def test_get_customer_falls_back_to_woo(customers, woo, fake_baserow):
    woo.fetch_customer.return_value = _woo_customer(customer_id=50)

    row = await customers.get_customer("50")

    assert row["woo_customer_id"] == 50
    assert await customers.get_customer("not-a-number") is None


@pytest.mark.asyncio
async def test_list_customers_search(customers, fake_baserow):
    await fake_baserow.create_row("customers", {"first_name": "Asha", "phone": "111"})
    await fake_baserow.create_row("customers", {"first_name": "Ravi", "phone": "222"})

    result = await customers.list_customers(search="asha")
    assert [c["first_name"] for c in result["results"]] == ["Asha"]

    result = await customers.list_customers(search="222")
    assert [c["first_name"] for c in result["results"]] == ["Ravi"]


def test_coupon_payload_normalises_code():
    payload = build_coupon_payload(CouponCreateRequest(code=" save10 ", amount=10, discount_type="fixed_cart",
                                                       usage_limit=5))

    assert payload["code"] == "SAVE10"
    assert payload["amount"] == "10"
    assert payload["usage_limit"] == 5
    assert "date_expires" not in payload


@pytest.mark.parametrize("body", [
    {"code": "", "amount": "10"},
    {"code": "X", "amount": "0"},
    {"code": "X", "amount": "abc"},
    {"code": "X", "amount": "10", "discount_type": "bogus"},
])
def test_coupon_validation(body):
    with pytest.raises(CouponValidationError):
        build_coupon_payload(CouponCreateRequest(**body))


@pytest.mark.asyncio
async def test_duplicate_coupon_code(woo):
    request = httpx.Request("POST", "https://shop.test/wp-json/wc/v3/coupons")
    response = httpx.Response(400, request=request,
                              json={"code": "woocommerce_rest_coupon_code_already_exists", "message": "exists"})
    woo.create_coupon.side_effect = httpx.HTTPStatusError("400", request=request, response=response)

    with pytest.raises(DuplicateCouponError):
        await CouponService(woo=woo).create_coupon(CouponCreateRequest(code="save10", amount="10"))
