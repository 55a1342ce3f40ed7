import json

from pos_backend.models.api_models import OrderCreateRequest
from pos_backend.utils.metadata import get_meta
from pos_backend.utils.normalization import normalize_order
from pos_backend.utils.order_builder import build_order_payload, payment_method_title


def _cart(**overrides):
    body = {"items": [{"product_id": 11, "qty": 2}]}
    body.update(overrides)
    return OrderCreateRequest.model_validate(body)


def test_walk_in_order_payload():
    payload = build_order_payload(_cart())

    assert payload["status"] == "processing"
    assert payload["customer_id"] == 0
    assert payload["billing"]["first_name"] == "Walk-in"
    assert payload["billing"]["last_name"] == "Customer"
    assert payload["billing"]["country"] == "IN"
    assert "email" not in payload["billing"]
    assert payload["shipping"] == payload["billing"]
    assert payload["payment_method"] == "cod"
    assert payload["set_paid"] is False
    assert payload["coupon_lines"] == []
    assert payload["fee_lines"] == []
    assert payload["shipping_lines"] == []
    assert payload["line_items"] == [{"product_id": 11, "variation_id": 0, "quantity": 2}]


def test_payload_always_carries_pos_flag_and_defaults():
    payload = build_order_payload(_cart())

    assert get_meta(payload, "_pos_order") == "yes"
    assert get_meta(payload, "order_type") == "Normal Sale"
    assert get_meta(payload, "measurements") == "-"


def test_charges_become_fee_and_shipping_lines():
    payload = build_order_payload(_cart(charges={"alteration": 150, "courier": 80.5, "other": 0}))

    assert payload["fee_lines"] == [{"name": "Alteration Charges", "total": "150", "tax_status": "none"}]
    assert payload["shipping_lines"] == [
        {"method_id": "flat_rate", "method_title": "Courier Charges", "total": "80.5"}
    ]


def test_customer_coupon_and_payment_method():
    payload = build_order_payload(_cart(
        customer={"woo_customer_id": 42, "first_name": "Asha", "phone": 9876543210, "email": "  "},
        couponCode="  SAVE10 ",
        paymentMethod="upi",
        orderType="Alteration",
        notes="Hem by Friday",
    ))

    assert payload["customer_id"] == 42
    assert payload["billing"]["phone"] == "9876543210"
    assert "email" not in payload["billing"]
    assert payload["coupon_lines"] == [{"code": "SAVE10"}]
    assert payload["set_paid"] is True
    assert payload["payment_method_title"] == "UPI Payment"
    assert payload["customer_note"] == "Hem by Friday"
    assert get_meta(payload, "order_type") == "Alteration"


def test_fms_snapshot_scales_meters_by_quantity():
    cart = _cart(items=[{
        "product_id": 11,
        "quantity": 3,
        "fms_components": [{"fabricId": 9, "metersPerUnit": 2.5}],
    }])
    line_item = build_order_payload(cart)["line_items"][0]

    snapshot = json.loads(get_meta(line_item, "_hr_fms_components"))
    assert snapshot == [{
        "fabric_id": "9",
        "fabric_name": "9",
        "warehouse_id": "1",
        "warehouse_name": "Main Warehouse",
        "meters_per_unit": 2.5,
        "meters_total": 7.5,
    }]


def test_unknown_payment_method_title():
    assert payment_method_title("barter") == "Cash Payment"
    assert payment_method_title("card") == "Card Payment"


def test_built_payload_survives_normalization():
    payload = build_order_payload(_cart(
        items=[{"product_id": 11, "qty": 3, "fms_components": [{"fabricId": "F-7", "metersPerUnit": 1.5}]}],
        orderType="Alteration",
        measurements="Chest 40, Waist 34",
    ))

    row = normalize_order(payload, skip_filter=True)

    assert row["order_type"] == "Alteration"
    assert row["measurements"] == "Chest 40, Waist 34"
    components = json.loads(row["items"])[0]["fms_components"]
    assert components[0]["fabric_id"] == "F-7"
    assert components[0]["meters_per_unit"] == 1.5
    assert components[0]["meters_total"] == 4.5
