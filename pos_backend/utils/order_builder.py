"""
Order Builder: turns a POS cart into a WooCommerce order payload.

Every order built here carries `_pos_order = "yes"`, the flag the sync
pipeline uses to tell POS orders from storefront orders.
"""
import json
from typing import Any, Dict, List, Optional

from pos_backend.models.api_models import CartCustomer, CartItem, Charges, OrderCreateRequest
from pos_backend.utils.metadata import (
    FMS_COMPONENTS_KEY,
    MEASUREMENTS_KEY,
    ORDER_TYPE_KEY,
    POS_ORDER_KEY,
    meta_entry,
)
from pos_backend.utils.normalization import (
    ALTERATION_FEE_NAME,
    COURIER_SHIPPING_TITLE,
    DEFAULT_COUNTRY,
    DEFAULT_MEASUREMENTS,
    DEFAULT_ORDER_TYPE,
    OTHER_FEE_NAME,
)

PAYMENT_METHOD_TITLES = {
    "cod": "Cash on Delivery",
    "bacs": "Direct Bank Transfer",
    "cash": "Cash Payment",
    "card": "Card Payment",
    "upi": "UPI Payment",
    "upi_card": "UPI / Card Payment",
}

DEFAULT_WAREHOUSE_ID = "1"
DEFAULT_WAREHOUSE_NAME = "Main Warehouse"


def payment_method_title(method: str) -> str:
    return PAYMENT_METHOD_TITLES.get(method, "Cash Payment")


def _money(value: float) -> str:
    # WooCommerce expects totals as strings; whole amounts without a trailing ".0"
    return str(int(value)) if float(value).is_integer() else str(value)


def build_fms_snapshot(item: CartItem) -> List[Dict[str, Any]]:
    """Component snapshot for one cart line, totals scaled by the line quantity."""
    return [
        {
            "fabric_id": str(comp.fabric_id or ""),
            "fabric_name": comp.fabric_name or comp.fabric_id,
            "warehouse_id": str(comp.warehouse_id or DEFAULT_WAREHOUSE_ID),
            "warehouse_name": comp.warehouse_name or DEFAULT_WAREHOUSE_NAME,
            "meters_per_unit": float(comp.meters_per_unit or 0),
            "meters_total": float(comp.meters_per_unit or 0) * item.qty,
        }
        for comp in item.fms_components
    ]


def build_line_item(item: CartItem) -> Dict[str, Any]:
    line_item: Dict[str, Any] = {
        "product_id": item.product_id,
        "variation_id": item.variation_id or 0,
        "quantity": item.qty,
    }
    if item.fms_components:
        line_item["meta_data"] = [
            meta_entry(FMS_COMPONENTS_KEY, json.dumps(build_fms_snapshot(item)))
        ]
    return line_item


def build_billing(customer: Optional[CartCustomer] = None) -> Dict[str, Any]:
    if customer is None:
        return {
            "first_name": "Walk-in",
            "last_name": "Customer",
            "phone": "",
            "address_1": "",
            "city": "",
            "country": DEFAULT_COUNTRY,
        }

    billing = {
        "first_name": customer.first_name or "",
        "last_name": customer.last_name or "",
        "phone": customer.phone or "",
        "address_1": customer.address_1 or "",
        "address_2": customer.address_2 or "",
        "city": customer.city or "",
        "state": customer.state or "",
        "postcode": customer.postcode or "",
        "country": customer.country or DEFAULT_COUNTRY,
    }
    if customer.email and customer.email.strip():
        billing["email"] = customer.email.strip()
    return billing


def build_fee_lines(charges: Charges) -> List[Dict[str, Any]]:
    fee_lines = []
    if charges.alteration and charges.alteration > 0:
        fee_lines.append({"name": ALTERATION_FEE_NAME, "total": _money(charges.alteration), "tax_status": "none"})
    if charges.other and charges.other > 0:
        fee_lines.append({"name": OTHER_FEE_NAME, "total": _money(charges.other), "tax_status": "none"})
    return fee_lines


def build_shipping_lines(charges: Charges) -> List[Dict[str, Any]]:
    if charges.courier and charges.courier > 0:
        return [{"method_id": "flat_rate", "method_title": COURIER_SHIPPING_TITLE, "total": _money(charges.courier)}]
    return []


def build_order_payload(cart: OrderCreateRequest) -> Dict[str, Any]:
    """
    Build the WooCommerce order payload for a POS checkout.

    Zero-valued charges produce no fee or shipping line at all. Walk-in
    sales (no customer) get a placeholder billing identity. Timestamps are
    left to WooCommerce.
    """
    billing = build_billing(cart.customer)
    payment_method = cart.payment_method or "cod"

    coupon_lines = []
    if cart.coupon_code and cart.coupon_code.strip():
        coupon_lines.append({"code": cart.coupon_code.strip()})

    return {
        "status": "processing",
        "customer_id": (cart.customer.woo_customer_id or 0) if cart.customer else 0,
        "payment_method": payment_method,
        "payment_method_title": payment_method_title(payment_method),
        "set_paid": payment_method != "cod",
        "billing": billing,
        "shipping": dict(billing),
        "line_items": [build_line_item(item) for item in cart.items],
        "coupon_lines": coupon_lines,
        "fee_lines": build_fee_lines(cart.charges),
        "shipping_lines": build_shipping_lines(cart.charges),
        "customer_note": cart.notes or "",
        "meta_data": [
            meta_entry(ORDER_TYPE_KEY, cart.order_type or DEFAULT_ORDER_TYPE),
            meta_entry(MEASUREMENTS_KEY, cart.measurements or DEFAULT_MEASUREMENTS),
            meta_entry(POS_ORDER_KEY, "yes"),
        ],
    }
