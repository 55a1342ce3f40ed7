"""
Normalization: maps WooCommerce orders, customers and products into the
shapes the POS and the Baserow mirror use.

Every function here is pure (no I/O). `normalize_order` is the gate that
keeps non-POS orders out of Baserow.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pos_backend.utils.metadata import (
    CUSTOMER_TYPE_KEY,
    FMS_COMPONENTS_KEY,
    MEASUREMENTS_KEY,
    ORDER_TYPE_KEY,
    POS_ORDER_KEY,
    find_meta,
    get_meta,
)

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("paid", "completed", "cancelled", "refund")

STATUS_MAP = {
    "checkout-draft": "paid",
    "pending": "paid",
    "processing": "paid",
    "on-hold": "paid",
    "completed": "completed",
    "cancelled": "cancelled",
    "refunded": "refund",
    "failed": "cancelled",
}

ALTERATION_FEE_NAME = "Alteration Charges"
OTHER_FEE_NAME = "Other Charges"
COURIER_SHIPPING_TITLE = "Courier Charges"

DEFAULT_ORDER_TYPE = "Normal Sale"
DEFAULT_MEASUREMENTS = "-"
DEFAULT_CUSTOMER_TYPE = "Walk-in customer"
DEFAULT_COUNTRY = "IN"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_amount(value: Any) -> float:
    """WooCommerce sends money as strings; blanks and junk count as 0."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def map_status(woo_status: Optional[str]) -> str:
    """Project a WooCommerce order status onto paid/completed/cancelled/refund."""
    return STATUS_MAP.get(woo_status, "paid")


def is_pos_order(woo_order: Any) -> bool:
    """True only when the order carries `_pos_order = "yes"` in its meta_data."""
    entry = find_meta(woo_order, POS_ORDER_KEY)
    result = entry is not None and entry.get("value") == "yes"
    if isinstance(woo_order, dict):
        logger.debug(f"Order {woo_order.get('number')}: {'POS' if result else 'NOT POS'}")
    return result


def _gmt(value: Optional[str]) -> Optional[str]:
    return f"{value}Z" if value else None


def extract_fms_components(line_item: dict) -> List[dict]:
    """
    FMS component snapshot attached to a line item.

    The meta value is JSON text when it comes back from WooCommerce but may
    already be a list. Malformed values yield an empty list.
    """
    entry = find_meta(line_item, FMS_COMPONENTS_KEY)
    if entry is None:
        return []
    value = entry.get("value")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning(f"Unparseable FMS components on line item {line_item.get('id')}")
            return []
    return value if isinstance(value, list) else []


def normalize_line_items(line_items: Optional[List[dict]]) -> List[dict]:
    items = []
    for item in line_items or []:
        normalized = {
            "product_id": item.get("product_id"),
            "variation_id": item.get("variation_id") or None,
            "name": item.get("name"),
            "sku": item.get("sku") or "",
            "quantity": to_amount(item.get("quantity")),
            "unit_price": to_amount(item.get("price")),
            "subtotal": to_amount(item.get("subtotal")),
            "total": to_amount(item.get("total")),
            "tax": to_amount(item.get("total_tax")),
        }
        components = extract_fms_components(item)
        if components:
            normalized["fms_components"] = components
        items.append(normalized)
    return items


def _fee_total(woo_order: dict, name: str) -> float:
    # Exact-name match only; any other fee name lands in neither bucket.
    for fee in woo_order.get("fee_lines") or []:
        if fee.get("name") == name:
            return to_amount(fee.get("total"))
    return 0.0


def normalize_order(woo_order: dict, skip_filter: bool = False) -> Optional[Dict[str, Any]]:
    """
    Map a WooCommerce order onto a Baserow order row.

    Returns None for orders that are not POS orders, unless `skip_filter`
    says the caller already classified it. None means "do not sync".
    """
    if not skip_filter and not is_pos_order(woo_order):
        return None

    coupon_lines = woo_order.get("coupon_lines") or []
    coupon = coupon_lines[0] if coupon_lines else None
    shipping_lines = woo_order.get("shipping_lines") or []

    created_at = _gmt(woo_order.get("date_created_gmt")) or woo_order.get("date_created")
    updated_at = _gmt(woo_order.get("date_modified_gmt")) or created_at

    customer_id = woo_order.get("customer_id") or 0

    return {
        "woo_order_id": woo_order.get("id"),
        "order_number": str(woo_order.get("number") or ""),
        "status": map_status(woo_order.get("status")),
        "total": to_amount(woo_order.get("total")),
        "payment_method": woo_order.get("payment_method") or "unknown",
        "customer_id": customer_id if customer_id > 0 else None,
        "notes": woo_order.get("customer_note") or "",
        "measurements": get_meta(woo_order, MEASUREMENTS_KEY, DEFAULT_MEASUREMENTS),
        "items": json.dumps(normalize_line_items(woo_order.get("line_items"))),
        "created_at": created_at,
        "updated_at": updated_at,
        "discount_type": (coupon.get("discount_type") or "fixed_cart") if coupon else None,
        "discount_amount": to_amount(woo_order.get("discount_total")),
        "alteration_charge": _fee_total(woo_order, ALTERATION_FEE_NAME),
        "courier_charge": to_amount(shipping_lines[0].get("total")) if shipping_lines else 0.0,
        "other_charge": _fee_total(woo_order, OTHER_FEE_NAME),
        "order_type": get_meta(woo_order, ORDER_TYPE_KEY, DEFAULT_ORDER_TYPE),
    }


def _pick(billing: dict, customer: dict, field: str) -> str:
    return billing.get(field) or customer.get(field) or ""


def normalize_customer(customer: dict) -> Dict[str, Any]:
    """
    Map a WooCommerce customer (or a partial POS payload) onto a Baserow customer row.

    Billing values win over top-level values of the same name. Nothing here
    raises for a missing optional field.
    """
    billing = customer.get("billing") or {}

    address_parts = [
        _pick(billing, customer, field)
        for field in ("address_1", "address_2", "city", "state", "postcode", "country")
    ]

    row = {
        "first_name": _pick(billing, customer, "first_name"),
        "last_name": _pick(billing, customer, "last_name"),
        "phone": _pick(billing, customer, "phone"),
        "email": _pick(billing, customer, "email"),
        "address": ", ".join(part for part in address_parts if part),
        "address_line_2": _pick(billing, customer, "address_2"),
        "city": _pick(billing, customer, "city"),
        "state": _pick(billing, customer, "state"),
        "postcode": _pick(billing, customer, "postcode"),
        "country": _pick(billing, customer, "country") or DEFAULT_COUNTRY,
        "customer_type": get_meta(customer, CUSTOMER_TYPE_KEY, None)
        or customer.get("customer_type")
        or DEFAULT_CUSTOMER_TYPE,
        "updated_at": utc_now_iso(),
    }

    woo_id = customer.get("woo_customer_id") or customer.get("id")
    if woo_id:
        row["woo_customer_id"] = int(woo_id)

    created_at = (
        customer.get("created_at")
        or _gmt(customer.get("date_created_gmt"))
        or customer.get("date_created")
    )
    if created_at:
        row["created_at"] = created_at
    elif not woo_id:
        row["created_at"] = utc_now_iso()

    return row


def normalize_product(product: dict) -> Dict[str, Any]:
    """Catalog shape the POS renders for a WooCommerce product."""
    components = get_meta(product, FMS_COMPONENTS_KEY, [])
    images = product.get("images") or []
    price = product.get("price")

    return {
        "id": product.get("id"),
        "name": product.get("name"),
        "sku": product.get("sku") or None,
        "type": product.get("type"),
        "price": to_amount(price) if price not in (None, "") else None,
        "stock_status": product.get("stock_status"),
        "stock_quantity": product.get("stock_quantity") if product.get("manage_stock") is True else None,
        "image": images[0].get("thumbnail") if images else None,
        "categories": [
            {"id": c.get("id"), "name": c.get("name"), "slug": c.get("slug")}
            for c in product.get("categories") or []
        ],
        "attributes": [
            {"name": a.get("name"), "options": a.get("options")}
            for a in product.get("attributes") or []
        ],
        "fms_components": components if isinstance(components, list) else [],
        "purchasable": product.get("purchasable"),
    }


def normalize_variation(variation: dict) -> Dict[str, Any]:
    size = next(
        (a.get("option") for a in variation.get("attributes") or [] if a.get("name") == "Size"),
        None,
    )
    return {
        "id": variation.get("id"),
        "sku": variation.get("sku"),
        "price": to_amount(variation.get("price")),
        "stock_quantity": variation.get("stock_quantity") or 0,
        "stock_status": variation.get("stock_status"),
        "size": size,
    }


def parse_items(raw: Any) -> List[dict]:
    """Decode the `items` column of an order row; anything unreadable is an empty list."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []
    return raw if isinstance(raw, list) else []


def build_order_detail(row: dict) -> Dict[str, Any]:
    """
    Print-safe order view from a Baserow order row.

    The stored total is authoritative; the subtotal is derived from it, never
    recomputed from items. Fees that were dropped during normalization are
    therefore folded into the subtotal here.
    """
    items = parse_items(row.get("items"))

    discount = to_amount(row.get("discount_amount"))
    charges = {
        "alteration": to_amount(row.get("alteration_charge")),
        "courier": to_amount(row.get("courier_charge")),
        "other": to_amount(row.get("other_charge")),
    }
    charges_total = sum(charges.values())
    tax = to_amount(row.get("tax_total"))
    total = to_amount(row.get("total"))
    subtotal = total + discount - charges_total - tax

    return {
        "woo_order_id": row.get("woo_order_id"),
        "order_number": row.get("order_number"),
        "status": row.get("status"),
        "payment_method": row.get("payment_method"),
        "customer_id": row.get("customer_id"),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "items": [
            {
                "key": f"{item.get('product_id') or 'custom'}-{item.get('sku') or idx}",
                "product_id": item.get("product_id"),
                "variation_id": item.get("variation_id"),
                "name": item.get("name"),
                "sku": item.get("sku") or "",
                "quantity": to_amount(item.get("quantity")),
                "unit_price": to_amount(item.get("unit_price")),
                "line_total": to_amount(item.get("total")),
            }
            for idx, item in enumerate(items)
        ],
        "totals": {
            "subtotal": max(subtotal, 0),
            "discount": discount,
            "chargesTotal": charges_total,
            "tax": tax,
            "grandTotal": total,
        },
        "charges": charges,
        "discount_details": {
            "type": row.get("discount_type"),
            "amount": discount,
        },
        "order_type": row.get("order_type") or DEFAULT_ORDER_TYPE,
        "measurements": row.get("measurements") or DEFAULT_MEASUREMENTS,
        "notes": row.get("notes") or "",
    }
