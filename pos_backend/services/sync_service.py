"""
Sync Service: idempotent upserts of WooCommerce orders and customers into Baserow.

The Baserow row for a record is found by its WooCommerce id; a hit is
patched, a miss is created. WooCommerce stays the source of truth, so a
failed mirror write never undoes anything upstream.
"""
import json
import logging
from typing import Any, Dict, Optional

import httpx

from pos_backend.services.baserow_service import BaserowConfigError, BaserowService, baserow_service
from pos_backend.utils.http_retry import error_detail
from pos_backend.utils.locks import KeyedLock
from pos_backend.utils.normalization import ORDER_STATUSES, normalize_customer, utc_now_iso

logger = logging.getLogger(__name__)

REQUIRED_ORDER_FIELDS = ("woo_order_id", "order_number", "status", "total")

# Narrower than the sync mapping: only transitions the POS itself makes.
PATCH_STATUS_MAP = {
    "completed": "completed",
    "cancelled": "cancelled",
    "processing": "paid",
    "pending": "paid",
    "on-hold": "paid",
}


class OrderValidationError(ValueError):
    """Order record is incomplete or has an unknown status. Raised before any network call."""


def validate_order_record(order: Optional[dict]) -> None:
    if not isinstance(order, dict):
        raise OrderValidationError("Order record is missing")

    missing = [field for field in REQUIRED_ORDER_FIELDS if order.get(field) in (None, "")]
    if missing:
        raise OrderValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        int(order["woo_order_id"])
    except (TypeError, ValueError):
        raise OrderValidationError(f"Invalid woo_order_id: {order['woo_order_id']!r}")

    if order["status"] not in ORDER_STATUSES:
        raise OrderValidationError(
            f"Invalid status: {order['status']}. Must be one of: {', '.join(ORDER_STATUSES)}"
        )


def _number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def sanitize_order_row(order: dict) -> Dict[str, Any]:
    """Coerce a normalized order into exactly the columns of the Baserow orders table."""
    now = utc_now_iso()
    items = order.get("items")
    customer_id = order.get("customer_id")

    return {
        "woo_order_id": int(order["woo_order_id"]),
        "order_number": str(order["order_number"]),
        "status": order["status"],
        "total": _number(order.get("total")),
        "payment_method": order.get("payment_method") or "unknown",
        "customer_id": int(customer_id) if customer_id and int(customer_id) > 0 else None,
        "notes": order.get("notes") or "",
        "measurements": order.get("measurements") or "-",
        "order_type": order.get("order_type") or "Normal Sale",
        "items": items if isinstance(items, str) else json.dumps(items or []),
        "created_at": order.get("created_at") or now,
        "updated_at": order.get("updated_at") or now,
        "discount_type": order.get("discount_type") or None,
        "discount_amount": _number(order.get("discount_amount")),
        "alteration_charge": _number(order.get("alteration_charge")),
        "courier_charge": _number(order.get("courier_charge")),
        "other_charge": _number(order.get("other_charge")),
    }


class SyncService:
    """Create-or-update engine shared by POS actions and the reconciliation jobs."""

    def __init__(self, baserow: Optional[BaserowService] = None):
        self.baserow = baserow or baserow_service
        # Serialises lookup-then-write per foreign id within this process.
        self.locks = KeyedLock()

    async def upsert_order(self, order: dict) -> Dict[str, Any]:
        """
        Mirror one normalized order.

        Returns {"ok": True, "action": "created"|"updated", "data": row} or
        {"ok": False, "action": None, "error": ...}. Validation problems
        raise OrderValidationError instead.
        """
        validate_order_record(order)
        row = sanitize_order_row(order)
        woo_order_id = row["woo_order_id"]

        try:
            table_id = self.baserow.orders_table_id
            async with self.locks.hold(("order", woo_order_id)):
                existing = await self.baserow.get_order_by_woo_id(woo_order_id)
                if existing:
                    data = await self.baserow.update_row(table_id, existing["id"], row)
                    action = "updated"
                else:
                    data = await self.baserow.create_row(table_id, row)
                    action = "created"
        except (httpx.HTTPError, BaserowConfigError) as e:
            logger.error(
                f"Baserow order upsert failed for woo_order_id={woo_order_id}: {error_detail(e)}",
                extra={"woo_order_id": woo_order_id},
            )
            return {"ok": False, "action": None, "error": error_detail(e)}

        logger.info(f"Order {row['order_number']} mirrored ({action})", extra={"woo_order_id": woo_order_id})
        return {"ok": True, "action": action, "data": data}

    async def upsert_customer(self, customer: dict) -> dict:
        """
        Mirror one customer (full WooCommerce object or partial payload).

        Returns the Baserow row. Remote failures are logged and re-raised;
        callers decide whether the mirror is critical.
        """
        row = normalize_customer(customer)
        woo_customer_id = row.get("woo_customer_id")

        try:
            table_id = self.baserow.customers_table_id
            async with self.locks.hold(("customer", woo_customer_id or row["phone"])):
                existing = (
                    await self.baserow.get_customer_by_woo_id(woo_customer_id)
                    if woo_customer_id
                    else None
                )
                if existing:
                    return await self.baserow.update_row(table_id, existing["id"], row)
                return await self.baserow.create_row(table_id, row)
        except (httpx.HTTPError, BaserowConfigError) as e:
            logger.error(
                f"Baserow customer upsert failed for woo_customer_id={woo_customer_id}: {error_detail(e)}",
                extra={"woo_customer_id": woo_customer_id},
            )
            raise

    async def find_customer_by_phone(self, phone: str) -> Optional[dict]:
        return await self.baserow.find_customer_by_phone(phone)

    async def patch_order_status(self, woo_order_id: Any, status: str) -> Optional[dict]:
        """
        Write only `status` and `updated_at` on an order row.

        Returns the patched row, or None when the order was never mirrored.
        An unmapped status leaves the row's current status in place.
        """
        try:
            existing = await self.baserow.get_order_by_woo_id(woo_order_id)
            if not existing:
                return None
            payload = {
                "status": PATCH_STATUS_MAP.get(status, existing.get("status")),
                "updated_at": utc_now_iso(),
            }
            return await self.baserow.update_row(self.baserow.orders_table_id, existing["id"], payload)
        except (httpx.HTTPError, BaserowConfigError) as e:
            logger.error(
                f"Baserow status patch failed for woo_order_id={woo_order_id}: {error_detail(e)}",
                extra={"woo_order_id": woo_order_id},
            )
            raise


sync_service = SyncService()
