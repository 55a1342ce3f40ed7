"""
Order Service: POS order flows.

WooCommerce is written first and is authoritative; the Baserow mirror is
best effort and its failure is reported, never raised.
"""
import logging
from typing import Any, Dict, List, Optional

from pos_backend.models.api_models import OrderCreateRequest
from pos_backend.services.baserow_service import BaserowService, baserow_service
from pos_backend.services.sync_service import OrderValidationError, SyncService, sync_service
from pos_backend.services.woo_service import WooService, woo_service
from pos_backend.utils.http_retry import error_detail
from pos_backend.utils.normalization import (
    build_order_detail,
    extract_fms_components,
    normalize_order,
    to_amount,
)
from pos_backend.utils.order_builder import build_order_payload

logger = logging.getLogger(__name__)

FINAL_STATUSES = ("completed", "cancelled")
ORDER_SEARCH_WINDOW = 100


class OrderNotFoundError(LookupError):
    pass


def summarize_fms(woo_order: dict) -> Dict[str, Any]:
    """Per-item FMS breakdown of a WooCommerce order (read-only diagnostics)."""
    items = []
    total_meters = 0.0
    for item in woo_order.get("line_items") or []:
        components = extract_fms_components(item)
        if not components:
            continue
        item_meters = sum(to_amount(c.get("meters_total")) for c in components)
        total_meters += item_meters
        items.append({
            "item_id": item.get("id"),
            "product_id": item.get("product_id"),
            "variation_id": item.get("variation_id"),
            "name": item.get("name"),
            "sku": item.get("sku"),
            "quantity": item.get("quantity"),
            "total_meters": f"{item_meters:.2f}",
            "components": [
                {
                    "fabric_id": c.get("fabric_id"),
                    "fabric_name": c.get("fabric_name"),
                    "warehouse_id": c.get("warehouse_id"),
                    "warehouse_name": c.get("warehouse_name"),
                    "meters_per_unit": c.get("meters_per_unit"),
                    "meters_total": c.get("meters_total"),
                }
                for c in components
            ],
        })
    return {"items": items, "total_meters": total_meters}


class OrderService:
    def __init__(self, woo: Optional[WooService] = None, baserow: Optional[BaserowService] = None,
                 sync: Optional[SyncService] = None):
        self.woo = woo or woo_service
        self.baserow = baserow or baserow_service
        self.sync = sync or sync_service

    async def create_order(self, cart: OrderCreateRequest) -> Dict[str, Any]:
        """Create the order in WooCommerce, then mirror it."""
        fms_lines = [item for item in cart.items if item.fms_components]
        logger.info(
            f"New POS order: {len(cart.items)} items, "
            f"customer={'walk-in' if cart.customer is None else cart.customer.first_name}, "
            f"payment={cart.payment_method}, type={cart.order_type}, fms_lines={len(fms_lines)}"
        )
        for item in fms_lines:
            for comp in item.fms_components:
                logger.debug(
                    f"FMS product {item.product_id}: fabric {comp.fabric_id} @ warehouse {comp.warehouse_id} "
                    f"{comp.meters_per_unit}m x {item.qty} = {comp.meters_per_unit * item.qty:.2f}m"
                )

        payload = build_order_payload(cart)
        woo_order = await self.woo.create_order(payload)
        logger.info(
            f"WooCommerce order created: id={woo_order.get('id')} number={woo_order.get('number')} "
            f"total={woo_order.get('total')} status={woo_order.get('status')}",
            extra={"woo_order_id": woo_order.get("id")},
        )

        fms_item_count = len(summarize_fms(woo_order)["items"])

        normalized = normalize_order(woo_order)
        if normalized is None:
            # WooCommerce dropped the POS flag; keep the mirror clean.
            logger.warning(f"Created order {woo_order.get('id')} came back without the POS flag; not mirrored")
            mirror = {"ok": False}
        else:
            try:
                mirror = await self.sync.upsert_order(normalized)
            except OrderValidationError as e:
                logger.error(f"Created order {woo_order.get('id')} failed mirror validation: {e}")
                mirror = {"ok": False}

        return {
            "success": True,
            "woo": {
                "ok": True,
                "order_id": woo_order.get("id"),
                "order_number": woo_order.get("number"),
                "total": woo_order.get("total"),
                "discount_total": woo_order.get("discount_total"),
                "fms_items": fms_item_count,
            },
            "baserow": {"ok": mirror["ok"]},
            "order": normalized,
            "warning": (
                "FMS components added to order. Please verify fabric reservation in WooCommerce admin."
                if fms_item_count > 0 else None
            ),
        }

    async def list_orders(self, page: int = 1, limit: int = 20, search: Optional[str] = None) -> dict:
        if not search:
            return await self.baserow.get_orders(page=page, limit=limit)

        # Order-number search scans one wide page of the newest rows.
        data = await self.baserow.get_orders(page=1, limit=ORDER_SEARCH_WINDOW)
        query = search.strip().lower()
        filtered = [
            row for row in data.get("results") or []
            if query in str(row.get("order_number") or "").lower()
        ]
        return {"results": filtered, "count": len(filtered), "next": None, "previous": None}

    async def get_order(self, woo_order_id: int) -> Dict[str, Any]:
        """Order detail: Baserow first, WooCommerce as fallback (mirroring POS orders on the way)."""
        row = await self.baserow.get_order_by_woo_id(woo_order_id)
        if not row:
            woo_order = await self.woo.fetch_order(woo_order_id)
            row = normalize_order(woo_order)
            if row is None:
                row = normalize_order(woo_order, skip_filter=True)
            else:
                await self.sync.upsert_order(row)
        return build_order_detail(row)

    async def complete_order(self, woo_order_id: int) -> Dict[str, Any]:
        existing = await self.baserow.get_order_by_woo_id(woo_order_id)
        if not existing:
            raise OrderNotFoundError(f"Order {woo_order_id} not found")

        if existing.get("status") in FINAL_STATUSES:
            return {"message": "Order already finalized", "order": existing}

        await self.woo.update_order(woo_order_id, {"status": "completed"})
        try:
            await self.woo.add_order_note(woo_order_id, "Order marked as completed via POS")
        except Exception as e:
            logger.warning(f"Could not add completion note to order {woo_order_id}: {error_detail(e)}")

        updated = await self.sync.patch_order_status(woo_order_id, "completed")
        return {"message": "Order marked as completed", "order": updated}

    async def get_fms_components(self, woo_order_id: int) -> Dict[str, Any]:
        woo_order = await self.woo.fetch_order(woo_order_id)
        if not woo_order:
            raise OrderNotFoundError(f"Order {woo_order_id} not found")

        summary = summarize_fms(woo_order)
        logger.info(f"Order {woo_order_id}: {len(summary['items'])} FMS items, {summary['total_meters']:.2f}m reserved")
        return {
            "order_id": woo_order_id,
            "order_number": woo_order.get("number"),
            "order_status": woo_order.get("status"),
            "has_fms_components": bool(summary["items"]),
            "total_items": len(woo_order.get("line_items") or []),
            "fms_items_count": len(summary["items"]),
            "total_meters_reserved": f"{summary['total_meters']:.2f}",
            "items": summary["items"],
        }

    async def check_fms_status(self, limit: int = 10) -> Dict[str, Any]:
        """FMS coverage across the most recent orders."""
        orders = (await self.woo.fetch_recent_orders())[:limit]
        results: List[dict] = []
        for order in orders:
            line_items = order.get("line_items") or []
            per_item = [extract_fms_components(item) for item in line_items]
            fms_items = sum(1 for comps in per_item if comps)
            results.append({
                "order_id": order.get("id"),
                "order_number": order.get("number"),
                "date": order.get("date_created"),
                "status": order.get("status"),
                "total_items": len(line_items),
                "fms_items": fms_items,
                "total_components": sum(len(comps) for comps in per_item),
                "has_fms": fms_items > 0,
            })

        with_fms = sum(1 for r in results if r["has_fms"])
        logger.info(f"FMS check: {with_fms}/{len(results)} recent orders have FMS components")
        return {"checked": len(results), "orders_with_fms": with_fms, "orders": results}


order_service = OrderService()
