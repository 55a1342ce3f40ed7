"""
Remove non-POS orders from the Baserow orders table.

Pages through every mirrored order, re-reads it from WooCommerce and flags
rows whose order lacks the `_pos_order` marker. Dry run by default:

    python scripts/cleanup_non_pos_orders.py           # report only
    python scripts/cleanup_non_pos_orders.py --apply   # delete flagged rows
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List

# Add the project root directory to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pos_backend.services.baserow_service import BaserowService, baserow_service
from pos_backend.services.woo_service import WooService, woo_service
from pos_backend.utils.http_retry import error_detail
from pos_backend.utils.normalization import is_pos_order

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

PAGE_SIZE = 50
# Pause between WooCommerce reads
REQUEST_PAUSE = 0.2


async def find_non_pos_orders(baserow: BaserowService, woo: WooService) -> dict:
    checked, errors = 0, 0
    non_pos: List[dict] = []
    page = 1

    while True:
        try:
            data = await baserow.get_orders(page=page, limit=PAGE_SIZE)
        except Exception as e:
            logger.error(f"Failed to fetch page {page}: {error_detail(e)}")
            errors += 1
            break

        rows = data.get("results") or []
        if not rows:
            break
        logger.info(f"Page {page}: {len(rows)} orders")

        for row in rows:
            checked += 1
            woo_order_id = row.get("woo_order_id")
            if not woo_order_id:
                logger.warning(f"  Order {row.get('order_number')} has no woo_order_id")
                errors += 1
                continue
            try:
                woo_order = await woo.fetch_order(woo_order_id)
            except Exception as e:
                logger.error(f"  Could not check order {woo_order_id}: {error_detail(e)}")
                errors += 1
                continue

            if not is_pos_order(woo_order):
                logger.info(f"  #{row.get('order_number')} (woo {woo_order_id}) is NOT a POS order")
                non_pos.append({
                    "baserow_id": row.get("id"),
                    "order_number": row.get("order_number"),
                    "woo_order_id": woo_order_id,
                    "total": row.get("total"),
                    "created_at": row.get("created_at"),
                })
            await asyncio.sleep(REQUEST_PAUSE)

        if not data.get("next"):
            break
        page += 1

    return {"checked": checked, "errors": errors, "non_pos": non_pos}


async def cleanup(apply: bool = False, baserow: BaserowService = None, woo: WooService = None) -> dict:
    """Scan first, then delete, so deletions never shift the pages being read."""
    baserow = baserow or baserow_service
    woo = woo or woo_service

    result = await find_non_pos_orders(baserow, woo)
    result["deleted"] = 0

    if apply:
        for order in result["non_pos"]:
            try:
                await baserow.delete_row(baserow.orders_table_id, order["baserow_id"])
                result["deleted"] += 1
            except Exception as e:
                logger.error(f"Failed to delete row {order['baserow_id']}: {error_detail(e)}")
                result["errors"] += 1

    logger.info("=" * 60)
    logger.info(f"Checked: {result['checked']}")
    logger.info(f"Non-POS found: {len(result['non_pos'])}")
    logger.info(f"Deleted: {result['deleted']}" if apply else "Dry run: nothing deleted (use --apply)")
    logger.info(f"Errors: {result['errors']}")
    return result


def main():
    parser = argparse.ArgumentParser(description="Remove non-POS orders from the Baserow mirror.")
    parser.add_argument("--apply", action="store_true", help="delete flagged rows (default is a dry run)")
    args = parser.parse_args()
    asyncio.run(cleanup(apply=args.apply))


if __name__ == "__main__":
    main()
