"""
Scheduler: periodic reconciliation of recent WooCommerce orders and customers into Baserow.

Two independent interval jobs share one AsyncIOScheduler. Each run pulls the
newest page only (a forward tail sync, not a backfill) and processes records
one at a time. A failing record is counted and skipped; it never stops the rest.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dataclasses import dataclass, asdict
from typing import Optional
import asyncio
import logging

from pos_backend.services.sync_service import SyncService, sync_service
from pos_backend.services.woo_service import WooService, woo_service
from pos_backend.utils.config import settings
from pos_backend.utils.http_retry import error_detail
from pos_backend.utils.normalization import is_pos_order, normalize_order

logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()

# Overlapping runs of the same job are allowed; upserts are keyed, so overlap is redundant work only.
MAX_OVERLAPPING_RUNS = 3


@dataclass
class SyncReport:
    job: str
    fetched: int = 0
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    aborted: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


async def sync_recent_orders(woo: Optional[WooService] = None, sync: Optional[SyncService] = None) -> SyncReport:
    """Mirror POS orders from the newest page of WooCommerce orders."""
    woo = woo or woo_service
    sync = sync or sync_service
    report = SyncReport(job="order_sync")

    try:
        recent_orders = await woo.fetch_recent_orders(per_page=settings.SYNC_PAGE_SIZE)
    except Exception as e:
        logger.error(f"Order sync failed to fetch recent orders: {error_detail(e)}", extra={"job": report.job})
        report.aborted = True
        return report

    report.fetched = len(recent_orders)
    logger.info(f"Order sync: {report.fetched} recent orders", extra={"job": report.job})

    for woo_order in recent_orders:
        woo_order_id = woo_order.get("id")
        try:
            if not is_pos_order(woo_order):
                report.skipped += 1
                logger.debug(f"Skipped order #{woo_order.get('number')}: not a POS order")
                continue

            # Already classified above
            normalized = normalize_order(woo_order, skip_filter=True)
            result = await sync.upsert_order(normalized)

            if result["ok"]:
                report.synced += 1
                logger.debug(f"Synced order #{woo_order.get('number')} ({result['action']})")
            else:
                report.errors += 1
                logger.error(f"Failed to sync order {woo_order_id}", extra={"woo_order_id": woo_order_id})
        except Exception as e:
            report.errors += 1
            logger.error(f"Error syncing order {woo_order_id}: {e}", extra={"woo_order_id": woo_order_id})

    logger.info(
        f"Order sync complete: {report.synced} synced, {report.skipped} skipped (non-POS), {report.errors} errors",
        extra={"job": report.job},
    )
    return report


async def sync_recent_customers(woo: Optional[WooService] = None, sync: Optional[SyncService] = None) -> SyncReport:
    """Mirror every customer on the newest page of WooCommerce customers."""
    woo = woo or woo_service
    sync = sync or sync_service
    report = SyncReport(job="customer_sync")

    try:
        recent_customers = await woo.fetch_customers(
            per_page=settings.SYNC_PAGE_SIZE, orderby="registered_date", order="desc"
        )
    except Exception as e:
        logger.error(f"Customer sync failed to fetch recent customers: {error_detail(e)}", extra={"job": report.job})
        report.aborted = True
        return report

    report.fetched = len(recent_customers)
    logger.info(f"Customer sync: {report.fetched} recent customers", extra={"job": report.job})

    for woo_customer in recent_customers:
        woo_customer_id = woo_customer.get("id")
        try:
            await sync.upsert_customer(woo_customer)
            report.synced += 1
        except Exception as e:
            report.errors += 1
            logger.error(f"Error syncing customer {woo_customer_id}: {e}", extra={"woo_customer_id": woo_customer_id})

    logger.info(
        f"Customer sync complete: {report.synced} synced, {report.errors} errors",
        extra={"job": report.job},
    )
    return report


async def order_sync_job():
    """Interval job wrapper: a run never raises into the scheduler."""
    try:
        await sync_recent_orders()
    except Exception as e:
        logger.error(f"Order sync job failed: {e}", exc_info=True)


async def customer_sync_job():
    try:
        await sync_recent_customers()
    except Exception as e:
        logger.error(f"Customer sync job failed: {e}", exc_info=True)


async def run_sync_now() -> dict:
    """Run both syncs once, side by side (manual trigger)."""
    orders, customers = await asyncio.gather(sync_recent_orders(), sync_recent_customers())
    return {"orders": orders.as_dict(), "customers": customers.as_dict()}


def configure_scheduler():
    """Configure all scheduled jobs. Call during startup."""
    scheduler.add_job(order_sync_job, IntervalTrigger(seconds=settings.ORDER_SYNC_INTERVAL_SECONDS),
                      id="order_sync", name="Order Sync (POS orders only)", replace_existing=True,
                      max_instances=MAX_OVERLAPPING_RUNS)
    scheduler.add_job(customer_sync_job, IntervalTrigger(seconds=settings.CUSTOMER_SYNC_INTERVAL_SECONDS),
                      id="customer_sync", name="Customer Sync", replace_existing=True,
                      max_instances=MAX_OVERLAPPING_RUNS)
    logger.info(
        f"Scheduler configured: order_sync every {settings.ORDER_SYNC_INTERVAL_SECONDS}s, "
        f"customer_sync every {settings.CUSTOMER_SYNC_INTERVAL_SECONDS}s"
    )


def start_scheduler():
    """Start the scheduler."""
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started.")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler shutdown.")
