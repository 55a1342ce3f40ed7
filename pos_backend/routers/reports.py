"""
Reports Router: WooCommerce sales, top sellers and totals for the POS dashboard.
"""
from fastapi import APIRouter, Depends
from typing import Optional
import asyncio
import logging

from pos_backend.routers.dependencies import require_auth
from pos_backend.services.woo_service import woo_service

router = APIRouter(dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)

TOTALS_RESOURCES = ("orders", "customers", "products", "coupons")


async def _all_totals() -> dict:
    results = await asyncio.gather(*(woo_service.fetch_totals(r) for r in TOTALS_RESOURCES))
    return dict(zip(TOTALS_RESOURCES, results))


@router.get("/reports/dashboard")
async def dashboard(period: Optional[str] = None, date_min: Optional[str] = None, date_max: Optional[str] = None):
    logger.info(f"Fetching dashboard reports: period={period or 'default'} range={date_min}..{date_max}")
    sales, top_sellers, totals = await asyncio.gather(
        woo_service.fetch_sales_report(period=period, date_min=date_min, date_max=date_max),
        woo_service.fetch_top_sellers_report(period=period, date_min=date_min, date_max=date_max),
        _all_totals(),
    )
    return {"success": True, "data": {"sales": sales, "topSellers": top_sellers, "totals": totals}}


@router.get("/reports/sales")
async def sales_report(period: Optional[str] = None, date_min: Optional[str] = None, date_max: Optional[str] = None):
    data = await woo_service.fetch_sales_report(period=period, date_min=date_min, date_max=date_max)
    return {"success": True, "data": data}


@router.get("/reports/top-sellers")
async def top_sellers(period: Optional[str] = None, date_min: Optional[str] = None, date_max: Optional[str] = None):
    data = await woo_service.fetch_top_sellers_report(period=period, date_min=date_min, date_max=date_max)
    return {"success": True, "data": data}


@router.get("/reports/totals")
async def totals():
    return {"success": True, "data": await _all_totals()}
