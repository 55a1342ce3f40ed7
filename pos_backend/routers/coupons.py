"""
Coupons Router: coupon management backed by WooCommerce.
"""
from fastapi import APIRouter, Body, Depends, status
from typing import Optional
import logging

from pos_backend.models.api_models import CouponCreateRequest
from pos_backend.routers.dependencies import require_auth
from pos_backend.services.coupon_service import (
    CouponValidationError,
    DuplicateCouponError,
    coupon_service,
)
from pos_backend.services.woo_service import woo_service
from pos_backend.utils.errors import ApiError

router = APIRouter(dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)


@router.get("/coupons")
async def list_coupons(page: int = 1, per_page: int = 100, search: Optional[str] = None,
                       code: Optional[str] = None):
    coupons = await woo_service.fetch_coupons(page=page, per_page=per_page, search=search, code=code)
    return {"success": True, "data": coupons, "count": len(coupons)}


@router.get("/coupons/{coupon_id}")
async def get_coupon(coupon_id: int):
    return {"success": True, "data": await woo_service.fetch_coupon(coupon_id)}


@router.post("/coupons", status_code=status.HTTP_201_CREATED)
async def create_coupon(payload: CouponCreateRequest):
    try:
        coupon = await coupon_service.create_coupon(payload)
    except CouponValidationError as e:
        raise ApiError(400, str(e))
    except DuplicateCouponError as e:
        raise ApiError(409, "A coupon with this code already exists", e)
    return {"success": True, "message": "Coupon created successfully", "data": coupon}


@router.put("/coupons/{coupon_id}")
async def update_coupon(coupon_id: int, payload: dict = Body(...)):
    coupon = await woo_service.update_coupon(coupon_id, payload)
    logger.info(f"Coupon {coupon_id} updated")
    return {"success": True, "message": "Coupon updated successfully", "data": coupon}


@router.delete("/coupons/{coupon_id}")
async def delete_coupon(coupon_id: int, force: bool = True):
    await woo_service.delete_coupon(coupon_id, force=force)
    logger.info(f"Coupon {coupon_id} deleted (force={force})")
    return {"success": True, "message": "Coupon deleted successfully"}
