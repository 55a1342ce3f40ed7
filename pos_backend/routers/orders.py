"""
Orders Router: POS order creation, listing, detail, completion and FMS diagnostics.
"""
from fastapi import APIRouter, Depends, status
from typing import Optional
import logging

from pos_backend.models.api_models import OrderCreateRequest
from pos_backend.routers.dependencies import require_auth
from pos_backend.services.order_service import OrderNotFoundError, order_service
from pos_backend.utils.errors import ApiError

router = APIRouter(dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(cart: OrderCreateRequest):
    """Create a POS order in WooCommerce and mirror it to Baserow."""
    return await order_service.create_order(cart)


@router.get("/orders")
async def list_orders(page: int = 1, limit: int = 20, search: Optional[str] = None):
    return await order_service.list_orders(page=page, limit=limit, search=search)


@router.get("/orders-fms-check/status")
@router.get("/orders/check-fms-status")
async def check_fms_status(limit: int = 10):
    """FMS coverage across the most recent WooCommerce orders."""
    return {"success": True, **await order_service.check_fms_status(limit=limit)}


@router.get("/orders/{order_id}")
async def get_order(order_id: int):
    return await order_service.get_order(order_id)


@router.patch("/orders/{order_id}/complete")
async def complete_order(order_id: int):
    try:
        result = await order_service.complete_order(order_id)
    except OrderNotFoundError as e:
        raise ApiError(404, str(e))
    return {"success": True, **result}


@router.get("/orders/{order_id}/fms-components")
async def get_fms_components(order_id: int):
    try:
        result = await order_service.get_fms_components(order_id)
    except OrderNotFoundError as e:
        raise ApiError(404, str(e))
    return {"success": True, **result}
