"""
Customers Router: POS customer lookup, creation and updates.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from pos_backend.models.api_models import CustomerCreateRequest, CustomerUpdateRequest
from pos_backend.routers.dependencies import require_auth
from pos_backend.services.customer_service import (
    CustomerValidationError,
    DuplicateCustomerError,
    customer_service,
)
from pos_backend.utils.errors import ApiError

router = APIRouter(dependencies=[Depends(require_auth)])
logger = logging.getLogger(__name__)


@router.get("/customers")
async def list_customers(page: int = 1, limit: int = 100, search: Optional[str] = None):
    return await customer_service.list_customers(page=page, limit=limit, search=search)


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str):
    customer = await customer_service.get_customer(customer_id)
    if not customer:
        raise ApiError(404, "Customer not found")
    return customer


@router.post("/customers", status_code=status.HTTP_201_CREATED)
async def create_customer(payload: CustomerCreateRequest):
    try:
        return await customer_service.create_customer(payload)
    except CustomerValidationError as e:
        raise ApiError(400, str(e))
    except DuplicateCustomerError as e:
        raise ApiError(409, str(e), customer=e.existing)


@router.patch("/customers/{customer_id}")
async def update_customer(customer_id: str, payload: CustomerUpdateRequest):
    try:
        return await customer_service.update_customer(customer_id, payload)
    except CustomerValidationError as e:
        raise ApiError(400, str(e))


@router.delete("/customers/{customer_id}")
async def delete_customer(customer_id: str):
    logger.warning(f"Rejected delete for customer {customer_id}")
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"success": False, "message": "Customer deletion is not allowed in POS"},
    )
