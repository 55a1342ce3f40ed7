"""
Coupon Service: validated coupon creation on top of the WooCommerce coupon API.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from pos_backend.models.api_models import CouponCreateRequest
from pos_backend.services.woo_service import WooService, woo_service
from pos_backend.utils.http_retry import upstream_code

logger = logging.getLogger(__name__)

VALID_DISCOUNT_TYPES = ("percent", "fixed_cart", "fixed_product")
DUPLICATE_CODE_ERROR = "woocommerce_rest_coupon_code_already_exists"


class CouponValidationError(ValueError):
    pass


class DuplicateCouponError(Exception):
    pass


def _positive_amount(raw: Optional[str]) -> Optional[float]:
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        return None
    return amount if amount > 0 else None


def build_coupon_payload(request: CouponCreateRequest) -> Dict[str, Any]:
    code = (request.code or "").strip()
    if not code:
        raise CouponValidationError("Coupon code is required")
    if _positive_amount(request.amount) is None:
        raise CouponValidationError("Valid discount amount is required")
    if request.discount_type not in VALID_DISCOUNT_TYPES:
        raise CouponValidationError("Invalid discount type. Must be: percent, fixed_cart, or fixed_product")

    payload = {
        "code": code.upper(),
        "discount_type": request.discount_type,
        "amount": str(request.amount).strip(),
        "description": request.description,
        "individual_use": request.individual_use,
        "exclude_sale_items": request.exclude_sale_items,
        "minimum_amount": str(request.minimum_amount),
        "maximum_amount": str(request.maximum_amount),
        "free_shipping": request.free_shipping,
    }
    if request.usage_limit:
        payload["usage_limit"] = request.usage_limit
    if request.usage_limit_per_user:
        payload["usage_limit_per_user"] = request.usage_limit_per_user
    if request.date_expires:
        payload["date_expires"] = request.date_expires
    return payload


class CouponService:
    def __init__(self, woo: Optional[WooService] = None):
        self.woo = woo or woo_service

    async def create_coupon(self, request: CouponCreateRequest) -> dict:
        payload = build_coupon_payload(request)
        try:
            coupon = await self.woo.create_coupon(payload)
        except httpx.HTTPStatusError as e:
            if upstream_code(e) == DUPLICATE_CODE_ERROR:
                raise DuplicateCouponError(f"A coupon with code {payload['code']} already exists") from e
            raise
        logger.info(f"Coupon created: id={coupon.get('id')} code={coupon.get('code')} amount={coupon.get('amount')}")
        return coupon


coupon_service = CouponService()
