"""
WooCommerce Service: REST v3 client for products, orders, customers,
coupons and reports. WooCommerce is the system of record.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from pos_backend.utils.config import settings
from pos_backend.utils.http_retry import async_retry

logger = logging.getLogger(__name__)


def _drop_empty(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None and v != ""}


class WooService:
    """Thin async client over `/wp-json/wc/v3`. 5xx and network errors are retried."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        base_url = (base_url or settings.WOO_BASE_URL).rstrip("/")
        self.api_url = f"{base_url}/wp-json/wc/v3"
        self.auth = (
            consumer_key or settings.WOO_CONSUMER_KEY or "",
            consumer_secret or settings.WOO_CONSUMER_SECRET or "",
        )
        self.timeout = timeout or settings.WOO_TIMEOUT
        if not settings.WOO_CONSUMER_KEY and not consumer_key:
            logger.warning("WOO_CONSUMER_KEY not set. WooCommerce requests will be unauthenticated.")

    @async_retry(max_attempts=settings.WOO_MAX_RETRIES + 1)
    async def _request(self, method: str, path: str, params: Optional[dict] = None, json: Any = None) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, auth=self.auth) as client:
            response = await client.request(method, f"{self.api_url}{path}", params=params, json=json)
            response.raise_for_status()
            return response.json()

    # ========== Products ==========

    async def fetch_products(self, page: int = 1, limit: int = 20, category: Optional[str] = None,
                             search: Optional[str] = None) -> List[dict]:
        """Published products only, optionally filtered by category id or search text."""
        params = _drop_empty({
            "per_page": limit,
            "page": page,
            "status": "publish",
            "category": category,
            "search": search,
        })
        return await self._request("GET", "/products", params=params)

    async def fetch_product(self, product_id: int) -> dict:
        return await self._request("GET", f"/products/{product_id}")

    async def fetch_products_by_sku(self, sku: str) -> List[dict]:
        return await self._request("GET", "/products", params={"sku": sku, "per_page": 5})

    async def fetch_variations(self, product_id: int) -> List[dict]:
        return await self._request("GET", f"/products/{product_id}/variations", params={"per_page": 100})

    async def fetch_categories(self) -> List[dict]:
        return await self._request("GET", "/products/categories", params={"per_page": 100, "hide_empty": "true"})

    # ========== Orders ==========

    async def create_order(self, payload: dict) -> dict:
        return await self._request("POST", "/orders", json=payload)

    async def fetch_order(self, order_id: int) -> dict:
        return await self._request("GET", f"/orders/{order_id}")

    async def update_order(self, order_id: int, payload: dict) -> dict:
        return await self._request("PUT", f"/orders/{order_id}", json=payload)

    async def add_order_note(self, order_id: int, note: str) -> dict:
        return await self._request("POST", f"/orders/{order_id}/notes", json={"note": note})

    async def fetch_recent_orders(self, per_page: Optional[int] = None) -> List[dict]:
        """Newest-first single page; the reconciliation window."""
        params = {"per_page": per_page or settings.SYNC_PAGE_SIZE, "orderby": "date", "order": "desc"}
        return await self._request("GET", "/orders", params=params)

    # ========== Customers ==========

    async def fetch_customers(self, page: int = 1, per_page: int = 20, orderby: str = "registered_date",
                              order: str = "desc", search: Optional[str] = None) -> List[dict]:
        params = _drop_empty({
            "per_page": per_page,
            "page": page,
            "orderby": orderby,
            "order": order,
            "search": search,
        })
        return await self._request("GET", "/customers", params=params)

    async def fetch_customer(self, customer_id: int) -> dict:
        return await self._request("GET", f"/customers/{customer_id}")

    async def create_customer(self, payload: dict) -> dict:
        return await self._request("POST", "/customers", json=payload)

    async def update_customer(self, customer_id: int, payload: dict) -> dict:
        logger.info(f"Updating WooCommerce customer {customer_id}")
        return await self._request("PUT", f"/customers/{customer_id}", json=payload)

    # ========== Coupons ==========

    async def fetch_coupons(self, page: int = 1, per_page: int = 100, search: Optional[str] = None,
                            code: Optional[str] = None) -> List[dict]:
        params = _drop_empty({
            "per_page": per_page,
            "page": page,
            "orderby": "date",
            "order": "desc",
            "search": search,
            "code": code,
        })
        return await self._request("GET", "/coupons", params=params)

    async def fetch_coupon(self, coupon_id: int) -> dict:
        return await self._request("GET", f"/coupons/{coupon_id}")

    async def create_coupon(self, payload: dict) -> dict:
        logger.info(f"Creating coupon {payload.get('code')}")
        return await self._request("POST", "/coupons", json=payload)

    async def update_coupon(self, coupon_id: int, payload: dict) -> dict:
        return await self._request("PUT", f"/coupons/{coupon_id}", json=payload)

    async def delete_coupon(self, coupon_id: int, force: bool = True) -> dict:
        return await self._request("DELETE", f"/coupons/{coupon_id}", params={"force": str(force).lower()})

    # ========== Reports ==========

    async def fetch_sales_report(self, period: Optional[str] = None, date_min: Optional[str] = None,
                                 date_max: Optional[str] = None) -> Any:
        params = _drop_empty({"period": period, "date_min": date_min, "date_max": date_max})
        return await self._request("GET", "/reports/sales", params=params)

    async def fetch_top_sellers_report(self, period: Optional[str] = None, date_min: Optional[str] = None,
                                       date_max: Optional[str] = None) -> Any:
        params = _drop_empty({"period": period, "date_min": date_min, "date_max": date_max})
        return await self._request("GET", "/reports/top_sellers", params=params)

    async def fetch_totals(self, resource: str) -> Any:
        """Totals report for `orders`, `customers`, `products`, `coupons` or `reviews`."""
        return await self._request("GET", f"/reports/{resource}/totals")


woo_service = WooService()
