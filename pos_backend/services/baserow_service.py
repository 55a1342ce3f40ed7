"""
Baserow Service: row API client for the mirrored `orders` and `customers` tables.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from pos_backend.utils.config import settings
from pos_backend.utils.http_retry import async_retry, error_detail

logger = logging.getLogger(__name__)


class BaserowConfigError(RuntimeError):
    """A table id or token needed for the call is not configured."""


class BaserowService:
    """
    Thin async client over `/database/rows/table/{table_id}/`.

    All calls use `user_field_names=true`, so rows are keyed by column name.
    List responses carry `results`, `count`, `next` and `previous`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        orders_table_id: Optional[str] = None,
        customers_table_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.BASEROW_BASE_URL).rstrip("/")
        self.token = token or settings.BASEROW_TOKEN
        self._orders_table_id = orders_table_id or settings.BASEROW_ORDERS_TABLE_ID
        self._customers_table_id = customers_table_id or settings.BASEROW_CUSTOMERS_TABLE_ID
        self.timeout = timeout or settings.BASEROW_TIMEOUT
        if not self.token:
            logger.warning("BASEROW_TOKEN not set. Baserow mirror writes will be rejected.")

    @property
    def orders_table_id(self) -> str:
        if not self._orders_table_id:
            raise BaserowConfigError("BASEROW_ORDERS_TABLE_ID missing in environment")
        return self._orders_table_id

    @property
    def customers_table_id(self) -> str:
        if not self._customers_table_id:
            raise BaserowConfigError("BASEROW_CUSTOMERS_TABLE_ID missing in environment")
        return self._customers_table_id

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Token {self.token or ''}"}

    @async_retry(max_attempts=settings.BASEROW_MAX_RETRIES + 1)
    async def _request(self, method: str, path: str, params: Optional[dict] = None, json: Any = None) -> Any:
        query = {"user_field_names": "true", **(params or {})}
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            response = await client.request(method, f"{self.base_url}{path}", params=query, json=json)
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

    # ========== Generic rows ==========

    async def list_rows(self, table_id: str, page: int = 1, size: int = 20,
                        order_by: Optional[str] = None, filters: Optional[Dict[str, Any]] = None) -> dict:
        """Paginated rows; `filters` are exact-match `filter__{field}__equal` filters."""
        params: Dict[str, Any] = {"page": page, "size": size}
        if order_by:
            params["order_by"] = order_by
        for field, value in (filters or {}).items():
            params[f"filter__{field}__equal"] = value
        return await self._request("GET", f"/database/rows/table/{table_id}/", params=params)

    async def find_row(self, table_id: str, field: str, value: Any) -> Optional[dict]:
        """First row whose `field` equals `value`, or None."""
        data = await self.list_rows(table_id, page=1, size=1, filters={field: value})
        results = (data or {}).get("results") or []
        return results[0] if results else None

    async def get_row(self, table_id: str, row_id: Any) -> Optional[dict]:
        try:
            return await self._request("GET", f"/database/rows/table/{table_id}/{row_id}/")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            logger.error(f"Baserow get row failed: table={table_id} id={row_id} error={error_detail(e)}")
            raise

    async def create_row(self, table_id: str, data: dict) -> dict:
        return await self._request("POST", f"/database/rows/table/{table_id}/", json=data)

    async def update_row(self, table_id: str, row_id: Any, data: dict) -> dict:
        return await self._request("PATCH", f"/database/rows/table/{table_id}/{row_id}/", json=data)

    async def delete_row(self, table_id: str, row_id: Any) -> None:
        await self._request("DELETE", f"/database/rows/table/{table_id}/{row_id}/")

    # ========== Orders ==========

    async def get_orders(self, page: int = 1, limit: int = 20) -> dict:
        return await self.list_rows(self.orders_table_id, page=page, size=limit, order_by="-created_at")

    async def get_order_by_woo_id(self, woo_order_id: Any) -> Optional[dict]:
        return await self.find_row(self.orders_table_id, "woo_order_id", woo_order_id)

    # ========== Customers ==========

    async def get_customers(self, page: int = 1, limit: int = 20) -> dict:
        return await self.list_rows(self.customers_table_id, page=page, size=limit, order_by="-created_at")

    async def get_customer(self, row_id: Any) -> Optional[dict]:
        return await self.get_row(self.customers_table_id, row_id)

    async def get_customer_by_woo_id(self, woo_customer_id: Any) -> Optional[dict]:
        return await self.find_row(self.customers_table_id, "woo_customer_id", woo_customer_id)

    async def find_customer_by_phone(self, phone: str) -> Optional[dict]:
        return await self.find_row(self.customers_table_id, "phone", phone)


baserow_service = BaserowService()
