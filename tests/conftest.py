import itertools

import pytest

from pos_backend.services.auth_service import ACCESS, auth_service
from pos_backend.utils.config import settings


class FakeBaserow:
    """In-memory stand-in for BaserowService with the same row semantics."""

    orders_table_id = "orders"
    customers_table_id = "customers"

    def __init__(self):
        self.tables = {"orders": {}, "customers": {}}
        self._ids = itertools.count(1)
        self.calls = []

    async def list_rows(self, table_id, page=1, size=20, order_by=None, filters=None):
        rows = list(self.tables[table_id].values())
        for field, value in (filters or {}).items():
            rows = [r for r in rows if str(r.get(field)) == str(value)]
        start = (page - 1) * size
        chunk = rows[start:start + size]
        return {
            "count": len(rows),
            "results": chunk,
            "next": "more" if start + size < len(rows) else None,
            "previous": None,
        }

    async def find_row(self, table_id, field, value):
        data = await self.list_rows(table_id, size=1, filters={field: value})
        return data["results"][0] if data["results"] else None

    async def get_row(self, table_id, row_id):
        if not str(row_id).isdigit():
            return None
        return self.tables[table_id].get(int(row_id))

    async def create_row(self, table_id, data):
        self.calls.append(("create", table_id, data))
        row = {"id": next(self._ids), **data}
        self.tables[table_id][row["id"]] = row
        return row

    async def update_row(self, table_id, row_id, data):
        self.calls.append(("update", table_id, data))
        row = self.tables[table_id][int(row_id)]
        row.update(data)
        return row

    async def delete_row(self, table_id, row_id):
        self.calls.append(("delete", table_id, row_id))
        self.tables[table_id].pop(int(row_id), None)

    async def get_orders(self, page=1, limit=20):
        return await self.list_rows("orders", page=page, size=limit)

    async def get_order_by_woo_id(self, woo_order_id):
        return await self.find_row("orders", "woo_order_id", woo_order_id)

    async def get_customers(self, page=1, limit=20):
        return await self.list_rows("customers", page=page, size=limit)

    async def get_customer(self, row_id):
        return await self.get_row("customers", row_id)

    async def get_customer_by_woo_id(self, woo_customer_id):
        return await self.find_row("customers", "woo_customer_id", woo_customer_id)

    async def find_customer_by_phone(self, phone):
        return await self.find_row("customers", "phone", phone)


@pytest.fixture
def fake_baserow():
    return FakeBaserow()


@pytest.fixture
def mock_settings(mocker):
    mocker.patch.object(settings, "WOO_BASE_URL", "https://shop.test")
    mocker.patch.object(settings, "WOO_CONSUMER_KEY", "ck_test")
    mocker.patch.object(settings, "WOO_CONSUMER_SECRET", "cs_test")
    mocker.patch.object(settings, "BASEROW_BASE_URL", "https://baserow.test/api")
    mocker.patch.object(settings, "BASEROW_TOKEN", "br_test")
    mocker.patch.object(settings, "BASEROW_ORDERS_TABLE_ID", "101")
    mocker.patch.object(settings, "BASEROW_CUSTOMERS_TABLE_ID", "102")
    mocker.patch.object(settings, "POS_ADMIN_USERNAME", "admin")
    mocker.patch.object(settings, "POS_ADMIN_PASSWORD", "s3cret")
    mocker.patch.object(settings, "SYNC_ENABLED", False)
    return settings


@pytest.fixture
def no_backoff(mocker):
    """Retries happen immediately."""
    return mocker.patch("pos_backend.utils.http_retry.asyncio.sleep", new_callable=mocker.AsyncMock)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {auth_service.issue(ACCESS)}"}


def make_woo_order(order_id=501, pos=True, **overrides):
    """A WooCommerce order as the REST API returns it."""
    meta = [{"key": "order_type", "value": "Normal Sale"}]
    if pos:
        meta.append({"key": "_pos_order", "value": "yes"})
    order = {
        "id": order_id,
        "number": str(order_id),
        "status": "processing",
        "total": "1200.00",
        "discount_total": "0.00",
        "total_tax": "0.00",
        "payment_method": "cash",
        "customer_id": 0,
        "customer_note": "",
        "date_created": "2026-01-05T10:00:00",
        "date_created_gmt": "2026-01-05T04:30:00",
        "date_modified_gmt": "2026-01-05T04:35:00",
        "line_items": [
            {
                "id": 1,
                "product_id": 11,
                "variation_id": 0,
                "name": "Kurta",
                "sku": "KUR-1",
                "quantity": 2,
                "price": 600,
                "subtotal": "1200.00",
                "total": "1200.00",
                "total_tax": "0.00",
                "meta_data": [],
            }
        ],
        "fee_lines": [],
        "shipping_lines": [],
        "coupon_lines": [],
        "meta_data": meta,
    }
    order.update(overrides)
    return order


@pytest.fixture
def woo_order_factory():
    return make_woo_order
