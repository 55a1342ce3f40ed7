"""
Customer Service: POS customer create/update/lookup.

Phone is the POS uniqueness key and is checked against Baserow before
anything is written to WooCommerce.
"""
import logging
import re
import secrets
import string
from typing import Any, Dict, Optional

import httpx

from pos_backend.models.api_models import BillingAddress, CustomerCreateRequest, CustomerUpdateRequest
from pos_backend.services.baserow_service import BaserowService, baserow_service
from pos_backend.services.sync_service import SyncService, sync_service
from pos_backend.services.woo_service import WooService, woo_service
from pos_backend.utils.http_retry import error_detail
from pos_backend.utils.metadata import CUSTOMER_TYPE_KEY, get_meta, meta_entry
from pos_backend.utils.normalization import DEFAULT_COUNTRY, DEFAULT_CUSTOMER_TYPE

logger = logging.getLogger(__name__)

# WooCommerce accepts this shape on create; stricter than the update check.
CREATE_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
UPDATE_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*"
PASSWORD_LENGTH = 16


class CustomerValidationError(ValueError):
    pass


class DuplicateCustomerError(Exception):
    """A customer with this phone is already mirrored."""

    def __init__(self, existing: dict):
        super().__init__("Customer with this phone number already exists")
        self.existing = existing


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _address(first_name: str, last_name: str, billing: Optional[BillingAddress]) -> Dict[str, str]:
    billing = billing or BillingAddress()
    return {
        "first_name": first_name,
        "last_name": last_name,
        "address_1": billing.address_1,
        "address_2": billing.address_2,
        "city": billing.city,
        "state": billing.state,
        "postcode": billing.postcode,
        "country": billing.country or DEFAULT_COUNTRY,
    }


def build_customer_payload(request: CustomerCreateRequest) -> Dict[str, Any]:
    """WooCommerce create-customer body. Raises CustomerValidationError on missing name/phone."""
    first_name = _clean(request.first_name)
    phone = _clean(request.phone)
    if not first_name:
        raise CustomerValidationError("First name is required")
    if not phone:
        raise CustomerValidationError("Phone is required")
    last_name = _clean(request.last_name)

    billing = _address(first_name, last_name, request.billing)
    billing["phone"] = phone
    payload = {
        "first_name": first_name,
        "last_name": last_name,
        "username": f"customer_{phone}",
        "password": generate_password(),
        "billing": billing,
        "shipping": _address(first_name, last_name, request.billing),
        "meta_data": [meta_entry(CUSTOMER_TYPE_KEY, request.customer_type or DEFAULT_CUSTOMER_TYPE)],
    }

    email = _clean(request.email)
    if email and CREATE_EMAIL_RE.match(email):
        payload["email"] = email
        payload["billing"]["email"] = email
    elif email:
        logger.info(f"Ignoring invalid email for new customer {phone}")
    return payload


def build_update_payload(request: CustomerUpdateRequest) -> Dict[str, Any]:
    email = _clean(request.email)
    if email and not UPDATE_EMAIL_RE.match(email):
        raise CustomerValidationError("Invalid email format")

    first_name = _clean(request.first_name)
    last_name = _clean(request.last_name)
    billing = _address(first_name, last_name, request.billing)
    billing["phone"] = _clean(request.phone)
    if email:
        billing["email"] = email

    payload = {"first_name": first_name, "last_name": last_name, "billing": billing}
    if request.meta_data is not None:
        payload["meta_data"] = [entry.model_dump() for entry in request.meta_data]
    return payload


class CustomerService:
    def __init__(self, woo: Optional[WooService] = None, baserow: Optional[BaserowService] = None,
                 sync: Optional[SyncService] = None):
        self.woo = woo or woo_service
        self.baserow = baserow or baserow_service
        self.sync = sync or sync_service

    async def list_customers(self, page: int = 1, limit: int = 100, search: Optional[str] = None) -> dict:
        data = await self.baserow.get_customers(page=page, limit=limit)
        if search:
            query = search.lower()
            data["results"] = [
                c for c in data.get("results") or []
                if query in (c.get("first_name") or "").lower()
                or query in (c.get("last_name") or "").lower()
                or query in (c.get("phone") or "")
                or query in (c.get("email") or "").lower()
            ]
        return data

    async def get_customer(self, customer_id: str) -> Optional[dict]:
        """Baserow row by id; else a WooCommerce customer with that id, mirrored on the way."""
        customer = await self.baserow.get_customer(customer_id)
        if customer or not str(customer_id).isdigit():
            return customer

        try:
            woo_customer = await self.woo.fetch_customer(int(customer_id))
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        if not woo_customer:
            return None
        return await self.sync.upsert_customer(woo_customer)

    async def create_customer(self, request: CustomerCreateRequest) -> dict:
        """
        Create in WooCommerce, then mirror.

        Raises CustomerValidationError for missing fields and
        DuplicateCustomerError when the phone is already known. A failed
        mirror is non-critical: a minimal row built from WooCommerce is returned.
        """
        payload = build_customer_payload(request)
        phone = payload["billing"]["phone"]

        existing = await self.sync.find_customer_by_phone(phone)
        if existing:
            logger.warning(f"Customer with phone {phone} already exists (row {existing.get('id')})")
            raise DuplicateCustomerError(existing)

        woo_customer = await self.woo.create_customer(payload)
        woo_customer_id = woo_customer.get("id")
        logger.info(
            f"WooCommerce customer created: id={woo_customer_id} "
            f"type={get_meta(woo_customer, CUSTOMER_TYPE_KEY)}",
            extra={"woo_customer_id": woo_customer_id},
        )

        try:
            return await self.sync.upsert_customer(woo_customer)
        except Exception as e:
            logger.warning(
                f"Baserow sync failed for new customer {woo_customer_id} (non-critical): {error_detail(e)}",
                extra={"woo_customer_id": woo_customer_id},
            )
            return {
                "woo_customer_id": woo_customer_id,
                "first_name": woo_customer.get("first_name"),
                "last_name": woo_customer.get("last_name"),
                "email": woo_customer.get("email"),
                "phone": (woo_customer.get("billing") or {}).get("phone"),
                "address": "",
                "customer_type": request.customer_type or DEFAULT_CUSTOMER_TYPE,
            }

    async def update_customer(self, woo_customer_id: str, request: CustomerUpdateRequest) -> dict:
        if not str(woo_customer_id).isdigit():
            raise CustomerValidationError("Invalid WooCommerce customer ID")

        payload = build_update_payload(request)
        updated = await self.woo.update_customer(int(woo_customer_id), payload)
        logger.info(f"WooCommerce customer updated: {updated.get('id')}", extra={"woo_customer_id": updated.get("id")})

        # Re-read so the mirror sees server-side meta and defaults.
        try:
            full_customer = await self.woo.fetch_customer(int(woo_customer_id))
            await self.sync.upsert_customer(full_customer)
        except Exception as e:
            logger.warning(f"Baserow sync failed for customer {woo_customer_id} (non-critical): {error_detail(e)}")

        return {
            "success": True,
            "message": "Customer updated successfully",
            "woo_customer_id": updated.get("id"),
            "email": (updated.get("billing") or {}).get("email") or None,
        }


customer_service = CustomerService()
