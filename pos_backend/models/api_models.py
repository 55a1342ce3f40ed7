"""API models using Pydantic.

Request bodies sent by the POS frontend. The frontend mixes camelCase and
snake_case, so both spellings are accepted where it has used both.
"""
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FmsComponent(BaseModel):
    """One fabric consumed by a garment: how many meters per unit, from which warehouse."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    fabric_id: str = Field("", validation_alias=AliasChoices("fabric_id", "fabricId"))
    fabric_name: Optional[str] = Field(None, validation_alias=AliasChoices("fabric_name", "fabricName"))
    warehouse_id: Optional[str] = Field(None, validation_alias=AliasChoices("warehouse_id", "warehouseId"))
    warehouse_name: Optional[str] = Field(None, validation_alias=AliasChoices("warehouse_name", "warehouseName"))
    meters_per_unit: float = Field(0, validation_alias=AliasChoices("meters_per_unit", "metersPerUnit"))


class CartItem(BaseModel):
    product_id: int
    variation_id: Optional[int] = 0
    qty: int = Field(..., gt=0, validation_alias=AliasChoices("qty", "quantity"))
    fms_components: List[FmsComponent] = []


class CartCustomer(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    woo_customer_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address_1: Optional[str] = None
    address_2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class Charges(BaseModel):
    alteration: float = 0
    courier: float = 0
    other: float = 0


class OrderCreateRequest(BaseModel):
    """POS cart submitted at checkout."""
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartItem] = Field(..., min_length=1)
    customer: Optional[CartCustomer] = None
    coupon_code: Optional[str] = Field(None, validation_alias=AliasChoices("couponCode", "coupon_code"))
    notes: Optional[str] = None
    measurements: Optional[str] = None
    order_type: Optional[str] = Field(None, validation_alias=AliasChoices("orderType", "order_type"))
    charges: Charges = Charges()
    payment_method: Optional[str] = Field(None, validation_alias=AliasChoices("paymentMethod", "payment_method"))


class BillingAddress(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = "IN"


class CustomerCreateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    billing: Optional[BillingAddress] = None
    customer_type: Optional[str] = None


class MetaEntry(BaseModel):
    key: str
    value: object = None


class CustomerUpdateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    billing: Optional[BillingAddress] = None
    meta_data: Optional[List[MetaEntry]] = None


class CouponCreateRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    code: Optional[str] = None
    discount_type: str = "percent"
    amount: Optional[str] = None
    description: str = ""
    individual_use: bool = False
    exclude_sale_items: bool = False
    minimum_amount: str = "0"
    maximum_amount: str = "0"
    free_shipping: bool = False
    usage_limit: Optional[int] = None
    usage_limit_per_user: Optional[int] = None
    date_expires: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str
