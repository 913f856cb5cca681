"""
WooCommerce webhook Pydantic schemas
"""

from datetime import date
from pydantic import BaseModel, Field


class WooAddress(BaseModel):
    street: str = Field(min_length=1)
    number: str | None = None
    complement: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None


class WooCustomer(BaseModel):
    name: str = Field(min_length=1)
    email: str | None = None
    phone: str | None = None
    address: WooAddress


class WooItem(BaseModel):
    name: str
    quantity: int = Field(1, ge=1)
    price: float | None = None


class WooOrigin(BaseModel):
    company: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None


class WooCommerceOrder(BaseModel):
    order_id: str | int
    customer: WooCustomer
    items: list[WooItem] = []
    total: float | None = None
    weight: float | None = None
    origin: WooOrigin | None = None


class WebhookResponse(BaseModel):
    success: bool
    delivery_id: int
    tracking_code: str
    estimated_delivery: date | None = None
    tracking_url: str
    events_generated: int
