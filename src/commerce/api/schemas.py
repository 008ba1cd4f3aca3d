"""Pydantic request/response schemas for the commerce API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Quantities are not range-checked here so that the
domain's own InvalidQuantity / OutOfStock errors reach the caller.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------
class ErrorBody(BaseModel):
    kind: str
    message: str
    details: dict[str, Any] = {}


class Envelope(BaseModel):
    """Every response: exactly one of ``data`` / ``error`` is set."""

    success: bool = True
    data: Any = None
    error: ErrorBody | None = None


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str
    phone: str
    address: str
    city: str
    county: str | None = None
    postal_code: str | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant: str | None = None
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "variant": "XL",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    quantity: int
    variant: str | None = None


class ApplyCouponRequest(BaseModel):
    coupon_code: str


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    payment_method: str | None = None
    notes: str | None = None
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "shipping_address": {
                        "name": "Jane Wanjiku",
                        "phone": "+254700000001",
                        "address": "12 Moi Avenue",
                        "city": "Nairobi",
                        "county": "Nairobi",
                    },
                    "payment_method": "wallet_transfer",
                }
            ]
        }
    }


class TransitionRequest(BaseModel):
    note: str | None = None
    actor: str = "admin"


class ShipOrderRequest(TransitionRequest):
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: str | None = None


class UpdateOrderStatusRequest(TransitionRequest):
    status: str
    carrier: str | None = None
    tracking_number: str | None = None
    amount: float | None = None


class CancelOrderRequest(BaseModel):
    reason: str
    actor: str = "customer"


class RefundOrderRequest(BaseModel):
    reason: str | None = None
    actor: str = "admin"
    amount: float | None = None
    restock: bool = False


class CompleteRefundRequest(BaseModel):
    amount: float | None = None
    reference: str | None = None


class PaymentCallbackRequest(BaseModel):
    transaction_id: str
    status: str
    amount: float | None = None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Inventory / Coupon Request Schemas
# ---------------------------------------------------------------------------
class InitializeStockRequest(BaseModel):
    product_id: str
    variant: str | None = None
    quantity: int = 0


class ReceiveStockRequest(BaseModel):
    product_id: str
    variant: str | None = None
    quantity: int
    reference: str | None = None


class DefineCouponRequest(BaseModel):
    code: str
    kind: str
    value: float = 0.0
    min_subtotal: float = 0.0
    expires_at: datetime | None = None
