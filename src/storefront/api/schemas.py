"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands and checkout records.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class BreakdownSchema(BaseModel):
    subtotal: float
    tax: float
    shipping_cost: float
    import_duty: float
    discount_amount: float
    total: float


class ShopperSchema(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


class ShippingSchema(BaseModel):
    name: str
    phone: str
    country_code: str = "+91"
    house_no: str
    line1: str
    line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str


class PaymentSchema(BaseModel):
    method: Literal["Card", "UPI"] = "Card"
    card_number: str | None = None
    cvv: str | None = None
    expiry: str | None = None
    upi_id: str | None = None


# ---------------------------------------------------------------------------
# Coupon Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    description: str | None = None
    discount_type: Literal["percentage", "fixed"]
    discount_value: float = Field(gt=0)
    min_order_amount: float = Field(ge=0, default=0.0)
    max_discount_amount: float = Field(ge=0, default=0.0)
    start_date: datetime
    end_date: datetime
    max_uses: int = Field(ge=0, default=0)
    is_product_specific: bool = False
    applicable_products: list[str] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "WELCOME10",
                    "discount_type": "percentage",
                    "discount_value": 10,
                    "max_discount_amount": 200,
                    "start_date": "2026-01-01T00:00:00Z",
                    "end_date": "2026-12-31T23:59:59Z",
                }
            ]
        }
    }


class CouponIdResponse(BaseModel):
    coupon_id: str


class ValidateCouponRequest(BaseModel):
    code: str
    items: list[CartItemSchema] = Field(min_length=1)
    user_id: str | None = None


class ValidateCouponResponse(BaseModel):
    valid: bool
    message: str
    reason: str | None = None
    coupon_id: str | None = None
    discount_amount: float = 0.0
    final_total: float | None = None
    is_product_specific: bool = False
    applied_to_cart_items: list[str] = Field(default_factory=list)
    label: str = ""


class CouponUsageResponse(BaseModel):
    recorded: bool


# ---------------------------------------------------------------------------
# Pricing Schemas
# ---------------------------------------------------------------------------
class PriceQuoteRequest(BaseModel):
    subtotal: float = Field(ge=0)
    country: str
    shipping_method: str = "standard"
    discount_amount: float = Field(ge=0, default=0.0)


class PriceQuoteResponse(BreakdownSchema):
    shipping_label: str
    estimated_delivery: str


# ---------------------------------------------------------------------------
# Checkout Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shopper: ShopperSchema
    items: list[CartItemSchema]
    coupon_code: str | None = None
    shipping: ShippingSchema
    payment: PaymentSchema
    shipping_method: str = "standard"
    submission_token: str | None = None


class CheckoutErrorSchema(BaseModel):
    code: str
    message: str
    details: dict = Field(default_factory=dict)


class CheckoutResponse(BaseModel):
    success: bool
    message: str
    order_id: str | None = None
    payment_id: str | None = None
    email_sent: bool = False
    error: CheckoutErrorSchema | None = None
    notices: list[str] = Field(default_factory=list)
    warnings: list[CheckoutErrorSchema] = Field(default_factory=list)
    breakdown: BreakdownSchema | None = None


# ---------------------------------------------------------------------------
# Order Schemas
# ---------------------------------------------------------------------------
class ShipOrderRequest(BaseModel):
    carrier: str | None = None
    tracking_code: str | None = None
    tracking_url: str | None = None


class StatusResponse(BaseModel):
    status: str = "ok"


class ShipmentResponse(StatusResponse):
    email_sent: bool = False
