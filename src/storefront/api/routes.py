"""FastAPI routes for the Storefront — coupons, pricing, checkout and orders."""

import json

from fastapi import APIRouter, HTTPException
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    CheckoutErrorSchema,
    CheckoutRequest,
    CheckoutResponse,
    CouponIdResponse,
    CouponUsageResponse,
    CreateCouponRequest,
    PriceQuoteRequest,
    PriceQuoteResponse,
    ShipmentResponse,
    ShipOrderRequest,
    StatusResponse,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from storefront.cart.state import CartLine, CartState, price_lines, subtotal_of
from storefront.catalogue.product import Product
from storefront.checkout.details import PaymentDetails, ShippingDetails, Shopper
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.coupon.management import CreateCoupon
from storefront.coupon.usage import record_coupon_usage
from storefront.coupon.validation import CouponValidator, format_discount
from storefront.notifications.mailer import OrderMailer
from storefront.order.fulfillment import DeliverOrder, ShipOrder
from storefront.order.order import Order
from storefront.pricing.calculator import estimated_delivery, price, shipping_label


def _cart_lines(items) -> tuple[CartLine, ...]:
    return tuple(CartLine(product_id=item.product_id, quantity=item.quantity) for item in items)


def _priced(lines):
    products = current_domain.repository_for(Product).find_many(line.product_id for line in lines)
    priced = price_lines(lines, products)
    return priced, subtotal_of(priced)


def _error_schema(error) -> CheckoutErrorSchema:
    return CheckoutErrorSchema(code=error.code, message=error.message, details=error.details)


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(
        code=body.code,
        description=body.description,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        min_order_amount=body.min_order_amount,
        max_discount_amount=body.max_discount_amount,
        start_date=body.start_date,
        end_date=body.end_date,
        max_uses=body.max_uses,
        is_product_specific=body.is_product_specific,
        applicable_products=json.dumps(body.applicable_products),
    )
    result = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=result)


@coupon_router.post("/validate", response_model=ValidateCouponResponse)
async def validate_coupon(body: ValidateCouponRequest) -> ValidateCouponResponse:
    priced, subtotal = _priced(_cart_lines(body.items))
    result = CouponValidator().validate(body.code, priced, subtotal, user_id=body.user_id)
    return ValidateCouponResponse(
        valid=result.valid,
        message=result.message,
        reason=result.reason.value if result.reason else None,
        coupon_id=str(result.coupon.id) if result.coupon else None,
        discount_amount=result.discount_amount,
        final_total=result.final_total,
        is_product_specific=result.is_product_specific,
        applied_to_cart_items=sorted(result.applied_to_cart_items),
        label=format_discount(result),
    )


@coupon_router.post("/{coupon_id}/usage", response_model=CouponUsageResponse)
async def record_usage(coupon_id: str) -> CouponUsageResponse:
    return CouponUsageResponse(recorded=record_coupon_usage(coupon_id))


# ---------------------------------------------------------------------------
# Pricing Router
# ---------------------------------------------------------------------------
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


@pricing_router.post("/quote", response_model=PriceQuoteResponse)
async def quote(body: PriceQuoteRequest) -> PriceQuoteResponse:
    try:
        breakdown = price(body.subtotal, body.country, body.shipping_method, body.discount_amount)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return PriceQuoteResponse(
        **breakdown.to_dict(),
        shipping_label=shipping_label(body.shipping_method),
        estimated_delivery=estimated_delivery(body.shipping_method),
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("", response_model=CheckoutResponse)
async def checkout(body: CheckoutRequest) -> CheckoutResponse:
    lines = _cart_lines(body.items)
    coupon = None
    if body.coupon_code:
        priced, subtotal = _priced(lines)
        validation = CouponValidator().validate(body.coupon_code, priced, subtotal, user_id=body.shopper.id)
        if not validation.valid:
            return CheckoutResponse(
                success=False,
                message=validation.message,
                error=CheckoutErrorSchema(
                    code="COUPON_REJECTED",
                    message=validation.message,
                    details={"reason": validation.reason.value},
                ),
            )
        coupon = validation.to_applied_coupon()

    result = CheckoutOrchestrator().checkout(
        cart=CartState(lines=lines, coupon=coupon),
        shipping=ShippingDetails(**body.shipping.model_dump()),
        payment=PaymentDetails(**body.payment.model_dump()),
        shopper=Shopper(**body.shopper.model_dump()),
        shipping_method=body.shipping_method,
        submission_token=body.submission_token,
    )
    return CheckoutResponse(
        success=result.success,
        message=result.message,
        order_id=result.order_id,
        payment_id=result.payment_id,
        email_sent=result.email_sent,
        error=_error_schema(result.error) if result.error else None,
        notices=list(result.notices),
        warnings=[_error_schema(warning) for warning in result.warnings],
        breakdown=result.breakdown.to_dict() if result.breakdown else None,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    return current_domain.repository_for(Order).get(order_id).to_document()


@order_router.post("/{order_id}/shipment", response_model=ShipmentResponse)
async def ship_order(order_id: str, body: ShipOrderRequest) -> ShipmentResponse:
    command = ShipOrder(
        order_id=order_id,
        carrier=body.carrier,
        tracking_code=body.tracking_code,
        tracking_url=body.tracking_url,
    )
    current_domain.process(command, asynchronous=False)

    document = current_domain.repository_for(Order).get(order_id).to_document()
    outcome = OrderMailer().send_shipping_update(document)
    return ShipmentResponse(email_sent=bool(outcome.get("success")))


@order_router.post("/{order_id}/delivery", response_model=StatusResponse)
async def deliver_order(order_id: str) -> StatusResponse:
    current_domain.process(DeliverOrder(order_id=order_id), asynchronous=False)
    return StatusResponse()
