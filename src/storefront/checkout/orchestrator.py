"""Checkout pipeline — turns a cart into a persisted, paid order.

Steps run strictly in order and each returns a ``StepResult``. The first fatal
result ends the run with ``CheckoutResult(success=False)`` and leaves the
caller's cart untouched. Once the order is persisted, the remaining steps
(coupon usage, confirmation email) can only add warnings.

    1. Drop items the shopper already received (shipped or delivered orders)
    2. Gate against live stock, clamping or dropping short lines
    3. Re-validate the applied coupon against the adjusted cart
    4. Price the order and authorize payment
    5. Persist the order
    6. Record coupon usage (non-fatal)
    7. Send the confirmation email (non-fatal)
    8. Clear the cart
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import structlog
from protean.utils.globals import current_domain

from storefront.cart.reducers import ClearCart
from storefront.cart.state import CartState, price_lines, subtotal_of
from storefront.catalogue.product import Product
from storefront.checkout.details import PaymentDetails, ShippingDetails, Shopper
from storefront.checkout.errors import (
    CheckoutError,
    DuplicatePurchaseError,
    InventoryError,
    NonFatalError,
    PaymentError,
    PersistenceError,
    ValidationError,
)
from storefront.coupon.usage import record_coupon_usage
from storefront.coupon.validation import CouponValidator
from storefront.inventory.guard import InventoryGuard
from storefront.notifications.mailer import OrderMailer
from storefront.order.order import Order
from storefront.order.placement import PlaceOrder
from storefront.payments.gateway import get_gateway
from storefront.pricing.calculator import (
    DEFAULT_POLICY,
    PriceBreakdown,
    carrier_for,
    estimated_delivery,
    parse_shipping_method,
    price,
    shipping_label,
)
from storefront.settings import CheckoutSettings, PricingPolicy
from storefront.utils.logging import bind_checkout_context, clear_checkout_context

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StepResult:
    value: Any = None
    error: CheckoutError | None = None

    @classmethod
    def ok(cls, value=None) -> "StepResult":
        return cls(value=value)

    @classmethod
    def failed(cls, error: CheckoutError) -> "StepResult":
        return cls(error=error)

    @property
    def fatal(self) -> bool:
        return self.error is not None and self.error.fatal


@dataclass(frozen=True)
class CheckoutResult:
    success: bool
    order_id: str | None = None
    payment_id: str | None = None
    error: CheckoutError | None = None
    email_sent: bool = False
    notices: tuple[str, ...] = ()
    warnings: tuple[NonFatalError, ...] = ()
    breakdown: PriceBreakdown | None = None

    @property
    def message(self) -> str:
        if not self.success:
            return self.error.message if self.error else "There was an error processing your order"
        if self.email_sent:
            return "Order confirmed! Check your email for confirmation."
        return "Order confirmed! Email may be delayed."


@dataclass
class _Checkout:
    """Working state of one pipeline run."""

    cart: CartState
    shipping: ShippingDetails
    payment: PaymentDetails
    shopper: Shopper
    shipping_method: Any
    submission_token: str | None
    lines: tuple = ()
    priced_lines: list = field(default_factory=list)
    subtotal: float = 0.0
    discount_amount: float = 0.0
    coupon_snapshot: dict | None = None
    coupon_id: str | None = None
    breakdown: PriceBreakdown | None = None
    payment_id: str | None = None
    order_id: str | None = None
    notices: list[str] = field(default_factory=list)
    warnings: list[NonFatalError] = field(default_factory=list)


def _idempotency_key(run: _Checkout) -> str:
    # Tokens are chosen by the client, so they are only unique per shopper
    if run.submission_token:
        return f"{run.shopper.id}:{run.submission_token}"
    return uuid4().hex


class CheckoutOrchestrator:
    def __init__(
        self,
        dispatch: Callable | None = None,
        gateway=None,
        mailer: OrderMailer | None = None,
        validator: CouponValidator | None = None,
        guard: InventoryGuard | None = None,
        policy: PricingPolicy | None = None,
        settings: CheckoutSettings | None = None,
    ) -> None:
        self.dispatch = dispatch
        self.settings = settings or CheckoutSettings.from_env()
        self.policy = policy or DEFAULT_POLICY
        self.validator = validator or CouponValidator()
        self.guard = guard or InventoryGuard()
        self.mailer = mailer or OrderMailer(settings=self.settings)
        self._gateway = gateway

    @property
    def gateway(self):
        return self._gateway or get_gateway()

    def checkout(
        self,
        cart: CartState,
        shipping: ShippingDetails,
        payment: PaymentDetails,
        shopper: Shopper,
        shipping_method="standard",
        submission_token: str | None = None,
    ) -> CheckoutResult:
        run = _Checkout(
            cart=cart,
            shipping=shipping,
            payment=payment,
            shopper=shopper,
            shipping_method=shipping_method,
            submission_token=submission_token,
            lines=cart.lines,
        )
        bind_checkout_context(user_id=shopper.id)
        try:
            return self._run(run)
        finally:
            clear_checkout_context()

    def _run(self, run: _Checkout) -> CheckoutResult:
        log = logger.bind(submission_token=run.submission_token)
        log.info(
            "Checkout started",
            lines=len(run.cart.lines),
            coupon=run.cart.coupon.code if run.cart.coupon else None,
        )

        lookup = self._previous_submission(run)
        if lookup.fatal:
            log.warning("Checkout failed", step="previous_submission", code=lookup.error.code)
            return CheckoutResult(success=False, error=lookup.error)
        replay = lookup.value
        if replay is not None:
            log.info("Duplicate submission, returning existing order", order_id=str(replay.id))
            cleared = self._clear_cart()
            return CheckoutResult(
                success=True,
                order_id=str(replay.id),
                payment_id=replay.payment_id,
                notices=("This order was already placed",),
                warnings=(cleared.error,) if cleared.error else (),
            )

        for step in (
            self._check_input,
            self._drop_purchased,
            self._gate_stock,
            self._revalidate_coupon,
            self._price,
            self._authorize_payment,
            self._persist_order,
        ):
            outcome = step(run)
            if outcome.fatal:
                log.warning(
                    "Checkout failed",
                    step=step.__name__.lstrip("_"),
                    code=outcome.error.code,
                    error=outcome.error.message,
                )
                return CheckoutResult(
                    success=False,
                    error=outcome.error,
                    notices=tuple(run.notices),
                    breakdown=run.breakdown,
                )

        usage = self._record_coupon_usage(run)
        if usage.error is not None:
            run.warnings.append(usage.error)

        email = self._send_confirmation(run)
        if email.error is not None:
            run.warnings.append(email.error)

        cleared = self._clear_cart()
        if cleared.error is not None:
            run.warnings.append(cleared.error)

        log.info(
            "Checkout completed",
            order_id=run.order_id,
            payment_id=run.payment_id,
            total=run.breakdown.total,
            warnings=[warning.code for warning in run.warnings],
        )
        return CheckoutResult(
            success=True,
            order_id=run.order_id,
            payment_id=run.payment_id,
            email_sent=bool(email.value),
            notices=tuple(run.notices),
            warnings=tuple(run.warnings),
            breakdown=run.breakdown,
        )

    # -------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------
    def _previous_submission(self, run: _Checkout) -> StepResult:
        if not run.submission_token:
            return StepResult.ok()
        try:
            order = current_domain.repository_for(Order).find_by_submission_token(
                run.shopper.id, run.submission_token
            )
        except Exception as exc:
            logger.exception("Earlier submission lookup failed")
            return StepResult.failed(
                PersistenceError("Could not verify whether this order was already placed", details={"error": str(exc)})
            )
        return StepResult.ok(order)

    def _check_input(self, run: _Checkout) -> StepResult:
        if run.cart.is_empty:
            return StepResult.failed(ValidationError("Your cart is empty"))
        try:
            run.shipping.validate()
            run.payment.validate()
            run.shipping_method = parse_shipping_method(run.shipping_method)
        except ValidationError as exc:
            return StepResult.failed(exc)
        except ValueError as exc:
            return StepResult.failed(ValidationError(str(exc), details={"shipping_method": [str(exc)]}))
        return StepResult.ok()

    def _drop_purchased(self, run: _Checkout) -> StepResult:
        try:
            purchased = current_domain.repository_for(Order).purchased_product_ids(run.shopper.id)
        except Exception:
            # An unreadable history does not block checkout
            logger.exception("Could not load purchase history", user_id=run.shopper.id)
            return StepResult.ok()

        already_bought = [line.product_id for line in run.lines if line.product_id in purchased]
        if not already_bought:
            return StepResult.ok()

        run.lines = tuple(line for line in run.lines if line.product_id not in purchased)
        if not run.lines:
            return StepResult.failed(
                DuplicatePurchaseError(
                    "All items in your cart have already been purchased",
                    details={"product_ids": already_bought},
                )
            )
        run.notices.append(f"{len(already_bought)} previously purchased item(s) were removed from your cart")
        return StepResult.ok(already_bought)

    def _gate_stock(self, run: _Checkout) -> StepResult:
        try:
            products = current_domain.repository_for(Product).find_many(line.product_id for line in run.lines)
        except Exception as exc:
            logger.exception("Stock lookup failed")
            return StepResult.failed(InventoryError("Could not verify stock for your cart", details={"error": str(exc)}))

        live_stock = {product_id: product.stock for product_id, product in products.items()}
        shortfalls = self.guard.check(run.lines, live_stock)
        run.lines, adjustments = self.guard.apply(run.lines, shortfalls)

        if not run.lines:
            return StepResult.failed(
                InventoryError(
                    "The items in your cart are no longer available",
                    details={"adjustments": [adjustment.message for adjustment in adjustments]},
                )
            )

        run.notices.extend(adjustment.message for adjustment in adjustments)
        run.priced_lines = price_lines(run.lines, products)
        run.subtotal = subtotal_of(run.priced_lines)
        return StepResult.ok(adjustments)

    def _revalidate_coupon(self, run: _Checkout) -> StepResult:
        applied = run.cart.coupon
        if applied is None:
            return StepResult.ok()

        result = self.validator.validate(applied.code, run.priced_lines, run.subtotal, user_id=run.shopper.id)
        if not result.valid:
            return StepResult.failed(
                ValidationError(result.message, code="COUPON_REJECTED", details={"reason": result.reason.value})
            )

        if result.discount_amount != applied.discount_amount:
            run.notices.append(
                f"Coupon {result.coupon.code} discount updated to match your cart ({result.discount_amount:.2f})"
            )
        run.discount_amount = result.discount_amount
        run.coupon_id = str(result.coupon.id)
        run.coupon_snapshot = {
            "code": result.coupon.code,
            "discount_amount": result.discount_amount,
            "discount_type": result.coupon.discount_type,
            "discount_value": result.coupon.discount_value,
        }
        return StepResult.ok(result)

    def _price(self, run: _Checkout) -> StepResult:
        try:
            run.breakdown = price(
                run.subtotal,
                run.shipping.country,
                run.shipping_method,
                run.discount_amount,
                policy=self.policy,
            )
        except ValueError as exc:
            return StepResult.failed(ValidationError(str(exc)))
        return StepResult.ok(run.breakdown)

    def _authorize_payment(self, run: _Checkout) -> StepResult:
        try:
            authorization = self.gateway.authorize(
                amount=run.breakdown.total,
                currency=self.settings.currency,
                payment_method=run.payment.summary(),
                idempotency_key=_idempotency_key(run),
                timeout=self.settings.payment_timeout_seconds,
            )
        except Exception as exc:
            logger.exception("Payment authorization raised")
            return StepResult.failed(PaymentError("Payment could not be processed", details={"error": str(exc)}))

        if not authorization.success:
            return StepResult.failed(PaymentError(authorization.failure_reason or "Payment failed"))

        run.payment_id = authorization.payment_id
        return StepResult.ok(authorization)

    def _persist_order(self, run: _Checkout) -> StepResult:
        method = run.shipping_method
        items = [
            {
                "product_id": line.product_id,
                "name": line.name,
                "price": line.price,
                "quantity": line.quantity,
                "image": line.image,
            }
            for line in run.priced_lines
        ]
        command = PlaceOrder(
            customer=json.dumps(
                {
                    "id": run.shopper.id,
                    "email": run.shopper.email,
                    "name": run.shipping.name or run.shopper.name or run.shopper.email,
                    "phone": run.shipping.full_phone,
                }
            ),
            items=json.dumps(items),
            shipping_address=json.dumps(run.shipping.to_address()),
            shipping=json.dumps(
                {
                    "method": shipping_label(method),
                    "cost": run.breakdown.shipping_cost,
                    "estimated_delivery": estimated_delivery(method),
                }
            ),
            payment=json.dumps(run.payment.summary()),
            coupon=json.dumps(run.coupon_snapshot) if run.coupon_snapshot else None,
            subtotal=run.breakdown.subtotal,
            tax=run.breakdown.tax,
            import_duty=run.breakdown.import_duty,
            discount_amount=run.breakdown.discount_amount,
            total=run.breakdown.total,
            carrier=carrier_for(run.shipping.country, self.policy),
            payment_id=run.payment_id,
            submission_token=run.submission_token,
        )
        try:
            run.order_id = current_domain.process(command, asynchronous=False)
        except Exception as exc:
            logger.exception("Order could not be saved", payment_id=run.payment_id)
            return StepResult.failed(
                PersistenceError(
                    "Failed to process order",
                    details={"error": str(exc), "payment_id": run.payment_id},
                )
            )
        return StepResult.ok(run.order_id)

    def _record_coupon_usage(self, run: _Checkout) -> StepResult:
        if not run.coupon_id:
            return StepResult.ok(False)
        if record_coupon_usage(run.coupon_id):
            return StepResult.ok(True)
        return StepResult.failed(
            NonFatalError(
                "Coupon usage could not be recorded",
                code="COUPON_USAGE_NOT_RECORDED",
                details={"coupon_id": run.coupon_id, "order_id": run.order_id},
            )
        )

    def _send_confirmation(self, run: _Checkout) -> StepResult:
        if not self.settings.email_enabled:
            return StepResult.ok(False)
        try:
            document = current_domain.repository_for(Order).get(run.order_id).to_document()
            outcome = self.mailer.send_order_confirmation(document)
        except Exception as exc:
            logger.exception("Confirmation email raised", order_id=run.order_id)
            outcome = {"success": False, "error": str(exc)}

        if outcome.get("success"):
            return StepResult.ok(True)
        return StepResult.failed(
            NonFatalError(
                "Order confirmed! Email may be delayed.",
                code="EMAIL_NOT_SENT",
                details={"order_id": run.order_id, "error": outcome.get("error")},
            )
        )

    def _clear_cart(self) -> StepResult:
        if self.dispatch is None:
            return StepResult.ok()
        try:
            self.dispatch(ClearCart())
        except Exception as exc:
            logger.exception("Cart could not be cleared")
            return StepResult.failed(
                NonFatalError("Your cart could not be cleared", code="CART_NOT_CLEARED", details={"error": str(exc)})
            )
        return StepResult.ok()
