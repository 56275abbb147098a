"""Coupon validation against a cart snapshot.

Checks run in a fixed order and stop at the first failure:
code lookup, active flag, validity window, usage cap, product eligibility and
minimum order amount. A passing coupon comes back with the discount it grants.
Validation never touches the coupon's usage counter; that happens only after
an order is persisted (see ``storefront.coupon.usage``).
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from storefront.cart.state import AppliedCoupon, subtotal_of
from storefront.coupon.coupon import Coupon, DiscountType, normalize_code
from storefront.utils.formatting import format_currency

logger = structlog.get_logger(__name__)


class CouponRejection(Enum):
    INVALID_CODE = "INVALID_CODE"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    NO_ELIGIBLE_ITEMS = "NO_ELIGIBLE_ITEMS"
    MIN_ORDER_NOT_MET = "MIN_ORDER_NOT_MET"
    LOOKUP_FAILED = "LOOKUP_FAILED"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str
    reason: CouponRejection | None = None
    coupon: Coupon | None = None
    discount_amount: float = 0.0
    final_total: float | None = None
    is_product_specific: bool = False
    applied_to_cart_items: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def rejected(cls, reason: CouponRejection, message: str) -> "ValidationResult":
        return cls(valid=False, message=message, reason=reason)

    def to_applied_coupon(self) -> AppliedCoupon:
        if not self.valid:
            raise ValueError("Only a valid coupon can be applied to the cart")
        return AppliedCoupon(
            code=self.coupon.code,
            coupon_id=str(self.coupon.id),
            discount_amount=self.discount_amount,
            discount_type=self.coupon.discount_type,
            discount_value=self.coupon.discount_value,
            is_product_specific=self.is_product_specific,
            applied_to_cart_items=self.applied_to_cart_items,
        )


def _as_utc(moment: datetime) -> datetime:
    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment


def compute_discount(coupon: Coupon, base: float) -> float:
    """Discount granted on ``base``, never negative and never more than ``base``."""
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        discount = base * coupon.discount_value / 100
        if coupon.max_discount_amount and coupon.max_discount_amount > 0:
            discount = min(discount, coupon.max_discount_amount)
    else:
        discount = min(coupon.discount_value, base)
    return round(max(0.0, min(discount, base)), 2)


class CouponValidator:
    def __init__(self, repository=None, clock=None) -> None:
        self._repository = repository
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(Coupon)

    def validate(self, code, lines, cart_subtotal, user_id=None, now=None) -> ValidationResult:
        """Validate ``code`` for a cart of priced lines.

        Args:
            code: Coupon code as typed by the shopper.
            lines: ``PricedLine`` records for the current cart.
            cart_subtotal: Sum of price x quantity over the whole cart.
            user_id: The shopper, for logging only.
            now: Evaluation time; defaults to the validator's clock.
        """
        normalized = normalize_code(code)
        log = logger.bind(code=normalized, user_id=user_id)

        try:
            coupon = self.repository.find_by_code(normalized)
        except Exception:
            log.exception("Coupon lookup failed")
            return ValidationResult.rejected(
                CouponRejection.LOOKUP_FAILED, "An error occurred while validating the coupon."
            )

        if coupon is None:
            log.info("Coupon not found")
            return ValidationResult.rejected(CouponRejection.INVALID_CODE, "Invalid coupon code.")

        if not coupon.is_active:
            log.info("Inactive coupon used")
            return ValidationResult.rejected(CouponRejection.INACTIVE, "This coupon is no longer active.")

        now = _as_utc(now or self._clock())
        start_date = _as_utc(coupon.start_date)
        end_date = _as_utc(coupon.end_date)

        if now < start_date:
            log.info("Coupon not yet valid", start_date=start_date.isoformat())
            return ValidationResult.rejected(
                CouponRejection.NOT_YET_VALID,
                f"This coupon will be valid from {start_date:%d/%m/%Y}.",
            )

        if now > end_date:
            log.info("Expired coupon used", end_date=end_date.isoformat())
            return ValidationResult.rejected(CouponRejection.EXPIRED, "This coupon has expired.")

        if coupon.usage_exhausted:
            log.info("Coupon usage limit reached", used_count=coupon.used_count, max_uses=coupon.max_uses)
            return ValidationResult.rejected(
                CouponRejection.USAGE_LIMIT_REACHED,
                "This coupon has reached its maximum usage limit.",
            )

        if coupon.applies_to_specific_products:
            return self._validate_product_specific(coupon, lines, cart_subtotal, log)

        if coupon.min_order_amount > 0 and cart_subtotal < coupon.min_order_amount:
            log.info("Minimum order not met", cart_subtotal=cart_subtotal, min_required=coupon.min_order_amount)
            return ValidationResult.rejected(
                CouponRejection.MIN_ORDER_NOT_MET,
                f"This coupon requires a minimum order of {format_currency(coupon.min_order_amount)}.",
            )

        discount = compute_discount(coupon, cart_subtotal)
        log.info("Coupon accepted", cart_subtotal=cart_subtotal, discount_amount=discount)
        return ValidationResult(
            valid=True,
            message="Coupon applied successfully!",
            coupon=coupon,
            discount_amount=discount,
            final_total=round(cart_subtotal - discount, 2),
            is_product_specific=False,
        )

    def _validate_product_specific(self, coupon, lines, cart_subtotal, log) -> ValidationResult:
        eligible_ids = coupon.applicable_product_ids
        eligible_lines = [line for line in lines if line.product_id in eligible_ids]

        if not eligible_lines:
            log.info("Coupon not applicable to any cart items")
            return ValidationResult.rejected(
                CouponRejection.NO_ELIGIBLE_ITEMS,
                "This coupon is not applicable to any items in your cart.",
            )

        eligible_subtotal = subtotal_of(eligible_lines)
        if coupon.min_order_amount > 0 and eligible_subtotal < coupon.min_order_amount:
            log.info(
                "Minimum order not met for eligible items",
                eligible_subtotal=eligible_subtotal,
                min_required=coupon.min_order_amount,
            )
            return ValidationResult.rejected(
                CouponRejection.MIN_ORDER_NOT_MET,
                f"This coupon requires eligible products total of {format_currency(coupon.min_order_amount)}.",
            )

        discount = compute_discount(coupon, eligible_subtotal)
        applied_to = frozenset(line.product_id for line in eligible_lines)
        log.info(
            "Product-specific coupon accepted",
            eligible_subtotal=eligible_subtotal,
            discount_amount=discount,
            eligible_products=len(applied_to),
        )
        return ValidationResult(
            valid=True,
            message="Coupon applied successfully to eligible products!",
            coupon=coupon,
            discount_amount=discount,
            final_total=round(cart_subtotal - discount, 2),
            is_product_specific=True,
            applied_to_cart_items=applied_to,
        )


def validate_coupon(code, lines, cart_subtotal, user_id=None) -> ValidationResult:
    return CouponValidator().validate(code, lines, cart_subtotal, user_id)


def format_discount(result: ValidationResult) -> str:
    """Display label such as "20% OFF on eligible items (₹20.00)" or "₹150.00 OFF"."""
    if not result.valid or result.coupon is None:
        return ""

    suffix = " on eligible items" if result.is_product_specific else ""
    amount = format_currency(result.discount_amount)
    if result.coupon.discount_type == DiscountType.PERCENTAGE.value:
        return f"{result.coupon.discount_value:g}% OFF{suffix} ({amount})"
    return f"{amount} OFF{suffix}"
