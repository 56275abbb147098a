"""Coupon aggregate — discount codes with a validity window, usage cap and eligibility rules.

A coupon discounts either the whole cart or, when it is product-specific, only
the subtotal of the listed products. Its usage counter is only ever increased,
and only after an order carrying the coupon has been persisted.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from storefront.coupon.events import CouponCreated, CouponDeactivated, CouponRedeemed
from storefront.domain import storefront


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(choices=DiscountType, default=DiscountType.PERCENTAGE.value)
    discount_value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(default=0.0, min_value=0.0)  # 0 = uncapped
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    max_uses = Integer(default=0, min_value=0)  # 0 = unlimited
    used_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    is_product_specific = Boolean(default=False)
    applicable_products = Text()  # JSON array of product ids
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": ["Coupon cannot end before it starts"]})

    @invariant.post
    def discount_value_must_fit_type(self):
        if self.discount_value is None:
            return
        if self.discount_type == DiscountType.PERCENTAGE.value and not 0 < self.discount_value <= 100:
            raise ValidationError({"discount_value": ["Percentage discounts must be between 0 and 100"]})
        if self.discount_type == DiscountType.FIXED.value and self.discount_value <= 0:
            raise ValidationError({"discount_value": ["Fixed discounts must be greater than zero"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        discount_type,
        discount_value,
        start_date,
        end_date,
        min_order_amount=0.0,
        max_discount_amount=0.0,
        max_uses=0,
        applicable_products=None,
        is_product_specific=False,
        description=None,
    ):
        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_amount=min_order_amount or 0.0,
            max_discount_amount=max_discount_amount or 0.0,
            start_date=start_date,
            end_date=end_date,
            max_uses=max_uses or 0,
            used_count=0,
            is_active=True,
            is_product_specific=bool(is_product_specific),
            applicable_products=json.dumps([str(pid) for pid in applicable_products or []]),
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
                start_date=coupon.start_date,
                end_date=coupon.end_date,
                max_uses=coupon.max_uses,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Read-side helpers
    # -------------------------------------------------------------------
    @property
    def applicable_product_ids(self) -> frozenset[str]:
        if not self.applicable_products:
            return frozenset()
        return frozenset(str(pid) for pid in json.loads(self.applicable_products))

    @property
    def applies_to_specific_products(self) -> bool:
        return bool(self.is_product_specific) or bool(self.applicable_product_ids)

    @property
    def usage_exhausted(self) -> bool:
        return self.max_uses > 0 and self.used_count >= self.max_uses

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def record_usage(self):
        """Count one more redemption. There is no way back down."""
        now = datetime.now(UTC)
        self.used_count = (self.used_count or 0) + 1
        self.updated_at = now

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                used_count=self.used_count,
                redeemed_at=now,
            )
        )

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Coupon is already inactive"]})

        self.is_active = False
        self.updated_at = datetime.now(UTC)

        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code))
