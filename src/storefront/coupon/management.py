"""Coupon administration — create and deactivate coupons."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon, normalize_code
from storefront.domain import storefront


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True, max_length=20)
    discount_value = Float(required=True)
    min_order_amount = Float(default=0.0)
    max_discount_amount = Float(default=0.0)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    max_uses = Integer(default=0)
    is_product_specific = Boolean(default=False)
    applicable_products = Text()  # JSON: list of product ids


@storefront.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


@storefront.command_handler(part_of=Coupon)
class ManageCouponsHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": [f"Coupon code {normalize_code(command.code)} already exists"]})

        applicable_products = (
            json.loads(command.applicable_products)
            if isinstance(command.applicable_products, str)
            else command.applicable_products
        )

        coupon = Coupon.create(
            code=command.code,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            start_date=command.start_date,
            end_date=command.end_date,
            min_order_amount=command.min_order_amount,
            max_discount_amount=command.max_discount_amount,
            max_uses=command.max_uses,
            applicable_products=applicable_products,
            is_product_specific=command.is_product_specific,
        )
        repo.add(coupon)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.deactivate()
        repo.add(coupon)
