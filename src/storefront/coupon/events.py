"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Coupon")
class CouponCreated:
    """A new discount coupon was made available."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    max_uses = Integer()


@storefront.event(part_of="Coupon")
class CouponDeactivated:
    """A coupon was switched off by an administrator."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)


@storefront.event(part_of="Coupon")
class CouponRedeemed:
    """A coupon was used on a successfully placed order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)
