"""Coupon usage recording — command, handler and the non-fatal wrapper checkout calls.

The increment runs after the order is already persisted and is deliberately
not tied to it: a failure here is logged and reported as ``False``, never
raised back into the order flow.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Coupon")
class RecordCouponUsage:
    coupon_id = Identifier(required=True)


@storefront.command_handler(part_of=Coupon)
class CouponUsageHandler:
    @handle(RecordCouponUsage)
    def record_usage(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.record_usage()
        repo.add(coupon)
        return coupon.used_count


def record_coupon_usage(coupon_id) -> bool:
    """Count one redemption of ``coupon_id``. Returns whether it was recorded."""
    if not coupon_id:
        return False

    try:
        used_count = current_domain.process(RecordCouponUsage(coupon_id=str(coupon_id)), asynchronous=False)
    except Exception:
        logger.exception("Failed to record coupon usage", coupon_id=str(coupon_id))
        return False

    logger.info("Coupon usage recorded", coupon_id=str(coupon_id), used_count=used_count)
    return True
