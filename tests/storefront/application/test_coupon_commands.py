"""Application tests for coupon administration and usage recording."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from factories import add_coupon
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.coupon.coupon import Coupon
from storefront.coupon.management import CreateCoupon, DeactivateCoupon
from storefront.coupon.usage import RecordCouponUsage, record_coupon_usage


def _create(**overrides):
    now = datetime.now(UTC)
    defaults = {
        "code": "festive25",
        "discount_type": "percentage",
        "discount_value": 25.0,
        "max_discount_amount": 300.0,
        "start_date": now,
        "end_date": now + timedelta(days=7),
        "applicable_products": json.dumps(["prod-a"]),
    }
    defaults.update(overrides)
    return current_domain.process(CreateCoupon(**defaults), asynchronous=False)


class TestCreateCoupon:
    def test_create_returns_id(self):
        coupon = current_domain.repository_for(Coupon).get(_create())
        assert coupon.code == "FESTIVE25"
        assert coupon.applicable_product_ids == frozenset({"prod-a"})

    def test_duplicate_code_rejected(self):
        _create()
        with pytest.raises(ValidationError) as exc:
            _create(code="FESTIVE25")
        assert "code" in exc.value.messages

    def test_deactivate(self):
        coupon_id = _create()
        current_domain.process(DeactivateCoupon(coupon_id=coupon_id), asynchronous=False)
        assert current_domain.repository_for(Coupon).get(coupon_id).is_active is False


class TestRecordUsage:
    def test_command_returns_new_count(self):
        coupon = add_coupon()
        assert current_domain.process(RecordCouponUsage(coupon_id=str(coupon.id)), asynchronous=False) == 1

    def test_helper_increments(self):
        coupon = add_coupon()
        assert record_coupon_usage(coupon.id) is True
        assert record_coupon_usage(coupon.id) is True
        assert current_domain.repository_for(Coupon).get(coupon.id).used_count == 2

    def test_helper_without_coupon(self):
        assert record_coupon_usage(None) is False

    def test_helper_swallows_missing_coupon(self):
        assert record_coupon_usage("missing-coupon") is False
