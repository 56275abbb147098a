"""Tests for coupon validation against a priced cart."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from factories import add_coupon
from protean import current_domain
from storefront.cart.state import PricedLine
from storefront.coupon.coupon import Coupon
from storefront.coupon.validation import (
    CouponRejection,
    CouponValidator,
    compute_discount,
    format_discount,
    validate_coupon,
)


def _line(product_id, price, quantity=1):
    return PricedLine(product_id=product_id, name=product_id, price=price, quantity=quantity)


def _validate(code, lines, **kwargs):
    subtotal = round(sum(line.line_total for line in lines), 2)
    return CouponValidator().validate(code, lines, subtotal, user_id="user-001", **kwargs)


class TestCouponLookup:
    def test_unknown_code(self):
        result = _validate("NOPE", [_line("a", 100)])
        assert result.valid is False
        assert result.reason == CouponRejection.INVALID_CODE
        assert result.message == "Invalid coupon code."

    def test_code_is_case_and_space_insensitive(self):
        add_coupon(code="SAVE10")
        result = _validate("  save10 ", [_line("a", 100)])
        assert result.valid is True

    def test_lookup_failure_is_reported_as_invalid(self):
        repository = MagicMock()
        repository.find_by_code.side_effect = RuntimeError("store offline")
        result = CouponValidator(repository=repository).validate("SAVE10", [_line("a", 100)], 100)
        assert result.valid is False
        assert result.reason == CouponRejection.LOOKUP_FAILED


class TestCouponRejections:
    def test_inactive(self):
        coupon = add_coupon()
        coupon.deactivate()
        current_domain.repository_for(Coupon).add(coupon)
        result = _validate("SAVE10", [_line("a", 100)])
        assert result.reason == CouponRejection.INACTIVE

    def test_not_yet_valid(self):
        start = datetime.now(UTC) + timedelta(days=3)
        add_coupon(start_date=start, end_date=start + timedelta(days=10))
        result = _validate("SAVE10", [_line("a", 100)])
        assert result.reason == CouponRejection.NOT_YET_VALID
        assert f"{start:%d/%m/%Y}" in result.message

    def test_expired(self):
        end = datetime.now(UTC) - timedelta(days=1)
        add_coupon(start_date=end - timedelta(days=10), end_date=end)
        result = _validate("SAVE10", [_line("a", 100)])
        assert result.reason == CouponRejection.EXPIRED

    def test_evaluation_time_can_be_supplied(self):
        coupon = add_coupon()
        result = _validate("SAVE10", [_line("a", 100)], now=coupon.end_date + timedelta(seconds=1))
        assert result.reason == CouponRejection.EXPIRED

    def test_usage_limit_reached(self):
        coupon = add_coupon(max_uses=2)
        coupon.record_usage()
        coupon.record_usage()
        current_domain.repository_for(Coupon).add(coupon)
        result = _validate("SAVE10", [_line("a", 5000)])
        assert result.reason == CouponRejection.USAGE_LIMIT_REACHED

    def test_minimum_order_not_met(self):
        add_coupon(min_order_amount=500)
        result = _validate("SAVE10", [_line("a", 100)])
        assert result.reason == CouponRejection.MIN_ORDER_NOT_MET
        assert "₹500.00" in result.message

    def test_no_eligible_items(self):
        add_coupon(applicable_products=["prod-x"])
        result = _validate("SAVE10", [_line("a", 100)])
        assert result.reason == CouponRejection.NO_ELIGIBLE_ITEMS

    def test_eligible_minimum_uses_eligible_subtotal(self):
        add_coupon(applicable_products=["a"], min_order_amount=300)
        result = _validate("SAVE10", [_line("a", 100, 2), _line("b", 500)])
        assert result.reason == CouponRejection.MIN_ORDER_NOT_MET
        assert "eligible products" in result.message

    def test_rejection_order_inactive_before_expired(self):
        end = datetime.now(UTC) - timedelta(days=1)
        coupon = add_coupon(start_date=end - timedelta(days=10), end_date=end)
        coupon.deactivate()
        current_domain.repository_for(Coupon).add(coupon)
        assert _validate("SAVE10", [_line("a", 100)]).reason == CouponRejection.INACTIVE


class TestCouponDiscounts:
    def test_percentage_capped_by_max_discount(self):
        add_coupon(code="BIG20", discount_value=20, max_discount_amount=200)
        result = _validate("BIG20", [_line("a", 2000)])
        assert result.valid is True
        assert result.discount_amount == 200.0
        assert result.final_total == 1800.0

    def test_percentage_uncapped(self):
        add_coupon(code="BIG20", discount_value=20)
        assert _validate("BIG20", [_line("a", 2000)]).discount_amount == 400.0

    def test_fixed_discount_capped_at_subtotal(self):
        add_coupon(code="FLAT500", discount_type="fixed", discount_value=500)
        result = _validate("FLAT500", [_line("a", 300)])
        assert result.discount_amount == 300.0
        assert result.final_total == 0.0

    def test_product_specific_discount(self):
        add_coupon(code="ONLYA", applicable_products=["A"])
        result = _validate("ONLYA", [_line("A", 100, 2), _line("B", 50, 1)])
        assert result.valid is True
        assert result.is_product_specific is True
        assert result.discount_amount == 20.0
        assert result.applied_to_cart_items == frozenset({"A"})
        assert result.final_total == 230.0

    def test_validation_does_not_touch_usage(self):
        coupon = add_coupon()
        _validate("SAVE10", [_line("a", 100)])
        assert current_domain.repository_for(Coupon).get(coupon.id).used_count == 0

    @pytest.mark.parametrize("base", [0.0, 0.01, 99.99, 1000.0, 123456.78])
    def test_discount_stays_within_base(self, base):
        coupon = add_coupon(code="FLAT", discount_type="fixed", discount_value=250)
        assert 0 <= compute_discount(coupon, base) <= base

    def test_module_level_helper(self):
        add_coupon()
        assert validate_coupon("SAVE10", [_line("a", 100)], 100, "user-001").discount_amount == 10.0


class TestFormatDiscount:
    def test_percentage_label(self):
        add_coupon(code="ONLYA", discount_value=20, applicable_products=["A"])
        result = _validate("ONLYA", [_line("A", 100)])
        assert format_discount(result) == "20% OFF on eligible items (₹20.00)"

    def test_fixed_label(self):
        add_coupon(code="FLAT150", discount_type="fixed", discount_value=150)
        assert format_discount(_validate("FLAT150", [_line("a", 1000)])) == "₹150.00 OFF"

    def test_invalid_result_has_no_label(self):
        assert format_discount(_validate("NOPE", [_line("a", 100)])) == ""
