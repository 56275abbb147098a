"""Tests for shipping/payment detail guards and card brand detection."""

import pytest
from factories import card_payment, shipping_details
from storefront.checkout.details import PaymentDetails, detect_card_type
from storefront.checkout.errors import ValidationError


class TestShippingDetails:
    def test_complete_details_pass(self):
        shipping_details().validate()

    @pytest.mark.parametrize("phone", ["12345", "1234567890123", "98765-43210", ""])
    def test_bad_phone_rejected(self, phone):
        with pytest.raises(ValidationError) as exc:
            shipping_details(phone=phone).validate()
        assert "phone" in exc.value.details

    @pytest.mark.parametrize("field", ["name", "house_no", "line1", "city", "state", "postal_code", "country"])
    def test_blank_field_rejected(self, field):
        with pytest.raises(ValidationError) as exc:
            shipping_details(**{field: "  "}).validate()
        assert field in exc.value.details

    def test_line2_is_optional(self):
        assert shipping_details(line2=None).to_address()["line2"] is None

    def test_full_phone_has_country_code(self):
        assert shipping_details().full_phone == "+919876543210"


class TestPaymentDetails:
    def test_card_requires_all_fields(self):
        with pytest.raises(ValidationError) as exc:
            card_payment(cvv=None, expiry="").validate()
        assert set(exc.value.details) == {"cvv", "expiry"}

    def test_upi_requires_id(self):
        with pytest.raises(ValidationError):
            PaymentDetails(method="UPI").validate()

    def test_unknown_method(self):
        with pytest.raises(ValidationError):
            PaymentDetails(method="Cash").validate()

    def test_card_summary_is_masked(self):
        assert card_payment().summary() == {"method": "Card", "card_type": "Visa", "last_four": "1111"}

    def test_upi_summary_is_masked(self):
        assert PaymentDetails(method="UPI", upi_id="asha@okbank").summary() == {
            "method": "UPI",
            "upi_id": "asha@xxxx",
        }

    def test_repr_hides_card_number(self):
        assert "4111" not in repr(card_payment())


class TestCardType:
    @pytest.mark.parametrize(
        ("number", "expected"),
        [
            ("4111111111111111", "Visa"),
            ("5105105105105100", "MasterCard"),
            ("5555 5555 5555 4444", "MasterCard"),
            ("378282246310005", "AMEX"),
            ("341111111111111", "AMEX"),
            ("6521000000000000", "RuPay"),
            ("5012000000000000", "RuPay"),
            ("", "RuPay"),
        ],
    )
    def test_detect(self, number, expected):
        assert detect_card_type(number) == expected
