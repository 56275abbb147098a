"""Shipping and payment details captured during checkout.

Both records are plain frozen values. ``validate()`` raises the checkout
``ValidationError`` with per-field messages; the session uses it to guard the
Shipping → Payment and Payment → Processing transitions.
"""

import re
from dataclasses import dataclass

from storefront.checkout.errors import ValidationError
from storefront.order.order import PaymentMethod
from storefront.utils.formatting import last_four_digits, mask_upi_id

PHONE_PATTERN = re.compile(r"^[0-9]{7,12}$")

_CARD_PATTERNS = (
    (re.compile(r"^4"), "Visa"),
    (re.compile(r"^5[1-5]"), "MasterCard"),
    (re.compile(r"^3[47]"), "AMEX"),
)
DEFAULT_CARD_TYPE = "RuPay"


def detect_card_type(number: str) -> str:
    """Card brand from the leading digits, for display only."""
    digits = re.sub(r"\D", "", number or "")
    for pattern, card_type in _CARD_PATTERNS:
        if pattern.match(digits):
            return card_type
    return DEFAULT_CARD_TYPE


def _blank(value) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class Shopper:
    """The signed-in user placing the order, as handed over by the identity provider."""

    id: str
    email: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class ShippingDetails:
    name: str
    phone: str
    house_no: str
    line1: str
    city: str
    state: str
    postal_code: str
    country: str
    line2: str | None = None
    country_code: str = "+91"

    _REQUIRED_ADDRESS_FIELDS = ("house_no", "line1", "city", "state", "postal_code", "country")

    def validate(self) -> None:
        errors: dict[str, list[str]] = {}
        if _blank(self.name):
            errors["name"] = ["Name is required"]
        if _blank(self.phone) or not PHONE_PATTERN.match(self.phone.strip()):
            errors["phone"] = ["Phone number must be 7 to 12 digits"]
        for field_name in self._REQUIRED_ADDRESS_FIELDS:
            if _blank(getattr(self, field_name)):
                errors[field_name] = [f"{field_name.replace('_', ' ').capitalize()} is required"]

        if errors:
            raise ValidationError("Please complete your shipping details", details=errors)

    @property
    def full_phone(self) -> str:
        return f"{self.country_code}{self.phone.strip()}" if self.phone else ""

    def to_address(self) -> dict:
        return {
            "name": self.name.strip(),
            "phone": self.full_phone,
            "house_no": self.house_no.strip(),
            "line1": self.line1.strip(),
            "line2": self.line2.strip() if self.line2 else None,
            "city": self.city.strip(),
            "state": self.state.strip(),
            "postal_code": self.postal_code.strip(),
            "country": self.country.strip(),
        }


@dataclass(frozen=True)
class PaymentDetails:
    """Raw payment input. Only the masked summary ever leaves checkout."""

    method: str = PaymentMethod.CARD.value
    card_number: str | None = None
    cvv: str | None = None
    expiry: str | None = None
    upi_id: str | None = None

    def __repr__(self) -> str:
        return f"PaymentDetails(method={self.method!r})"

    @property
    def card_type(self) -> str:
        return detect_card_type(self.card_number)

    def validate(self) -> None:
        errors: dict[str, list[str]] = {}
        if self.method == PaymentMethod.CARD.value:
            for field_name in ("card_number", "cvv", "expiry"):
                if _blank(getattr(self, field_name)):
                    errors[field_name] = ["This field is required for card payments"]
        elif self.method == PaymentMethod.UPI.value:
            if _blank(self.upi_id):
                errors["upi_id"] = ["UPI ID is required"]
        else:
            errors["method"] = [f"Unsupported payment method: {self.method}"]

        if errors:
            raise ValidationError("Please complete your payment details", details=errors)

    def summary(self) -> dict:
        """Masked summary stored on the order: card type and last four, or a masked UPI id."""
        if self.method == PaymentMethod.CARD.value:
            return {
                "method": PaymentMethod.CARD.value,
                "card_type": self.card_type,
                "last_four": last_four_digits(self.card_number),
            }
        return {"method": PaymentMethod.UPI.value, "upi_id": mask_upi_id(self.upi_id)}
