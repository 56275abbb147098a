"""Price breakdown for a cart shipped to a destination.

Pure functions: no repository or network access, so every rule here can be
exercised directly. Rates and fees come from a ``PricingPolicy``; the
module-level default reads the environment once at import.
"""

from dataclasses import dataclass
from enum import Enum

from storefront.settings import PricingPolicy

DEFAULT_POLICY = PricingPolicy.from_env()


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"


_SHIPPING_LABELS = {
    ShippingMethod.STANDARD: "Standard Shipping",
    ShippingMethod.EXPRESS: "Express Shipping",
}

_ESTIMATED_DELIVERY = {
    ShippingMethod.STANDARD: "7 days",
    ShippingMethod.EXPRESS: "2 days",
}


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    tax: float
    shipping_cost: float
    import_duty: float
    discount_amount: float
    total: float

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_cost": self.shipping_cost,
            "import_duty": self.import_duty,
            "discount_amount": self.discount_amount,
            "total": self.total,
        }


def _money(amount: float) -> float:
    return round(float(amount), 2)


def parse_shipping_method(method) -> ShippingMethod:
    if isinstance(method, ShippingMethod):
        return method
    try:
        return ShippingMethod((method or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown shipping method: {method!r}") from None


def is_domestic(country: str, policy: PricingPolicy | None = None) -> bool:
    policy = policy or DEFAULT_POLICY
    return (country or "").strip().lower() == policy.domestic_country.lower()


def shipping_cost(subtotal: float, country: str, method, policy: PricingPolicy | None = None) -> float:
    policy = policy or DEFAULT_POLICY
    method = parse_shipping_method(method)

    if is_domestic(country, policy):
        if method == ShippingMethod.EXPRESS:
            return policy.domestic_express_fee
        if subtotal > policy.free_shipping_threshold:
            return 0.0
        return policy.domestic_standard_fee

    # International shipping never qualifies for the free threshold
    if method == ShippingMethod.EXPRESS:
        return policy.international_express_fee
    return policy.international_standard_fee


def import_duty(subtotal: float, country: str, policy: PricingPolicy | None = None) -> float:
    policy = policy or DEFAULT_POLICY
    if (country or "").strip().lower() != policy.import_duty_country.lower():
        return 0.0
    return _money(subtotal * policy.import_duty_rate)


def price(
    subtotal: float,
    destination_country: str,
    shipping_method,
    discount_amount: float = 0.0,
    policy: PricingPolicy | None = None,
) -> PriceBreakdown:
    """Compute tax, shipping, import duty and the discounted total."""
    policy = policy or DEFAULT_POLICY
    if subtotal < 0:
        raise ValueError(f"Subtotal cannot be negative, got {subtotal}")
    if discount_amount < 0:
        raise ValueError(f"Discount cannot be negative, got {discount_amount}")

    subtotal = _money(subtotal)
    discount_amount = _money(discount_amount)
    tax = _money(subtotal * policy.tax_rate)
    shipping = _money(shipping_cost(subtotal, destination_country, shipping_method, policy))
    duty = import_duty(subtotal, destination_country, policy)
    total = _money(max(0.0, subtotal + tax + shipping + duty - discount_amount))

    return PriceBreakdown(
        subtotal=subtotal,
        tax=tax,
        shipping_cost=shipping,
        import_duty=duty,
        discount_amount=discount_amount,
        total=total,
    )


def shipping_label(method) -> str:
    return _SHIPPING_LABELS[parse_shipping_method(method)]


def estimated_delivery(method) -> str:
    return _ESTIMATED_DELIVERY[parse_shipping_method(method)]


def carrier_for(country: str, policy: PricingPolicy | None = None) -> str:
    return "IndiaPost" if is_domestic(country, policy) else "DHL"
