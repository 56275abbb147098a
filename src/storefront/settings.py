"""Environment-driven settings for pricing and checkout.

Defaults reproduce the storefront's published rules (18% GST, free domestic
standard shipping above ₹1000, 69% import duty on US-bound orders). Every
value can be overridden through a ``STOREFRONT_*`` environment variable.
"""

import os
from dataclasses import dataclass


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class PricingPolicy:
    """Rates and fees used by the pricing calculator."""

    tax_rate: float = 0.18
    domestic_country: str = "India"
    free_shipping_threshold: float = 1000.0
    domestic_standard_fee: float = 100.0
    domestic_express_fee: float = 150.0
    international_standard_fee: float = 500.0
    international_express_fee: float = 600.0
    import_duty_country: str = "United States"
    import_duty_rate: float = 0.69

    @classmethod
    def from_env(cls) -> "PricingPolicy":
        defaults = cls()
        return cls(
            tax_rate=_env_float("STOREFRONT_TAX_RATE", defaults.tax_rate),
            domestic_country=os.getenv("STOREFRONT_DOMESTIC_COUNTRY", defaults.domestic_country),
            free_shipping_threshold=_env_float(
                "STOREFRONT_FREE_SHIPPING_THRESHOLD", defaults.free_shipping_threshold
            ),
            domestic_standard_fee=_env_float("STOREFRONT_DOMESTIC_STANDARD_FEE", defaults.domestic_standard_fee),
            domestic_express_fee=_env_float("STOREFRONT_DOMESTIC_EXPRESS_FEE", defaults.domestic_express_fee),
            international_standard_fee=_env_float(
                "STOREFRONT_INTERNATIONAL_STANDARD_FEE", defaults.international_standard_fee
            ),
            international_express_fee=_env_float(
                "STOREFRONT_INTERNATIONAL_EXPRESS_FEE", defaults.international_express_fee
            ),
            import_duty_country=os.getenv("STOREFRONT_IMPORT_DUTY_COUNTRY", defaults.import_duty_country),
            import_duty_rate=_env_float("STOREFRONT_IMPORT_DUTY_RATE", defaults.import_duty_rate),
        )


@dataclass(frozen=True)
class CheckoutSettings:
    """Toggles for the collaborators the checkout pipeline talks to."""

    email_enabled: bool = True
    email_from: str = "orders@storefront.example"
    support_email: str = "support@storefront.example"
    payment_timeout_seconds: float = 30.0
    currency: str = "INR"

    @classmethod
    def from_env(cls) -> "CheckoutSettings":
        defaults = cls()
        return cls(
            email_enabled=_env_bool("STOREFRONT_EMAIL_ENABLED", defaults.email_enabled),
            email_from=os.getenv("STOREFRONT_EMAIL_FROM", defaults.email_from),
            support_email=os.getenv("STOREFRONT_SUPPORT_EMAIL", defaults.support_email),
            payment_timeout_seconds=_env_float(
                "STOREFRONT_PAYMENT_TIMEOUT_SECONDS", defaults.payment_timeout_seconds
            ),
            currency=os.getenv("STOREFRONT_CURRENCY", defaults.currency),
        )
