"""Payment gateway port (abstract interface).

Checkout authorizes the order total through this contract before the order is
written. Adapters must give up after ``timeout`` seconds and report a failed
authorization rather than hang the checkout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthorizationResult:
    """Result of a payment authorization attempt."""

    success: bool
    payment_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def authorize(
        self,
        amount: float,
        currency: str,
        payment_method: dict,
        idempotency_key: str,
        timeout: float,
    ) -> AuthorizationResult:
        """Authorize ``amount`` against the masked ``payment_method`` summary."""
        ...
