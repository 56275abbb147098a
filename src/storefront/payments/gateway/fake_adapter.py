"""Configurable fake payment gateway for development and testing.

No external calls are made. Authorizations succeed by default; tests flip
``configure(should_succeed=False)`` to exercise the declined path. Repeating an
idempotency key with the same amount and payment method returns the first
result; reusing it for a different request is declined.
"""

from uuid import uuid4

from storefront.payments.gateway.port import AuthorizationResult, PaymentGateway

IDEMPOTENCY_MISMATCH = "Idempotency key was already used for a different payment"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment declined"
        self.calls: list[dict] = []
        self._authorizations: dict[str, tuple[tuple, AuthorizationResult]] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Payment declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def authorize(
        self,
        amount: float,
        currency: str,
        payment_method: dict,
        idempotency_key: str,
        timeout: float,
    ) -> AuthorizationResult:
        self.calls.append(
            {
                "method": "authorize",
                "amount": amount,
                "currency": currency,
                "payment_method": payment_method,
                "idempotency_key": idempotency_key,
                "timeout": timeout,
            }
        )

        request = (amount, currency, tuple(sorted(payment_method.items())))
        if idempotency_key in self._authorizations:
            original_request, result = self._authorizations[idempotency_key]
            if original_request != request:
                return AuthorizationResult(
                    success=False,
                    gateway_status="idempotency_mismatch",
                    failure_reason=IDEMPOTENCY_MISMATCH,
                )
            return result

        if self.should_succeed:
            result = AuthorizationResult(
                success=True,
                payment_id=f"pay_{uuid4().hex[:14]}",
                gateway_status="authorized",
            )
            self._authorizations[idempotency_key] = (request, result)
            return result
        return AuthorizationResult(
            success=False,
            gateway_status="declined",
            failure_reason=self.failure_reason,
        )
