"""Checkout session — the step-by-step flow a shopper walks through.

State Machine:
    SUMMARY → SHIPPING → PAYMENT → PROCESSING → COMPLETED
                                  PROCESSING → FAILED → PAYMENT
    SUMMARY / SHIPPING / PAYMENT → ABANDONED

The shipping and payment steps are guarded by their detail records'
``validate()``. A failed run drops the shopper back on the payment step with
their shipping details kept, so they can retry without re-entering them.
"""

from enum import Enum

import structlog

from storefront.cart.reducers import CartStore
from storefront.checkout.details import PaymentDetails, ShippingDetails, Shopper
from storefront.checkout.errors import PersistenceError, ValidationError
from storefront.checkout.orchestrator import CheckoutOrchestrator, CheckoutResult

logger = structlog.get_logger(__name__)


class CheckoutStep(Enum):
    SUMMARY = "Summary"
    SHIPPING = "Shipping"
    PAYMENT = "Payment"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"
    ABANDONED = "Abandoned"


_PREVIOUS_STEP = {
    CheckoutStep.SHIPPING: CheckoutStep.SUMMARY,
    CheckoutStep.PAYMENT: CheckoutStep.SHIPPING,
}

_OPEN_STEPS = frozenset({CheckoutStep.SUMMARY, CheckoutStep.SHIPPING, CheckoutStep.PAYMENT})


class CheckoutSession:
    def __init__(
        self,
        shopper: Shopper,
        cart_store: CartStore,
        orchestrator: CheckoutOrchestrator | None = None,
        shipping_method: str = "standard",
    ) -> None:
        self.shopper = shopper
        self.cart_store = cart_store
        self.orchestrator = orchestrator or CheckoutOrchestrator(dispatch=cart_store.dispatch)
        self.shipping_method = shipping_method
        self.step = CheckoutStep.SUMMARY
        self.history: list[CheckoutStep] = [self.step]
        self.shipping: ShippingDetails | None = None
        self.payment: PaymentDetails | None = None
        self.last_result: CheckoutResult | None = None

    def _move(self, target: CheckoutStep) -> None:
        logger.debug("Checkout step changed", user_id=self.shopper.id, source=self.step.value, target=target.value)
        self.step = target
        self.history.append(target)

    def _expect(self, *steps: CheckoutStep) -> None:
        if self.step not in steps:
            raise ValidationError(
                f"Cannot do that while checkout is at {self.step.value}",
                code="INVALID_CHECKOUT_STEP",
            )

    @property
    def is_open(self) -> bool:
        return self.step in _OPEN_STEPS

    def proceed_to_shipping(self) -> None:
        self._expect(CheckoutStep.SUMMARY)
        if self.cart_store.state.is_empty:
            raise ValidationError("Your cart is empty")
        self._move(CheckoutStep.SHIPPING)

    def submit_shipping(self, details: ShippingDetails, shipping_method: str | None = None) -> None:
        """Record shipping details and move to payment. Invalid details keep the session on shipping."""
        self._expect(CheckoutStep.SHIPPING)
        details.validate()
        self.shipping = details
        if shipping_method:
            self.shipping_method = shipping_method
        self._move(CheckoutStep.PAYMENT)

    def submit_payment(self, details: PaymentDetails, submission_token: str | None = None) -> CheckoutResult:
        """Validate payment details and run the checkout pipeline."""
        self._expect(CheckoutStep.PAYMENT)
        details.validate()
        self.payment = details
        self._move(CheckoutStep.PROCESSING)

        try:
            result = self.orchestrator.checkout(
                cart=self.cart_store.state,
                shipping=self.shipping,
                payment=details,
                shopper=self.shopper,
                shipping_method=self.shipping_method,
                submission_token=submission_token,
            )
        except Exception as exc:
            logger.exception("Checkout pipeline raised", user_id=self.shopper.id)
            result = CheckoutResult(
                success=False,
                error=PersistenceError("Failed to process order", details={"error": str(exc)}),
            )
        self.last_result = result

        if result.success:
            self._move(CheckoutStep.COMPLETED)
        else:
            self._move(CheckoutStep.FAILED)
            self._move(CheckoutStep.PAYMENT)
        return result

    def back(self) -> None:
        previous = _PREVIOUS_STEP.get(self.step)
        if previous is None:
            raise ValidationError(f"Cannot go back from {self.step.value}", code="INVALID_CHECKOUT_STEP")
        self._move(previous)

    def abandon(self) -> None:
        """Leave checkout. The cart and all stored data stay exactly as they were."""
        self._expect(*_OPEN_STEPS)
        self._move(CheckoutStep.ABANDONED)
