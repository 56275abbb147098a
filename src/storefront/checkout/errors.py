"""Checkout error taxonomy.

Fatal errors stop the pipeline before anything is committed and leave the cart
untouched. Non-fatal errors happen after the order is persisted; they are
logged and reported as warnings on an otherwise successful checkout.
"""


class CheckoutError(Exception):
    fatal = True
    default_code = "CHECKOUT_FAILED"

    def __init__(self, message: str, code: str | None = None, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "fatal": self.fatal, "details": self.details}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(CheckoutError):
    """Shopper input or coupon eligibility rejected."""

    default_code = "VALIDATION_FAILED"


class InventoryError(CheckoutError):
    default_code = "OUT_OF_STOCK"


class DuplicatePurchaseError(CheckoutError):
    default_code = "ALREADY_PURCHASED"


class PaymentError(CheckoutError):
    default_code = "PAYMENT_DECLINED"


class PersistenceError(CheckoutError):
    default_code = "ORDER_NOT_SAVED"


class NonFatalError(CheckoutError):
    fatal = False
    default_code = "POST_ORDER_STEP_FAILED"
