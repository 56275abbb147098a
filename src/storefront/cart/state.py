"""Immutable shopper cart state.

The cart lives in the shopper's session, not in the repositories. It is a
frozen value replaced wholesale by the reducers in ``storefront.cart.reducers``;
checkout receives it as an argument and never reaches for ambient state.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CartLine:
    product_id: str
    quantity: int

    def __post_init__(self):
        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool):
            raise ValueError(f"Quantity must be a whole number, got {self.quantity!r}")
        if self.quantity < 1:
            raise ValueError(f"Quantity must be at least 1, got {self.quantity}")


@dataclass(frozen=True)
class AppliedCoupon:
    """A coupon accepted for this session, with the discount it was granted."""

    code: str
    coupon_id: str
    discount_amount: float
    discount_type: str
    discount_value: float
    is_product_specific: bool = False
    applied_to_cart_items: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class CartState:
    lines: tuple[CartLine, ...] = ()
    coupon: AppliedCoupon | None = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def product_ids(self) -> list[str]:
        return [line.product_id for line in self.lines]

    def quantity_of(self, product_id: str) -> int:
        return next((line.quantity for line in self.lines if line.product_id == product_id), 0)


@dataclass(frozen=True)
class PricedLine:
    """A cart line joined with the product snapshot it will be charged at."""

    product_id: str
    name: str
    price: float
    quantity: int
    image: str | None = None

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


def price_lines(lines, products) -> list[PricedLine]:
    """Join cart lines with their products. Lines whose product is unknown are skipped."""
    priced = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            continue
        priced.append(
            PricedLine(
                product_id=line.product_id,
                name=product.name,
                price=float(product.price),
                quantity=line.quantity,
                image=product.image,
            )
        )
    return priced


def subtotal_of(priced_lines) -> float:
    return round(sum(line.line_total for line in priced_lines), 2)
