"""Cart actions and the pure reducer that applies them.

Each action is a frozen record; ``reduce`` returns a new ``CartState`` and
never mutates its input. ``CartStore`` holds the current state for a session
and exposes ``dispatch`` so collaborators (checkout, API layer) can be handed
the dispatcher instead of the state itself.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from storefront.cart.state import AppliedCoupon, CartLine, CartState

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AddToCart:
    product_id: str
    quantity: int = 1


@dataclass(frozen=True)
class RemoveFromCart:
    product_id: str


@dataclass(frozen=True)
class UpdateQuantity:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ApplyCoupon:
    coupon: AppliedCoupon


@dataclass(frozen=True)
class RemoveCoupon:
    pass


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class RemovePurchased:
    product_ids: frozenset[str] = field(default_factory=frozenset)


def _add(state: CartState, action: AddToCart) -> CartState:
    if any(line.product_id == action.product_id for line in state.lines):
        lines = tuple(
            CartLine(line.product_id, line.quantity + action.quantity) if line.product_id == action.product_id else line
            for line in state.lines
        )
    else:
        lines = (*state.lines, CartLine(action.product_id, action.quantity))
    return CartState(lines=lines, coupon=state.coupon)


def _update(state: CartState, action: UpdateQuantity) -> CartState:
    if action.quantity <= 0:
        return _without(state, {action.product_id})
    lines = tuple(
        CartLine(line.product_id, action.quantity) if line.product_id == action.product_id else line
        for line in state.lines
    )
    return CartState(lines=lines, coupon=state.coupon)


def _without(state: CartState, product_ids) -> CartState:
    lines = tuple(line for line in state.lines if line.product_id not in product_ids)
    return CartState(lines=lines, coupon=state.coupon)


def reduce(state: CartState, action) -> CartState:
    """Apply one action to the cart and return the resulting state."""
    match action:
        case AddToCart():
            return _add(state, action)
        case RemoveFromCart(product_id=product_id):
            return _without(state, {product_id})
        case UpdateQuantity():
            return _update(state, action)
        case ApplyCoupon(coupon=coupon):
            return CartState(lines=state.lines, coupon=coupon)
        case RemoveCoupon():
            return CartState(lines=state.lines, coupon=None)
        case ClearCart():
            return CartState()
        case RemovePurchased(product_ids=product_ids):
            return _without(state, set(product_ids))
    raise TypeError(f"Unknown cart action: {action!r}")


class CartStore:
    """Holds one session's cart and applies dispatched actions to it."""

    def __init__(self, initial: CartState | None = None) -> None:
        self._state = initial or CartState()
        self._listeners: list[Callable[[CartState], None]] = []

    @property
    def state(self) -> CartState:
        return self._state

    def subscribe(self, listener: Callable[[CartState], None]) -> None:
        self._listeners.append(listener)

    def dispatch(self, action) -> CartState:
        self._state = reduce(self._state, action)
        logger.debug("Cart action applied", action=type(action).__name__, lines=len(self._state.lines))
        for listener in self._listeners:
            listener(self._state)
        return self._state
