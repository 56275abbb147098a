"""Commit-time stock gate for cart lines.

Stock is re-read right before an order is persisted. A line asking for more
than is available is clamped down to what is left, or dropped when nothing is.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from storefront.cart.state import CartLine

logger = structlog.get_logger(__name__)


class AdjustmentKind(Enum):
    CLAMPED = "Clamped"
    REMOVED = "Removed"


@dataclass(frozen=True)
class Shortfall:
    product_id: str
    requested: int
    available: int


@dataclass(frozen=True)
class StockAdjustment:
    product_id: str
    kind: AdjustmentKind
    requested: int
    available: int

    @property
    def message(self) -> str:
        if self.kind == AdjustmentKind.REMOVED:
            return f"{self.product_id} is out of stock and was removed from your cart"
        return f"{self.product_id}: requested {self.requested}, only {self.available} available; quantity reduced"


class InventoryGuard:
    def check(self, lines, live_stock: dict[str, int]) -> list[Shortfall]:
        """Lines whose requested quantity exceeds the live stock.

        Products missing from ``live_stock`` count as having nothing available.
        """
        shortfalls = []
        for line in lines:
            available = max(0, int(live_stock.get(line.product_id, 0)))
            if available < line.quantity:
                shortfalls.append(Shortfall(line.product_id, line.quantity, available))
        return shortfalls

    def apply(self, lines, shortfalls) -> tuple[tuple[CartLine, ...], list[StockAdjustment]]:
        """Clamp or drop short lines. Returns the adjusted lines and what changed."""
        by_product = {shortfall.product_id: shortfall for shortfall in shortfalls}
        adjusted = []
        adjustments = []

        for line in lines:
            shortfall = by_product.get(line.product_id)
            if shortfall is None:
                adjusted.append(line)
            elif shortfall.available > 0:
                adjusted.append(CartLine(line.product_id, shortfall.available))
                adjustments.append(
                    StockAdjustment(line.product_id, AdjustmentKind.CLAMPED, shortfall.requested, shortfall.available)
                )
            else:
                adjustments.append(StockAdjustment(line.product_id, AdjustmentKind.REMOVED, shortfall.requested, 0))

        if adjustments:
            logger.info(
                "Cart adjusted to live stock",
                clamped=[a.product_id for a in adjustments if a.kind == AdjustmentKind.CLAMPED],
                removed=[a.product_id for a in adjustments if a.kind == AdjustmentKind.REMOVED],
            )
        return tuple(adjusted), adjustments
