"""Repository for the Order aggregate."""

from storefront.domain import storefront
from storefront.order.order import FULFILLED_STATUSES, Order

_PAGE_SIZE = 100


@storefront.repository(part_of=Order)
class OrderRepository:
    def _all_matching(self, **filters) -> list[Order]:
        """Every order matching ``filters``, read page by page past the default query limit."""
        orders: list[Order] = []
        while True:
            page = self._dao.query.filter(**filters).offset(len(orders)).limit(_PAGE_SIZE).all()
            orders.extend(page.items)
            if not page.items or len(orders) >= page.total:
                return orders

    def for_customer(self, customer_id) -> list[Order]:
        return self._all_matching(customer_id=str(customer_id))

    def fulfilled_for(self, customer_id) -> list[Order]:
        """Orders of ``customer_id`` that have shipped or been delivered."""
        return self._all_matching(customer_id=str(customer_id), status__in=sorted(FULFILLED_STATUSES))

    def purchased_product_ids(self, customer_id) -> set[str]:
        purchased = set()
        for order in self.fulfilled_for(customer_id):
            purchased |= order.product_ids
        return purchased

    def find_by_submission_token(self, customer_id, token) -> Order | None:
        if not token:
            return None
        matches = (
            self._dao.query.filter(customer_id=str(customer_id), submission_token=token).limit(1).all().items
        )
        return matches[0] if matches else None
