"""Order fulfilment — ship, deliver and cancel commands and handler.

Only the status, status history and tracking move; prices on a placed order
are final.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order


@storefront.command(part_of="Order")
class ShipOrder:
    """Record the hand-off to a carrier."""

    order_id = Identifier(required=True)
    carrier = String(max_length=100)
    tracking_code = String(max_length=255)
    tracking_url = String(max_length=1024)


@storefront.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    @handle(ShipOrder)
    def ship_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        # Fall back to the carrier assigned at placement
        carrier = command.carrier or (order.tracking.carrier if order.tracking else None)
        order.mark_shipped(
            carrier=carrier,
            tracking_code=command.tracking_code,
            tracking_url=command.tracking_url,
        )
        repo.add(order)

    @handle(DeliverOrder)
    def deliver_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered()
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(reason=command.reason)
        repo.add(order)
