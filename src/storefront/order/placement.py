"""Order placement — command and handler.

Checkout hands over a fully priced snapshot; the handler only turns it into an
``Order`` and persists it. Nothing is re-priced here.
"""

import json

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import Order, generate_order_id


def _loads(value):
    return json.loads(value) if isinstance(value, str) else value


def _unused_order_id(repo) -> str:
    # Two orders placed in the same millisecond can draw the same id
    while True:
        order_id = generate_order_id()
        try:
            repo.get(order_id)
        except ObjectNotFoundError:
            return order_id


@storefront.command(part_of="Order")
class PlaceOrder:
    order_id = Identifier()
    customer = Text(required=True)  # JSON: {id, email, name, phone}
    items = Text(required=True)  # JSON: list of item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    shipping = Text(required=True)  # JSON: {method, cost, estimated_delivery}
    payment = Text(required=True)  # JSON: masked payment summary
    coupon = Text()  # JSON: coupon snapshot
    subtotal = Float(required=True)
    tax = Float(default=0.0)
    import_duty = Float(default=0.0)
    discount_amount = Float(default=0.0)
    total = Float(required=True)
    carrier = String(max_length=100)
    payment_id = String(max_length=255)
    submission_token = String(max_length=255)


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)
        breakdown = {
            "subtotal": command.subtotal,
            "tax": command.tax or 0.0,
            "import_duty": command.import_duty or 0.0,
            "discount_amount": command.discount_amount or 0.0,
            "total": command.total,
        }

        order = Order.place(
            customer=_loads(command.customer),
            items_data=_loads(command.items),
            shipping_address=_loads(command.shipping_address),
            shipping=_loads(command.shipping),
            payment=_loads(command.payment),
            breakdown=breakdown,
            carrier=command.carrier,
            payment_id=command.payment_id,
            coupon=_loads(command.coupon) if command.coupon else None,
            submission_token=command.submission_token,
            order_id=command.order_id or _unused_order_id(repo),
        )
        repo.add(order)
        return str(order.id)
