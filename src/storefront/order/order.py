"""Order aggregate — the immutable record of a completed checkout.

An order is written once, by checkout, with every line priced as it was at
purchase time. After that only its fulfilment status moves forward, and each
move is appended to ``status_history``; amounts are never recalculated.

State Machine:
    PLACED → SHIPPED → DELIVERED
    PLACED → CANCELLED
"""

import random
import time
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from storefront.domain import storefront
from storefront.order.events import OrderCancelled, OrderDelivered, OrderPlaced, OrderShipped


class OrderStatus(Enum):
    PLACED = "Placed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(Enum):
    CARD = "Card"
    UPI = "UPI"


_VALID_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Orders that count as already purchased when a shopper checks out again
FULFILLED_STATUSES = frozenset({OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value})


def generate_order_id() -> str:
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999)}"


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment else None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, as captured at checkout."""

    name = String(required=True, max_length=255)
    phone = String(max_length=20)
    house_no = String(required=True, max_length=100)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.value_object(part_of="Order")
class ShippingInfo:
    method = String(required=True, max_length=50)
    cost = Float(default=0.0)
    estimated_delivery = String(max_length=50)


@storefront.value_object(part_of="Order")
class PaymentSummary:
    """Masked payment details. Full card numbers and CVVs are never stored."""

    method = String(required=True, choices=PaymentMethod)
    card_type = String(max_length=20)
    last_four = String(max_length=4)
    upi_id = String(max_length=255)


@storefront.value_object(part_of="Order")
class CouponSnapshot:
    code = String(required=True, max_length=100)
    discount_amount = Float(default=0.0)
    discount_type = String(max_length=20)
    discount_value = Float()


@storefront.value_object(part_of="Order")
class Tracking:
    code = String(max_length=255)
    carrier = String(max_length=100)
    url = String(max_length=1024)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A purchased product with the price it was charged at."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    image = String(max_length=1024)


@storefront.entity(part_of="Order")
class StatusChange:
    status = String(required=True, choices=OrderStatus)
    timestamp = DateTime(required=True)
    note = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    customer_email = String(max_length=255)
    customer_name = String(max_length=255)
    customer_phone = String(max_length=30)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    shipping = ValueObject(ShippingInfo)
    payment = ValueObject(PaymentSummary)
    coupon = ValueObject(CouponSnapshot)
    subtotal = Float(required=True, min_value=0.0)
    tax = Float(default=0.0)
    import_duty = Float(default=0.0)
    discount = Float(default=0.0)
    total_amount = Float(required=True, min_value=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PLACED.value)
    status_history = HasMany(StatusChange)
    tracking = ValueObject(Tracking)
    payment_id = String(max_length=255)
    submission_token = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer,
        items_data,
        shipping_address,
        shipping,
        payment,
        breakdown,
        carrier,
        payment_id=None,
        coupon=None,
        submission_token=None,
        order_id=None,
    ):
        """Create the order document for a completed checkout.

        Args:
            customer: Dict with id, email, name, phone.
            items_data: List of dicts with product_id, name, price, quantity, image.
            shipping_address: Dict matching ``ShippingAddress``.
            shipping: Dict with method, cost, estimated_delivery.
            payment: Dict with method and either card_type/last_four or upi_id.
            breakdown: Dict with subtotal, tax, import_duty, discount_amount, total.
            carrier: Carrier expected to handle the shipment.
            coupon: Optional dict with code, discount_amount, discount_type, discount_value.
        """
        now = datetime.now(UTC)

        order = cls(
            id=order_id or generate_order_id(),
            customer_id=str(customer["id"]),
            customer_email=customer.get("email"),
            customer_name=customer.get("name"),
            customer_phone=customer.get("phone"),
            shipping_address=ShippingAddress(**shipping_address),
            shipping=ShippingInfo(**shipping),
            payment=PaymentSummary(**payment),
            coupon=CouponSnapshot(**coupon) if coupon else None,
            subtotal=breakdown["subtotal"],
            tax=breakdown.get("tax", 0.0),
            import_duty=breakdown.get("import_duty", 0.0),
            discount=breakdown.get("discount_amount", 0.0),
            total_amount=breakdown["total"],
            status=OrderStatus.PLACED.value,
            tracking=Tracking(code=None, carrier=carrier, url=None),
            payment_id=payment_id,
            submission_token=submission_token,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))
        order.add_status_history(
            StatusChange(status=OrderStatus.PLACED.value, timestamp=now, note="Order placed successfully")
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(order.customer_id),
                item_count=len(order.items),
                subtotal=order.subtotal,
                tax=order.tax,
                shipping_cost=order.shipping.cost,
                import_duty=order.import_duty,
                discount=order.discount,
                total_amount=order.total_amount,
                coupon_code=order.coupon.code if order.coupon else None,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _transition(self, target_status, note):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

        now = datetime.now(UTC)
        self.status = target_status.value
        self.add_status_history(StatusChange(status=target_status.value, timestamp=now, note=note))
        self.updated_at = now
        return now

    def mark_shipped(self, carrier, tracking_code=None, tracking_url=None):
        now = self._transition(OrderStatus.SHIPPED, f"Order shipped via {carrier}")
        self.tracking = Tracking(code=tracking_code, carrier=carrier, url=tracking_url)

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                carrier=carrier,
                tracking_code=tracking_code,
                tracking_url=tracking_url,
                shipped_at=now,
            )
        )

    def mark_delivered(self):
        now = self._transition(OrderStatus.DELIVERED, "Order delivered")
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    def cancel(self, reason=None):
        now = self._transition(OrderStatus.CANCELLED, reason or "Order cancelled")
        self.raise_(OrderCancelled(order_id=str(self.id), reason=reason, cancelled_at=now))

    # -------------------------------------------------------------------
    # Document rendering
    # -------------------------------------------------------------------
    @property
    def product_ids(self) -> set[str]:
        return {str(item.product_id) for item in self.items}

    def to_document(self) -> dict:
        """The persisted order layout consumed by email, invoice and fulfilment tooling."""
        address = self.shipping_address
        if self.payment.method == PaymentMethod.CARD.value:
            payment_details = {"cardType": self.payment.card_type, "lastFour": self.payment.last_four}
        else:
            payment_details = {"upiId": self.payment.upi_id}

        history = sorted(self.status_history, key=lambda change: change.timestamp)

        document = {
            "orderId": str(self.id),
            "userId": str(self.customer_id),
            "userEmail": self.customer_email,
            "userName": self.customer_name,
            "userPhone": self.customer_phone,
            "items": [
                {
                    "productId": str(item.product_id),
                    "name": item.name,
                    "price": item.price,
                    "quantity": item.quantity,
                    "image": item.image,
                }
                for item in self.items
            ],
            "shipping": {
                "address": {
                    "name": address.name,
                    "houseNo": address.house_no,
                    "line1": address.line1,
                    "line2": address.line2,
                    "city": address.city,
                    "state": address.state,
                    "postalCode": address.postal_code,
                    "country": address.country,
                },
                "method": self.shipping.method,
                "cost": self.shipping.cost,
                "estimatedDelivery": self.shipping.estimated_delivery,
            },
            "payment": {"method": self.payment.method, "details": payment_details},
            "subtotal": self.subtotal,
            "tax": self.tax,
            "importDuty": self.import_duty,
            "discount": self.discount,
            "totalAmount": self.total_amount,
            "status": self.status,
            "statusHistory": [
                {"status": change.status, "timestamp": _iso(change.timestamp), "note": change.note}
                for change in history
            ],
            "tracking": {
                "code": self.tracking.code if self.tracking else None,
                "carrier": self.tracking.carrier if self.tracking else None,
                "url": self.tracking.url if self.tracking else None,
            },
            "paymentId": self.payment_id,
            "createdAt": _iso(self.created_at),
        }
        if self.coupon:
            document["coupon"] = {
                "code": self.coupon.code,
                "discountAmount": self.coupon.discount_amount,
                "discountType": self.coupon.discount_type,
                "discountValue": self.coupon.discount_value,
            }
        return document
