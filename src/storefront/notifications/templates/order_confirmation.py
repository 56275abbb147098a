"""Order confirmation template — sent once the order is persisted."""

from storefront.utils.formatting import format_currency


class OrderConfirmationTemplate:
    notification_type = "OrderConfirmation"

    @staticmethod
    def render(context: dict) -> dict:
        order = context["order"]
        customer_name = order.get("userName") or "there"
        shipping = order.get("shipping", {})

        lines = [
            f"- {item['name']} x {item['quantity']}: {format_currency(item['price'] * item['quantity'])}"
            for item in order.get("items", [])
        ]
        summary = [
            f"Subtotal: {format_currency(order.get('subtotal', 0))}",
            f"Tax (GST): {format_currency(order.get('tax', 0))}",
            f"Shipping: {format_currency(shipping.get('cost', 0))}",
        ]
        if order.get("importDuty"):
            summary.append(f"Import Duty: {format_currency(order['importDuty'])}")
        if order.get("discount"):
            coupon = order.get("coupon") or {}
            label = f" ({coupon['code']})" if coupon.get("code") else ""
            summary.append(f"Discount{label}: -{format_currency(order['discount'])}")
        summary.append(f"Total: {format_currency(order.get('totalAmount', 0))}")

        return {
            "subject": f"Order Confirmation #{order['orderId']}",
            "body": (
                f"Hi {customer_name},\n\n"
                f"Thank you for your order #{order['orderId']}.\n\n"
                + "\n".join(lines)
                + "\n\n"
                + "\n".join(summary)
                + "\n\n"
                f"Shipping: {shipping.get('method', '')}, estimated delivery in "
                f"{shipping.get('estimatedDelivery', 'a few days')}.\n\n"
                f"Questions? Write to {context.get('support_email', 'us')}."
            ),
        }
