"""Shipping update template — sent when the order is handed to the carrier."""


class ShippingUpdateTemplate:
    notification_type = "ShippingUpdate"

    @staticmethod
    def render(context: dict) -> dict:
        order = context["order"]
        tracking = order.get("tracking") or {}
        body = (
            f"Great news! Your order #{order['orderId']} has shipped.\n\n"
            f"Carrier: {tracking.get('carrier') or 'our courier partner'}\n"
            f"Tracking Code: {tracking.get('code') or 'N/A'}\n"
        )
        if tracking.get("url"):
            body += f"Track your package: {tracking['url']}\n"
        return {"subject": f"Your Order #{order['orderId']} Has Shipped", "body": body}
