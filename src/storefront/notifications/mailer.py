"""Transactional emails for placed and shipped orders.

Sending is best effort: a disabled email setting, a missing address or an
adapter failure all come back as ``{"success": False, "error": ...}`` instead
of raising.
"""

import structlog

from storefront.notifications.channel import get_email_channel
from storefront.notifications.channel.email_port import EmailMessage
from storefront.notifications.templates import get_template
from storefront.settings import CheckoutSettings

logger = structlog.get_logger(__name__)


class OrderMailer:
    def __init__(self, channel=None, settings: CheckoutSettings | None = None) -> None:
        self._channel = channel
        self.settings = settings or CheckoutSettings.from_env()

    @property
    def channel(self):
        return self._channel or get_email_channel()

    def send_order_confirmation(self, order_document: dict) -> dict:
        return self._send("OrderConfirmation", order_document)

    def send_shipping_update(self, order_document: dict) -> dict:
        return self._send("ShippingUpdate", order_document)

    def _send(self, notification_type: str, order_document: dict) -> dict:
        order_id = order_document.get("orderId")
        recipient = order_document.get("userEmail")
        log = logger.bind(notification_type=notification_type, order_id=order_id)

        if not recipient:
            log.warning("Email skipped: missing recipient")
            return {"success": False, "error": "Missing user email"}
        if not self.settings.email_enabled:
            log.info("Email skipped: email is disabled")
            return {"success": False, "error": "Email functionality is disabled"}

        try:
            content = get_template(notification_type).render(
                {"order": order_document, "support_email": self.settings.support_email}
            )
            receipt = self.channel.deliver(
                EmailMessage(
                    to=recipient,
                    subject=content["subject"],
                    body=content["body"],
                    sender=self.settings.email_from,
                    category=notification_type,
                )
            )
        except Exception as exc:
            log.exception("Email could not be built or handed over")
            return {"success": False, "error": str(exc)}

        if not receipt.accepted:
            log.warning("Email delivery failed", error=receipt.error)
            return {"success": False, "error": receipt.error or "Email delivery failed"}

        log.info("Email sent", message_id=receipt.message_id)
        return {"success": True, "message_id": receipt.message_id}
