"""In-memory email adapter used by tests and local runs."""

from uuid import uuid4

from storefront.notifications.channel.email_port import DeliveryReceipt, EmailMessage, EmailPort


class FakeEmailAdapter(EmailPort):
    """Keeps every accepted message in ``outbox``; can be told to reject."""

    def __init__(self):
        self.outbox: list[EmailMessage] = []
        self.rejection: str | None = None

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        self.rejection = None if should_succeed else failure_reason

    def deliver(self, message: EmailMessage) -> DeliveryReceipt:
        if self.rejection is not None:
            return DeliveryReceipt(accepted=False, error=self.rejection)

        self.outbox.append(message)
        return DeliveryReceipt(accepted=True, message_id=f"email-{uuid4().hex[:12]}")

    def last_message_to(self, recipient: str) -> EmailMessage | None:
        for message in reversed(self.outbox):
            if message.to == recipient:
                return message
        return None
