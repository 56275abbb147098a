"""Email channel port — the one operation order emails need from a provider."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str
    sender: str | None = None
    html_body: str | None = None
    category: str | None = None  # notification type, e.g. "OrderConfirmation"


@dataclass(frozen=True)
class DeliveryReceipt:
    accepted: bool
    message_id: str | None = None
    error: str | None = None


class EmailPort(ABC):
    @abstractmethod
    def deliver(self, message: EmailMessage) -> DeliveryReceipt:
        """Hand ``message`` to the provider.

        Rejections are reported on the receipt; adapters raise only for
        programming errors.
        """
