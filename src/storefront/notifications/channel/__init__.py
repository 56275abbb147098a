"""Email adapter registry.

Uses the fake adapter by default; the EMAIL_ADAPTER environment variable
selects another one in production.
"""

import os

from storefront.notifications.channel.email_port import EmailPort

_email_instance: EmailPort | None = None


def get_email_channel() -> EmailPort:
    """Return the configured email adapter (singleton)."""
    global _email_instance
    if _email_instance is None:
        adapter = os.environ.get("EMAIL_ADAPTER", "fake")
        if adapter == "fake":
            from storefront.notifications.channel.fake_email import FakeEmailAdapter

            _email_instance = FakeEmailAdapter()
        else:
            raise ValueError(f"Unknown email adapter: {adapter}")
    return _email_instance


def set_email_channel(channel: EmailPort) -> None:
    global _email_instance
    _email_instance = channel


def reset_email_channel() -> None:
    """Reset the email singleton (useful for testing)."""
    global _email_instance
    _email_instance = None
