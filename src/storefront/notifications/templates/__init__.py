"""Template registry — maps notification types to template classes."""

from storefront.notifications.templates.order_confirmation import OrderConfirmationTemplate
from storefront.notifications.templates.shipping_update import ShippingUpdateTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    OrderConfirmationTemplate.notification_type: OrderConfirmationTemplate,
    ShippingUpdateTemplate.notification_type: ShippingUpdateTemplate,
}


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls
