"""Storefront API package."""

from storefront.api.routes import checkout_router, coupon_router, order_router, pricing_router

__all__ = ["coupon_router", "pricing_router", "checkout_router", "order_router"]
