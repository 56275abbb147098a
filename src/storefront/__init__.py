"""Storefront checkout: coupons, pricing, inventory gating and order placement."""
