"""Storefront bounded context — Cart, Coupons, Pricing and Checkout.

Turns a shopper's cart, an optional coupon and a shipping destination into a
priced, persisted order. Products, coupons and orders live in the domain's
repositories; payment and email are reached through ports.
"""

from protean.domain import Domain

storefront = Domain(name="storefront")
