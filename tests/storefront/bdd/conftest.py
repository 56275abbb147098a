"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from factories import add_product
from pytest_bdd import given, parsers
from storefront.cart.reducers import AddToCart, CartStore


@pytest.fixture()
def cart_store():
    return CartStore()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('"{product_id}" costs {price:g} with {stock:d} in stock'))
def product_in_catalogue(product_id, price, stock):
    add_product(product_id, price=price, stock=stock)


@given(parsers.cfparse('the cart holds {quantity:d} of "{product_id}"'))
def cart_holds(cart_store, quantity, product_id):
    cart_store.dispatch(AddToCart(product_id=product_id, quantity=quantity))
