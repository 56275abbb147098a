"""Application tests for the checkout pipeline via CheckoutOrchestrator."""

from unittest.mock import patch

import pytest
from factories import add_coupon, add_product, card_payment, cart, shipping_details, shopper
from protean import current_domain
from storefront.cart.reducers import CartStore
from storefront.cart.state import price_lines, subtotal_of
from storefront.catalogue.product import Product
from storefront.checkout.errors import (
    DuplicatePurchaseError,
    InventoryError,
    PaymentError,
    PersistenceError,
    ValidationError,
)
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.coupon.coupon import Coupon
from storefront.coupon.validation import CouponValidator
from storefront.notifications.channel import get_email_channel
from storefront.order.fulfillment import ShipOrder
from storefront.order.order import Order
from storefront.payments.gateway import get_gateway
from storefront.settings import CheckoutSettings


@pytest.fixture()
def products():
    add_product("prod-a", price=100.0, stock=10, name="Notebook")
    add_product("prod-b", price=50.0, stock=10, name="Pen")
    add_product("prod-c", price=600.0, stock=10, name="Fountain Pen")


@pytest.fixture()
def store():
    return CartStore(cart(("prod-a", 2), ("prod-b", 1)))


def _checkout(state, store=None, shipping=None, **kwargs):
    orchestrator = CheckoutOrchestrator(dispatch=store.dispatch if store else None, **kwargs)
    return orchestrator.checkout(
        cart=state,
        shipping=shipping or shipping_details(),
        payment=card_payment(),
        shopper=shopper(),
    )


def _applied(code, state):
    products = current_domain.repository_for(Product).find_many(state.product_ids)
    priced = price_lines(state.lines, products)
    return CouponValidator().validate(code, priced, subtotal_of(priced)).to_applied_coupon()


def _orders():
    return current_domain.repository_for(Order).for_customer("user-001")


class TestSuccessfulCheckout:
    def test_order_is_persisted(self, products, store):
        result = _checkout(store.state, store)

        assert result.success is True
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.subtotal == 250.0
        assert order.tax == 45.0
        assert order.shipping.cost == 100.0
        assert order.total_amount == 395.0
        assert order.payment_id == result.payment_id
        assert order.status == "Placed"

    def test_payment_is_authorized_for_total(self, products, store):
        result = _checkout(store.state, store)
        call = get_gateway().calls[-1]
        assert call["amount"] == result.breakdown.total
        assert call["currency"] == "INR"
        assert call["payment_method"] == {"method": "Card", "card_type": "Visa", "last_four": "1111"}

    def test_cart_is_cleared(self, products, store):
        _checkout(store.state, store)
        assert store.state.is_empty

    def test_confirmation_email_sent(self, products, store):
        result = _checkout(store.state, store)
        assert result.email_sent is True
        assert result.message == "Order confirmed! Check your email for confirmation."
        email = get_email_channel().outbox[-1]
        assert email.to == "user-001@example.com"
        assert result.order_id in email.subject

    def test_document_masks_payment(self, products, store):
        result = _checkout(store.state, store)
        document = current_domain.repository_for(Order).get(result.order_id).to_document()
        assert document["payment"]["details"] == {"cardType": "Visa", "lastFour": "1111"}
        assert document["shipping"]["method"] == "Standard Shipping"
        assert document["tracking"]["carrier"] == "IndiaPost"

    def test_international_order_carrier_and_duty(self, products, store):
        result = _checkout(store.state, store, shipping=shipping_details(country="United States"))
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.import_duty == 172.5
        assert order.tracking.carrier == "DHL"


class TestCouponAtCommit:
    def test_coupon_usage_recorded_after_order(self, products, store):
        coupon = add_coupon(code="SAVE10")
        state = cart(("prod-a", 2), ("prod-b", 1), coupon=_applied("SAVE10", store.state))

        result = _checkout(state, store)

        assert result.success is True
        assert result.warnings == ()
        assert current_domain.repository_for(Coupon).get(coupon.id).used_count == 1
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.discount == 25.0
        assert order.coupon.code == "SAVE10"

    def test_coupon_deactivated_before_commit_aborts(self, products, store):
        coupon = add_coupon(code="SAVE10")
        state = cart(("prod-a", 2), coupon=_applied("SAVE10", store.state))
        coupon.deactivate()
        current_domain.repository_for(Coupon).add(coupon)

        result = _checkout(state, store)

        assert result.success is False
        assert isinstance(result.error, ValidationError)
        assert result.error.code == "COUPON_REJECTED"
        assert _orders() == []

    def test_usage_failure_is_non_fatal(self, products, store):
        add_coupon(code="SAVE10")
        state = cart(("prod-a", 2), coupon=_applied("SAVE10", store.state))

        with patch("storefront.checkout.orchestrator.record_coupon_usage", return_value=False):
            result = _checkout(state, store)

        assert result.success is True
        assert [warning.code for warning in result.warnings] == ["COUPON_USAGE_NOT_RECORDED"]
        assert store.state.is_empty

    def test_discount_recomputed_after_clamp(self, store):
        add_product("prod-a", price=100.0, stock=1)
        add_product("prod-b", price=50.0, stock=10)
        add_coupon(code="SAVE10")
        state = cart(("prod-a", 2), ("prod-b", 1), coupon=_applied("SAVE10", store.state))

        result = _checkout(state, store)

        assert result.success is True
        assert result.breakdown.subtotal == 150.0
        assert result.breakdown.discount_amount == 15.0


class TestDuplicatePurchases:
    def _fulfil(self, order_id):
        current_domain.process(ShipOrder(order_id=order_id, tracking_code="EE1IN"), asynchronous=False)

    def test_already_shipped_items_are_dropped(self, products, store):
        first = _checkout(cart(("prod-a", 1)))
        self._fulfil(first.order_id)

        result = _checkout(cart(("prod-a", 1), ("prod-b", 1)))

        assert result.success is True
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.product_ids == {"prod-b"}
        assert "1 previously purchased item(s) were removed from your cart" in result.notices

    def test_all_items_already_purchased(self, products, store):
        first = _checkout(cart(("prod-a", 1)))
        self._fulfil(first.order_id)

        result = _checkout(cart(("prod-a", 1)), store)

        assert result.success is False
        assert isinstance(result.error, DuplicatePurchaseError)
        assert result.error.message == "All items in your cart have already been purchased"
        assert not store.state.is_empty

    def test_placed_orders_do_not_count(self, products):
        _checkout(cart(("prod-a", 1)))
        assert _checkout(cart(("prod-a", 1))).success is True


class TestStockGate:
    def test_short_line_is_clamped_and_checkout_proceeds(self, store):
        add_product("prod-a", price=100.0, stock=3)

        result = _checkout(cart(("prod-a", 5)), store)

        assert result.success is True
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.items[0].quantity == 3
        assert order.subtotal == 300.0
        assert any("only 3 available" in notice for notice in result.notices)

    def test_out_of_stock_line_is_dropped(self, store):
        add_product("prod-a", price=100.0, stock=0)
        add_product("prod-b", price=50.0, stock=5)

        result = _checkout(cart(("prod-a", 1), ("prod-b", 1)), store)

        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.product_ids == {"prod-b"}

    def test_everything_out_of_stock_aborts(self, store):
        add_product("prod-a", price=100.0, stock=0)
        original = cart(("prod-a", 1))
        store = CartStore(original)

        result = _checkout(original, store)

        assert result.success is False
        assert isinstance(result.error, InventoryError)
        assert store.state == original
        assert get_gateway().calls == []


class TestFatalFailures:
    def test_declined_payment(self, products, store):
        get_gateway().configure(should_succeed=False, failure_reason="Insufficient funds")
        before = store.state

        result = _checkout(store.state, store)

        assert result.success is False
        assert isinstance(result.error, PaymentError)
        assert result.error.message == "Insufficient funds"
        assert store.state == before
        assert _orders() == []

    def test_persistence_failure(self, products, store):
        with patch.object(Order, "place", side_effect=RuntimeError("write refused")):
            result = _checkout(store.state, store)

        assert result.success is False
        assert isinstance(result.error, PersistenceError)
        assert result.error.details["payment_id"] is not None
        assert not store.state.is_empty

    def test_invalid_shipping_details(self, products, store):
        orchestrator = CheckoutOrchestrator(dispatch=store.dispatch)
        result = orchestrator.checkout(
            cart=store.state,
            shipping=shipping_details(phone="12"),
            payment=card_payment(),
            shopper=shopper(),
        )
        assert isinstance(result.error, ValidationError)
        assert "phone" in result.error.details

    def test_unknown_shipping_method(self, products, store):
        result = CheckoutOrchestrator().checkout(
            cart=store.state,
            shipping=shipping_details(),
            payment=card_payment(),
            shopper=shopper(),
            shipping_method="teleport",
        )
        assert isinstance(result.error, ValidationError)

    def test_empty_cart(self):
        result = _checkout(cart())
        assert result.success is False
        assert result.error.message == "Your cart is empty"


class TestEmailFailures:
    def test_email_failure_is_non_fatal(self, products, store):
        get_email_channel().configure(should_succeed=False)

        result = _checkout(store.state, store)

        assert result.success is True
        assert result.email_sent is False
        assert result.message == "Order confirmed! Email may be delayed."
        assert [warning.code for warning in result.warnings] == ["EMAIL_NOT_SENT"]
        assert store.state.is_empty

    def test_email_disabled(self, products, store):
        result = _checkout(store.state, store, settings=CheckoutSettings(email_enabled=False))
        assert result.success is True
        assert result.email_sent is False
        assert result.warnings == ()
        assert get_email_channel().outbox == []


class TestIdempotentSubmission:
    def test_same_token_returns_same_order(self, products):
        orchestrator = CheckoutOrchestrator()
        kwargs = {
            "shipping": shipping_details(),
            "payment": card_payment(),
            "shopper": shopper(),
            "submission_token": "submit-1",
        }

        first = orchestrator.checkout(cart=cart(("prod-a", 1)), **kwargs)
        second = orchestrator.checkout(cart=cart(("prod-a", 1)), **kwargs)

        assert second.success is True
        assert second.order_id == first.order_id
        assert second.payment_id == first.payment_id
        assert len(_orders()) == 1
        assert len(get_gateway().calls) == 1

    def test_different_tokens_place_two_orders(self, products):
        orchestrator = CheckoutOrchestrator()
        for token in ("submit-1", "submit-2"):
            orchestrator.checkout(
                cart=cart(("prod-a", 1)),
                shipping=shipping_details(),
                payment=card_payment(),
                shopper=shopper(),
                submission_token=token,
            )
        assert len(_orders()) == 2

    def test_token_reused_by_another_shopper_is_charged_separately(self, products):
        orchestrator = CheckoutOrchestrator()
        first = orchestrator.checkout(
            cart=cart(("prod-a", 1)),
            shipping=shipping_details(),
            payment=card_payment(),
            shopper=shopper("user-a"),
            submission_token="1",
        )
        second = orchestrator.checkout(
            cart=cart(("prod-c", 1)),
            shipping=shipping_details(),
            payment=card_payment(),
            shopper=shopper("user-b"),
            submission_token="1",
        )

        assert first.success is True
        assert second.success is True
        assert first.payment_id != second.payment_id
        keys = [call["idempotency_key"] for call in get_gateway().calls]
        assert keys == ["user-a:1", "user-b:1"]

    def test_retry_after_persistence_failure_reuses_authorization(self, products):
        orchestrator = CheckoutOrchestrator()
        kwargs = {
            "shipping": shipping_details(),
            "payment": card_payment(),
            "shopper": shopper(),
            "submission_token": "submit-1",
        }
        with patch.object(Order, "place", side_effect=RuntimeError("write refused")):
            failed = orchestrator.checkout(cart=cart(("prod-a", 1)), **kwargs)

        retried = orchestrator.checkout(cart=cart(("prod-a", 1)), **kwargs)

        assert retried.success is True
        assert retried.payment_id == failed.error.details["payment_id"]

    def test_retry_with_changed_cart_is_not_given_old_authorization(self, products):
        orchestrator = CheckoutOrchestrator()
        kwargs = {
            "shipping": shipping_details(),
            "payment": card_payment(),
            "shopper": shopper(),
            "submission_token": "submit-1",
        }
        with patch.object(Order, "place", side_effect=RuntimeError("write refused")):
            orchestrator.checkout(cart=cart(("prod-a", 1)), **kwargs)

        retried = orchestrator.checkout(cart=cart(("prod-c", 1)), **kwargs)

        assert retried.success is False
        assert isinstance(retried.error, PaymentError)
        assert _orders() == []

    def test_submission_lookup_failure_is_fatal(self, products, store):
        with patch(
            "storefront.order.repository.OrderRepository.find_by_submission_token",
            side_effect=RuntimeError("store down"),
        ):
            result = CheckoutOrchestrator(dispatch=store.dispatch).checkout(
                cart=store.state,
                shipping=shipping_details(),
                payment=card_payment(),
                shopper=shopper(),
                submission_token="submit-1",
            )

        assert result.success is False
        assert isinstance(result.error, PersistenceError)
        assert get_gateway().calls == []
        assert not store.state.is_empty


class TestCartClearing:
    def test_clear_failure_is_a_warning(self, products, store):
        def dispatch(action):
            raise RuntimeError("listener failed")

        result = CheckoutOrchestrator(dispatch=dispatch).checkout(
            cart=store.state,
            shipping=shipping_details(),
            payment=card_payment(),
            shopper=shopper(),
        )

        assert result.success is True
        assert [warning.code for warning in result.warnings] == ["CART_NOT_CLEARED"]
        assert len(_orders()) == 1
