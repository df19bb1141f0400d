import pytest

from storefront.constants import ORDER_CANCELLED, ORDER_CONFIRMED, ORDER_PENDING
from storefront.errors import (
    ConflictError,
    EmptyCartError,
    InsufficientBalanceError,
    NotFoundError,
    PaymentError,
    PersistenceError,
    ValidationError,
)
from storefront.models import CartLine
from storefront.services.checkout import checkout
from storefront.services.orders import confirm_purchase, get_cart, start_checkout, update_cart
from storefront.services.payments import MockSessionCreator

pytestmark = pytest.mark.integration


def test_update_cart_persists(any_store):
    cart = update_cart(any_store, "u1", "p3", 1)
    assert cart == [CartLine("p1", 2), CartLine("p2", 1), CartLine("p3", 1)]
    assert get_cart(any_store, "u1") == cart


def test_update_cart_remove_line(any_store):
    update_cart(any_store, "u1", "p1", 0)
    assert get_cart(any_store, "u1") == [CartLine("p2", 1)]


def test_rejected_update_leaves_stored_cart(any_store):
    before = get_cart(any_store, "u1")
    with pytest.raises(ValidationError):
        update_cart(any_store, "u1", "p1", -1)
    with pytest.raises(NotFoundError):
        update_cart(any_store, "u1", "missing", 1)
    assert get_cart(any_store, "u1") == before


def test_every_save_bumps_version(any_store):
    v0 = any_store.load("u1").version
    update_cart(any_store, "u1", "p3", 1)
    update_cart(any_store, "u1", "p3", 2)
    assert any_store.load("u1").version == v0 + 2


def test_matching_version_is_accepted(any_store):
    v = any_store.load("u1").version
    update_cart(any_store, "u1", "p3", 1, version=v)
    assert any_store.load("u1").version == v + 1


def test_stale_version_is_rejected(any_store):
    v = any_store.load("u1").version
    update_cart(any_store, "u1", "p3", 1)
    with pytest.raises(ConflictError):
        update_cart(any_store, "u1", "p1", 0, version=v)
    assert get_cart(any_store, "u1") == [CartLine("p1", 2), CartLine("p2", 1), CartLine("p3", 1)]


def test_without_version_last_writer_wins(any_store):
    first = any_store.load("u1")
    second = any_store.load("u1")
    first.cart = [CartLine("p3", 1)]
    second.cart = [CartLine("p2", 9)]
    any_store.save(first)
    any_store.save(second)
    assert get_cart(any_store, "u1") == [CartLine("p2", 9)]


def test_checkout_reserves_funds_and_keeps_cart(any_store, payments):
    order = start_checkout(any_store, payments, "u1", "a1")
    user = any_store.load("u1")

    assert order.total == 450
    assert order.status == ORDER_PENDING
    assert order.redirect_url.startswith("http://shop.test/thanks?session_id=mock_")
    assert user.balance == 5000 - 450
    assert user.cart == [CartLine("p1", 2), CartLine("p2", 1)]

    stored = any_store.get_order(order.id)
    assert stored.session_id == order.session_id
    assert [i.qty for i in stored.items] == [2, 1]


def test_failed_validation_writes_nothing(any_store, payments, make_user):
    any_store.add_user(make_user(uid="u2", balance=100, cart=[CartLine("p1", 2), CartLine("p2", 1)]))

    with pytest.raises(InsufficientBalanceError):
        start_checkout(any_store, payments, "u2", "a1")
    assert any_store.load("u2").balance == 100
    assert any_store.list_orders("u2") == []


def test_save_never_writes_balance(any_store):
    user = any_store.load("u1")
    user.balance = 1
    user.cart = []
    any_store.save(user)
    stored = any_store.load("u1")
    assert stored.cart == []
    assert stored.balance == 5000


def test_payment_failure_is_compensated(any_store):
    with pytest.raises(PaymentError):
        start_checkout(any_store, MockSessionCreator("http://x", fail=True), "u1", "a1")

    user = any_store.load("u1")
    assert user.balance == 5000
    assert user.cart == [CartLine("p1", 2), CartLine("p2", 1)]
    [order] = any_store.list_orders("u1")
    assert order.status == ORDER_CANCELLED


def test_confirm_clears_cart_and_confirms_orders(any_store, payments):
    order = start_checkout(any_store, payments, "u1", "a1")

    confirmed = confirm_purchase(any_store, "u1")
    assert [o.id for o in confirmed] == [order.id]
    assert confirmed[0].status == ORDER_CONFIRMED
    assert get_cart(any_store, "u1") == []
    assert any_store.get_order(order.id).status == ORDER_CONFIRMED


def test_confirm_twice_is_same_as_once(any_store, payments):
    start_checkout(any_store, payments, "u1", "a1")
    confirm_purchase(any_store, "u1")
    balance = any_store.load("u1").balance

    assert confirm_purchase(any_store, "u1") == []
    user = any_store.load("u1")
    assert user.cart == []
    assert user.balance == balance


def test_checkout_after_confirm_is_empty(any_store, payments):
    start_checkout(any_store, payments, "u1", "a1")
    confirm_purchase(any_store, "u1")
    with pytest.raises(EmptyCartError):
        start_checkout(any_store, payments, "u1", "a1")


def test_persistence_failure_is_distinct(store, payments):
    store.fail_writes = True
    with pytest.raises(PersistenceError):
        update_cart(store, "u1", "p3", 1)
    with pytest.raises(PersistenceError):
        start_checkout(store, payments, "u1", "a1")
    assert payments.sessions == []


def test_unknown_user(any_store):
    with pytest.raises(NotFoundError):
        get_cart(any_store, "ghost")


def test_update_logs_new_cart(store, log_capture):
    update_cart(store, "u1", "p3", 1)
    assert "cart updated to" in log_capture.text


def test_checkout_during_cart_update_keeps_debit(any_store, payments, monkeypatch):
    get_product = any_store.get_product
    placed = []

    def lookup_then_checkout(product_id):
        # another request checks out after update_cart loaded the user
        if not placed:
            monkeypatch.setattr(any_store, "get_product", get_product)
            placed.append(start_checkout(any_store, payments, "u1", "a1"))
        return get_product(product_id)

    monkeypatch.setattr(any_store, "get_product", lookup_then_checkout)
    update_cart(any_store, "u1", "p3", 1)

    [order] = placed
    user = any_store.load("u1")
    assert order.total == 450
    assert user.balance == 5000 - 450
    assert user.cart == [CartLine("p1", 2), CartLine("p2", 1), CartLine("p3", 1)]


def test_confirm_with_stale_user_keeps_debit(any_store, payments, monkeypatch):
    load = any_store.load
    stale = load("u1")
    start_checkout(any_store, payments, "u1", "a1")

    monkeypatch.setattr(any_store, "load", lambda user_id: stale)
    confirm_purchase(any_store, "u1")
    monkeypatch.setattr(any_store, "load", load)

    user = any_store.load("u1")
    assert user.cart == []
    assert user.balance == 5000 - 450


def test_double_reserve_cannot_overdraw(any_store, make_user):
    any_store.add_user(make_user(uid="u2", balance=500, cart=[CartLine("p1", 2), CartLine("p2", 1)]))
    first = any_store.load("u2")
    second = any_store.load("u2")
    result = checkout(first, any_store.get_product, "a1")
    checkout(second, any_store.get_product, "a1")

    any_store.reserve_order(first, "a1", result, "usd")
    with pytest.raises(InsufficientBalanceError):
        any_store.reserve_order(second, "a1", result, "usd")

    assert any_store.load("u2").balance == 50
    assert len(any_store.list_orders("u2")) == 1
