from __future__ import annotations

import logging
from typing import Any, List, Optional

from storefront.config import settings
from storefront.errors import PaymentError
from storefront.models import CartLine, Order
from storefront.services.cart import reconcile
from storefront.services.checkout import checkout, confirm
from storefront.services.payments import PaymentSessionCreator

logger = logging.getLogger(__name__)


def get_cart(store: Any, user_id: str) -> List[CartLine]:
    return store.load(user_id).cart


def update_cart(
    store: Any,
    user_id: str,
    product_id: str,
    qty: int,
    version: Optional[int] = None,
) -> List[CartLine]:
    """
    Applies one cart mutation and persists it.

    With `version` set, the save only goes through if the stored user still
    has that version; otherwise the last writer wins.
    """
    user = store.load(user_id)
    user.cart = reconcile(user.cart, product_id, qty, store.get_product)
    store.save(user, expected_version=version)
    logger.info("User %s's cart updated to %s", user.username, [line.to_dict() for line in user.cart])
    return user.cart


def start_checkout(
    store: Any,
    payments: PaymentSessionCreator,
    user_id: str,
    address_id: Optional[str],
    currency: str = "",
) -> Order:
    """
    Prices the cart, reserves the funds and opens a payment session.

    The debit and a pending order are stored together first. If the payment
    provider then fails, the debit is credited back and the order cancelled
    before PaymentError propagates. The cart is kept until confirmation.
    """
    user = store.load(user_id)
    result = checkout(user, store.get_product, address_id)

    order = store.reserve_order(user, str(address_id), result, currency or settings.currency)
    try:
        session = payments.create_session(result, order.id)
    except PaymentError:
        store.release_order(order)
        logger.warning("order %s released after payment failure, user=%s", order.id, user.username)
        raise

    store.attach_session(order, session.id, session.url)
    logger.info("order placed: order=%s user=%s total=%s", order.id, user.username, order.total)
    return order


def confirm_purchase(store: Any, user_id: str) -> List[Order]:
    user = store.load(user_id)
    confirm(user)
    orders = store.confirm_orders(user)
    logger.info("cart cleared for %s, confirmed orders=%s", user.username, [o.id for o in orders])
    return orders
