from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from storefront.errors import (
    AddressNotFoundError,
    EmptyCartError,
    InsufficientBalanceError,
    InvalidCartItemError,
    MissingAddressError,
)
from storefront.models import CheckoutResult, LineItem, Product, User
from storefront.services.cart import ProductLookup

logger = logging.getLogger(__name__)


def _resolve(user: User, product_lookup: ProductLookup) -> List[Tuple[Product, int]]:
    resolved = []
    for line in user.cart:
        product = product_lookup(line.product_id)
        if product is None:
            raise InvalidCartItemError(line.product_id)
        resolved.append((product, line.qty))
    return resolved


def checkout(user: User, product_lookup: ProductLookup, address_id: Optional[str]) -> CheckoutResult:
    """
    Prices the user's cart against the catalog and debits the balance.

    Checks run in order and the first failure wins:
    empty cart, insufficient balance, missing address, unknown address.
    The cart itself is left untouched; only `user.balance` changes, and only
    when every check passes. Persisting the user is the caller's job.
    """
    resolved = _resolve(user, product_lookup)
    total = sum(qty * product.cost for product, qty in resolved)

    if total <= 0:
        raise EmptyCartError("Cart is empty")
    if user.balance < total:
        raise InsufficientBalanceError(user.balance, total)
    if not address_id:
        raise MissingAddressError("Address not set")
    if user.find_address(address_id) is None:
        raise AddressNotFoundError("Bad address specified")

    items = [LineItem(name=product.name, unit_cost=product.cost, qty=qty) for product, qty in resolved]

    user.balance -= total
    logger.info("checkout user=%s total=%s items=%s address=%s", user.username, total, len(items), address_id)
    return CheckoutResult(line_items=items, total=total)


def confirm(user: User) -> None:
    user.cart = []
