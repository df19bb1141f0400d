from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from storefront.errors import NotFoundError
from storefront.models import CartLine, CartSummary, Product, SummaryLine
from storefront.utils.validators import require_quantity

logger = logging.getLogger(__name__)

ProductLookup = Callable[[str], Optional[Product]]


def find_line(cart: Sequence[CartLine], product_id: str) -> int:
    for i, line in enumerate(cart):
        if line.product_id == product_id:
            return i
    return -1


def reconcile(
    cart: Sequence[CartLine],
    product_id: str,
    qty: int,
    product_lookup: ProductLookup,
) -> List[CartLine]:
    """
    Returns the next cart after setting `product_id` to `qty`.

    - new product + qty > 0: appended at the end
    - existing product + qty > 0: quantity overwritten
    - existing product + qty == 0: line removed
    - missing product + qty == 0: nothing to do

    The input sequence is never modified.
    """
    require_quantity(qty, "qty")

    if product_lookup(product_id) is None:
        raise NotFoundError("Product doesn't exist")

    nxt = list(cart)
    index = find_line(nxt, product_id)

    if index == -1:
        if qty > 0:
            nxt.append(CartLine(product_id=product_id, qty=qty))
    elif qty == 0:
        # delete
        del nxt[index]
    else:
        # modify
        nxt[index] = CartLine(product_id=product_id, qty=qty)

    logger.debug("reconcile product=%s qty=%s lines=%s->%s", product_id, qty, len(cart), len(nxt))
    return nxt


def summarize(cart: Sequence[CartLine], product_lookup: ProductLookup) -> CartSummary:
    lines: List[SummaryLine] = []
    for line in cart:
        product = product_lookup(line.product_id)
        if product is None:
            # stale line, checkout reports it
            continue
        lines.append(SummaryLine(product=product, qty=line.qty))

    return CartSummary(
        lines=lines,
        total_value=sum(ln.line_total for ln in lines),
        total_items=sum(ln.qty for ln in lines),
    )
