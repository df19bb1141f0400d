from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from storefront.constants import ORDER_CANCELLED, ORDER_CONFIRMED, ORDER_PENDING
from storefront.errors import ConflictError, InsufficientBalanceError, NotFoundError, PersistenceError
from storefront.models import CheckoutResult, Order, Product, User


class MemoryStore:
    """
    In-process store with the same contract as SqliteStore.

    Users are deep-copied on the way in and out, so callers never share
    state with the store. Saves write the cart only; the balance moves in
    reserve_order and release_order. Setting `fail_writes` makes every
    write raise PersistenceError.
    """

    def __init__(self) -> None:
        self.products: Dict[str, Product] = {}
        self.users: Dict[str, User] = {}
        self.orders: Dict[int, Order] = {}
        self.fail_writes = False
        self._next_order_id = 1
        self._lock = threading.Lock()

    def _check_writable(self) -> None:
        if self.fail_writes:
            raise PersistenceError("memory store is read-only")

    def init_db(self) -> None:
        pass

    # ---------------- catalog ----------------

    def add_product(self, p: Product) -> None:
        self.products[p.id] = p

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    def list_products(self) -> List[Product]:
        return sorted(self.products.values(), key=lambda p: (p.category, p.name))

    # ---------------- users ----------------

    def add_user(self, u: User) -> None:
        self.users[u.id] = copy.deepcopy(u)

    def load(self, user_id: str) -> User:
        u = self.users.get(user_id)
        if u is None:
            raise NotFoundError(f"User {user_id} not found")
        return copy.deepcopy(u)

    def find_user_by_token(self, token: str) -> Optional[User]:
        for u in self.users.values():
            if token and u.token == token:
                return copy.deepcopy(u)
        return None

    def find_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        for u in self.users.values():
            if u.telegram_id == telegram_id:
                return copy.deepcopy(u)
        return None

    def link_telegram(self, u: User, telegram_id: int) -> None:
        self._check_writable()
        with self._lock:
            for other in self.users.values():
                if other.telegram_id == telegram_id:
                    other.telegram_id = None
            self.users[u.id].telegram_id = telegram_id
        u.telegram_id = telegram_id

    def _write_user(self, u: User, expected_version: Optional[int]) -> None:
        stored = self.users.get(u.id)
        if stored is None:
            raise NotFoundError(f"User {u.id} not found")
        if expected_version is not None and stored.version != expected_version:
            raise ConflictError(expected_version, stored.version)
        u.version = stored.version + 1
        stored.cart = list(u.cart)
        stored.version = u.version

    def _debit(self, u: User, amount: int) -> None:
        stored = self.users.get(u.id)
        if stored is None:
            raise NotFoundError(f"User {u.id} not found")
        if stored.balance < amount:
            raise InsufficientBalanceError(stored.balance, amount)
        stored.balance -= amount
        stored.version += 1
        u.balance = stored.balance
        u.version = stored.version

    def save(self, u: User, expected_version: Optional[int] = None) -> None:
        self._check_writable()
        with self._lock:
            self._write_user(u, expected_version)

    # ---------------- orders ----------------

    def reserve_order(self, u: User, address_id: str, result: CheckoutResult, currency: str) -> Order:
        self._check_writable()
        with self._lock:
            self._debit(u, result.total)
            order = Order(
                id=self._next_order_id,
                user_id=u.id,
                address_id=address_id,
                total=result.total,
                currency=currency,
                status=ORDER_PENDING,
                created_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                items=list(result.line_items),
            )
            self._next_order_id += 1
            self.orders[order.id] = copy.deepcopy(order)
        return order

    def attach_session(self, order: Order, session_id: str, url: str) -> None:
        self._check_writable()
        stored = self.orders[order.id]
        stored.session_id = order.session_id = session_id
        stored.redirect_url = order.redirect_url = url

    def release_order(self, order: Order) -> None:
        self._check_writable()
        with self._lock:
            stored = self.users[order.user_id]
            stored.balance += order.total
            stored.version += 1
            self.orders[order.id].status = ORDER_CANCELLED
        order.status = ORDER_CANCELLED

    def confirm_orders(self, u: User) -> List[Order]:
        self._check_writable()
        with self._lock:
            self._write_user(u, None)
            confirmed = []
            for o in self.orders.values():
                if o.user_id == u.id and o.status == ORDER_PENDING and o.session_id:
                    o.status = ORDER_CONFIRMED
                    confirmed.append(copy.deepcopy(o))
        return sorted(confirmed, key=lambda o: o.id)

    def get_order(self, order_id: int) -> Order:
        o = self.orders.get(order_id)
        if o is None:
            raise NotFoundError(f"Order {order_id} not found")
        return copy.deepcopy(o)

    def list_orders(self, user_id: str) -> List[Order]:
        return [copy.deepcopy(o) for o in sorted(self.orders.values(), key=lambda o: o.id) if o.user_id == user_id]

    def stats(self) -> Dict[str, Any]:
        return {"products": len(self.products), "users": len(self.users), "orders": len(self.orders)}
