from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from storefront.constants import ORDER_CANCELLED, ORDER_CONFIRMED, ORDER_PENDING
from storefront.errors import ConflictError, InsufficientBalanceError, NotFoundError, PersistenceError
from storefront.models import Address, CartLine, CheckoutResult, LineItem, Order, Product, User

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema.sql")


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        balance=int(row["balance"]),
        cart=[CartLine.from_dict(d) for d in json.loads(row["cart"])],
        addresses=[Address.from_dict(d) for d in json.loads(row["addresses"])],
        token=row["token"] or "",
        telegram_id=row["telegram_id"],
        version=int(row["version"]),
    )


def _product_from_row(row: sqlite3.Row) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        cost=int(row["cost"]),
        rating=float(row["rating"]),
        image_url=row["image"],
    )


def _order_from_row(row: sqlite3.Row) -> Order:
    return Order(
        id=int(row["id"]),
        user_id=row["user_id"],
        address_id=row["address_id"],
        total=int(row["total"]),
        currency=row["currency"],
        status=row["status"],
        created_at=row["created_at"],
        items=[LineItem.from_dict(d) for d in json.loads(row["items"])],
        session_id=row["session_id"],
        redirect_url=row["redirect_url"],
    )


def _dump_cart(cart: List[CartLine]) -> str:
    return json.dumps([line.to_dict() for line in cart])


class SqliteStore:
    """
    User, catalog and order storage on a single sqlite file.

    A user's cart and addresses live as JSON on the user row. Saves write the
    cart only; the balance moves through relative updates in reserve_order and
    release_order, so a stale loaded user can never overwrite a debit.
    sqlite3 errors are re-raised as PersistenceError.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        dirname = os.path.dirname(self.db_path)
        if dirname:
            os.makedirs(dirname, exist_ok=True)
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise PersistenceError(f"sqlite: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise PersistenceError(f"sqlite: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        with self._read() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def init_db(self) -> None:
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            script = f.read()
        with self._read() as conn:
            conn.executescript(script)

    # ---------------- catalog ----------------

    def add_product(self, p: Product) -> None:
        with self._tx() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO products(id, name, category, cost, rating, image) VALUES(?,?,?,?,?,?)",
                (p.id, p.name, p.category, p.cost, p.rating, p.image_url),
            )

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()
            return _product_from_row(row) if row else None

    def list_products(self) -> List[Product]:
        with self._read() as conn:
            rows = conn.execute("SELECT * FROM products ORDER BY category, name").fetchall()
            return [_product_from_row(r) for r in rows]

    # ---------------- users ----------------

    def add_user(self, u: User) -> None:
        with self._tx() as conn:
            conn.execute(
                "INSERT INTO users(id, username, balance, cart, addresses, token, telegram_id, version) "
                "VALUES(?,?,?,?,?,?,?,?)",
                (
                    u.id,
                    u.username,
                    u.balance,
                    _dump_cart(u.cart),
                    json.dumps([a.to_dict() for a in u.addresses]),
                    u.token or None,
                    u.telegram_id,
                    u.version,
                ),
            )

    def load(self, user_id: str) -> User:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        return _user_from_row(row)

    def find_user_by_token(self, token: str) -> Optional[User]:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM users WHERE token = ?", (token,)).fetchone()
            return _user_from_row(row) if row else None

    def find_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)).fetchone()
            return _user_from_row(row) if row else None

    def link_telegram(self, u: User, telegram_id: int) -> None:
        with self._tx() as conn:
            conn.execute("UPDATE users SET telegram_id = NULL WHERE telegram_id = ?", (telegram_id,))
            conn.execute("UPDATE users SET telegram_id = ? WHERE id = ?", (telegram_id, u.id))
        u.telegram_id = telegram_id

    def _write_user(self, conn: sqlite3.Connection, u: User, expected_version: Optional[int]) -> None:
        row = conn.execute("SELECT version FROM users WHERE id = ?", (u.id,)).fetchone()
        if not row:
            raise NotFoundError(f"User {u.id} not found")
        stored = int(row["version"])
        if expected_version is not None and stored != expected_version:
            raise ConflictError(expected_version, stored)

        # balance is only moved by reserve_order and release_order
        conn.execute(
            "UPDATE users SET cart=?, version=? WHERE id=?",
            (_dump_cart(u.cart), stored + 1, u.id),
        )
        u.version = stored + 1

    def _debit(self, conn: sqlite3.Connection, u: User, amount: int) -> None:
        cur = conn.execute(
            "UPDATE users SET balance = balance - ?, version = version + 1 WHERE id = ? AND balance >= ?",
            (amount, u.id, amount),
        )
        row = conn.execute("SELECT balance, version FROM users WHERE id = ?", (u.id,)).fetchone()
        if not row:
            raise NotFoundError(f"User {u.id} not found")
        if cur.rowcount == 0:
            raise InsufficientBalanceError(int(row["balance"]), amount)
        u.balance = int(row["balance"])
        u.version = int(row["version"])

    def save(self, u: User, expected_version: Optional[int] = None) -> None:
        """Writes the cart; the balance column is never touched here."""
        with self._tx() as conn:
            self._write_user(conn, u, expected_version)

    # ---------------- orders ----------------

    def reserve_order(self, u: User, address_id: str, result: CheckoutResult, currency: str) -> Order:
        """Debits the order total and writes a pending order in one transaction."""
        created_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        items = json.dumps([i.to_dict() for i in result.line_items])
        with self._tx() as conn:
            self._debit(conn, u, result.total)
            cur = conn.execute(
                "INSERT INTO orders(user_id, address_id, total, currency, status, created_at, items) "
                "VALUES(?,?,?,?,?,?,?)",
                (u.id, address_id, result.total, currency, ORDER_PENDING, created_at, items),
            )
            order_id = int(cur.lastrowid)
        return Order(
            id=order_id,
            user_id=u.id,
            address_id=address_id,
            total=result.total,
            currency=currency,
            status=ORDER_PENDING,
            created_at=created_at,
            items=list(result.line_items),
        )

    def attach_session(self, order: Order, session_id: str, url: str) -> None:
        with self._tx() as conn:
            conn.execute(
                "UPDATE orders SET session_id=?, redirect_url=? WHERE id=?",
                (session_id, url, order.id),
            )
        order.session_id = session_id
        order.redirect_url = url

    def release_order(self, order: Order) -> None:
        """Credits the order total back and cancels the order."""
        with self._tx() as conn:
            conn.execute("UPDATE users SET balance = balance + ?, version = version + 1 WHERE id=?", (order.total, order.user_id))
            conn.execute("UPDATE orders SET status=? WHERE id=?", (ORDER_CANCELLED, order.id))
        order.status = ORDER_CANCELLED

    def confirm_orders(self, u: User) -> List[Order]:
        """Saves the user and marks their pending orders confirmed, atomically."""
        with self._tx() as conn:
            self._write_user(conn, u, None)
            rows = conn.execute(
                "SELECT * FROM orders WHERE user_id=? AND status=? AND session_id != '' ORDER BY id",
                (u.id, ORDER_PENDING),
            ).fetchall()
            conn.execute(
                "UPDATE orders SET status=? WHERE user_id=? AND status=? AND session_id != ''",
                (ORDER_CONFIRMED, u.id, ORDER_PENDING),
            )
        orders = [_order_from_row(r) for r in rows]
        for o in orders:
            o.status = ORDER_CONFIRMED
        return orders

    def get_order(self, order_id: int) -> Order:
        with self._read() as conn:
            row = conn.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Order {order_id} not found")
        return _order_from_row(row)

    def list_orders(self, user_id: str) -> List[Order]:
        with self._read() as conn:
            rows = conn.execute("SELECT * FROM orders WHERE user_id = ? ORDER BY id", (user_id,)).fetchall()
            return [_order_from_row(r) for r in rows]

    def stats(self) -> Dict[str, Any]:
        with self._read() as conn:
            return {
                "products": conn.execute("SELECT COUNT(*) FROM products").fetchone()[0],
                "users": conn.execute("SELECT COUNT(*) FROM users").fetchone()[0],
                "orders": conn.execute("SELECT COUNT(*) FROM orders").fetchone()[0],
            }
