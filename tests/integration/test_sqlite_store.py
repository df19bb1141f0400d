import sqlite3

import pytest

from storefront.db.seed import DEMO_PRODUCTS, DEMO_USER, seed_demo
from storefront.db.sqlite import SqliteStore
from storefront.errors import NotFoundError, PersistenceError
from storefront.models import Address, CartLine

pytestmark = pytest.mark.integration


def test_user_round_trip(sqlite_store):
    u = sqlite_store.load("u1")
    assert u.cart == [CartLine("p1", 2), CartLine("p2", 1)]
    assert u.addresses == [Address(id="a1", text="Home")]
    assert u.token == "token-u1"
    assert u.telegram_id is None


def test_products(sqlite_store, catalog):
    assert sqlite_store.get_product("p2") == catalog["p2"]
    assert sqlite_store.get_product("nope") is None
    assert {p.id for p in sqlite_store.list_products()} == set(catalog)


def test_lookup_by_token_and_telegram(sqlite_store):
    u = sqlite_store.find_user_by_token("token-u1")
    assert u.id == "u1"
    assert sqlite_store.find_user_by_token("bad") is None

    sqlite_store.link_telegram(u, 4242)
    assert sqlite_store.find_user_by_telegram_id(4242).id == "u1"


def test_missing_order(sqlite_store):
    with pytest.raises(NotFoundError):
        sqlite_store.get_order(99)


def test_sqlite_errors_become_persistence_errors(tmp_path):
    store = SqliteStore(str(tmp_path / "no_schema.db"))
    with pytest.raises(PersistenceError):
        store.get_product("p1")


def test_failed_transaction_rolls_back(sqlite_store, monkeypatch):
    u = sqlite_store.load("u1")
    u.cart = []

    def broken_update(conn, user, expected):
        conn.execute("UPDATE users SET cart='[]' WHERE id=?", (user.id,))
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(sqlite_store, "_write_user", broken_update)
    with pytest.raises(PersistenceError):
        sqlite_store.save(u)
    assert sqlite_store.load("u1").cart == [CartLine("p1", 2), CartLine("p2", 1)]


def test_seed_is_repeatable(tmp_path):
    store = SqliteStore(str(tmp_path / "seed.db"))
    seed_demo(store)
    seed_demo(store)
    assert store.stats() == {"products": len(DEMO_PRODUCTS), "users": 1, "orders": 0}
    assert store.find_user_by_token(DEMO_USER.token).username == DEMO_USER.username
