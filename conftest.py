import logging

import pytest

from storefront.db.memory import MemoryStore
from storefront.db.seed import seed_demo
from storefront.db.sqlite import SqliteStore
from storefront.models import Address, CartLine, Product, User
from storefront.services.payments import MockSessionCreator


@pytest.fixture(scope="function")
def catalog():
    return {
        "p1": Product(id="p1", name="Running Shoes", category="Fashion", cost=100),
        "p2": Product(id="p2", name="Badminton Racquet", category="Sports", cost=250),
        "p3": Product(id="p3", name="Duffle Bag", category="Fashion", cost=1500),
    }


@pytest.fixture(scope="function")
def lookup(catalog):
    return catalog.get


@pytest.fixture(scope="function")
def make_user():
    def _make(balance=5000, cart=None, addresses=None, uid="u1"):
        return User(
            id=uid,
            username=f"user-{uid}",
            balance=balance,
            cart=list(cart or []),
            addresses=list(addresses if addresses is not None else [Address(id="a1", text="Home")]),
            token=f"token-{uid}",
        )

    return _make


@pytest.fixture(scope="function")
def store(catalog, make_user):
    s = MemoryStore()
    for p in catalog.values():
        s.add_product(p)
    s.add_user(make_user(cart=[CartLine("p1", 2), CartLine("p2", 1)]))
    return s


@pytest.fixture(scope="function")
def sqlite_store(tmp_path, catalog, make_user):
    s = SqliteStore(str(tmp_path / "data" / "storefront.db"))
    s.init_db()
    for p in catalog.values():
        s.add_product(p)
    s.add_user(make_user(cart=[CartLine("p1", 2), CartLine("p2", 1)]))
    return s


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, store, sqlite_store):
    return store if request.param == "memory" else sqlite_store


@pytest.fixture(scope="function")
def payments():
    return MockSessionCreator("http://shop.test/thanks")


@pytest.fixture(scope="function")
def demo_store():
    s = MemoryStore()
    seed_demo(s)
    return s


@pytest.fixture(scope="function")
def log_capture(caplog):
    caplog.set_level(logging.INFO, logger="storefront")
    return caplog
