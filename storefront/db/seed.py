from __future__ import annotations

import logging
from typing import Any

from storefront.errors import NotFoundError
from storefront.models import Address, Product, User

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    Product("BW0jAAeDJmlZCF8i", "UNIFACTOR Mens Running Shoes", "Fashion", 5000, 5, "https://i.imgur.com/lulqWzW.jpg"),
    Product("KCRwjF7lN97HnEaY", "YONEX Smash Badminton Racquet", "Sports", 10000, 5, "https://i.imgur.com/AZkrn7h.jpg"),
    Product("upLK9JbQ4rMhTwt4", "Tan Leatherette Weekender Duffle", "Fashion", 15000, 4, "https://i.imgur.com/cj5yMRs.jpg"),
    Product("a4sLtEcMpzabRyfx", "Apple iPad Air", "Electronics", 61000, 4, "https://i.imgur.com/OyTKy5O.jpg"),
    Product("v4sLtEcMpzabRyf", "Stylecon 9 Seater RHS Sofa Set", "Home & Kitchen", 30000, 3, "https://i.imgur.com/sZFhHpq.jpg"),
]

DEMO_USER = User(
    id="demo",
    username="crio.do",
    balance=500000,
    addresses=[Address(id="addr-home", text="Home, 42 Market Street")],
    token="demo-token",
)


def seed_demo(store: Any) -> User:
    """Loads the demo catalog and the demo user (if missing)."""
    store.init_db()
    for p in DEMO_PRODUCTS:
        store.add_product(p)
    try:
        user = store.load(DEMO_USER.id)
    except NotFoundError:
        store.add_user(DEMO_USER)
        user = store.load(DEMO_USER.id)
    logger.info("demo data ready: %s products, user=%s", len(DEMO_PRODUCTS), user.username)
    return user


if __name__ == "__main__":
    from storefront.config import settings
    from storefront.constants import LOG_FORMAT
    from storefront.db.sqlite import SqliteStore

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    seed_demo(SqliteStore(settings.db_path))
