from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str
    cost: int  # minor currency units
    rating: float = 0.0
    image_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "category": self.category,
            "cost": self.cost,
            "rating": self.rating,
            "image": self.image_url,
        }


@dataclass(frozen=True)
class CartLine:
    product_id: str
    qty: int

    def to_dict(self) -> Dict[str, Any]:
        return {"productId": self.product_id, "qty": self.qty}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartLine":
        return cls(product_id=str(d["productId"]), qty=int(d["qty"]))


@dataclass(frozen=True)
class Address:
    id: str
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"_id": self.id, "address": self.text}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Address":
        return cls(id=str(d["_id"]), text=str(d.get("address", "")))


@dataclass
class User:
    id: str
    username: str
    balance: int = 0
    cart: List[CartLine] = field(default_factory=list)
    addresses: List[Address] = field(default_factory=list)
    token: str = ""
    telegram_id: Optional[int] = None
    version: int = 0

    def find_address(self, address_id: str) -> Optional[Address]:
        for a in self.addresses:
            if a.id == address_id:
                return a
        return None


@dataclass(frozen=True)
class LineItem:
    name: str
    unit_cost: int
    qty: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "unitCost": self.unit_cost, "qty": self.qty}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LineItem":
        return cls(name=str(d["name"]), unit_cost=int(d["unitCost"]), qty=int(d["qty"]))


@dataclass(frozen=True)
class CheckoutResult:
    line_items: List[LineItem]
    total: int


@dataclass(frozen=True)
class SummaryLine:
    product: Product
    qty: int

    @property
    def line_total(self) -> int:
        return self.qty * self.product.cost


@dataclass(frozen=True)
class CartSummary:
    lines: List[SummaryLine]
    total_value: int
    total_items: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [
                {**ln.product.to_dict(), "productId": ln.product.id, "qty": ln.qty, "lineTotal": ln.line_total}
                for ln in self.lines
            ],
            "totalValue": self.total_value,
            "totalItems": self.total_items,
        }


@dataclass
class Order:
    id: int
    user_id: str
    address_id: str
    total: int
    currency: str
    status: str
    created_at: str
    items: List[LineItem] = field(default_factory=list)
    session_id: str = ""
    redirect_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "addressId": self.address_id,
            "total": self.total,
            "currency": self.currency,
            "status": self.status,
            "createdAt": self.created_at,
            "items": [i.to_dict() for i in self.items],
            "sessionId": self.session_id,
            "url": self.redirect_url,
        }
