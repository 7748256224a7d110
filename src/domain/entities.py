# adega_delivery/src/domain/entities.py
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ProductCategory(str, Enum):
    CERVEJA = "cerveja"
    VINHO = "vinho"
    WHISKY = "whisky"
    VODKA = "vodka"
    GIN = "gin"
    RUM = "rum"
    CACHACA = "cachaça"
    LICOR = "licor"
    ESPUMANTE = "espumante"
    ENERGETICO = "energético"
    REFRIGERANTE = "refrigerante"
    AGUA = "água"
    SUCO = "suco"


class PaymentMethod(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    PIX = "pix"
    CASH = "cash"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    ON_WAY = "on_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class SortKey(str, Enum):
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME = "name"
    RATING = "rating"  # featured-first proxy, there is no rating on products


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: float
    image_url: str
    category: ProductCategory
    volume: str
    alcohol_content: str
    brand: str
    distributor_id: str
    stock: int
    featured: bool = False
    tags: List[str] = field(default_factory=list)
    original_price: float | None = None
    distributor_name: str | None = None

    @property
    def discount_percent(self) -> int:
        if not self.original_price or self.original_price <= self.price:
            return 0
        return round((1 - self.price / self.original_price) * 100)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["category"] = self.category.value
        d["discount_percent"] = self.discount_percent
        return d


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class Distributor:
    id: str
    name: str
    logo: str
    rating: float
    delivery_time: str
    minimum_order: float
    delivery_fee: float
    is_active: bool = True


@dataclass(frozen=True)
class FilterOptions:
    category: ProductCategory | None = None
    min_price: float | None = None
    max_price: float | None = None
    distributor_id: str | None = None
    sort_by: SortKey | None = None

    def is_empty(self) -> bool:
        return all(v is None for v in asdict(self).values())


@dataclass(frozen=True)
class OrderDraft:
    """Checkout payload before it is persisted; items hold price snapshots."""
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: str
    payment_method: PaymentMethod
    items: List[CartItem]
    distributor_id: str | None
    delivery_fee: float

    @property
    def subtotal(self) -> float:
        return sum(i.line_total for i in self.items)

    @property
    def total(self) -> float:
        return round(self.subtotal + self.delivery_fee, 2)


@dataclass(frozen=True)
class Order:
    id: str
    items: List[CartItem]
    total: float
    delivery_address: str
    payment_method: PaymentMethod
    status: OrderStatus
    created_at: datetime
    estimated_delivery: datetime
    distributor_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    delivery_fee: float = 0.0
    version: int = 0

    @property
    def short_id(self) -> str:
        return short_id_of(self.id)

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


def short_id_of(order_id: str) -> str:
    return str(order_id)[-8:].upper()


@dataclass(frozen=True)
class AdminUser:
    id: str
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime | None = None


@dataclass(frozen=True)
class StoreSettings:
    id: str
    store_name: str
    store_address: str
    store_phone: str
    store_email: str
    logo_url: str
    base_delivery_fee: float
    minimum_order_value: float
    delivery_radius_km: float
    updated_at: datetime | None = None


@dataclass
class Preferences:
    dark_mode: bool = False
    filters: Dict[str, Any] = field(default_factory=dict)
    search_query: str = ""
    show_filters: bool = False

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "Preferences":
        d = d or {}
        return cls(
            dark_mode=bool(d.get("dark_mode", False)),
            filters=dict(d.get("filters") or {}),
            search_query=str(d.get("search_query") or ""),
            show_filters=bool(d.get("show_filters", False)),
        )
