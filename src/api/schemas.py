# =========================
# FILE: adega_delivery/src/api/schemas.py
# =========================
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.application.cart import Cart, CartTotals
from src.application.order_workflow import ordered_next_statuses, status_label
from src.domain.entities import (
    Distributor,
    Order,
    OrderStatus,
    PaymentMethod,
    Preferences,
    Product,
    ProductCategory,
    SortKey,
    StoreSettings,
)

EMAIL_PATTERN = r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$"


# -------------------------
# Catalog
# -------------------------
class ProductOut(BaseModel):
    id: str
    name: str
    description: str
    price: float
    original_price: Optional[float] = None
    discount_percent: int = 0
    image_url: str
    category: ProductCategory
    volume: str
    alcohol_content: str
    brand: str
    distributor_id: str
    distributor_name: Optional[str] = None
    stock: int
    featured: bool
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def of(cls, p: Product) -> "ProductOut":
        return cls(**p.to_dict())


class DistributorOut(BaseModel):
    id: str
    name: str
    logo: str
    rating: float
    delivery_time: str
    minimum_order: float
    delivery_fee: float
    is_active: bool

    @classmethod
    def of(cls, d: Distributor) -> "DistributorOut":
        return cls(**asdict(d))


# -------------------------
# Cart
# -------------------------
class AddToCartRequest(BaseModel):
    session_id: str = Field(..., min_length=1, description="Client session id to keep the cart")
    product_id: str = Field(..., min_length=1)


class UpdateQuantityRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    quantity: int = Field(..., description="<= 0 removes the item")


class CartItemOut(BaseModel):
    product: ProductOut
    quantity: int
    line_total: float


class CartOut(BaseModel):
    session_id: str
    items: List[CartItemOut]
    count: int
    subtotal: float
    primary_distributor_id: Optional[str] = None
    delivery_fee: float
    total: float

    @classmethod
    def of(cls, session_id: str, cart: Cart, totals: CartTotals) -> "CartOut":
        return cls(
            session_id=session_id,
            items=[
                CartItemOut(product=ProductOut.of(i.product), quantity=i.quantity, line_total=round(i.line_total, 2))
                for i in cart.items
            ],
            **totals.to_dict(),
        )


# -------------------------
# Checkout / orders
# -------------------------
class CheckoutRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1, examples=["Maria Silva"])
    customer_email: str = Field(..., pattern=EMAIL_PATTERN, examples=["maria@example.com"])
    customer_phone: str = Field(..., min_length=1, examples=["(11) 98888-7777"])
    delivery_address: str = Field(..., min_length=1)
    payment_method: PaymentMethod


class OrderItemOut(BaseModel):
    product_id: str
    name: str
    brand: str
    volume: str
    image_url: str
    unit_price: float
    quantity: int
    line_total: float


class OrderOut(BaseModel):
    id: str
    short_id: str
    items: List[OrderItemOut]
    total: float
    delivery_fee: float
    delivery_address: str
    payment_method: PaymentMethod
    distributor_id: Optional[str] = None
    status: OrderStatus
    status_label: str
    next_statuses: List[OrderStatus] = Field(default_factory=list)
    version: int
    created_at: datetime
    estimated_delivery: datetime
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None

    @classmethod
    def of(cls, o: Order) -> "OrderOut":
        return cls(
            id=o.id,
            short_id=o.short_id,
            items=[
                OrderItemOut(
                    product_id=i.product.id,
                    name=i.product.name,
                    brand=i.product.brand,
                    volume=i.product.volume,
                    image_url=i.product.image_url,
                    unit_price=i.product.price,
                    quantity=i.quantity,
                    line_total=round(i.line_total, 2),
                )
                for i in o.items
            ],
            total=o.total,
            delivery_fee=o.delivery_fee,
            delivery_address=o.delivery_address,
            payment_method=o.payment_method,
            distributor_id=o.distributor_id,
            status=o.status,
            status_label=status_label(o.status),
            next_statuses=ordered_next_statuses(o.status),
            version=o.version,
            created_at=o.created_at,
            estimated_delivery=o.estimated_delivery,
            customer_name=o.customer_name,
            customer_email=o.customer_email,
            customer_phone=o.customer_phone,
        )


class CheckoutResponse(BaseModel):
    order: OrderOut
    subtotal: float
    delivery_fee: float
    total: float


# -------------------------
# Preferences
# -------------------------
class FilterOptionsIn(BaseModel):
    category: Optional[ProductCategory] = None
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    distributor_id: Optional[str] = None
    sort_by: Optional[SortKey] = None


class PreferencesUpdate(BaseModel):
    session_id: str = Field(..., min_length=1)
    dark_mode: Optional[bool] = None
    filters: Optional[FilterOptionsIn] = None
    search_query: Optional[str] = None
    show_filters: Optional[bool] = None


class PreferencesOut(BaseModel):
    session_id: str
    dark_mode: bool
    filters: Dict[str, Any]
    search_query: str
    show_filters: bool

    @classmethod
    def of(cls, session_id: str, p: Preferences) -> "PreferencesOut":
        return cls(session_id=session_id, **asdict(p))


# -------------------------
# Admin
# -------------------------
class LoginRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class AdminOut(BaseModel):
    id: str
    email: str
    name: str
    role: str


class LoginResponse(BaseModel):
    token: str
    expires_at: float
    admin: AdminOut


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    image_url: str = Field(..., min_length=1)
    category: ProductCategory
    volume: str = Field(..., min_length=1)
    alcohol_content: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    distributor_id: str = Field(..., min_length=1)
    stock: int = Field(..., ge=0)
    featured: bool = False
    tags: List[str] = Field(default_factory=list)


class StatusUpdateRequest(BaseModel):
    status: OrderStatus
    expected_version: Optional[int] = Field(default=None, ge=0, description="Reject if the order changed since it was read")


class SettingsOut(BaseModel):
    id: str
    store_name: str
    store_address: str
    store_phone: str
    store_email: str
    logo_url: str
    base_delivery_fee: float
    minimum_order_value: float
    delivery_radius_km: float
    updated_at: Optional[datetime] = None

    @classmethod
    def of(cls, s: StoreSettings) -> "SettingsOut":
        return cls(**asdict(s))


class SettingsUpdate(BaseModel):
    id: Optional[str] = None
    store_name: Optional[str] = Field(default=None, min_length=1)
    store_address: Optional[str] = Field(default=None, min_length=1)
    store_phone: Optional[str] = Field(default=None, min_length=1)
    store_email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    logo_url: Optional[str] = None
    base_delivery_fee: Optional[float] = Field(default=None, ge=0)
    minimum_order_value: Optional[float] = Field(default=None, ge=0)
    delivery_radius_km: Optional[float] = Field(default=None, ge=0)
