# =========================
# FILE: adega_delivery/src/application/usecases.py
# Storefront use-cases: catalog, cart, checkout, order tracking, preferences
# =========================
from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import anyio

from src.application.cart import Cart, CartTotals, cart_totals
from src.application.catalog import filter_and_sort
from src.application.order_workflow import ensure_transition
from src.core.config import FEATURED_LIMIT
from src.domain.entities import (
    CartItem,
    Distributor,
    FilterOptions,
    Order,
    OrderDraft,
    OrderStatus,
    PaymentMethod,
    Preferences,
    Product,
)
from src.domain.errors import ConcurrentUpdateError, NotFoundError, ValidationError
from src.domain.repositories import DistributorRepo, OrderRepo, ProductRepo
from src.infrastructure.preferences_store import PreferencesStore
from src.infrastructure.session_store import InMemorySessionStore

log = logging.getLogger("app.usecases")

_RE_SHORT_ID_NOISE = re.compile(r"\s+")


class KeyedLocks:
    """One asyncio.Lock per key, kept only while a caller holds or waits on it."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


# ----------------------------
# Catalog
# ----------------------------
@dataclass(frozen=True)
class ListCatalog:
    product_repo: ProductRepo

    async def __call__(self, query: str = "", options: Optional[FilterOptions] = None) -> List[Product]:
        products = await anyio.to_thread.run_sync(self.product_repo.list_available)
        return filter_and_sort(products, query, options)


@dataclass(frozen=True)
class ListFeatured:
    product_repo: ProductRepo

    async def __call__(self, limit: int = FEATURED_LIMIT) -> List[Product]:
        return await anyio.to_thread.run_sync(self.product_repo.list_featured, limit)


@dataclass(frozen=True)
class ListDistributors:
    distributor_repo: DistributorRepo

    async def __call__(self) -> List[Distributor]:
        return await anyio.to_thread.run_sync(self.distributor_repo.list_active)


# ----------------------------
# Cart (one per client session)
# ----------------------------
class CartService:
    def __init__(self, sessions: InMemorySessionStore, product_repo: ProductRepo, distributor_repo: DistributorRepo) -> None:
        self.sessions = sessions
        self.product_repo = product_repo
        self.distributor_repo = distributor_repo
        # checkout of one session runs one at a time
        self.checkout_locks = KeyedLocks()

    def cart(self, session_id: str) -> Cart:
        return self.sessions.get_or_create(session_id).cart

    async def add(self, session_id: str, product_id: str) -> Cart:
        product = await anyio.to_thread.run_sync(self.product_repo.get, product_id)
        if product is None:
            raise NotFoundError(f"Product not found: {product_id}")
        if product.stock <= 0:
            raise ValidationError(f"Product out of stock: {product.name}")
        st = self.sessions.get_or_create(session_id)
        st.cart.add(product)
        self.sessions.save(st)
        return st.cart

    def update_quantity(self, session_id: str, product_id: str, quantity: int) -> Cart:
        st = self.sessions.get_or_create(session_id)
        st.cart.update_quantity(product_id, quantity)
        self.sessions.save(st)
        return st.cart

    def remove(self, session_id: str, product_id: str) -> Cart:
        st = self.sessions.get_or_create(session_id)
        st.cart.remove(product_id)
        self.sessions.save(st)
        return st.cart

    def clear(self, session_id: str) -> Cart:
        st = self.sessions.get_or_create(session_id)
        st.cart.clear()
        self.sessions.save(st)
        return st.cart

    async def totals(self, session_id: str) -> CartTotals:
        distributors = await anyio.to_thread.run_sync(self.distributor_repo.list_active)
        return cart_totals(self.cart(session_id).items, distributors)


# ----------------------------
# Checkout
# ----------------------------
@dataclass(frozen=True)
class CustomerInfo:
    name: str
    email: str
    phone: str
    delivery_address: str
    payment_method: PaymentMethod


@dataclass
class PlaceOrder:
    carts: CartService
    order_repo: OrderRepo

    async def __call__(self, session_id: str, customer: CustomerInfo) -> Order:
        async with self.carts.checkout_locks.hold(session_id):
            cart = self.carts.cart(session_id)
            if cart.is_empty():
                raise ValidationError("Cart is empty")

            items = list(cart.items)
            totals = await self.carts.totals(session_id)
            draft = OrderDraft(
                customer_name=customer.name.strip(),
                customer_email=customer.email.strip(),
                customer_phone=customer.phone.strip(),
                delivery_address=customer.delivery_address.strip(),
                payment_method=customer.payment_method,
                items=items,
                distributor_id=totals.primary_distributor_id,
                delivery_fee=totals.delivery_fee,
            )
            order_id = await anyio.to_thread.run_sync(self.order_repo.create, draft)
            order = await anyio.to_thread.run_sync(self.order_repo.get, order_id)
            if order is None:
                raise NotFoundError(f"Order not found after creation: {order_id}")

            # only a confirmed write touches the cart, and only the ordered quantities
            self._take_from_cart(cart, items)
            st = self.carts.sessions.get_or_create(session_id)
            st.last_order_id = order.id
            self.carts.sessions.save(st)
        log.info("Order %s placed: %d items, total=%.2f", order.short_id, totals.count, order.total)
        return order

    @staticmethod
    def _take_from_cart(cart: Cart, ordered: List[CartItem]) -> None:
        current = {it.product.id: it.quantity for it in cart.items}
        for it in ordered:
            if it.product.id in current:
                cart.update_quantity(it.product.id, current[it.product.id] - it.quantity)


# ----------------------------
# Order tracking
# ----------------------------
def normalize_short_id(raw: str) -> str:
    return _RE_SHORT_ID_NOISE.sub("", raw or "").lstrip("#").upper()


@dataclass(frozen=True)
class GetOrder:
    order_repo: OrderRepo

    async def __call__(self, order_id: str) -> Order:
        order = await anyio.to_thread.run_sync(self.order_repo.get, order_id)
        if order is None:
            raise NotFoundError(f"Order not found: {order_id}")
        return order


@dataclass(frozen=True)
class FindOrderByShortId:
    order_repo: OrderRepo

    async def __call__(self, raw_short_id: str) -> Order:
        key = normalize_short_id(raw_short_id)
        if not key:
            raise ValidationError("order number is required")
        order = await anyio.to_thread.run_sync(self.order_repo.get_by_short_id, key)
        if order is None:
            raise NotFoundError(f"Order not found: #{key}")
        return order


class UpdateOrderStatus:
    """
    Validated status change. Requests for the same order are serialized,
    the store write is a compare-and-swap on (status, version) and the
    returned order is a fresh read.
    """

    def __init__(self, order_repo: OrderRepo) -> None:
        self.order_repo = order_repo
        self._locks = KeyedLocks()

    async def __call__(self, order_id: str, new_status: OrderStatus, expected_version: Optional[int] = None) -> Order:
        async with self._locks.hold(order_id):
            order = await anyio.to_thread.run_sync(self.order_repo.get, order_id)
            if order is None:
                raise NotFoundError(f"Order not found: {order_id}")
            if expected_version is not None and expected_version != order.version:
                raise ConcurrentUpdateError(
                    f"Order {order.short_id} changed (version {order.version}, expected {expected_version})"
                )
            ensure_transition(order.status, new_status)

            ok = await anyio.to_thread.run_sync(
                self.order_repo.update_status, order_id, order.status, order.version, OrderStatus(new_status)
            )
            if not ok:
                raise ConcurrentUpdateError(f"Order {order.short_id} was modified concurrently")

            fresh = await anyio.to_thread.run_sync(self.order_repo.get, order_id)
            if fresh is None:
                raise NotFoundError(f"Order not found: {order_id}")
            log.info("Order %s: %s -> %s", order.short_id, order.status.value, fresh.status.value)
            return fresh


# ----------------------------
# Preferences (explicit load/save at session boundaries)
# ----------------------------
@dataclass
class PreferencesService:
    store: PreferencesStore
    sessions: InMemorySessionStore
    _persist_lock: anyio.Lock = field(default_factory=anyio.Lock, repr=False)

    async def get(self, session_id: str) -> Preferences:
        st = self.sessions.get_or_create(session_id)
        if st.preferences is None:
            st.preferences = await anyio.to_thread.run_sync(self.store.load, session_id)
            self.sessions.save(st)
        return st.preferences

    async def update(self, session_id: str, changes: Dict[str, Any]) -> Preferences:
        cur = await self.get(session_id)
        merged = {**asdict(cur), **{k: v for k, v in changes.items() if v is not None}}
        prefs = Preferences.from_dict(merged)
        return await self._save(session_id, prefs)

    async def clear_filters(self, session_id: str) -> Preferences:
        cur = await self.get(session_id)
        prefs = Preferences(dark_mode=cur.dark_mode, filters={}, search_query="", show_filters=cur.show_filters)
        return await self._save(session_id, prefs)

    async def _save(self, session_id: str, prefs: Preferences) -> Preferences:
        # the file is rewritten wholesale, one writer at a time
        async with self._persist_lock:
            await anyio.to_thread.run_sync(self.store.save, session_id, prefs)
        st = self.sessions.get_or_create(session_id)
        st.preferences = prefs
        self.sessions.save(st)
        return prefs
