# adega_delivery/src/infrastructure/memory_repositories.py
"""
Process-local repositories with the same contracts as the Mongo ones.
Used with DATA_BACKEND=memory (local demos) and by the test-suite.
"""
from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from src.core.config import ESTIMATED_DELIVERY_MINUTES
from src.domain.entities import (
    AdminUser,
    Distributor,
    Order,
    OrderDraft,
    OrderStatus,
    Product,
    ProductCategory,
    StoreSettings,
)
from src.infrastructure.mongo_repositories import PRODUCT_FIELDS, SETTINGS_FIELDS


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryDistributorRepository:
    def __init__(self, distributors: Optional[List[Distributor]] = None) -> None:
        self._items: Dict[str, Distributor] = {d.id: d for d in distributors or []}

    def add(self, d: Distributor) -> None:
        self._items[d.id] = d

    def list_active(self) -> List[Distributor]:
        return [d for d in self._items.values() if d.is_active]

    def get(self, distributor_id: str) -> Distributor | None:
        return self._items.get(distributor_id)


class InMemoryProductRepository:
    def __init__(self, distributors: InMemoryDistributorRepository, products: Optional[List[Product]] = None) -> None:
        self._distributors = distributors
        self._lock = threading.Lock()
        # insertion order = creation order
        self._items: Dict[str, Product] = {}
        for p in products or []:
            self._items[p.id] = p

    def _join(self, p: Product) -> Optional[Product]:
        d = self._distributors.get(p.distributor_id)
        if d is None:
            return None
        return replace(p, distributor_name=d.name)

    def list_available(self) -> List[Product]:
        with self._lock:
            items = list(self._items.values())
        return [j for j in (self._join(p) for p in items if p.stock > 0) if j is not None]

    def list_featured(self, limit: int) -> List[Product]:
        return [p for p in self.list_available() if p.featured][:limit]

    def list_all(self) -> List[Product]:
        with self._lock:
            items = list(self._items.values())
        return [self._join(p) or p for p in reversed(items)]

    def get(self, product_id: str) -> Product | None:
        with self._lock:
            p = self._items.get(product_id)
        if p is None:
            return None
        return self._join(p) or p

    def create(self, data: Dict[str, Any]) -> str:
        pid = _new_id()
        fields = {k: data[k] for k in PRODUCT_FIELDS if k in data}
        fields["category"] = ProductCategory(fields["category"])
        fields.setdefault("tags", [])
        with self._lock:
            self._items[pid] = Product(id=pid, **fields)
        return pid

    def update(self, product_id: str, data: Dict[str, Any]) -> bool:
        with self._lock:
            cur = self._items.get(product_id)
            if cur is None:
                return False
            changes = {k: data[k] for k in PRODUCT_FIELDS if k in data}
            if "category" in changes:
                changes["category"] = ProductCategory(changes["category"])
            self._items[product_id] = replace(cur, **changes)
        return True

    def delete(self, product_id: str) -> bool:
        with self._lock:
            return self._items.pop(product_id, None) is not None


class InMemoryOrderRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, Order] = {}

    def create(self, draft: OrderDraft) -> str:
        now = datetime.now(timezone.utc)
        oid = _new_id()
        order = Order(
            id=oid,
            items=list(draft.items),
            total=draft.total,
            delivery_address=draft.delivery_address,
            payment_method=draft.payment_method,
            distributor_id=draft.distributor_id,
            status=OrderStatus.PENDING,
            created_at=now,
            estimated_delivery=now + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES),
            customer_name=draft.customer_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            delivery_fee=draft.delivery_fee,
        )
        with self._lock:
            self._items[oid] = order
        return oid

    def put(self, order: Order) -> None:
        with self._lock:
            self._items[order.id] = order

    def get(self, order_id: str) -> Order | None:
        with self._lock:
            return self._items.get(order_id)

    def get_by_short_id(self, short_id: str) -> Order | None:
        key = (short_id or "").strip().upper()
        if not key:
            return None
        # linear scan, fine at demo volumes
        with self._lock:
            for o in self._items.values():
                if o.short_id == key:
                    return o
        return None

    def list_all(self) -> List[Order]:
        with self._lock:
            items = list(self._items.values())
        return sorted(items, key=lambda o: o.created_at, reverse=True)

    def update_status(self, order_id: str, expected_status: OrderStatus, expected_version: int, new_status: OrderStatus) -> bool:
        with self._lock:
            cur = self._items.get(order_id)
            if cur is None or cur.status != expected_status or cur.version != expected_version:
                return False
            self._items[order_id] = replace(cur, status=OrderStatus(new_status), version=cur.version + 1)
        return True


class InMemoryAdminUserRepository:
    def __init__(self) -> None:
        self._items: Dict[str, Tuple[AdminUser, str]] = {}

    def add(self, admin: AdminUser, password_hash: str) -> None:
        self._items[admin.email.lower()] = (admin, password_hash)

    def find_active_by_email(self, email: str) -> Tuple[AdminUser, str] | None:
        hit = self._items.get((email or "").strip().lower())
        if hit is None or not hit[0].is_active:
            return None
        return hit


class InMemorySettingsRepository:
    def __init__(self, settings: Optional[StoreSettings] = None) -> None:
        self._settings = settings

    def set(self, settings: StoreSettings) -> None:
        self._settings = settings

    def get(self) -> StoreSettings | None:
        return self._settings

    def update(self, settings_id: str, changes: Dict[str, Any]) -> bool:
        if self._settings is None or self._settings.id != settings_id:
            return False
        upd = {k: changes[k] for k in SETTINGS_FIELDS if k in changes}
        self._settings = replace(self._settings, updated_at=datetime.now(timezone.utc), **upd)
        return True
