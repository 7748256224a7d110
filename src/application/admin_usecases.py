# =========================
# FILE: adega_delivery/src/application/admin_usecases.py
# Admin console: auth, product management, order listing, reports, settings
# =========================
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import anyio
import bcrypt

from src.application import reports
from src.application.catalog import filter_admin_products, filter_orders
from src.core.config import REPORT_RANGES_DAYS
from src.domain.entities import Order, OrderStatus, Product, ProductCategory, StoreSettings
from src.domain.errors import AuthenticationError, NotFoundError, ValidationError
from src.domain.repositories import AdminUserRepo, OrderRepo, ProductRepo, SettingsRepo
from src.infrastructure.session_store import AdminSession, AdminSessionStore

log = logging.getLogger("app.admin")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash in the store
        log.warning("Stored password hash is not a bcrypt hash")
        return False


class AdminAuth:
    def __init__(self, admin_repo: AdminUserRepo, sessions: AdminSessionStore) -> None:
        self.admin_repo = admin_repo
        self.sessions = sessions

    async def login(self, email: str, password: str) -> AdminSession:
        hit = await anyio.to_thread.run_sync(self.admin_repo.find_active_by_email, email)
        if hit is None:
            log.info("Admin login rejected: unknown or inactive %s", email)
            raise AuthenticationError("Invalid credentials")
        admin, pw_hash = hit
        ok = await anyio.to_thread.run_sync(check_password, password, pw_hash)
        if not ok:
            log.info("Admin login rejected: bad password for %s", email)
            raise AuthenticationError("Invalid credentials")
        session = self.sessions.issue(admin)
        log.info("Admin %s logged in", admin.email)
        return session

    def current(self, token: str) -> AdminSession:
        s = self.sessions.get(token or "")
        if s is None:
            raise AuthenticationError("Not authenticated")
        return s

    def logout(self, token: str) -> None:
        self.sessions.revoke(token)


@dataclass(frozen=True)
class ManageProducts:
    product_repo: ProductRepo

    async def search(self, query: str = "", category: Optional[ProductCategory] = None) -> List[Product]:
        products = await anyio.to_thread.run_sync(self.product_repo.list_all)
        return filter_admin_products(products, query, category)

    async def get(self, product_id: str) -> Product:
        p = await anyio.to_thread.run_sync(self.product_repo.get, product_id)
        if p is None:
            raise NotFoundError(f"Product not found: {product_id}")
        return p

    async def create(self, data: Dict[str, Any]) -> Product:
        product_id = await anyio.to_thread.run_sync(self.product_repo.create, data)
        log.info("Product created: %s (%s)", data.get("name"), product_id)
        return await self.get(product_id)

    async def update(self, product_id: str, data: Dict[str, Any]) -> Product:
        ok = await anyio.to_thread.run_sync(self.product_repo.update, product_id, data)
        if not ok:
            raise NotFoundError(f"Product not found: {product_id}")
        return await self.get(product_id)

    async def delete(self, product_id: str) -> None:
        ok = await anyio.to_thread.run_sync(self.product_repo.delete, product_id)
        if not ok:
            raise NotFoundError(f"Product not found: {product_id}")
        log.info("Product deleted: %s", product_id)


@dataclass(frozen=True)
class ListOrders:
    order_repo: OrderRepo

    async def __call__(self, query: str = "", status: Optional[OrderStatus] = None) -> List[Order]:
        orders = await anyio.to_thread.run_sync(self.order_repo.list_all)
        return filter_orders(orders, query, status)


@dataclass(frozen=True)
class BuildReports:
    order_repo: OrderRepo
    product_repo: ProductRepo

    async def order_stats(self) -> Dict[str, Any]:
        orders = await anyio.to_thread.run_sync(self.order_repo.list_all)
        return reports.order_stats(orders)

    async def product_stats(self) -> Dict[str, Any]:
        products = await anyio.to_thread.run_sync(self.product_repo.list_all)
        return reports.product_stats(products)

    async def sales(self, days: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        self._check_range(days)
        orders = await anyio.to_thread.run_sync(self.order_repo.list_all)
        return reports.sales_by_day(orders, days, now)

    async def __call__(self, days: int = 7, now: Optional[datetime] = None) -> Dict[str, Any]:
        self._check_range(days)
        orders = await anyio.to_thread.run_sync(self.order_repo.list_all)
        products = await anyio.to_thread.run_sync(self.product_repo.list_all)
        return {
            "days": days,
            "order_stats": reports.order_stats(orders),
            "product_stats": reports.product_stats(products),
            "top_products": reports.top_products(orders),
            "low_stock_products": [p.to_dict() for p in reports.low_stock_products(products)],
            "sales_by_day": reports.sales_by_day(orders, days, now),
        }

    @staticmethod
    def _check_range(days: int) -> None:
        if days not in REPORT_RANGES_DAYS:
            raise ValidationError(f"days must be one of {list(REPORT_RANGES_DAYS)}")


@dataclass(frozen=True)
class ManageSettings:
    settings_repo: SettingsRepo

    async def get(self) -> StoreSettings:
        s = await anyio.to_thread.run_sync(self.settings_repo.get)
        if s is None:
            raise NotFoundError("Store settings not found")
        return s

    async def update(self, settings_id: Optional[str], changes: Dict[str, Any]) -> StoreSettings:
        if not settings_id:
            raise ValidationError("settings id is required")
        ok = await anyio.to_thread.run_sync(self.settings_repo.update, settings_id, changes)
        if not ok:
            raise NotFoundError(f"Store settings not found: {settings_id}")
        log.info("Store settings updated: %s", sorted(changes))
        return await self.get()
