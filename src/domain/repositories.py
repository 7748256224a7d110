# adega_delivery/src/domain/repositories.py
from __future__ import annotations
from typing import Any, Dict, List, Protocol, Tuple

from src.domain.entities import (
    AdminUser,
    Distributor,
    Order,
    OrderDraft,
    OrderStatus,
    Product,
    StoreSettings,
)


class ProductRepo(Protocol):
    def list_available(self) -> List[Product]:
        """In-stock products whose distributor exists."""
        ...

    def list_featured(self, limit: int) -> List[Product]: ...

    def list_all(self) -> List[Product]:
        """Every product, newest first (admin console)."""
        ...

    def get(self, product_id: str) -> Product | None: ...

    def create(self, data: Dict[str, Any]) -> str: ...

    def update(self, product_id: str, data: Dict[str, Any]) -> bool: ...

    def delete(self, product_id: str) -> bool: ...


class DistributorRepo(Protocol):
    def list_active(self) -> List[Distributor]: ...

    def get(self, distributor_id: str) -> Distributor | None: ...


class OrderRepo(Protocol):
    def create(self, draft: OrderDraft) -> str: ...

    def get(self, order_id: str) -> Order | None: ...

    def get_by_short_id(self, short_id: str) -> Order | None: ...

    def list_all(self) -> List[Order]: ...

    def update_status(
        self,
        order_id: str,
        expected_status: OrderStatus,
        expected_version: int,
        new_status: OrderStatus,
    ) -> bool:
        """Compare-and-swap on (status, version); False when the record moved on."""
        ...


class AdminUserRepo(Protocol):
    def find_active_by_email(self, email: str) -> Tuple[AdminUser, str] | None:
        """Returns (admin, bcrypt password hash)."""
        ...


class SettingsRepo(Protocol):
    def get(self) -> StoreSettings | None: ...

    def update(self, settings_id: str, changes: Dict[str, Any]) -> bool: ...
