from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, List

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from main import memory_repos, wire_services
from src.api.admin_routes import router as admin_router
from src.api.routes import router
from src.domain.entities import CartItem, Distributor, Order, OrderStatus, PaymentMethod, Product, ProductCategory

ADMIN_EMAIL = "admin@adega.local"
ADMIN_PASSWORD = "admin"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def make_product(id: str = "p1", **kw: Any) -> Product:
    base = dict(
        id=id,
        name=f"Produto {id}",
        description="",
        price=10.0,
        image_url="",
        category=ProductCategory.CERVEJA,
        volume="350ml",
        alcohol_content="5%",
        brand="Marca",
        distributor_id="D1",
        stock=10,
    )
    base.update(kw)
    return Product(**base)


def make_distributor(id: str = "D1", fee: float = 5.0, **kw: Any) -> Distributor:
    base = dict(
        id=id,
        name=f"Distribuidora {id}",
        logo="",
        rating=4.5,
        delivery_time="30-45 min",
        minimum_order=0.0,
        delivery_fee=fee,
    )
    base.update(kw)
    return Distributor(**base)


def make_order(
    id: str = "665f0c2e1d4ab879a73b",
    status: OrderStatus = OrderStatus.PENDING,
    items: List[CartItem] | None = None,
    created_at: datetime | None = None,
    **kw: Any,
) -> Order:
    created_at = created_at or datetime.now(timezone.utc)
    items = items if items is not None else [CartItem(make_product(), 2)]
    fee = kw.pop("delivery_fee", 5.0)
    base = dict(
        id=id,
        items=items,
        total=round(sum(i.line_total for i in items) + fee, 2),
        delivery_address="Rua A, 1",
        payment_method=PaymentMethod.PIX,
        status=status,
        created_at=created_at,
        estimated_delivery=created_at + timedelta(minutes=45),
        customer_name="Maria Silva",
        customer_email="maria@example.com",
        customer_phone="11999990000",
        delivery_fee=fee,
    )
    base.update(kw)
    return Order(**base)


@pytest.fixture
def repos() -> dict:
    return memory_repos(seed=True)


@pytest.fixture
def app(repos, tmp_path) -> FastAPI:
    test_app = FastAPI()
    test_app.include_router(router)
    test_app.include_router(admin_router)
    test_app.state.data_backend = "memory"
    test_app.state.store_ping = None
    wire_services(test_app, repos, preferences_path=str(tmp_path / "preferences.json"))
    return test_app


@pytest.fixture
def client(app) -> TestClient:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(client) -> dict:
    r = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['token']}"}
