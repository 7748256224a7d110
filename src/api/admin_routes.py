# adega_delivery/src/api/admin_routes.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.api.routes import domain_errors, service
from src.api.schemas import (
    AdminOut,
    LoginRequest,
    LoginResponse,
    OrderOut,
    ProductIn,
    ProductOut,
    SettingsOut,
    SettingsUpdate,
    StatusUpdateRequest,
)
from src.application import reports
from src.domain.entities import OrderStatus, ProductCategory
from src.domain.errors import AuthenticationError
from src.infrastructure.session_store import AdminSession

log = logging.getLogger("api.admin")
router = APIRouter(prefix="/api/admin")

_bearer = HTTPBearer(auto_error=False)


def require_admin(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    auth=Depends(service("admin_auth")),
) -> AdminSession:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"})
    try:
        return auth.current(creds.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"})


def _admin_out(s: AdminSession) -> AdminOut:
    a = s.admin
    return AdminOut(id=a.id, email=a.email, name=a.name, role=a.role)


# -------------------------
# Auth
# -------------------------
@router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, auth=Depends(service("admin_auth"))) -> Any:
    with domain_errors("/admin/login"):
        s = await auth.login(req.email, req.password)
    return LoginResponse(token=s.token, expires_at=s.expires_at, admin=_admin_out(s))


@router.post("/logout", status_code=204)
async def logout(session: AdminSession = Depends(require_admin), auth=Depends(service("admin_auth"))) -> Response:
    auth.logout(session.token)
    return Response(status_code=204)


@router.get("/me", response_model=AdminOut)
async def me(session: AdminSession = Depends(require_admin)) -> Any:
    return _admin_out(session)


# -------------------------
# Products
# -------------------------
@router.get("/products", response_model=List[ProductOut])
async def admin_products(
    q: str = "",
    category: Optional[ProductCategory] = None,
    _: AdminSession = Depends(require_admin),
    products=Depends(service("manage_products")),
) -> Any:
    with domain_errors("/admin/products"):
        items = await products.search(q, category)
    return [ProductOut.of(p) for p in items]


@router.post("/products", response_model=ProductOut, status_code=201)
async def create_product(req: ProductIn, _: AdminSession = Depends(require_admin), products=Depends(service("manage_products"))) -> Any:
    with domain_errors("/admin/products"):
        p = await products.create(req.model_dump(mode="json"))
    return ProductOut.of(p)


@router.put("/products/{product_id}", response_model=ProductOut)
async def update_product(product_id: str, req: ProductIn, _: AdminSession = Depends(require_admin), products=Depends(service("manage_products"))) -> Any:
    with domain_errors("/admin/products"):
        p = await products.update(product_id, req.model_dump(mode="json"))
    return ProductOut.of(p)


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(product_id: str, _: AdminSession = Depends(require_admin), products=Depends(service("manage_products"))) -> Response:
    with domain_errors("/admin/products"):
        await products.delete(product_id)
    return Response(status_code=204)


# -------------------------
# Orders
# -------------------------
@router.get("/orders", response_model=List[OrderOut])
async def admin_orders(
    q: str = "",
    status: Optional[OrderStatus] = None,
    _: AdminSession = Depends(require_admin),
    list_orders=Depends(service("list_orders")),
) -> Any:
    with domain_errors("/admin/orders"):
        orders = await list_orders(q, status)
    return [OrderOut.of(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderOut)
async def admin_order(order_id: str, _: AdminSession = Depends(require_admin), get=Depends(service("get_order"))) -> Any:
    with domain_errors("/admin/orders"):
        order = await get(order_id)
    return OrderOut.of(order)


@router.patch("/orders/{order_id}/status", response_model=OrderOut)
async def update_order_status(
    order_id: str,
    req: StatusUpdateRequest,
    session: AdminSession = Depends(require_admin),
    update=Depends(service("update_order_status")),
) -> Any:
    # the response is a fresh read of the stored order, never a local patch
    with domain_errors("/admin/orders/status"):
        order = await update(order_id, req.status, req.expected_version)
    log.info("Admin %s set order %s to %s", session.admin.email, order.short_id, order.status.value)
    return OrderOut.of(order)


# -------------------------
# Stats / reports
# -------------------------
@router.get("/stats/orders")
async def order_stats(_: AdminSession = Depends(require_admin), build=Depends(service("build_reports"))) -> Any:
    with domain_errors("/admin/stats/orders"):
        return await build.order_stats()


@router.get("/stats/products")
async def product_stats(_: AdminSession = Depends(require_admin), build=Depends(service("build_reports"))) -> Any:
    with domain_errors("/admin/stats/products"):
        return await build.product_stats()


@router.get("/reports")
async def admin_reports(days: int = Query(default=7), _: AdminSession = Depends(require_admin), build=Depends(service("build_reports"))) -> Any:
    with domain_errors("/admin/reports"):
        return await build(days)


@router.get("/reports/sales.csv")
async def sales_csv(days: int = Query(default=7), _: AdminSession = Depends(require_admin), build=Depends(service("build_reports"))) -> Response:
    with domain_errors("/admin/reports/sales.csv"):
        rows = await build.sales(days)
    return Response(
        content=reports.to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="relatorio-vendas-{days}d.csv"'},
    )


# -------------------------
# Settings
# -------------------------
@router.get("/settings", response_model=SettingsOut)
async def get_settings(_: AdminSession = Depends(require_admin), settings=Depends(service("manage_settings"))) -> Any:
    with domain_errors("/admin/settings"):
        s = await settings.get()
    return SettingsOut.of(s)


@router.put("/settings", response_model=SettingsOut)
async def update_settings(req: SettingsUpdate, _: AdminSession = Depends(require_admin), settings=Depends(service("manage_settings"))) -> Any:
    changes = req.model_dump(exclude={"id"}, exclude_none=True)
    with domain_errors("/admin/settings"):
        s = await settings.update(req.id, changes)
    return SettingsOut.of(s)
