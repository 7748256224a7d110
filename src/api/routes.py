# adega_delivery/src/api/routes.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional

import anyio
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from src.api.schemas import (
    AddToCartRequest,
    CartOut,
    CheckoutRequest,
    CheckoutResponse,
    DistributorOut,
    OrderOut,
    PreferencesOut,
    PreferencesUpdate,
    ProductOut,
    UpdateQuantityRequest,
)
from src.application.usecases import CustomerInfo
from src.core.config import FEATURED_LIMIT
from src.domain.entities import FilterOptions, ProductCategory, SortKey
from src.domain.errors import (
    AuthenticationError,
    ConcurrentUpdateError,
    DataAccessError,
)

log = logging.getLogger("api.routes")
router = APIRouter(prefix="/api")


# -------------------------
# Error translation (domain -> HTTP)
# -------------------------
@contextmanager
def domain_errors(op: str) -> Iterator[None]:
    try:
        yield
    except HTTPException:
        raise
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConcurrentUpdateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except DataAccessError as e:
        log.exception("Processing %s: data store unavailable", op)
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        log.exception("Processing %s error", op)
        raise HTTPException(status_code=500, detail=str(e))


# -------------------------
# Dependencies via app.state
# -------------------------
def service(name: str):
    def _get(request: Request) -> Any:
        svc = getattr(request.app.state, name, None)
        if svc is None:
            raise RuntimeError(f"{name} not initialized. Check app startup wiring.")
        return svc
    _get.__name__ = f"get_{name}"
    return _get


# -------------------------
# Health
# -------------------------
@router.get("/health")
async def health(request: Request) -> Any:
    out = {"backend": "running", "data_backend": getattr(request.app.state, "data_backend", "unknown"), "store": "unknown"}
    ping = getattr(request.app.state, "store_ping", None)
    if ping is not None:
        try:
            await anyio.to_thread.run_sync(ping)
            out["store"] = "connected"
        except Exception as e:
            log.warning("Store ping failed: %s", e)
            out["store"] = f"error: {str(e)[:50]}"
    return out


# -------------------------
# Catalog
# -------------------------
@router.get("/products", response_model=List[ProductOut])
async def list_products(
    q: str = "",
    category: Optional[ProductCategory] = None,
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    distributor_id: Optional[str] = None,
    sort_by: Optional[SortKey] = None,
    catalog=Depends(service("list_catalog")),
) -> Any:
    options = FilterOptions(
        category=category,
        min_price=min_price,
        max_price=max_price,
        distributor_id=distributor_id,
        sort_by=sort_by,
    )
    with domain_errors("/products"):
        products = await catalog(q, options)
    return [ProductOut.of(p) for p in products]


@router.get("/products/featured", response_model=List[ProductOut])
async def list_featured(limit: int = Query(default=FEATURED_LIMIT, ge=1, le=50), featured=Depends(service("list_featured"))) -> Any:
    with domain_errors("/products/featured"):
        products = await featured(limit)
    return [ProductOut.of(p) for p in products]


@router.get("/distributors", response_model=List[DistributorOut])
async def list_distributors(distributors=Depends(service("list_distributors"))) -> Any:
    with domain_errors("/distributors"):
        items = await distributors()
    return [DistributorOut.of(d) for d in items]


# -------------------------
# Cart
# -------------------------
async def _cart_view(carts: Any, session_id: str) -> CartOut:
    totals = await carts.totals(session_id)
    return CartOut.of(session_id, carts.cart(session_id), totals)


def _require_session(session_id: str) -> str:
    if not (session_id or "").strip():
        raise HTTPException(status_code=400, detail="session_id is required")
    return session_id.strip()


@router.get("/cart", response_model=CartOut)
async def get_cart(session_id: str, carts=Depends(service("cart_service"))) -> Any:
    sid = _require_session(session_id)
    with domain_errors("/cart"):
        return await _cart_view(carts, sid)


@router.post("/cart/items", response_model=CartOut)
async def add_to_cart(req: AddToCartRequest, carts=Depends(service("cart_service"))) -> Any:
    sid = _require_session(req.session_id)
    with domain_errors("/cart/items"):
        await carts.add(sid, req.product_id)
        return await _cart_view(carts, sid)


@router.patch("/cart/items/{product_id}", response_model=CartOut)
async def update_cart_item(product_id: str, req: UpdateQuantityRequest, carts=Depends(service("cart_service"))) -> Any:
    sid = _require_session(req.session_id)
    with domain_errors("/cart/items"):
        carts.update_quantity(sid, product_id, req.quantity)
        return await _cart_view(carts, sid)


@router.delete("/cart/items/{product_id}", response_model=CartOut)
async def remove_cart_item(product_id: str, session_id: str, carts=Depends(service("cart_service"))) -> Any:
    sid = _require_session(session_id)
    with domain_errors("/cart/items"):
        carts.remove(sid, product_id)
        return await _cart_view(carts, sid)


@router.delete("/cart", response_model=CartOut)
async def clear_cart(session_id: str, carts=Depends(service("cart_service"))) -> Any:
    sid = _require_session(session_id)
    with domain_errors("/cart"):
        carts.clear(sid)
        return await _cart_view(carts, sid)


# -------------------------
# Checkout / order tracking
# -------------------------
@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def checkout(req: CheckoutRequest, place_order=Depends(service("place_order"))) -> Any:
    sid = _require_session(req.session_id)
    customer = CustomerInfo(
        name=req.customer_name,
        email=req.customer_email,
        phone=req.customer_phone,
        delivery_address=req.delivery_address,
        payment_method=req.payment_method,
    )
    with domain_errors("/checkout"):
        order = await place_order(sid, customer)
    return CheckoutResponse(
        order=OrderOut.of(order),
        subtotal=round(order.total - order.delivery_fee, 2),
        delivery_fee=order.delivery_fee,
        total=order.total,
    )


@router.get("/orders/lookup/{short_id}", response_model=OrderOut)
async def lookup_order(short_id: str, find=Depends(service("find_order_by_short_id"))) -> Any:
    with domain_errors("/orders/lookup"):
        order = await find(short_id)
    return OrderOut.of(order)


@router.get("/orders/{order_id}", response_model=OrderOut)
async def get_order(order_id: str, get=Depends(service("get_order"))) -> Any:
    with domain_errors("/orders"):
        order = await get(order_id)
    return OrderOut.of(order)


# -------------------------
# Preferences
# -------------------------
@router.get("/preferences", response_model=PreferencesOut)
async def get_preferences(session_id: str, prefs=Depends(service("preferences"))) -> Any:
    sid = _require_session(session_id)
    with domain_errors("/preferences"):
        p = await prefs.get(sid)
    return PreferencesOut.of(sid, p)


@router.put("/preferences", response_model=PreferencesOut)
async def update_preferences(req: PreferencesUpdate, prefs=Depends(service("preferences"))) -> Any:
    sid = _require_session(req.session_id)
    changes = req.model_dump(exclude={"session_id"}, exclude_none=True, mode="json")
    with domain_errors("/preferences"):
        p = await prefs.update(sid, changes)
    return PreferencesOut.of(sid, p)


@router.delete("/preferences/filters", response_model=PreferencesOut)
async def clear_filters(session_id: str, prefs=Depends(service("preferences"))) -> Any:
    sid = _require_session(session_id)
    with domain_errors("/preferences/filters"):
        p = await prefs.clear_filters(sid)
    return PreferencesOut.of(sid, p)
