# adega_delivery/src/infrastructure/mongo_repositories.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import AutoReconnect, NetworkTimeout, PyMongoError, ServerSelectionTimeoutError

from src.core.config import ESTIMATED_DELIVERY_MINUTES, MONGO_RETRY_ATTEMPTS, MONGO_RETRY_BACKOFF_S
from src.domain.entities import (
    AdminUser,
    CartItem,
    Distributor,
    Order,
    OrderDraft,
    OrderStatus,
    PaymentMethod,
    Product,
    ProductCategory,
    StoreSettings,
    short_id_of,
)
from src.domain.errors import DataAccessError

log = logging.getLogger("infra.mongo_repo")

T = TypeVar("T")

_TRANSIENT = (AutoReconnect, NetworkTimeout, ServerSelectionTimeoutError)

# fields an admin may write on a product document
PRODUCT_FIELDS = (
    "name", "description", "price", "original_price", "image_url", "category",
    "volume", "alcohol_content", "brand", "distributor_id", "stock", "featured", "tags",
)
SETTINGS_FIELDS = (
    "store_name", "store_address", "store_phone", "store_email", "logo_url",
    "base_delivery_fee", "minimum_order_value", "delivery_radius_km",
)


def _as_str_id(v: Any) -> str:
    return str(v)


def _as_oid(v: str) -> Optional[ObjectId]:
    try:
        return ObjectId(str(v))
    except (InvalidId, TypeError):
        return None


def _as_utc(v: Any) -> datetime:
    if isinstance(v, datetime):
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
    if isinstance(v, str) and v:
        dt = datetime.fromisoformat(v.replace("Z", "+00:00"))
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------
# Document parsing
# ----------------------------
def parse_product(x: Dict[str, Any], distributor_name: Optional[str] = None) -> Product:
    try:
        original = x.get("original_price")
        return Product(
            id=_as_str_id(x.get("id") or x.get("_id")),
            name=str(x.get("name") or "").strip(),
            description=str(x.get("description") or ""),
            price=max(0.0, float(x.get("price", 0))),
            original_price=float(original) if original is not None else None,
            image_url=str(x.get("image_url") or ""),
            category=ProductCategory(x.get("category")),
            volume=str(x.get("volume") or ""),
            alcohol_content=str(x.get("alcohol_content") or ""),
            brand=str(x.get("brand") or ""),
            distributor_id=str(x.get("distributor_id") or ""),
            distributor_name=distributor_name,
            stock=max(0, int(x.get("stock") or 0)),
            featured=bool(x.get("featured", False)),
            tags=list(x.get("tags") or []),
        )
    except Exception as e:
        log.exception("Invalid product document: %s", x.get("_id"))
        raise ValueError(f"Invalid product document: {e}") from e


def parse_distributor(x: Dict[str, Any]) -> Distributor:
    try:
        return Distributor(
            id=_as_str_id(x.get("id") or x.get("_id")),
            name=str(x.get("name") or ""),
            logo=str(x.get("logo_url") or ""),
            rating=float(x.get("rating") or 0),
            delivery_time=str(x.get("delivery_time") or ""),
            minimum_order=float(x.get("minimum_order") or 0),
            delivery_fee=float(x.get("delivery_fee") or 0),
            is_active=bool(x.get("is_active", True)),
        )
    except Exception as e:
        log.exception("Invalid distributor document: %s", x.get("_id"))
        raise ValueError(f"Invalid distributor document: {e}") from e


def parse_order(x: Dict[str, Any]) -> Order:
    try:
        return _order_from(x)
    except Exception as e:
        log.exception("Invalid order document: %s", x.get("_id"))
        raise ValueError(f"Invalid order document: {e}") from e


def _order_from(x: Dict[str, Any]) -> Order:
    items: List[CartItem] = []
    for it in x.get("items") or []:
        snap = dict(it.get("product") or {})
        snap.setdefault("id", it.get("product_id"))
        # price at order time wins over whatever the catalog says now
        snap["price"] = it.get("unit_price", snap.get("price", 0))
        items.append(CartItem(product=parse_product(snap, snap.get("distributor_name")), quantity=int(it.get("quantity") or 1)))

    created_at = _as_utc(x.get("created_at"))
    estimated = x.get("estimated_delivery")
    return Order(
        id=_as_str_id(x.get("id") or x.get("_id")),
        items=items,
        total=float(x.get("total_amount") or 0),
        delivery_address=str(x.get("delivery_address") or ""),
        payment_method=PaymentMethod(x.get("payment_method")),
        distributor_id=x.get("distributor_id"),
        status=OrderStatus(x.get("status") or OrderStatus.PENDING.value),
        created_at=created_at,
        estimated_delivery=_as_utc(estimated) if estimated else created_at + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES),
        customer_name=x.get("customer_name"),
        customer_email=x.get("customer_email"),
        customer_phone=x.get("customer_phone"),
        delivery_fee=float(x.get("delivery_fee") or 0),
        version=int(x.get("version") or 0),
    )


def order_document(draft: OrderDraft, oid: Any, now: datetime) -> Dict[str, Any]:
    return {
        "_id": oid,
        "short_id": short_id_of(str(oid)),
        "customer_name": draft.customer_name,
        "customer_email": draft.customer_email,
        "customer_phone": draft.customer_phone,
        "delivery_address": draft.delivery_address,
        "total_amount": draft.total,
        "delivery_fee": draft.delivery_fee,
        "payment_method": draft.payment_method.value,
        "distributor_id": draft.distributor_id,
        "status": OrderStatus.PENDING.value,
        "version": 0,
        "created_at": now,
        "updated_at": now,
        "estimated_delivery": now + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES),
        "items": [
            {
                "product_id": it.product.id,
                "quantity": it.quantity,
                "unit_price": it.product.price,
                "total_price": round(it.line_total, 2),
                "product": {
                    k: v for k, v in it.product.to_dict().items()
                    if k not in ("id", "discount_percent")
                },
            }
            for it in draft.items
        ],
    }


def product_document(data: Dict[str, Any]) -> Dict[str, Any]:
    doc = {k: data[k] for k in PRODUCT_FIELDS if k in data}
    if isinstance(doc.get("category"), ProductCategory):
        doc["category"] = doc["category"].value
    return doc


# ----------------------------
# Base: bounded retries on reads
# ----------------------------
class _MongoRepo:
    def __init__(self, col: Collection, retry_attempts: int = MONGO_RETRY_ATTEMPTS, retry_backoff_s: float = MONGO_RETRY_BACKOFF_S) -> None:
        self._col = col
        self._attempts = max(1, retry_attempts)
        self._backoff = retry_backoff_s

    def _read(self, op: str, fn: Callable[[], T]) -> T:
        for attempt in range(1, self._attempts + 1):
            try:
                return fn()
            except _TRANSIENT as e:
                if attempt >= self._attempts:
                    log.exception("%s failed after %d attempts", op, attempt)
                    raise DataAccessError(f"{op} failed: {e}") from e
                delay = self._backoff * (2 ** (attempt - 1))
                log.warning("%s transient error (%s), retry %d in %.2fs", op, e, attempt, delay)
                time.sleep(delay)
            except PyMongoError as e:
                log.exception("%s failed", op)
                raise DataAccessError(f"{op} failed: {e}") from e
        raise DataAccessError(f"{op} failed")

    def _write(self, op: str, fn: Callable[[], T]) -> T:
        # writes are not retried, a retry could apply them twice
        try:
            return fn()
        except PyMongoError as e:
            log.exception("%s failed", op)
            raise DataAccessError(f"{op} failed: {e}") from e

    def _parse_all(self, op: str, docs: List[Dict[str, Any]], parse: Callable[[Dict[str, Any]], T]) -> List[T]:
        # one bad document must not take the whole listing down
        out: List[T] = []
        for d in docs:
            try:
                out.append(parse(d))
            except ValueError:
                log.warning("%s: skipping malformed document %s", op, d.get("_id"))
        return out

    def _parse_one(self, op: str, doc: Dict[str, Any], parse: Callable[[Dict[str, Any]], T]) -> T:
        try:
            return parse(doc)
        except ValueError as e:
            raise DataAccessError(f"{op}: malformed document {doc.get('_id')}") from e


class MongoDistributorRepository(_MongoRepo):
    def list_active(self) -> List[Distributor]:
        docs = self._read("list_distributors", lambda: list(self._col.find({"is_active": True})))
        return self._parse_all("list_distributors", docs, parse_distributor)

    def get(self, distributor_id: str) -> Distributor | None:
        oid = _as_oid(distributor_id)
        if oid is None:
            return None
        doc = self._read("get_distributor", lambda: self._col.find_one({"_id": oid}))
        return self._parse_one("get_distributor", doc, parse_distributor) if doc else None

    def names_by_id(self, ids: List[str]) -> Dict[str, str]:
        oids = [o for o in (_as_oid(i) for i in set(ids)) if o is not None]
        if not oids:
            return {}
        docs = self._read("distributor_names", lambda: list(self._col.find({"_id": {"$in": oids}})))
        return {str(d["_id"]): str(d.get("name") or "") for d in docs}


class MongoProductRepository(_MongoRepo):

    def __init__(self, col: Collection, distributors: MongoDistributorRepository, **kw: Any) -> None:
        super().__init__(col, **kw)
        self._distributors = distributors

    def _joined(self, op: str, docs: List[Dict[str, Any]], inner: bool) -> List[Product]:
        names = self._distributors.names_by_id([str(d.get("distributor_id") or "") for d in docs])

        def parse(d: Dict[str, Any]) -> Product:
            return parse_product(d, names.get(str(d.get("distributor_id") or "")))

        if inner:
            docs = [d for d in docs if str(d.get("distributor_id") or "") in names]
        return self._parse_all(op, docs, parse)

    def list_available(self) -> List[Product]:
        docs = self._read("list_products", lambda: list(self._col.find({"stock": {"$gt": 0}})))
        return self._joined("list_products", docs, inner=True)

    def list_featured(self, limit: int) -> List[Product]:
        docs = self._read(
            "list_featured",
            lambda: list(self._col.find({"featured": True, "stock": {"$gt": 0}}).limit(limit)),
        )
        return self._joined("list_featured", docs, inner=True)

    def list_all(self) -> List[Product]:
        docs = self._read("list_all_products", lambda: list(self._col.find({}).sort("created_at", DESCENDING)))
        return self._joined("list_all_products", docs, inner=False)

    def get(self, product_id: str) -> Product | None:
        oid = _as_oid(product_id)
        if oid is None:
            return None
        doc = self._read("get_product", lambda: self._col.find_one({"_id": oid}))
        if not doc:
            return None
        names = self._distributors.names_by_id([str(doc.get("distributor_id") or "")])
        return self._parse_one(
            "get_product", doc, lambda d: parse_product(d, names.get(str(d.get("distributor_id") or "")))
        )

    def create(self, data: Dict[str, Any]) -> str:
        now = _utcnow()
        doc = product_document(data)
        doc["created_at"] = now
        doc["updated_at"] = now
        res = self._write("create_product", lambda: self._col.insert_one(doc))
        log.info("Product created: %s", res.inserted_id)
        return str(res.inserted_id)

    def update(self, product_id: str, data: Dict[str, Any]) -> bool:
        oid = _as_oid(product_id)
        if oid is None:
            return False
        changes = product_document(data)
        changes["updated_at"] = _utcnow()
        res = self._write("update_product", lambda: self._col.update_one({"_id": oid}, {"$set": changes}))
        return res.matched_count > 0

    def delete(self, product_id: str) -> bool:
        oid = _as_oid(product_id)
        if oid is None:
            return False
        res = self._write("delete_product", lambda: self._col.delete_one({"_id": oid}))
        return res.deleted_count > 0


class MongoOrderRepository(_MongoRepo):
    """
    Orders embed their line items (unit price snapshot per line).
    short_id is stored and indexed so customer lookup is not a collection scan.
    """

    def ensure_indexes(self) -> None:
        self._write("order_indexes", lambda: self._col.create_index("short_id", unique=True))
        self._write("order_indexes", lambda: self._col.create_index([("created_at", DESCENDING)]))

    def create(self, draft: OrderDraft) -> str:
        oid = ObjectId()
        doc = order_document(draft, oid, _utcnow())
        self._write("create_order", lambda: self._col.insert_one(doc))
        log.info("Order created: %s total=%.2f", oid, draft.total)
        return str(oid)

    def get(self, order_id: str) -> Order | None:
        oid = _as_oid(order_id)
        if oid is None:
            return None
        doc = self._read("get_order", lambda: self._col.find_one({"_id": oid}))
        return self._parse_one("get_order", doc, parse_order) if doc else None

    def get_by_short_id(self, short_id: str) -> Order | None:
        key = (short_id or "").strip().upper()
        if len(key) != 8:
            return None
        doc = self._read("get_order_by_short_id", lambda: self._col.find_one({"short_id": key}))
        return self._parse_one("get_order_by_short_id", doc, parse_order) if doc else None

    def list_all(self) -> List[Order]:
        docs = self._read("list_orders", lambda: list(self._col.find({}).sort("created_at", DESCENDING)))
        return self._parse_all("list_orders", docs, parse_order)

    def update_status(self, order_id: str, expected_status: OrderStatus, expected_version: int, new_status: OrderStatus) -> bool:
        oid = _as_oid(order_id)
        if oid is None:
            return False
        res = self._write(
            "update_order_status",
            lambda: self._col.update_one(
                {"_id": oid, "status": OrderStatus(expected_status).value, "version": expected_version},
                {"$set": {"status": OrderStatus(new_status).value, "updated_at": _utcnow()}, "$inc": {"version": 1}},
            ),
        )
        return res.matched_count > 0


class MongoAdminUserRepository(_MongoRepo):
    def find_active_by_email(self, email: str) -> Tuple[AdminUser, str] | None:
        key = (email or "").strip().lower()
        doc = self._read("find_admin", lambda: self._col.find_one({"email": key, "is_active": True}))
        if not doc:
            return None
        admin = AdminUser(
            id=_as_str_id(doc.get("_id")),
            email=str(doc.get("email") or ""),
            name=str(doc.get("name") or ""),
            role=str(doc.get("role") or "admin"),
            is_active=bool(doc.get("is_active", True)),
            created_at=_as_utc(doc.get("created_at")) if doc.get("created_at") else None,
        )
        return admin, str(doc.get("password_hash") or "")


def parse_settings(x: Dict[str, Any]) -> StoreSettings:
    return StoreSettings(
        id=_as_str_id(x.get("id") or x.get("_id")),
        store_name=str(x.get("store_name") or ""),
        store_address=str(x.get("store_address") or ""),
        store_phone=str(x.get("store_phone") or ""),
        store_email=str(x.get("store_email") or ""),
        logo_url=str(x.get("logo_url") or ""),
        base_delivery_fee=float(x.get("base_delivery_fee") or 0),
        minimum_order_value=float(x.get("minimum_order_value") or 0),
        delivery_radius_km=float(x.get("delivery_radius_km") or 0),
        updated_at=_as_utc(x.get("updated_at")) if x.get("updated_at") else None,
    )


class MongoSettingsRepository(_MongoRepo):
    def get(self) -> StoreSettings | None:
        doc = self._read("get_settings", lambda: self._col.find_one({}))
        return parse_settings(doc) if doc else None

    def update(self, settings_id: str, changes: Dict[str, Any]) -> bool:
        oid = _as_oid(settings_id)
        if oid is None:
            return False
        upd = {k: changes[k] for k in SETTINGS_FIELDS if k in changes}
        upd["updated_at"] = _utcnow()
        res = self._write("update_settings", lambda: self._col.update_one({"_id": oid}, {"$set": upd}))
        return res.matched_count > 0
