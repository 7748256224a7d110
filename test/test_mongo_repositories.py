from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, OperationFailure

from conftest import make_product
from src.domain.entities import CartItem, OrderDraft, OrderStatus, PaymentMethod
from src.domain.errors import DataAccessError
from src.infrastructure.mongo_repositories import (
    MongoDistributorRepository,
    MongoOrderRepository,
    MongoProductRepository,
    MongoSettingsRepository,
    parse_order,
)


# ----------------------------
# Minimal in-process stand-in for a pymongo Collection
# ----------------------------
def _match(doc: Dict[str, Any], flt: Dict[str, Any]) -> bool:
    for k, cond in flt.items():
        v = doc.get(k)
        if isinstance(cond, dict):
            if "$gt" in cond and not (v is not None and v > cond["$gt"]):
                return False
            if "$in" in cond and v not in cond["$in"]:
                return False
        elif v != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def limit(self, n: int) -> "FakeCursor":
        self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:
    def __init__(self, docs: List[Dict[str, Any]] | None = None) -> None:
        self.docs: List[Dict[str, Any]] = [dict(d) for d in docs or []]
        self.indexes: List[Any] = []

    def find(self, flt: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([dict(d) for d in self.docs if _match(d, flt)])

    def find_one(self, flt: Dict[str, Any]):
        return next((dict(d) for d in self.docs if _match(d, flt)), None)

    def insert_one(self, doc: Dict[str, Any]):
        doc.setdefault("_id", ObjectId())
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    def update_one(self, flt: Dict[str, Any], update: Dict[str, Any]):
        for d in self.docs:
            if _match(d, flt):
                d.update(update.get("$set", {}))
                for k, n in update.get("$inc", {}).items():
                    d[k] = d.get(k, 0) + n
                return SimpleNamespace(matched_count=1)
        return SimpleNamespace(matched_count=0)

    def delete_one(self, flt: Dict[str, Any]):
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _match(d, flt)]
        return SimpleNamespace(deleted_count=before - len(self.docs))

    def create_index(self, keys: Any, **kw: Any) -> str:
        self.indexes.append((keys, kw))
        return str(keys)


class FlakyCollection(FakeCollection):
    def __init__(self, failures: int, exc: Exception, docs=None) -> None:
        super().__init__(docs)
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def find_one(self, flt):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return super().find_one(flt)

    def insert_one(self, doc):
        self.calls += 1
        raise self.exc


def _draft() -> OrderDraft:
    return OrderDraft(
        customer_name="Maria",
        customer_email="maria@example.com",
        customer_phone="11999990000",
        delivery_address="Rua A, 1",
        payment_method=PaymentMethod.CASH,
        items=[CartItem(make_product("p1", price=12.5), 2)],
        distributor_id="d1",
        delivery_fee=5.0,
    )


# ----------------------------
# Orders
# ----------------------------
def test_order_create_and_get_keeps_price_snapshot():
    repo = MongoOrderRepository(FakeCollection())
    oid = repo.create(_draft())

    order = repo.get(oid)
    assert order.status == OrderStatus.PENDING
    assert order.version == 0
    assert order.total == 30.0
    assert order.items[0].product.price == 12.5
    assert order.items[0].quantity == 2
    assert order.short_id == oid[-8:].upper()


def test_order_lookup_by_stored_short_id():
    repo = MongoOrderRepository(FakeCollection())
    oid = repo.create(_draft())
    assert repo.get_by_short_id(oid[-8:].lower()).id == oid
    assert repo.get_by_short_id("ZZZZZZZZ") is None
    assert repo.get_by_short_id("abc") is None


def test_ensure_indexes_makes_short_id_unique():
    col = FakeCollection()
    MongoOrderRepository(col).ensure_indexes()
    assert ("short_id", {"unique": True}) in col.indexes


def test_order_status_compare_and_swap():
    repo = MongoOrderRepository(FakeCollection())
    oid = repo.create(_draft())
    assert repo.update_status(oid, OrderStatus.PENDING, 0, OrderStatus.CONFIRMED)
    assert not repo.update_status(oid, OrderStatus.PENDING, 0, OrderStatus.CANCELLED)
    order = repo.get(oid)
    assert order.status == OrderStatus.CONFIRMED
    assert order.version == 1


def test_bad_object_id_is_not_found():
    repo = MongoOrderRepository(FakeCollection())
    assert repo.get("not-an-id") is None
    assert not repo.update_status("not-an-id", OrderStatus.PENDING, 0, OrderStatus.CONFIRMED)


def test_parse_order_prefers_unit_price_over_product_price():
    order = parse_order({
        "_id": ObjectId(),
        "total_amount": 20,
        "payment_method": "pix",
        "status": "preparing",
        "created_at": datetime(2024, 1, 1, 12, 0),
        "items": [{"product_id": "p1", "quantity": 2, "unit_price": 10, "product": {
            "name": "Cerveja", "price": 99, "category": "cerveja", "distributor_id": "d1",
        }}],
    })
    assert order.items[0].product.price == 10
    assert order.items[0].product.id == "p1"
    assert order.created_at.tzinfo is not None
    assert (order.estimated_delivery - order.created_at).total_seconds() == 45 * 60


# ----------------------------
# Products / distributors
# ----------------------------
def test_products_without_known_distributor_are_hidden_from_storefront():
    d_id = ObjectId()
    distributors = MongoDistributorRepository(FakeCollection([{"_id": d_id, "name": "Central", "is_active": True}]))
    products = FakeCollection([
        {"_id": ObjectId(), "name": "A", "price": 5, "category": "cerveja", "stock": 3,
         "distributor_id": str(d_id), "created_at": datetime(2024, 1, 2, tzinfo=timezone.utc)},
        {"_id": ObjectId(), "name": "B", "price": 5, "category": "cerveja", "stock": 3,
         "distributor_id": str(ObjectId()), "created_at": datetime(2024, 1, 3, tzinfo=timezone.utc)},
        {"_id": ObjectId(), "name": "C", "price": 5, "category": "vinho", "stock": 0,
         "distributor_id": str(d_id), "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
    ])
    repo = MongoProductRepository(products, distributors)

    available = repo.list_available()
    assert [p.name for p in available] == ["A"]
    assert available[0].distributor_name == "Central"
    assert [p.name for p in repo.list_all()] == ["B", "A", "C"]


def test_malformed_product_is_skipped_in_listings():
    d_id = ObjectId()
    bad_id = ObjectId()
    distributors = MongoDistributorRepository(FakeCollection([{"_id": d_id, "name": "Central", "is_active": True}]))
    products = FakeCollection([
        {"_id": ObjectId(), "name": "A", "price": 5, "category": "cerveja", "stock": 3,
         "distributor_id": str(d_id), "created_at": datetime(2024, 1, 2, tzinfo=timezone.utc)},
        {"_id": bad_id, "name": "Pinga", "price": 5, "category": "destilado", "stock": 3,
         "distributor_id": str(d_id), "created_at": datetime(2024, 1, 3, tzinfo=timezone.utc)},
    ])
    repo = MongoProductRepository(products, distributors)

    assert [p.name for p in repo.list_available()] == ["A"]
    assert [p.name for p in repo.list_all()] == ["A"]
    with pytest.raises(DataAccessError):
        repo.get(str(bad_id))


def test_malformed_order_is_skipped_in_listing():
    col = FakeCollection()
    repo = MongoOrderRepository(col)
    good = repo.create(_draft())
    bad_id = ObjectId()
    col.docs.append({"_id": bad_id, "short_id": "BADBAD00", "payment_method": "cheque",
                     "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)})

    assert [o.id for o in repo.list_all()] == [good]
    with pytest.raises(DataAccessError):
        repo.get(str(bad_id))
    with pytest.raises(DataAccessError):
        repo.get_by_short_id("badbad00")


def test_malformed_distributor_is_skipped():
    col = FakeCollection([
        {"_id": ObjectId(), "name": "Central", "is_active": True},
        {"_id": ObjectId(), "name": "Broken", "is_active": True, "rating": "five stars"},
    ])
    assert [d.name for d in MongoDistributorRepository(col).list_active()] == ["Central"]


def test_product_crud():
    distributors = MongoDistributorRepository(FakeCollection())
    repo = MongoProductRepository(FakeCollection(), distributors)
    pid = repo.create({
        "name": "Gin", "description": "London dry", "price": 80.0, "image_url": "x", "category": "gin",
        "volume": "750ml", "alcohol_content": "40%", "brand": "Tanqueray", "distributor_id": "d1", "stock": 5,
    })
    assert repo.update(pid, {"price": 75.0, "unknown": "ignored"})
    assert repo.get(pid).price == 75.0
    assert repo.delete(pid)
    assert repo.get(pid) is None
    assert not repo.delete(pid)


def test_settings_update():
    sid = ObjectId()
    repo = MongoSettingsRepository(FakeCollection([{"_id": sid, "store_name": "Old", "base_delivery_fee": 5}]))
    assert repo.update(str(sid), {"store_name": "New"})
    s = repo.get()
    assert s.store_name == "New"
    assert s.updated_at is not None
    assert not repo.update(str(ObjectId()), {"store_name": "X"})


# ----------------------------
# Retry / error boundary
# ----------------------------
def test_reads_retry_transient_errors():
    oid = ObjectId()
    col = FlakyCollection(2, AutoReconnect("down"), [{"_id": oid, "name": "Central"}])
    repo = MongoDistributorRepository(col, retry_attempts=3, retry_backoff_s=0)
    assert repo.get(str(oid)).name == "Central"
    assert col.calls == 3


def test_reads_give_up_after_attempts():
    col = FlakyCollection(5, AutoReconnect("down"))
    repo = MongoDistributorRepository(col, retry_attempts=2, retry_backoff_s=0)
    with pytest.raises(DataAccessError):
        repo.get(str(ObjectId()))
    assert col.calls == 2


def test_non_transient_errors_are_not_retried():
    col = FlakyCollection(5, OperationFailure("unauthorized"))
    repo = MongoDistributorRepository(col, retry_attempts=3, retry_backoff_s=0)
    with pytest.raises(DataAccessError):
        repo.get(str(ObjectId()))
    assert col.calls == 1


def test_writes_are_not_retried():
    col = FlakyCollection(5, AutoReconnect("down"))
    repo = MongoOrderRepository(col, retry_attempts=3, retry_backoff_s=0)
    with pytest.raises(DataAccessError):
        repo.create(_draft())
    assert col.calls == 1
