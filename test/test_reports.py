from __future__ import annotations

from datetime import datetime, timedelta, timezone

from conftest import make_order, make_product
from src.application import reports
from src.domain.entities import CartItem, OrderStatus

NOW = datetime(2024, 5, 20, 15, 0, tzinfo=timezone.utc)


def _orders():
    beer = make_product("beer", name="Cerveja", price=5.0)
    wine = make_product("wine", name="Vinho", price=40.0)
    return [
        make_order("o1", items=[CartItem(beer, 4)], delivery_fee=0, created_at=NOW - timedelta(hours=1)),
        make_order("o2", items=[CartItem(beer, 2), CartItem(wine, 1)], delivery_fee=0,
                   status=OrderStatus.DELIVERED, created_at=NOW - timedelta(days=1)),
        make_order("o3", items=[CartItem(wine, 1)], delivery_fee=0,
                   status=OrderStatus.CANCELLED, created_at=NOW - timedelta(days=40)),
    ]


def test_order_stats():
    stats = reports.order_stats(_orders())
    assert stats == {
        "total_orders": 3,
        "total_revenue": 110.0,
        "pending_orders": 1,
        "completed_orders": 1,
        "average_order_value": 36.67,
    }


def test_order_stats_empty():
    assert reports.order_stats([])["average_order_value"] == 0.0


def test_product_stats_and_low_stock():
    products = [
        make_product("a", stock=0),
        make_product("b", stock=3, featured=True),
        make_product("c", stock=10),
        make_product("d", stock=11),
    ]
    assert reports.product_stats(products) == {
        "total_products": 4,
        "low_stock_products": 2,
        "out_of_stock_products": 1,
        "featured_products": 1,
    }
    assert [p.id for p in reports.low_stock_products(products)] == ["b", "c"]


def test_top_products_by_quantity():
    top = reports.top_products(_orders())
    assert top[0] == {"product_id": "beer", "name": "Cerveja", "total_sold": 6, "revenue": 30.0}
    assert top[1] == {"product_id": "wine", "name": "Vinho", "total_sold": 2, "revenue": 80.0}
    assert reports.top_products(_orders(), limit=1) == top[:1]


def test_sales_by_day_only_counts_the_window():
    rows = reports.sales_by_day(_orders(), 7, now=NOW)
    assert rows == [
        {"date": "2024-05-19", "orders": 1, "revenue": 50.0},
        {"date": "2024-05-20", "orders": 1, "revenue": 20.0},
    ]
    assert len(reports.sales_by_day(_orders(), 90, now=NOW)) == 3


def test_csv_export():
    text = reports.to_csv([{"date": "2024-05-19", "orders": 1, "revenue": 50.0}])
    assert text == "date,orders,revenue\n2024-05-19,1,50.0\n"
    assert reports.to_csv([]) == ""
