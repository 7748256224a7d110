# adega_delivery/src/application/reports.py
from __future__ import annotations

import csv
import io
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from src.core.config import LOW_STOCK_REPORT_LIMIT, LOW_STOCK_THRESHOLD, TOP_PRODUCTS_LIMIT
from src.domain.entities import Order, OrderStatus, Product


def _is_low_stock(p: Product) -> bool:
    return 0 < p.stock <= LOW_STOCK_THRESHOLD


def order_stats(orders: Sequence[Order]) -> Dict[str, Any]:
    total_orders = len(orders)
    total_revenue = sum(o.total for o in orders)
    return {
        "total_orders": total_orders,
        "total_revenue": round(total_revenue, 2),
        "pending_orders": sum(1 for o in orders if o.status == OrderStatus.PENDING),
        "completed_orders": sum(1 for o in orders if o.status == OrderStatus.DELIVERED),
        "average_order_value": round(total_revenue / total_orders, 2) if total_orders else 0.0,
    }


def product_stats(products: Sequence[Product]) -> Dict[str, Any]:
    return {
        "total_products": len(products),
        "low_stock_products": sum(1 for p in products if _is_low_stock(p)),
        "out_of_stock_products": sum(1 for p in products if p.stock == 0),
        "featured_products": sum(1 for p in products if p.featured),
    }


def top_products(orders: Sequence[Order], limit: int = TOP_PRODUCTS_LIMIT) -> List[Dict[str, Any]]:
    """Best sellers by quantity, revenue from the unit price captured on each order."""
    sales: Dict[str, Dict[str, Any]] = {}
    for o in orders:
        for it in o.items:
            row = sales.get(it.product.id)
            if row is None:
                row = {"product_id": it.product.id, "name": it.product.name, "total_sold": 0, "revenue": 0.0}
                sales[it.product.id] = row
            row["total_sold"] += it.quantity
            row["revenue"] += it.line_total

    ranked = sorted(sales.values(), key=lambda r: -r["total_sold"])
    for r in ranked:
        r["revenue"] = round(r["revenue"], 2)
    return ranked[:limit]


def low_stock_products(products: Sequence[Product], limit: int = LOW_STOCK_REPORT_LIMIT) -> List[Product]:
    return sorted((p for p in products if _is_low_stock(p)), key=lambda p: p.stock)[:limit]


def recent_orders(orders: Sequence[Order], days: int, now: Optional[datetime] = None) -> List[Order]:
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=days)
    recent = [o for o in orders if o.created_at >= since]
    recent.sort(key=lambda o: o.created_at, reverse=True)
    return recent


def sales_by_day(orders: Sequence[Order], days: int, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    by_day: Dict[str, Dict[str, Any]] = {}
    for o in recent_orders(orders, days, now):
        key = o.created_at.date().isoformat()
        row = by_day.setdefault(key, {"date": key, "orders": 0, "revenue": 0.0})
        row["orders"] += 1
        row["revenue"] += o.total

    rows = sorted(by_day.values(), key=lambda r: r["date"])
    for r in rows:
        r["revenue"] = round(r["revenue"], 2)
    return rows


def to_csv(rows: Sequence[Dict[str, Any]]) -> str:
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()
