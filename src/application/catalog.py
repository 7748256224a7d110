# adega_delivery/src/application/catalog.py
from __future__ import annotations

import logging
import unicodedata
from typing import Iterable, List, Optional, Sequence, Tuple

from src.domain.entities import FilterOptions, Order, OrderStatus, Product, ProductCategory, SortKey

log = logging.getLogger("app.catalog")


# ----------------------------
# Normalization
# ----------------------------
def _strip_accents(s: str) -> str:
    s = unicodedata.normalize("NFD", s or "")
    return "".join(ch for ch in s if unicodedata.category(ch) != "Mn")


def collation_key(name: str) -> Tuple[str, str, str]:
    """
    Locale-style ordering key:
      1) base letters, accent and case insensitive
      2) lower case before upper case
      3) accented after unaccented
    """
    base = _strip_accents(name)
    return base.casefold(), base.swapcase(), name


def _matches_query(p: Product, query: str) -> bool:
    fields = [p.name, p.brand, p.description, *(p.tags or [])]
    return any(query in (f or "").lower() for f in fields)


# ----------------------------
# Storefront pipeline
# ----------------------------
def filter_and_sort(
    products: Sequence[Product],
    query: str = "",
    options: Optional[FilterOptions] = None,
) -> List[Product]:
    """Filter a product list by free text + FilterOptions, then order it. Pure."""
    opts = options or FilterOptions()
    out = list(products)

    if query and query.strip():
        q = query.lower()
        out = [p for p in out if _matches_query(p, q)]

    if opts.category is not None:
        out = [p for p in out if p.category == opts.category]

    # both bounds are required, a single bound is ignored
    if opts.min_price is not None and opts.max_price is not None:
        out = [p for p in out if opts.min_price <= p.price <= opts.max_price]

    if opts.distributor_id:
        out = [p for p in out if p.distributor_id == opts.distributor_id]

    return sort_products(out, opts.sort_by)


def sort_products(products: Iterable[Product], sort_by: Optional[SortKey]) -> List[Product]:
    items = list(products)
    if sort_by is None:
        return items
    if sort_by == SortKey.PRICE_ASC:
        return sorted(items, key=lambda p: p.price)
    if sort_by == SortKey.PRICE_DESC:
        return sorted(items, key=lambda p: p.price, reverse=True)
    if sort_by == SortKey.NAME:
        return sorted(items, key=lambda p: collation_key(p.name))
    if sort_by == SortKey.RATING:
        return sorted(items, key=lambda p: not p.featured)
    log.warning("Unknown sort key %r, keeping input order", sort_by)
    return items


# ----------------------------
# Admin console filters
# ----------------------------
def filter_admin_products(
    products: Sequence[Product],
    query: str = "",
    category: Optional[ProductCategory] = None,
) -> List[Product]:
    out = list(products)
    q = (query or "").strip().lower()
    if q:
        out = [
            p for p in out
            if q in p.name.lower() or q in p.brand.lower() or q in (p.description or "").lower()
        ]
    if category is not None:
        out = [p for p in out if p.category == category]
    return out


def filter_orders(
    orders: Sequence[Order],
    query: str = "",
    status: Optional[OrderStatus] = None,
) -> List[Order]:
    out = list(orders)
    q = (query or "").strip().lower()
    if q:
        out = [
            o for o in out
            if q in o.id.lower()
            or q in (o.customer_name or "").lower()
            or q in (o.customer_email or "").lower()
        ]
    if status is not None:
        out = [o for o in out if o.status == status]
    return out
