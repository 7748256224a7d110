# adega_delivery/src/application/cart.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence

from src.domain.entities import CartItem, Distributor, Product

log = logging.getLogger("app.cart")


@dataclass(frozen=True)
class CartTotals:
    count: int
    subtotal: float
    primary_distributor_id: Optional[str]
    delivery_fee: float
    total: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "count": self.count,
            "subtotal": round(self.subtotal, 2),
            "primary_distributor_id": self.primary_distributor_id,
            "delivery_fee": round(self.delivery_fee, 2),
            "total": round(self.total, 2),
        }


class Cart:
    """
    Client cart, one per session.
    Invariants: at most one entry per product id, every quantity > 0.
    """

    def __init__(self, items: Optional[Iterable[CartItem]] = None) -> None:
        # dict keeps insertion order
        self._items: Dict[str, CartItem] = {}
        for it in items or []:
            if it.quantity > 0:
                self._items[it.product.id] = it

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    @property
    def count(self) -> int:
        return sum(i.quantity for i in self._items.values())

    @property
    def subtotal(self) -> float:
        return sum(i.line_total for i in self._items.values())

    def is_empty(self) -> bool:
        return not self._items

    def add(self, product: Product) -> CartItem:
        cur = self._items.get(product.id)
        if cur is None:
            item = CartItem(product=product, quantity=1)
        else:
            item = replace(cur, quantity=cur.quantity + 1)
        self._items[product.id] = item
        return item

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartItem]:
        if quantity <= 0:
            self.remove(product_id)
            return None
        cur = self._items.get(product_id)
        if cur is None:
            return None
        item = replace(cur, quantity=int(quantity))
        self._items[product_id] = item
        return item

    def remove(self, product_id: str) -> None:
        self._items.pop(product_id, None)

    def clear(self) -> None:
        self._items.clear()


# ----------------------------
# Aggregation
# ----------------------------
def primary_distributor_id(items: Sequence[CartItem]) -> Optional[str]:
    """Distributor with the largest summed quantity; ties go to the first seen."""
    counts: Dict[str, int] = {}
    for it in items:
        d = it.product.distributor_id
        if not d:
            continue
        counts[d] = counts.get(d, 0) + it.quantity

    best: Optional[str] = None
    best_qty = 0
    for d, qty in counts.items():
        if qty > best_qty:
            best, best_qty = d, qty
    return best


def cart_totals(items: Sequence[CartItem], distributors: Sequence[Distributor] = ()) -> CartTotals:
    count = sum(i.quantity for i in items)
    subtotal = sum(i.line_total for i in items)
    primary = primary_distributor_id(items)

    fee = 0.0
    if primary is not None:
        dist = next((d for d in distributors if d.id == primary), None)
        if dist is not None:
            fee = float(dist.delivery_fee)
        else:
            log.debug("Distributor %s not in active list, delivery fee defaults to 0", primary)

    return CartTotals(
        count=count,
        subtotal=subtotal,
        primary_distributor_id=primary,
        delivery_fee=fee,
        total=subtotal + fee,
    )
