# adega_delivery/src/application/order_workflow.py
from __future__ import annotations

from typing import Dict, FrozenSet, List

from src.domain.entities import OrderStatus
from src.domain.errors import InvalidTransitionError

# Forward chain; cancelled hangs off every non-terminal state.
STATUS_FLOW: List[OrderStatus] = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.ON_WAY,
    OrderStatus.DELIVERED,
]
TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

STATUS_LABELS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pendente",
    OrderStatus.CONFIRMED: "Confirmado",
    OrderStatus.PREPARING: "Preparando",
    OrderStatus.ON_WAY: "Saiu para entrega",
    OrderStatus.DELIVERED: "Entregue",
    OrderStatus.CANCELLED: "Cancelado",
}


def _build_transitions() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    table: Dict[OrderStatus, FrozenSet[OrderStatus]] = {}
    for i, st in enumerate(STATUS_FLOW):
        if st in TERMINAL_STATUSES:
            table[st] = frozenset()
            continue
        # operators may skip ahead (e.g. confirmed -> on_way), never go back
        table[st] = frozenset(STATUS_FLOW[i + 1:]) | {OrderStatus.CANCELLED}
    table[OrderStatus.CANCELLED] = frozenset()
    return table


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = _build_transitions()


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def next_allowed_statuses(current: OrderStatus) -> FrozenSet[OrderStatus]:
    return TRANSITIONS.get(OrderStatus(current), frozenset())


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in next_allowed_statuses(current)


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(OrderStatus(current).value, OrderStatus(target).value)


def status_label(status: OrderStatus) -> str:
    return STATUS_LABELS.get(OrderStatus(status), str(status))


def ordered_next_statuses(current: OrderStatus) -> List[OrderStatus]:
    """next_allowed_statuses in workflow order, cancelled last (for display)."""
    allowed = next_allowed_statuses(current)
    ordered = [s for s in STATUS_FLOW if s in allowed]
    if OrderStatus.CANCELLED in allowed:
        ordered.append(OrderStatus.CANCELLED)
    return ordered
