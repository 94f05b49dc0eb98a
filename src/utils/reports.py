from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from api.models import Order, OrderStatus, Product

# statuses whose totals count as committed revenue
REVENUE_STATUSES = {
    OrderStatus.APPROVED,
    OrderStatus.ACCEPTED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.FULFILLED,
}


@dataclass
class TopItem:
    product_id: str
    name: str
    quantity: int
    revenue: float


def status_counts(orders: Iterable[Order]) -> Dict[OrderStatus, int]:
    counts = {status: 0 for status in OrderStatus}
    for order in orders:
        counts[order.status] += 1
    return counts


def revenue(orders: Iterable[Order]) -> float:
    return sum(o.total_amount for o in orders if o.status in REVENUE_STATUSES)


def average_items_per_order(orders: Sequence[Order]) -> float:
    if not orders:
        return 0.0
    return sum(o.item_count for o in orders) / len(orders)


def inventory_value(products: Iterable[Product]) -> float:
    return sum((p.price or 0.0) * p.stock_quantity for p in products)


def top_items(orders: Iterable[Order], k: int = 3) -> List[TopItem]:
    """Products ranked by ordered quantity, first seen wins ties."""
    acc: Dict[str, TopItem] = {}
    for order in orders:
        for item in order.items:
            entry = acc.get(item.product_id)
            if entry is None:
                acc[item.product_id] = TopItem(
                    item.product_id, item.product_name, item.quantity, item.line_total
                )
            else:
                entry.quantity += item.quantity
                entry.revenue += item.line_total
    return sorted(acc.values(), key=lambda t: t.quantity, reverse=True)[:k]
