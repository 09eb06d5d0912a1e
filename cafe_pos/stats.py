"""Numbers behind the customer profile dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from cafe_pos.models import Order

DAYS_SHOWN = 14


@dataclass(frozen=True)
class DayCount:
    day: str
    count: int


@dataclass(frozen=True)
class ProfileStats:
    total_orders: int = 0
    total_items: int = 0
    orders_this_week: int = 0
    orders_this_month: int = 0
    total_spent: Decimal = Decimal("0")
    top_products: list[tuple[str, int]] = field(default_factory=list)
    orders_by_day: list[DayCount] = field(default_factory=list)


def top_products(orders: Iterable[Order]) -> list[tuple[str, int]]:
    """Quantities per product name, largest first; ties keep first-seen order."""
    by_name: dict[str, int] = {}
    for order in orders:
        for item in order.items:
            name = item.name or "Unknown"
            by_name[name] = by_name.get(name, 0) + item.quantity
    return sorted(by_name.items(), key=lambda pair: -pair[1])


def orders_by_day(orders: Iterable[Order], days: int = DAYS_SHOWN) -> list[DayCount]:
    """Order counts for the most recent ``days`` distinct dates, oldest first."""
    counts: dict[str, int] = {}
    for order in orders:
        key = order.created_at.date().isoformat()
        counts[key] = counts.get(key, 0) + 1
    ordered = sorted(counts.items())
    return [DayCount(day=day, count=count) for day, count in ordered[-days:]]


def summarize(orders: Iterable[Order], now: datetime) -> ProfileStats:
    orders = list(orders)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)
    return ProfileStats(
        total_orders=len(orders),
        total_items=sum(order.item_count for order in orders),
        orders_this_week=sum(1 for order in orders if order.created_at >= week_ago),
        orders_this_month=sum(1 for order in orders if order.created_at >= month_ago),
        total_spent=sum((order.total or Decimal("0") for order in orders), Decimal("0")),
        top_products=top_products(orders),
        orders_by_day=orders_by_day(orders),
    )
