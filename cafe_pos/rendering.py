"""Rich text helpers shared by the station views."""

from __future__ import annotations

from decimal import Decimal

from rich.text import Text

from cafe_pos.data import status_label
from cafe_pos.models import DraftLineItem, MenuItem, Order, OrderStatus


def badge_style(status: OrderStatus) -> str:
    """Return a consistent badge style for order statuses."""
    if status is OrderStatus.PENDING:
        return "bold #2b2100 on #f2c94c"
    if status is OrderStatus.PREPARING:
        return "bold #ffffff on #2f6db5"
    if status is OrderStatus.READY:
        return "bold #0b1f0f on #5fbf72"
    if status is OrderStatus.CANCELLED:
        return "bold #ffffff on #b23a48"
    return "bold #ffffff on #555555"


def format_money(amount: Decimal | None) -> str:
    if amount is None:
        return "-"
    return f"${amount.quantize(Decimal('0.01'))}"


def format_status_badge(status: OrderStatus) -> Text:
    return Text(f" {status_label(status.value)} ", style=badge_style(status))


def format_order_label(order: Order) -> Text:
    """Render "#<number or short id>" followed by the status badge."""
    text = Text()
    if order.order_number is not None:
        text.append(f"#{order.order_number}", style="bold")
    else:
        text.append(f"#{order.short_id}", style="bold")
    text.append(" ")
    text.append_text(format_status_badge(order.status))
    return text


def format_order_items(order: Order, indent: str = "    ") -> Text:
    text = Text()
    if not order.items:
        text.append(f"{indent}No items", style="dim")
        return text
    for idx, item in enumerate(order.items):
        if idx > 0:
            text.append("\n")
        text.append(f"{indent}{item.name or 'Item'}")
        text.append(f" × {item.quantity}", style="dim")
    return text


def format_option_summary(line: DraftLineItem, menu_item: MenuItem) -> str:
    parts: list[str] = []
    for spec in menu_item.options:
        value = line.selected_options.get(spec.option_id)
        if value is None:
            continue
        if spec.kind.value == "checkbox":
            if value == "true":
                parts.append(spec.name)
            continue
        parts.append(f"{spec.name}: {value}")
    return ", ".join(parts)


def format_draft_line(line: DraftLineItem, menu_item: MenuItem | None) -> Text:
    text = Text()
    if menu_item is None:
        text.append(f"{line.menu_item_id} × {line.quantity}", style="dim")
        return text
    text.append(menu_item.name, style="bold")
    text.append(f" × {line.quantity}")
    text.append(f"  {format_money(menu_item.price * line.quantity)}", style="dim")
    summary = format_option_summary(line, menu_item)
    if summary:
        text.append(f"\n      {summary}", style="white")
    return text


def format_connection(connected: bool) -> Text:
    if connected:
        return Text("● live", style="bold #5fbf72")
    return Text("● offline: orders may not update in real-time", style="bold #b23a48")
