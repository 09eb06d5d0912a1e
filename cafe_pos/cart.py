"""Draft cart: the unsaved order one operator is assembling."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterator
from uuid import uuid4

from cafe_pos.config import MAX_LINE_QUANTITY
from cafe_pos.errors import ValidationError
from cafe_pos.models import DraftLineItem, MenuItem

PriceLookup = Callable[[str], "Decimal | None"]


def validate_quantity(value: object) -> int:
    """Parse operator input into a line quantity, before it reaches the cart."""
    if isinstance(value, bool):
        raise ValidationError("Quantity must be a whole number.")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValidationError("Quantity must be a whole number.")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError("Quantity must be a whole number.")
    if not (1 <= value <= MAX_LINE_QUANTITY):
        raise ValidationError(f"Quantity must be between 1 and {MAX_LINE_QUANTITY}.")
    return value


def validate_selection(menu_item: MenuItem, selected_options: dict[str, str]) -> dict[str, str]:
    """Check every selected option exists on the item and holds a permitted value."""
    for option_id, value in selected_options.items():
        spec = menu_item.option(option_id)
        if spec is None:
            raise ValidationError(f"{menu_item.name} has no option {option_id!r}.")
        if value not in spec.permitted_values():
            raise ValidationError(f"{value!r} is not a valid {spec.name} for {menu_item.name}.")
    return dict(selected_options)


class DraftCart:
    """Ordered line items; equivalent additions merge into one line."""

    def __init__(self) -> None:
        self._items: list[DraftLineItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[DraftLineItem]:
        return iter(list(self._items))

    @property
    def items(self) -> tuple[DraftLineItem, ...]:
        return tuple(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def add(self, menu_item_id: str, selected_options: dict[str, str], quantity: int = 1) -> DraftLineItem:
        """Append a line, or grow the equivalent line already in the cart.

        Callers pass quantities through ``validate_quantity`` first; a
        quantity below 1 here is a programming error and raises ``ValueError``.
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        for item in self._items:
            if item.is_equivalent(menu_item_id, selected_options):
                item.quantity += quantity
                return item

        item = DraftLineItem(
            line_id=uuid4().hex,
            menu_item_id=menu_item_id,
            selected_options=dict(selected_options),
            quantity=quantity,
        )
        self._items.append(item)
        return item

    def remove(self, line_id: str) -> None:
        self._items = [item for item in self._items if item.line_id != line_id]

    def clear(self) -> None:
        self._items.clear()

    def total(self, price_lookup: PriceLookup) -> Decimal:
        total = Decimal("0")
        for item in self._items:
            price = price_lookup(item.menu_item_id)
            if price is None:
                continue
            total += price * item.quantity
        return total
