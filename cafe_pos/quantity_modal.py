"""Quantity stepper modal screen."""

from __future__ import annotations

from decimal import Decimal

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from cafe_pos.cart import validate_quantity
from cafe_pos.config import MAX_LINE_QUANTITY
from cafe_pos.errors import ValidationError
from cafe_pos.rendering import format_money


def step_quantity(value: str, delta: int) -> str:
    """Move a typed quantity by delta, clamped to 1..MAX_LINE_QUANTITY."""
    current = int(value) if value.isdigit() else 0
    return str(min(max(current + delta, 1), MAX_LINE_QUANTITY))


class QuantityModal(ModalScreen[int | None]):
    """Pick how many of one configured item go into the draft."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
        ("enter", "confirm", "Add"),
        ("plus,equals_sign,up,k,l,right", "step(1)", "More"),
        ("minus,down,j,h,left", "step(-1)", "Fewer"),
        ("backspace", "delete_digit", "Delete digit"),
    ]

    CSS = """
    QuantityModal {
        align: center middle;
        background: $background 60%;
    }

    #quantity-dialog {
        width: 44;
        height: auto;
        border: round $accent;
        background: $panel;
        padding: 1 2;
    }

    #quantity-title {
        text-style: bold;
        content-align: center middle;
        width: 100%;
    }

    #quantity-stepper {
        content-align: center middle;
        width: 100%;
        margin: 1 0;
    }

    #quantity-error {
        color: #ffb3b3;
    }

    #quantity-help {
        color: #dddddd;
    }
    """

    def __init__(self, item_name: str, unit_price: Decimal | None = None) -> None:
        super().__init__()
        self.item_name = item_name
        self.unit_price = unit_price
        self.value = "1"
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="quantity-dialog"):
            yield Static(self.item_name, id="quantity-title")
            yield Static(id="quantity-stepper")
            yield Static(id="quantity-error")
            yield Static("+/- or ←/→ step, digits type, Enter add, Esc cancel", id="quantity-help")

    def on_mount(self) -> None:
        self._render_stepper()

    def on_key(self, event: Key) -> None:
        if event.character and event.character.isdigit():
            typed = self.value + event.character if self.value != "0" else event.character
            if len(typed) <= len(str(MAX_LINE_QUANTITY)):
                self.value = typed
            self.error = ""
            self._render_stepper()
            event.stop()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_step(self, delta: int) -> None:
        self.value = step_quantity(self.value, delta)
        self.error = ""
        self._render_stepper()

    def action_delete_digit(self) -> None:
        self.value = self.value[:-1]
        self._render_stepper()

    def action_confirm(self) -> None:
        try:
            quantity = validate_quantity(self.value)
        except ValidationError as exc:
            self.error = str(exc)
            self._render_stepper()
            return
        self.dismiss(quantity)

    def _render_stepper(self) -> None:
        stepper = Text()
        stepper.append(" − ", style="reverse")
        stepper.append(f"  {self.value or ' '}  ", style="bold")
        stepper.append(" + ", style="reverse")
        if self.unit_price is not None and self.value.isdigit():
            stepper.append(f"   {format_money(self.unit_price * int(self.value))}", style="dim")
        self.query_one("#quantity-stepper", Static).update(stepper)
        self.query_one("#quantity-error", Static).update(self.error)
