"""Option picker modal for one menu item."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from cafe_pos.models import MenuItem, OptionKind
from cafe_pos.rendering import format_money


class OptionsModal(ModalScreen[dict[str, str] | None]):
    """Centered modal to pick option values; dismisses with the selection or None."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("q", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("h", "cycle_value(-1)", "Previous value"),
        ("l", "cycle_value(1)", "Next value"),
        ("left", "cycle_value(-1)", "Previous value"),
        ("right", "cycle_value(1)", "Next value"),
        ("space", "cycle_value(1)", "Toggle"),
        ("enter", "confirm", "Add"),
    ]

    CSS = """
    OptionsModal {
        align: center middle;
        background: $background 60%;
    }

    #options-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #options-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #options-body {
        margin-bottom: 1;
        color: white;
    }

    #options-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, menu_item: MenuItem) -> None:
        super().__init__()
        self.menu_item = menu_item
        self.selection = menu_item.default_selection()

    def compose(self) -> ComposeResult:
        with Container(id="options-dialog"):
            yield Static(self.menu_item.name, id="options-title")
            yield Static(id="options-body")
            yield Static("J/K/↑/↓ move, H/L/←/→ change, Enter add, Esc cancel", id="options-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_confirm(self) -> None:
        self.dismiss(dict(self.selection))

    def action_move_cursor(self, delta: int) -> None:
        if not self.menu_item.options:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.menu_item.options)
        self._refresh_content()

    def action_cycle_value(self, delta: int) -> None:
        if not self.menu_item.options:
            return
        spec = self.menu_item.options[self.cursor_index]
        values = spec.permitted_values()
        current = self.selection.get(spec.option_id, spec.initial_value())
        idx = values.index(current) if current in values else 0
        self.selection[spec.option_id] = values[(idx + delta) % len(values)]
        self._refresh_content()

    def _refresh_content(self) -> None:
        body = self.query_one("#options-body", Static)
        content = Text(style="white")
        content.append(format_money(self.menu_item.price), style="bold")
        if self.menu_item.description:
            content.append(f"\n{self.menu_item.description}", style="dim")
        content.append("\n\n")

        if not self.menu_item.options:
            content.append("(no options)", style="dim")
        for idx, spec in enumerate(self.menu_item.options):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            value = self.selection.get(spec.option_id, spec.initial_value())
            if spec.kind is OptionKind.CHECKBOX:
                checked = "[x]" if value == "true" else "[ ]"
                content.append(f"{pointer}{checked} {spec.name}", style="bold white" if value == "true" else "white")
            else:
                content.append(f"{pointer}{spec.name}: ")
                content.append(f"‹ {value} ›", style="bold white")
        body.update(content)
