"""Main Textual app class: ordering terminal, barista queue, pickup board and profile."""

from __future__ import annotations

from datetime import datetime, timezone

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from cafe_pos.actions import PosController
from cafe_pos.cart import DraftCart
from cafe_pos.channel import Connector, RealtimeChannel
from cafe_pos.config import REFRESH_INTERVAL_SECONDS, STICKY_NOTIFICATION_SECONDS, WS_URL
from cafe_pos.constant import ACTION_LABELS
from cafe_pos.data import search_catalog
from cafe_pos.gateway import GatewayClient
from cafe_pos.models import MenuItem, Order, Session
from cafe_pos.notifications import Notification
from cafe_pos.options_modal import OptionsModal
from cafe_pos.payloads import OrderCreatedEvent
from cafe_pos.persistence import SessionManager
from cafe_pos.quantity_modal import QuantityModal
from cafe_pos.rendering import (
    format_connection,
    format_draft_line,
    format_money,
    format_order_items,
    format_order_label,
)
from cafe_pos.stats import summarize
from cafe_pos.status import next_action
from cafe_pos.store import OrderStore

STATIONS = ("terminal", "barista", "pickup", "profile")


class CafePosApp(App):
    """One station of the cafe: the station decides which panes are shown."""

    TITLE = "Cafe POS"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    .pane {
        width: 1fr;
        border: round $primary;
        padding: 1;
    }

    #search-pane {
        border: round $secondary;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 3;
    }

    .pane-body {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #status-line {
        height: 1;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    search_text = reactive("")
    selected_index = reactive(0)
    line_selected_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "select", "Select"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+s", "submit", "Submit order", priority=True),
        Binding("ctrl+r", "refresh", "Refresh", priority=True),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        station: str,
        store: OrderStore,
        gateway: GatewayClient,
        session: SessionManager,
        ws_url: str | None = WS_URL,
        connector: Connector | None = None,
    ) -> None:
        super().__init__()
        if station not in STATIONS:
            raise ValueError(f"unknown station {station!r}; expected one of {', '.join(STATIONS)}")
        self.station = station
        self.store = store
        self.session = session
        self.cart = DraftCart()
        self.channel = RealtimeChannel(
            store,
            ws_url,
            self.notify_operator,
            on_order_created=self._on_order_created,
            connector=connector,
        )
        self.controller = PosController(
            store,
            self.cart,
            gateway,
            session,
            self.notify_operator,
            channel=self.channel,
        )
        self.gateway = gateway
        self.sub_title = station.title()
        self._unsubscribers = [
            store.subscribe(self._refresh_all),
            session.subscribe(self._on_credential_change),
        ]

    # -- wiring ------------------------------------------------------------

    def notify_operator(self, notification: Notification) -> None:
        timeout = notification.timeout if notification.timeout is not None else STICKY_NOTIFICATION_SECONDS
        self.notify(notification.message, title=notification.title, severity=notification.severity, timeout=timeout)

    def _on_order_created(self, _event: OrderCreatedEvent) -> None:
        # Created events carry no line items; fetch the full order list.
        if self.session.token:
            self.controller.schedule_refresh(mine=self.station == "profile")

    def _on_credential_change(self, session: Session) -> None:
        self.run_worker(
            self.channel.reconnect_on_credential_change(session.token),
            group="channel",
            exclusive=True,
        )
        if session.token:
            self.controller.schedule_refresh(mine=self.station == "profile")

    async def _startup(self) -> None:
        await self.controller.load_catalog()
        token = self.session.token
        if not token:
            self.notify_operator(Notification("Not logged in: run `cafe-pos login` to go live.", severity="warning"))
            return
        await self.channel.connect(token)
        await self.controller.refresh_orders(mine=self.station == "profile")

    def _periodic_refresh(self) -> None:
        # Configuration errors surface from operator actions only.
        if self.store.degraded and self.session.token and self.gateway.base_url:
            self.controller.schedule_refresh(mine=self.station == "profile")

    # -- layout ------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="status-line")
        with Horizontal(id="main-layout"):
            if self.station == "terminal":
                with Vertical(classes="pane"):
                    yield Static("Current Order", classes="pane-title")
                    yield Static("(no items yet)", id="cart-list", classes="pane-body")
                with Vertical(id="search-pane", classes="pane"):
                    yield Static(id="search-bar")
                    yield Static(id="results", classes="pane-body")
            elif self.station == "barista":
                for column in ("pending", "preparing", "ready"):
                    with Vertical(classes="pane"):
                        yield Static(column.title(), classes="pane-title")
                        yield Static(id=f"{column}-list", classes="pane-body")
            elif self.station == "pickup":
                with Vertical(classes="pane"):
                    yield Static("In progress", classes="pane-title")
                    yield Static(id="in-progress-list", classes="pane-body")
                with Vertical(classes="pane"):
                    yield Static("Ready for pickup", classes="pane-title")
                    yield Static(id="ready-list", classes="pane-body")
            else:
                with Vertical(classes="pane"):
                    yield Static("My orders", classes="pane-title")
                    yield Static(id="profile-body", classes="pane-body")

    def on_mount(self) -> None:
        self.run_worker(self._startup(), group="startup")
        self.set_interval(REFRESH_INTERVAL_SECONDS, self._periodic_refresh)
        self._refresh_all()

    async def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self.controller.cancel_pending()
        await self.channel.disconnect()
        await self.gateway.aclose()

    # -- input -------------------------------------------------------------

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, (OptionsModal, QuantityModal)):
            return
        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        key = event.character
        if self.station == "terminal" and self.input_state == "active":
            self.search_text += key
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return

        if key == "/" and self.station == "terminal":
            self.input_state = "active"
            self.search_text = ""
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return
        if key == "j":
            self._move_selection(1)
            event.stop()
            return
        if key == "k":
            self._move_selection(-1)
            event.stop()
            return
        if key == "d" and self.station == "terminal":
            self._delete_selected_line()
            event.stop()
            return
        if key == "x" and self.station == "terminal":
            self.cart.clear()
            self.line_selected_index = None
            self._refresh_all()
            event.stop()
            return

    def action_cancel_active_mode(self) -> None:
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.search_text = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if self.input_state != "active":
            self._move_selection(delta)
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
        else:
            self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_search()

    def action_backspace_query(self) -> None:
        if self.input_state != "active" or not self.search_text:
            return
        self.search_text = self.search_text[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_select(self) -> None:
        if self.station == "terminal":
            if self.input_state == "active":
                self._configure_selected_item()
            return
        if self.station == "barista":
            order = self._selected_order()
            if order is None:
                return
            action = next_action(order.status)
            if action is None:
                return
            self.run_worker(self.controller.advance_order(order.order_id, action), group="status")

    def action_submit(self) -> None:
        if self.station != "terminal":
            return
        if self.input_state != "normal":
            self.notify_operator(Notification("Exit search (Ctrl+C) before submitting.", severity="warning"))
            return
        self.run_worker(self.controller.submit_draft(), group="submit", exclusive=True)

    def action_refresh(self) -> None:
        self.run_worker(self.controller.load_catalog(), group="catalog", exclusive=True)
        if self.session.token:
            self.controller.schedule_refresh(mine=self.station == "profile")

    # -- terminal helpers --------------------------------------------------

    def _filtered_results(self) -> list[MenuItem]:
        return search_catalog(self.store.available_catalog(), self.search_text)

    def _configure_selected_item(self) -> None:
        results = self._filtered_results()
        if not results:
            return
        item = results[min(self.selected_index, len(results) - 1)]

        def on_options(selection: dict[str, str] | None) -> None:
            if selection is None:
                return

            def on_quantity(quantity: int | None) -> None:
                if quantity is None:
                    return
                line = self.controller.add_to_cart(item.item_id, selection, quantity)
                if line is not None:
                    self.line_selected_index = next(
                        (idx for idx, existing in enumerate(self.cart.items) if existing.line_id == line.line_id),
                        None,
                    )
                    self._refresh_all()

            self.push_screen(QuantityModal(item.name, item.price), on_quantity)

        self.push_screen(OptionsModal(item), on_options)

    def _delete_selected_line(self) -> None:
        items = self.cart.items
        idx = self.line_selected_index
        if idx is None or not (0 <= idx < len(items)):
            return
        self.cart.remove(items[idx].line_id)
        self.line_selected_index = min(idx, len(self.cart) - 1) if len(self.cart) else None
        self._refresh_all()

    # -- barista helpers ---------------------------------------------------

    def _actionable_orders(self) -> list[Order]:
        return self.store.pending() + self.store.preparing() + self.store.ready()

    def _selected_order(self) -> Order | None:
        orders = self._actionable_orders()
        idx = self.line_selected_index
        if idx is None or not (0 <= idx < len(orders)):
            return None
        return orders[idx]

    def _move_selection(self, delta: int) -> None:
        if self.station == "terminal":
            total = len(self.cart)
        elif self.station == "barista":
            total = len(self._actionable_orders())
        else:
            return
        if not total:
            return
        if self.line_selected_index is None:
            self.line_selected_index = 0 if delta > 0 else total - 1
        else:
            self.line_selected_index = (self.line_selected_index + delta) % total
        self._refresh_all()

    # -- refresh -----------------------------------------------------------

    def _refresh_all(self) -> None:
        try:
            status_line = self.query_one("#status-line", Static)
        except NoMatches:
            return
        status_line.update(format_connection(self.store.connected))
        if self.station == "terminal":
            self._refresh_cart()
            self._refresh_search()
        elif self.station == "barista":
            self._refresh_queue()
        elif self.station == "pickup":
            self._refresh_pickup()
        else:
            self._refresh_profile()

    def _refresh_cart(self) -> None:
        cart_widget = self.query_one("#cart-list", Static)
        items = self.cart.items
        if not items:
            self.line_selected_index = None
            cart_widget.update("(no items yet)\n\nPress / to search the menu.")
            return
        if self.line_selected_index is not None and self.line_selected_index >= len(items):
            self.line_selected_index = len(items) - 1

        lines = Text()
        for idx, line in enumerate(items):
            if idx > 0:
                lines.append("\n")
            pointer = "➤ " if idx == self.line_selected_index else "  "
            lines.append(pointer)
            lines.append_text(format_draft_line(line, self.store.menu_item(line.menu_item_id)))
        lines.append(f"\n\nTotal: {format_money(self.controller.cart_total())}", style="bold")
        lines.append("\nCtrl+S submit · D remove · X clear", style="dim")
        cart_widget.update(lines)

    def _refresh_search(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            bar.update("Press / to search. Ctrl+S submit. Ctrl+R refresh.")
            results_widget.update("")
            return

        bar.update(f"/ {self.search_text}")
        results = self._filtered_results()
        if not results:
            results_widget.update("No results")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0

        lines = Text()
        for idx, item in enumerate(results):
            if idx > 0:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(f"{pointer}{item.name}")
            lines.append(f"  {format_money(item.price)}", style="dim")
        results_widget.update(lines)

    def _order_block(self, orders: list[Order], offset: int = 0, with_action: bool = False) -> Text:
        text = Text()
        if not orders:
            text.append("(none)", style="dim")
            return text
        for idx, order in enumerate(orders):
            if idx > 0:
                text.append("\n\n")
            pointer = "➤ " if with_action and offset + idx == self.line_selected_index else "  "
            text.append(pointer)
            text.append_text(format_order_label(order))
            text.append("\n")
            text.append_text(format_order_items(order))
            action = next_action(order.status) if with_action else None
            if action is not None:
                text.append(f"\n    [Enter] {ACTION_LABELS[action.value]}", style="dim")
        return text

    def _refresh_queue(self) -> None:
        offset = 0
        for column, orders in (
            ("pending", self.store.pending()),
            ("preparing", self.store.preparing()),
            ("ready", self.store.ready()),
        ):
            self.query_one(f"#{column}-list", Static).update(self._order_block(orders, offset, with_action=True))
            offset += len(orders)

    def _refresh_pickup(self) -> None:
        self.query_one("#in-progress-list", Static).update(self._order_block(self.store.in_progress()))
        self.query_one("#ready-list", Static).update(self._order_block(self.store.ready()))

    def _refresh_profile(self) -> None:
        body = self.query_one("#profile-body", Static)
        user = self.session.session.user
        stats = summarize(self.store.orders, datetime.now(timezone.utc))
        text = Text()
        if user is not None:
            text.append(f"{user.name or user.email} ", style="bold")
            text.append(f"({user.role})\n\n", style="dim")
        text.append(f"Orders: {stats.total_orders}   Items: {stats.total_items}\n")
        text.append(f"This week: {stats.orders_this_week}   This month: {stats.orders_this_month}\n")
        text.append(f"Total spent: {format_money(stats.total_spent)}\n\n")
        text.append("Top products\n", style="bold")
        for name, total in stats.top_products[:5]:
            text.append(f"  {name} × {total}\n")
        text.append("\nOrders per day\n", style="bold")
        for day in stats.orders_by_day:
            text.append(f"  {day.day}  {'▇' * day.count} {day.count}\n")
        body.update(text)
