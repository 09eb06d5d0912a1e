"""Action handlers: the boundary where user actions run and errors become feedback.

No method here raises a ``CafePosError`` to its caller. Each one returns a
success flag (or the produced value / None) and reports the outcome through
the notifier.
"""

from __future__ import annotations

import asyncio
import contextlib
from decimal import Decimal
from typing import Any

import structlog

from cafe_pos.cart import DraftCart, validate_quantity, validate_selection
from cafe_pos.channel import RealtimeChannel
from cafe_pos.config import EMIT_STATUS_OVER_CHANNEL, MAX_REFRESH_ATTEMPTS
from cafe_pos.constant import ADMIN_ROLES
from cafe_pos.errors import AuthenticationError, CafePosError, ValidationError
from cafe_pos.gateway import GatewayClient
from cafe_pos.models import DraftLineItem, MenuItem, Order
from cafe_pos.notifications import Notifier, error, info, warning
from cafe_pos.payloads import build_order_request, product_request
from cafe_pos.persistence import SessionManager
from cafe_pos.status import StatusAction, check_action
from cafe_pos.store import OrderStore

logger = structlog.get_logger(__name__)


class PosController:
    def __init__(
        self,
        store: OrderStore,
        cart: DraftCart,
        gateway: GatewayClient,
        session: SessionManager,
        notifier: Notifier,
        channel: RealtimeChannel | None = None,
        emit_over_channel: bool = EMIT_STATUS_OVER_CHANNEL,
    ) -> None:
        self.store = store
        self.cart = cart
        self.gateway = gateway
        self.session = session
        self.notifier = notifier
        self.channel = channel
        self.emit_over_channel = emit_over_channel
        self._refresh_task: asyncio.Task[bool] | None = None

    def _report(self, action: str, exc: CafePosError) -> None:
        logger.warning("action_failed", action=action, error_type=type(exc).__name__, error=str(exc))
        if isinstance(exc, ValidationError):
            self.notifier(warning(str(exc)))
        else:
            self.notifier(error(str(exc)))

    def _require_token(self) -> str:
        token = self.session.token
        if not token:
            raise AuthenticationError("You need to log in first.")
        return token

    # -- session -----------------------------------------------------------

    async def login(self, email: str, password: str) -> bool:
        try:
            if not email.strip() or not password:
                raise ValidationError("Email and password are required.")
            result = await self.gateway.login(email.strip(), password)
        except CafePosError as exc:
            self._report("login", exc)
            return False
        self.session.login(result.token, result.user)
        self.notifier(info("Logged in"))
        return True

    def logout(self) -> None:
        self.cancel_pending()
        self.session.logout()
        self.store.clear_orders()
        self.notifier(info("Logged out"))

    # -- catalog -----------------------------------------------------------

    async def load_catalog(self) -> bool:
        """Fetch the menu; empty or failed fetches install the built-in catalog."""
        try:
            items = await self.gateway.fetch_products()
        except CafePosError as exc:
            logger.info("catalog_fetch_failed", error=str(exc))
            self.store.upsert_catalog(None)
            return False
        return not self.store.upsert_catalog(items)

    def _require_admin(self) -> str:
        token = self._require_token()
        if self.session.session.role not in ADMIN_ROLES:
            raise AuthenticationError("Catalog changes require an admin account.")
        return token

    async def create_product(self, name: str, base_price: Decimal | float | str, **fields: Any) -> MenuItem | None:
        try:
            token = self._require_admin()
            payload = product_request(name, base_price, **fields)
            item = await self.gateway.create_product(token, payload)
        except CafePosError as exc:
            self._report("create_product", exc)
            return None
        self.notifier(info(f'"{item.name}" created'))
        await self.load_catalog()
        return item

    async def update_product(
        self, product_id: int, name: str, base_price: Decimal | float | str, **fields: Any
    ) -> MenuItem | None:
        try:
            token = self._require_admin()
            payload = product_request(name, base_price, **fields)
            item = await self.gateway.update_product(token, product_id, payload)
        except CafePosError as exc:
            self._report("update_product", exc)
            return None
        self.notifier(info(f'"{item.name}" updated'))
        await self.load_catalog()
        return item

    async def delete_product(self, product_id: int) -> bool:
        try:
            token = self._require_admin()
            await self.gateway.delete_product(token, product_id)
        except CafePosError as exc:
            self._report("delete_product", exc)
            return False
        self.notifier(info("Product deleted"))
        await self.load_catalog()
        return True

    # -- orders ------------------------------------------------------------

    async def refresh_orders(self, mine: bool = False) -> bool:
        """Fetch orders and replace the snapshot.

        A snapshot overtaken by a confirmed mutation is discarded and fetched
        again against the new revision, up to ``MAX_REFRESH_ATTEMPTS`` times.
        """
        for attempt in range(1, MAX_REFRESH_ATTEMPTS + 1):
            try:
                token = self._require_token()
                fetch_token = self.store.begin_fetch()
                if mine:
                    orders = await self.gateway.fetch_my_orders(token)
                else:
                    orders = await self.gateway.fetch_orders(token)
            except CafePosError as exc:
                self._report("refresh_orders", exc)
                return False
            if self.store.set_orders(orders, fetch_token=fetch_token):
                return True
            logger.info("refresh_retry", attempt=attempt, revision=self.store.revision)
        logger.warning("refresh_gave_up", attempts=MAX_REFRESH_ATTEMPTS)
        return False

    def schedule_refresh(self, mine: bool = False) -> asyncio.Task[bool]:
        """Start a refresh in the background, cancelling a superseded one."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = asyncio.create_task(self.refresh_orders(mine=mine))
        return self._refresh_task

    def cancel_pending(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None

    async def wait_pending(self) -> None:
        task = self._refresh_task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # -- draft -------------------------------------------------------------

    def add_to_cart(self, menu_item_id: str, selected_options: dict[str, str], quantity: object = 1) -> DraftLineItem | None:
        try:
            menu_item = self.store.menu_item(menu_item_id)
            if menu_item is None:
                raise ValidationError(f"Unknown menu item {menu_item_id!r}.")
            options = validate_selection(menu_item, selected_options)
            parsed_quantity = validate_quantity(quantity)
        except ValidationError as exc:
            self._report("add_to_cart", exc)
            return None
        return self.cart.add(menu_item_id, options, parsed_quantity)

    def cart_total(self) -> Decimal:
        return self.cart.total(self.store.price_of)

    async def submit_draft(self) -> Order | None:
        """Submit the draft; on any rejection the cart is left untouched."""
        try:
            token = self._require_token()
            request_body = build_order_request(self.cart.items, self.store.catalog)
            order = await self.gateway.submit_order(token, request_body)
        except CafePosError as exc:
            self._report("submit_draft", exc)
            return None

        self.cart.clear()
        self.store.upsert_order(order)
        logger.info("order_submitted", order_id=order.order_id, items=order.item_count)
        label = f"#{order.order_number}" if order.order_number is not None else f"#{order.short_id}"
        self.notifier(info(f"Order {label} submitted"))
        return order

    async def advance_order(self, order_id: str, action: StatusAction | str) -> bool:
        """Two-phase status change: gateway first, local store only after a 2xx."""
        order = self.store.get(order_id)
        if order is None:
            self.notifier(warning(f"Order #{str(order_id)[:8]} is not loaded; refresh and try again."))
            return False

        check = check_action(action, order.status, self.session.session.role)
        if not check.allowed or check.target is None:
            logger.info("transition_rejected", order_id=order.order_id, action=str(action), reason=check.reason)
            self.notifier(warning(f"Order #{order.short_id}: {check.reason}"))
            return False

        try:
            token = self._require_token()
            confirmed = await self.gateway.update_order_status(token, order.order_id, check.target)
        except CafePosError as exc:
            self._report("advance_order", exc)
            return False

        self.store.apply_status_update(order.order_id, confirmed)
        logger.info("order_status_confirmed", order_id=order.order_id, status=confirmed.value)
        if self.emit_over_channel and self.channel is not None:
            await self.channel.emit_status_update(order.order_id, confirmed)
        return True
