"""Observable in-memory cache of orders and catalog items for one session."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterable

import structlog

from cafe_pos.data import DEFAULT_CATALOG
from cafe_pos.models import MenuItem, Order, OrderStatus

logger = structlog.get_logger(__name__)

Listener = Callable[[], None]


class OrderStore:
    """Single state container every view reads from.

    Instances are passed explicitly to the channel, the action handlers and
    the views; there is no module-level store.

    Confirmed mutations (status updates, upserts) bump ``revision``. A fetch
    captures the revision with ``begin_fetch`` before it goes out, and its
    snapshot is discarded if a confirmed mutation landed in the meantime.
    """

    def __init__(self, catalog: Iterable[MenuItem] | None = None) -> None:
        self._orders: list[Order] = []
        self._catalog: tuple[MenuItem, ...] = tuple(catalog) if catalog is not None else DEFAULT_CATALOG
        self._listeners: list[Listener] = []
        self._connected = False
        self.revision = 0

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # -- orders ------------------------------------------------------------

    def begin_fetch(self) -> int:
        return self.revision

    def set_orders(self, orders: Iterable[Order], fetch_token: int | None = None) -> bool:
        """Replace the order snapshot; returns False if the snapshot was stale."""
        if fetch_token is not None and fetch_token < self.revision:
            logger.info("stale_order_snapshot_discarded", fetch_token=fetch_token, revision=self.revision)
            return False
        self._orders = list(orders)
        self._notify()
        return True

    def upsert_order(self, order: Order) -> None:
        for idx, existing in enumerate(self._orders):
            if existing.order_id == order.order_id:
                self._orders[idx] = order
                break
        else:
            self._orders.append(order)
        self.revision += 1
        self._notify()

    def apply_status_update(self, order_id: str, new_status: OrderStatus | str) -> bool:
        """Replace one order's status in place; unknown ids and statuses are ignored."""
        status = OrderStatus.parse(new_status)
        if status is None:
            logger.warning("status_update_rejected", order_id=order_id, status=new_status)
            return False

        order_id = str(order_id)
        for idx, order in enumerate(self._orders):
            if order.order_id != order_id:
                continue
            if order.status is status:
                # Echo of a status already applied: not a new mutation.
                return True
            self._orders[idx] = order.with_status(status)
            self.revision += 1
            self._notify()
            return True

        logger.debug("status_update_for_unknown_order", order_id=order_id, status=status.value)
        return False

    def clear_orders(self) -> None:
        self._orders = []
        self.revision += 1
        self._notify()

    @property
    def orders(self) -> tuple[Order, ...]:
        return tuple(self._orders)

    def get(self, order_id: str) -> Order | None:
        order_id = str(order_id)
        for order in self._orders:
            if order.order_id == order_id:
                return order
        return None

    def by_status(self, status: OrderStatus) -> list[Order]:
        return [order for order in self._orders if order.status is status]

    def pending(self) -> list[Order]:
        return self.by_status(OrderStatus.PENDING)

    def preparing(self) -> list[Order]:
        return self.by_status(OrderStatus.PREPARING)

    def ready(self) -> list[Order]:
        return self.by_status(OrderStatus.READY)

    def completed(self) -> list[Order]:
        return self.by_status(OrderStatus.COMPLETED)

    def in_progress(self) -> list[Order]:
        return [order for order in self._orders if order.status in {OrderStatus.PENDING, OrderStatus.PREPARING}]

    # -- catalog -----------------------------------------------------------

    def upsert_catalog(self, items: Iterable[MenuItem] | None) -> bool:
        """Replace the catalog; returns True when the built-in defaults were installed."""
        new_items = tuple(items) if items is not None else ()
        used_fallback = not new_items
        self._catalog = DEFAULT_CATALOG if used_fallback else new_items
        if used_fallback:
            logger.info("catalog_fallback_installed", items=len(DEFAULT_CATALOG))
        self._notify()
        return used_fallback

    @property
    def catalog(self) -> tuple[MenuItem, ...]:
        return self._catalog

    def available_catalog(self) -> list[MenuItem]:
        return [item for item in self._catalog if item.available]

    def menu_item(self, item_id: str) -> MenuItem | None:
        for item in self._catalog:
            if item.item_id == item_id:
                return item
        return None

    def price_of(self, item_id: str) -> Decimal | None:
        item = self.menu_item(item_id)
        if item is None:
            return None
        return item.price

    # -- connection indicator ----------------------------------------------

    def set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        self._notify()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def degraded(self) -> bool:
        return not self._connected
