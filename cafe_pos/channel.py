"""Realtime event channel: one websocket per authenticated session.

Frames are JSON text ``{"event": <name>, "data": {...}}``. Inbound events are
projected onto the order store and surfaced as notifications; anything the
channel does not understand is dropped without closing the connection.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any, Awaitable, Callable

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from cafe_pos.config import CONNECT_TIMEOUT_SECONDS
from cafe_pos.models import OrderStatus
from cafe_pos.notifications import Notifier, error, info, status_notification
from cafe_pos.payloads import OrderCreatedEvent, parse_order_created, parse_ready, parse_status_changed
from cafe_pos.store import OrderStore

logger = structlog.get_logger(__name__)

Connector = Callable[..., Awaitable[Any]]
OrderCreatedHook = Callable[[OrderCreatedEvent], None]

# Lifecycle events are raised locally and never accepted from the wire.
_LIFECYCLE_EVENTS = frozenset({"connect", "disconnect", "connect_error"})
STATUS_UPDATE_REQUEST = "updateOrderStatus"


class RealtimeChannel:
    def __init__(
        self,
        store: OrderStore,
        url: str | None,
        notifier: Notifier,
        on_order_created: OrderCreatedHook | None = None,
        connector: Connector | None = None,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.url = url
        self.notifier = notifier
        self.on_order_created = on_order_created
        self.connect_timeout = connect_timeout
        self._connector = connector or websockets.connect
        self._ws: Any = None
        self._listener_task: asyncio.Task[None] | None = None
        self._handlers: dict[str, Callable[[Any], None]] = {
            "connect": self._on_connect,
            "disconnect": self._on_disconnect,
            "connect_error": self._on_connect_error,
            "socket:ready": self._on_ready,
            "order:created": self._on_order_created,
            "order:statusUpdated": self._on_status_updated,
        }

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    # -- lifecycle ---------------------------------------------------------

    async def connect(self, token: str | None) -> bool:
        """Open the connection; without a credential no attempt is made."""
        if not token:
            logger.info("channel_skipped", reason="no_credential")
            self.store.set_connected(False)
            return False
        if not self.url:
            logger.info("channel_skipped", reason="no_url")
            self.store.set_connected(False)
            return False
        if self._ws is not None:
            await self.disconnect()

        try:
            ws = await self._connector(
                self.url,
                additional_headers={"Authorization": f"Bearer {token}"},
                open_timeout=self.connect_timeout,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            logger.warning("channel_connect_failed", url=self.url, error=repr(exc))
            self.dispatch("connect_error", {"message": str(exc) or type(exc).__name__})
            return False

        self._ws = ws
        self.dispatch("connect", {})
        self._listener_task = asyncio.create_task(self._listen(ws))
        return True

    async def disconnect(self) -> None:
        ws, task = self._ws, self._listener_task
        self._ws = None
        self._listener_task = None
        if ws is not None:
            with contextlib.suppress(OSError, WebSocketException):
                await ws.close()
            logger.info("channel_closed")
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.store.set_connected(False)

    async def reconnect_on_credential_change(self, token: str | None) -> bool:
        """Tear down whatever exists, then connect iff a credential is present."""
        await self.disconnect()
        if not token:
            return False
        return await self.connect(token)

    async def _listen(self, ws: Any) -> None:
        try:
            async for raw in ws:
                self.handle_frame(raw)
        except ConnectionClosed as exc:
            logger.info("channel_connection_closed", code=getattr(exc.rcvd, "code", None))
        if ws is self._ws:
            # Closed by the peer, not by disconnect().
            self._ws = None
            self._listener_task = None
            self.dispatch("disconnect", {})

    # -- inbound -----------------------------------------------------------

    def handle_frame(self, raw: str | bytes) -> bool:
        """Decode one wire frame and dispatch it; returns whether it was handled."""
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("channel_frame_dropped", reason="not_utf8")
                return False
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.debug("channel_frame_dropped", reason="not_json")
            return False
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            logger.debug("channel_frame_dropped", reason="no_event")
            return False
        event = frame["event"]
        if event in _LIFECYCLE_EVENTS:
            logger.debug("channel_frame_dropped", reason="reserved_event", event_name=event)
            return False
        return self.dispatch(event, frame.get("data"))

    def dispatch(self, event: str, data: Any) -> bool:
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("channel_event_ignored", event_name=event)
            return False
        handler(data)
        return True

    def _on_connect(self, _data: Any) -> None:
        self.store.set_connected(True)
        self.notifier(info("Connected to server"))

    def _on_disconnect(self, _data: Any) -> None:
        self.store.set_connected(False)
        self.notifier(error("Disconnected from server"))

    def _on_connect_error(self, data: Any) -> None:
        self.store.set_connected(False)
        message = data.get("message") if isinstance(data, dict) else None
        self.notifier(error(f"Socket error: {message or 'connect_error'}"))

    def _on_ready(self, data: Any) -> None:
        ready = parse_ready(data)
        self.notifier(info(f"Socket ready ({ready.role or 'unknown role'})"))

    def _on_order_created(self, data: Any) -> None:
        event = parse_order_created(data)
        if event is None:
            logger.debug("channel_event_ignored", event_name="order:created", reason="malformed")
            return
        self.notifier(info(f"New order #{event.order_id[:8]} created"))
        if self.on_order_created is not None:
            self.on_order_created(event)

    def _on_status_updated(self, data: Any) -> None:
        event = parse_status_changed(data)
        if event is None:
            logger.debug("channel_event_ignored", event_name="order:statusUpdated", reason="malformed")
            return
        applied = self.store.apply_status_update(event.order_id, event.status)
        logger.info("status_event_received", order_id=event.order_id, status=event.status.value, applied=applied)
        self.notifier(status_notification(event.status, event.order_id))

    # -- outbound ----------------------------------------------------------

    async def emit_status_update(self, order_id: str, status: OrderStatus) -> bool:
        """Send the low-latency status echo; the REST call stays authoritative."""
        ws = self._ws
        if ws is None:
            return False
        frame = json.dumps({"event": STATUS_UPDATE_REQUEST, "data": {"orderId": order_id, "status": status.value}})
        try:
            await ws.send(frame)
        except (OSError, WebSocketException) as exc:
            logger.warning("channel_emit_failed", order_id=order_id, error=repr(exc))
            return False
        return True
