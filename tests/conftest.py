import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from cafe_pos.gateway import GatewayClient
from cafe_pos.models import MenuItem, Order, OrderLineItem, OrderStatus
from cafe_pos.notifications import CollectingNotifier
from cafe_pos.persistence import SessionManager
from cafe_pos.store import OrderStore

BASE_URL = "http://pos.test"


def make_order(order_id="42", status=OrderStatus.PENDING, items=None, **fields):
    return Order(
        order_id=order_id,
        status=status,
        created_at=fields.pop("created_at", datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)),
        items=tuple(items or (OrderLineItem(line_id="1", quantity=1, product_id=3, name="Latte"),)),
        **fields,
    )


def order_json(order_id=42, status="pending", items=None, **fields):
    body = {
        "id": order_id,
        "order_number": fields.pop("order_number", 7),
        "user_id": fields.pop("user_id", 5),
        "total": fields.pop("total", 8.0),
        "status": status,
        "created_at": fields.pop("created_at", "2026-10-01T09:30:00Z"),
        "items": items
        if items is not None
        else [{"id": 1, "order_id": order_id, "product_item_id": 3, "quantity": 2, "price": 4.0, "product_item_name": "Latte"}],
    }
    body.update(fields)
    return body


def backend_latte():
    return MenuItem(item_id="3", name="Latte", price=Decimal("4.00"), product_id=3)


def backend_mocha():
    return MenuItem(item_id="4", name="Mocha", price=Decimal("4.50"), product_id=4)


class RecordingTransport:
    """MockTransport handler that records requests and replays queued responses."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def add(self, method, path, status_code=200, body=None, raises=None, on_request=None):
        self.routes[(method, path)] = (status_code, body, raises, on_request)

    def __call__(self, request):
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        status_code, body, raises, on_request = route
        if on_request is not None:
            on_request(request)
        if callable(body):
            body = body(request)
        if raises is not None:
            raise raises
        if isinstance(body, (bytes, str)):
            return httpx.Response(status_code, content=body)
        return httpx.Response(status_code, json=body)

    def json_body(self, index=-1):
        return json.loads(self.requests[index].content)


class FakeConnection:
    def __init__(self):
        self.sent = []
        self.closed = False
        self._queue = asyncio.Queue()

    def push(self, frame):
        self._queue.put_nowait(frame if isinstance(frame, (str, bytes)) else json.dumps(frame))

    def hang_up(self):
        self._queue.put_nowait(None)

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeConnector:
    def __init__(self):
        self.calls = []
        self.connections = []
        self.fail = None

    async def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.fail is not None:
            raise self.fail
        connection = FakeConnection()
        self.connections.append(connection)
        return connection


async def drain():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    return OrderStore()


@pytest.fixture
def notifier():
    return CollectingNotifier()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "session.db")


@pytest.fixture
def session(db_path):
    return SessionManager(db_path)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def gateway(transport):
    return GatewayClient(base_url=BASE_URL, transport=httpx.MockTransport(transport))


@pytest.fixture
def connector():
    return FakeConnector()
