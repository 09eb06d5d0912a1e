import json
from decimal import Decimal

import pytest

from cafe_pos.actions import PosController
from cafe_pos.cart import DraftCart
from cafe_pos.channel import RealtimeChannel
from cafe_pos.config import MAX_REFRESH_ATTEMPTS
from cafe_pos.data import DEFAULT_CATALOG
from cafe_pos.gateway import GatewayClient
from cafe_pos.models import OrderStatus, UserProfile
from cafe_pos.persistence import load_session
from cafe_pos.status import StatusAction

from conftest import backend_latte, drain, make_order, order_json


@pytest.fixture
def controller(store, gateway, session, notifier):
    return PosController(store, DraftCart(), gateway, session, notifier)


def _log_in(session, role="barista"):
    session.login("tok-1", UserProfile(user_id="7", name="Mai", role=role))


class TestSession:
    @pytest.mark.asyncio
    async def test_login_persists_credential_and_signals(self, controller, transport, session, db_path, notifier):
        seen = []
        session.subscribe(seen.append)
        transport.add("POST", "/api/auth/login", body={"data": {"token": "tok-9"}, "user": {"id": 3, "role": "admin"}})

        assert await controller.login("mai@example.com", "secret") is True

        assert session.token == "tok-9"
        assert [s.token for s in seen] == ["tok-9"]
        assert load_session(db_path).user.role == "admin"
        assert notifier.messages == ["Logged in"]

    @pytest.mark.asyncio
    async def test_blank_credentials_never_reach_the_gateway(self, controller, transport, notifier):
        assert await controller.login("  ", "secret") is False

        assert transport.requests == []
        assert notifier.notifications[-1].severity == "warning"

    @pytest.mark.asyncio
    async def test_rejected_login_leaves_session_empty(self, controller, transport, session, notifier):
        transport.add("POST", "/api/auth/login", status_code=401, body={"error": "Invalid credentials"})

        assert await controller.login("mai@example.com", "nope") is False

        assert session.token is None
        assert notifier.messages == ["Invalid credentials"]

    def test_logout_clears_orders_and_credential(self, controller, store, session):
        _log_in(session)
        store.set_orders([make_order("1")])

        controller.logout()

        assert session.token is None
        assert store.orders == ()


class TestCatalog:
    @pytest.mark.asyncio
    async def test_backend_catalog_is_installed(self, controller, transport, store):
        transport.add("GET", "/api/products", body=[{"id": 3, "name": "Latte", "base_price": 4}])

        assert await controller.load_catalog() is True
        assert [item.product_id for item in store.catalog] == [3]

    @pytest.mark.asyncio
    async def test_empty_catalog_falls_back_to_defaults(self, controller, transport, store):
        store.upsert_catalog([backend_latte()])
        transport.add("GET", "/api/products", body=[])

        assert await controller.load_catalog() is False
        assert store.catalog == DEFAULT_CATALOG

    @pytest.mark.asyncio
    async def test_failed_fetch_falls_back_to_defaults(self, controller, transport, store):
        store.upsert_catalog([backend_latte()])
        transport.add("GET", "/api/products", status_code=503, body={"error": "down"})

        assert await controller.load_catalog() is False
        assert store.catalog == DEFAULT_CATALOG

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_falls_back_to_defaults(self, store, session, notifier):
        controller = PosController(store, DraftCart(), GatewayClient(base_url=None), session, notifier)

        assert await controller.load_catalog() is False
        assert store.catalog == DEFAULT_CATALOG

    @pytest.mark.asyncio
    async def test_catalog_changes_need_an_admin(self, controller, transport, session, notifier):
        _log_in(session, role="barista")

        assert await controller.create_product("Flat White", "3.80") is None

        assert transport.requests == []
        assert notifier.messages == ["Catalog changes require an admin account."]

    @pytest.mark.asyncio
    async def test_admin_creates_product_and_reloads(self, controller, transport, session, store):
        _log_in(session, role="admin")
        transport.add("POST", "/api/products", status_code=201, body={"id": 5, "name": "Flat White", "base_price": 3.8})
        transport.add("GET", "/api/products", body=[{"id": 5, "name": "Flat White", "base_price": 3.8}])

        item = await controller.create_product("Flat White", "3.80", category_name="Coffee")

        assert item.product_id == 5
        assert [request.method for request in transport.requests] == ["POST", "GET"]
        assert [entry.name for entry in store.catalog] == ["Flat White"]


class TestDraft:
    def test_scenario_merges_latte_lines(self, controller, notifier):
        controller.add_to_cart("latte", {"size": "Large"}, 1)
        line = controller.add_to_cart("latte", {"size": "Large"}, "2")

        assert len(controller.cart) == 1
        assert line.quantity == 3
        assert controller.cart_total() == Decimal("12.00")
        assert notifier.notifications == []

    @pytest.mark.parametrize("quantity", ["0", "abc", 100])
    def test_invalid_quantity_is_rejected_before_the_cart(self, controller, notifier, quantity):
        assert controller.add_to_cart("latte", {}, quantity) is None

        assert controller.cart.is_empty
        assert notifier.notifications[-1].severity == "warning"

    def test_unknown_item_or_option_is_rejected(self, controller):
        assert controller.add_to_cart("unicorn-frappe", {}) is None
        assert controller.add_to_cart("espresso", {"size": "Large"}) is None
        assert controller.cart.is_empty

    @pytest.mark.asyncio
    async def test_submit_requires_login(self, controller, transport, notifier):
        controller.add_to_cart("latte", {}, 1)

        assert await controller.submit_draft() is None

        assert transport.requests == []
        assert len(controller.cart) == 1
        assert notifier.notifications[-1].severity == "error"

    @pytest.mark.asyncio
    async def test_unresolved_item_is_rejected_before_any_request(self, controller, transport, session, notifier):
        _log_in(session)
        line = controller.add_to_cart("latte", {"size": "Large"}, 2)

        assert await controller.submit_draft() is None

        assert transport.requests == []
        assert controller.cart.items == (line,)
        assert line.quantity == 2
        assert "no backend product for Latte" in notifier.messages[-1]

    @pytest.mark.asyncio
    async def test_empty_draft_is_rejected(self, controller, transport, session, notifier):
        _log_in(session)

        assert await controller.submit_draft() is None
        assert transport.requests == []
        assert notifier.notifications[-1].severity == "warning"

    @pytest.mark.asyncio
    async def test_successful_submit_clears_draft(self, controller, transport, session, store, notifier):
        _log_in(session)
        store.upsert_catalog([backend_latte()])
        controller.add_to_cart("3", {}, 2)
        transport.add("POST", "/api/orders", status_code=201, body=order_json(77, order_number=12))

        order = await controller.submit_draft()

        assert order.order_id == "77"
        assert controller.cart.is_empty
        assert store.get("77") is not None
        assert transport.json_body() == {"items": [{"product_item_id": 3, "quantity": 2}]}
        assert transport.requests[0].headers["Authorization"] == "Bearer tok-1"
        assert notifier.messages[-1] == "Order #12 submitted"

    @pytest.mark.asyncio
    async def test_failed_submit_keeps_draft(self, controller, transport, session, store):
        _log_in(session)
        store.upsert_catalog([backend_latte()])
        controller.add_to_cart("3", {}, 2)
        transport.add("POST", "/api/orders", status_code=500, body={"error": "kitchen closed"})

        assert await controller.submit_draft() is None
        assert controller.cart.item_count == 2


class TestAdvanceOrder:
    @pytest.mark.asyncio
    async def test_store_changes_only_after_confirmation(self, controller, transport, session, store):
        _log_in(session)
        store.set_orders([make_order("42", OrderStatus.PENDING)])
        status_during_request = []
        transport.add(
            "PUT",
            "/api/orders/42/status",
            body={"id": 42, "status": "preparing"},
            on_request=lambda request: status_during_request.append(store.get("42").status),
        )

        assert await controller.advance_order("42", StatusAction.START_PREPARING) is True

        assert status_during_request == [OrderStatus.PENDING]
        assert store.get("42").status is OrderStatus.PREPARING
        assert transport.json_body() == {"status": "preparing"}

    @pytest.mark.asyncio
    async def test_gateway_failure_leaves_status(self, controller, transport, session, store, notifier):
        _log_in(session)
        store.set_orders([make_order("42", OrderStatus.PREPARING)])
        transport.add("PUT", "/api/orders/42/status", status_code=500, body={"error": "try later"})

        assert await controller.advance_order("42", StatusAction.MARK_READY) is False

        assert store.get("42").status is OrderStatus.PREPARING
        assert notifier.messages[-1] == "try later"

    @pytest.mark.asyncio
    async def test_customer_cannot_advance(self, controller, transport, session, store, notifier):
        _log_in(session, role="customer")
        store.set_orders([make_order("42", OrderStatus.PENDING)])

        assert await controller.advance_order("42", StatusAction.START_PREPARING) is False

        assert transport.requests == []
        assert notifier.notifications[-1].severity == "warning"

    @pytest.mark.asyncio
    async def test_action_must_match_status(self, controller, transport, session, store):
        _log_in(session)
        store.set_orders([make_order("42", OrderStatus.COMPLETED)])

        assert await controller.advance_order("42", StatusAction.COMPLETE) is False
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_unloaded_order(self, controller, transport, session, notifier):
        _log_in(session)

        assert await controller.advance_order("404", StatusAction.COMPLETE) is False
        assert transport.requests == []
        assert "not loaded" in notifier.messages[-1]

    @pytest.mark.asyncio
    async def test_confirmed_change_is_echoed_over_the_channel(
        self, store, gateway, transport, session, notifier, connector
    ):
        _log_in(session)
        channel = RealtimeChannel(store, "ws://pos.test/socket", notifier, connector=connector)
        await channel.connect("tok-1")
        controller = PosController(store, DraftCart(), gateway, session, notifier, channel=channel)
        store.set_orders([make_order("42", OrderStatus.READY)])
        transport.add("PUT", "/api/orders/42/status", body={"status": "completed"})

        assert await controller.advance_order("42", "complete") is True

        frame = json.loads(connector.connections[0].sent[-1])
        assert frame == {"event": "updateOrderStatus", "data": {"orderId": "42", "status": "completed"}}
        await channel.disconnect()

    @pytest.mark.asyncio
    async def test_echo_can_be_turned_off(self, store, gateway, transport, session, notifier, connector):
        _log_in(session)
        channel = RealtimeChannel(store, "ws://pos.test/socket", notifier, connector=connector)
        await channel.connect("tok-1")
        controller = PosController(store, DraftCart(), gateway, session, notifier, channel=channel, emit_over_channel=False)
        store.set_orders([make_order("42", OrderStatus.READY)])
        transport.add("PUT", "/api/orders/42/status", body={"status": "completed"})

        assert await controller.advance_order("42", "complete") is True

        assert connector.connections[0].sent == []
        await channel.disconnect()


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_replaces_snapshot(self, controller, transport, session, store):
        _log_in(session)
        transport.add("GET", "/api/orders", body=[order_json(1), order_json(2, "ready")])

        assert await controller.refresh_orders() is True
        assert [order.order_id for order in store.ready()] == ["2"]

    @pytest.mark.asyncio
    async def test_own_orders(self, controller, transport, session):
        _log_in(session, role="customer")
        transport.add("GET", "/api/orders/me", body=[order_json(1)])

        assert await controller.refresh_orders(mine=True) is True
        assert transport.requests[0].url.path == "/api/orders/me"

    @pytest.mark.asyncio
    async def test_overtaken_snapshot_is_fetched_again(self, controller, transport, session, store):
        _log_in(session)
        store.set_orders([make_order("42", OrderStatus.PENDING)])

        def orders(request):
            if len(transport.requests) == 1:
                # Confirmed update lands while the first fetch is in flight.
                store.apply_status_update("42", "preparing")
                return [order_json(42, "pending")]
            return [order_json(42, "preparing"), order_json(43)]

        transport.add("GET", "/api/orders", body=orders)

        assert await controller.refresh_orders() is True

        assert len(transport.requests) == 2
        assert store.get("42").status is OrderStatus.PREPARING
        assert store.get("43") is not None

    @pytest.mark.asyncio
    async def test_refresh_gives_up_after_repeated_stale_snapshots(self, controller, transport, session, store):
        _log_in(session)
        store.set_orders([make_order("42", OrderStatus.PREPARING)])
        transport.add(
            "GET",
            "/api/orders",
            body=[order_json(42, "pending")],
            on_request=lambda request: store.upsert_order(make_order("42", OrderStatus.PREPARING)),
        )

        assert await controller.refresh_orders() is False

        assert len(transport.requests) == MAX_REFRESH_ATTEMPTS
        assert store.get("42").status is OrderStatus.PREPARING

    @pytest.mark.asyncio
    async def test_order_announced_during_status_traffic_still_appears(
        self, store, gateway, transport, session, notifier, connector
    ):
        _log_in(session)
        store.set_orders([make_order("41", OrderStatus.PREPARING)])
        controller = PosController(store, DraftCart(), gateway, session, notifier)
        channel = RealtimeChannel(
            store,
            "ws://pos.test/socket",
            notifier,
            on_order_created=lambda event: controller.schedule_refresh(),
            connector=connector,
        )

        def orders(request):
            if len(transport.requests) == 1:
                channel.handle_frame(
                    json.dumps({"event": "order:statusUpdated", "data": {"id": 41, "status": "ready"}})
                )
            return [order_json(41, "ready"), order_json(99, "pending")]

        transport.add("GET", "/api/orders", body=orders)

        channel.handle_frame(json.dumps({"event": "order:created", "data": {"id": 99, "userId": 5}}))
        await controller.wait_pending()

        assert store.get("99") is not None
        assert store.get("41").status is OrderStatus.READY

    @pytest.mark.asyncio
    async def test_refresh_without_login(self, controller, transport, notifier):
        assert await controller.refresh_orders() is False
        assert transport.requests == []
        assert notifier.messages == ["You need to log in first."]

    @pytest.mark.asyncio
    async def test_newer_refresh_supersedes_older(self, controller, transport, session):
        _log_in(session)
        transport.add("GET", "/api/orders", body=[order_json(1)])

        first = controller.schedule_refresh()
        second = controller.schedule_refresh()
        await controller.wait_pending()
        await drain()

        assert first.cancelled()
        assert second.result() is True
