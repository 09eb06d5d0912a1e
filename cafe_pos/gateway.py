"""Async REST client for the order/catalog API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from cafe_pos.config import API_URL, REQUEST_TIMEOUT_SECONDS
from cafe_pos.errors import AuthenticationError, ConfigurationError, GatewayError
from cafe_pos.models import MenuItem, Order, OrderStatus, UserProfile
from cafe_pos.payloads import (
    error_message,
    extract_token,
    extract_user,
    parse_confirmed_status,
    parse_order,
    parse_orders,
    parse_product,
    parse_products,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: UserProfile | None


class GatewayClient:
    """Thin wrapper over ``httpx.AsyncClient``; every request has a timeout.

    A missing base URL is reported per call as ``ConfigurationError`` so the
    app still starts (catalog falls back to the built-in menu).
    """

    def __init__(
        self,
        base_url: str | None = API_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if not self.base_url:
            raise ConfigurationError("API URL is not configured (set CAFE_POS_API_URL).")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    @staticmethod
    def _require_token(token: str | None) -> str:
        if not token:
            raise AuthenticationError("You need to log in first.")
        return token

    async def _request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        json: Any = None,
    ) -> Any:
        client = self._http()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = await client.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("gateway_timeout", method=method, path=path)
            raise GatewayError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("gateway_transport_error", method=method, path=path, error=repr(exc))
            raise GatewayError(f"Network error: {exc}") from exc

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                if response.is_success:
                    raise GatewayError(f"Malformed response from {path}", response.status_code) from None

        logger.info("gateway_response", method=method, path=path, status=response.status_code)
        if response.status_code in (401, 403):
            raise AuthenticationError(error_message(body, "Not authorized"))
        if not response.is_success:
            raise GatewayError(
                error_message(body, f"{method} {path} failed ({response.status_code})"),
                response.status_code,
            )
        return body

    # -- auth --------------------------------------------------------------

    async def login(self, email: str, password: str) -> LoginResult:
        body = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        token = extract_token(body)
        if token is None:
            raise GatewayError("Login succeeded but no token was returned.")
        return LoginResult(token=token, user=extract_user(body))

    # -- catalog -----------------------------------------------------------

    async def fetch_products(self) -> list[MenuItem]:
        return parse_products(await self._request("GET", "/api/products"))

    async def create_product(self, token: str | None, payload: dict[str, Any]) -> MenuItem:
        body = await self._request("POST", "/api/products", token=self._require_token(token), json=payload)
        return parse_product(body)

    async def update_product(self, token: str | None, product_id: int, payload: dict[str, Any]) -> MenuItem:
        body = await self._request(
            "PUT", f"/api/products/{product_id}", token=self._require_token(token), json=payload
        )
        return parse_product(body)

    async def delete_product(self, token: str | None, product_id: int) -> None:
        await self._request("DELETE", f"/api/products/{product_id}", token=self._require_token(token))

    # -- orders ------------------------------------------------------------

    async def fetch_orders(self, token: str | None) -> list[Order]:
        return parse_orders(await self._request("GET", "/api/orders", token=self._require_token(token)))

    async def fetch_my_orders(self, token: str | None) -> list[Order]:
        return parse_orders(await self._request("GET", "/api/orders/me", token=self._require_token(token)))

    async def submit_order(self, token: str | None, request_body: dict[str, Any]) -> Order:
        body = await self._request("POST", "/api/orders", token=self._require_token(token), json=request_body)
        return parse_order(body)

    async def update_order_status(self, token: str | None, order_id: str, status: OrderStatus) -> OrderStatus:
        body = await self._request(
            "PUT",
            f"/api/orders/{order_id}/status",
            token=self._require_token(token),
            json={"status": status.value},
        )
        return parse_confirmed_status(body, status)
