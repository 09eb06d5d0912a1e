"""Centralized extraction of gateway and realtime payloads.

Each loosely-shaped inbound payload is resolved once here into a typed record;
nothing else in the package reads raw JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import structlog

from cafe_pos.errors import GatewayError, ValidationError
from cafe_pos.models import (
    DraftLineItem,
    MenuItem,
    OptionKind,
    OptionSpec,
    Order,
    OrderLineItem,
    OrderStatus,
    UserProfile,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class OrderCreatedEvent:
    order_id: str
    user_id: str | None = None
    total: Decimal | None = None
    status: OrderStatus | None = None


@dataclass(frozen=True)
class StatusChangedEvent:
    order_id: str
    status: OrderStatus


@dataclass(frozen=True)
class ReadyEvent:
    user_id: str | None
    role: str | None


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _optional_id(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        text = str(value)
        return text or None
    return None


def _decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _product_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _is_available(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return bool(value)


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str) or not value:
        raise GatewayError("Malformed order payload: missing created_at")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise GatewayError(f"Malformed order payload: bad created_at {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


# -- auth ------------------------------------------------------------------


def extract_token(body: Any) -> str | None:
    """Return the bearer token from a login response.

    Checked in order: token, accessToken, data.token, data.accessToken.
    """
    if not isinstance(body, dict):
        return None
    nested = body.get("data")
    if not isinstance(nested, dict):
        nested = {}
    for candidate in (body.get("token"), body.get("accessToken"), nested.get("token"), nested.get("accessToken")):
        token = _non_empty_str(candidate)
        if token is not None:
            return token
    return None


def extract_user(body: Any) -> UserProfile | None:
    if not isinstance(body, dict):
        return None
    raw = body.get("user")
    if not isinstance(raw, dict):
        return None
    user_id = _optional_id(raw.get("id"))
    if user_id is None:
        return None
    return UserProfile(
        user_id=user_id,
        name=str(raw.get("name") or ""),
        email=str(raw.get("email") or ""),
        role=str(raw.get("role") or "customer"),
    )


def user_to_dict(user: UserProfile) -> dict[str, str]:
    return {"id": user.user_id, "name": user.name, "email": user.email, "role": user.role}


def error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        message = _non_empty_str(body.get("error")) or _non_empty_str(body.get("message"))
        if message is not None:
            return message
    return fallback


# -- catalog ---------------------------------------------------------------


def parse_option(raw: Any) -> OptionSpec | None:
    """One configurable option of a product; None when it cannot be offered."""
    if not isinstance(raw, dict):
        return None
    option_id = _optional_id(raw.get("id"))
    name = _non_empty_str(raw.get("name"))
    try:
        kind = OptionKind(raw.get("type"))
    except ValueError:
        return None
    if option_id is None or name is None:
        return None
    values_raw = raw.get("values")
    values = tuple(v for v in values_raw if isinstance(v, str) and v) if isinstance(values_raw, list) else ()
    default = raw.get("defaultValue", raw.get("default_value"))
    if kind is OptionKind.CHECKBOX:
        default = default is True or default == "true"
    elif default not in values:
        default = None
    try:
        return OptionSpec(option_id=option_id, name=name, kind=kind, values=values, default=default)
    except ValueError:
        return None


def _parse_options(raw: Any) -> tuple[OptionSpec, ...]:
    if not isinstance(raw, list):
        return ()
    options = []
    for entry in raw:
        spec = parse_option(entry)
        if spec is None:
            logger.debug("product_option_skipped", option=entry)
            continue
        options.append(spec)
    return tuple(options)


def parse_product(raw: Any) -> MenuItem:
    if not isinstance(raw, dict):
        raise GatewayError("Malformed product payload")
    product_id = _product_id(raw.get("id"))
    item_id = _optional_id(raw.get("id"))
    name = _non_empty_str(raw.get("name"))
    if item_id is None or name is None:
        raise GatewayError("Malformed product payload: missing id or name")
    price = _decimal(raw.get("base_price"))
    if price is None or price < 0:
        price = Decimal("0")
    return MenuItem(
        item_id=item_id,
        name=name,
        price=price,
        secondary_name=_non_empty_str(raw.get("category_name")),
        description=str(raw.get("description") or ""),
        image_url=_non_empty_str(raw.get("image_url")),
        product_id=product_id,
        options=_parse_options(_first_present(raw, "available_options", "availableOptions", "options")),
        available=_is_available(raw.get("available")),
    )


def parse_products(body: Any) -> list[MenuItem]:
    if not isinstance(body, list):
        raise GatewayError("Invalid response while loading menu")
    return [parse_product(raw) for raw in body]


def product_request(
    name: str,
    base_price: Decimal | float | str,
    description: str = "",
    category_name: str | None = None,
    image_url: str | None = None,
    available: bool = True,
) -> dict[str, Any]:
    """Shape a catalog create/update body."""
    price = _decimal(base_price)
    if not name.strip():
        raise ValidationError("Product name is required.")
    if price is None or price < 0:
        raise ValidationError("Price must be a non-negative number.")
    return {
        "name": name.strip(),
        "description": description,
        "base_price": float(price),
        "category_name": category_name,
        "image_url": image_url,
        "available": available,
    }


# -- orders ----------------------------------------------------------------


def parse_order_line(raw: Any) -> OrderLineItem:
    if not isinstance(raw, dict):
        raise GatewayError("Malformed order item payload")
    quantity = raw.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise GatewayError("Malformed order item payload: quantity")
    return OrderLineItem(
        line_id=_optional_id(raw.get("id")) or "",
        quantity=quantity,
        product_id=_product_id(raw.get("product_item_id")),
        name=_non_empty_str(raw.get("product_item_name")),
        unit_price=_decimal(raw.get("price")),
    )


def parse_order(raw: Any) -> Order:
    if not isinstance(raw, dict):
        raise GatewayError("Malformed order payload")
    order_id = _optional_id(raw.get("id"))
    if order_id is None:
        raise GatewayError("Malformed order payload: missing id")
    status = OrderStatus.parse(raw.get("status"))
    if status is None:
        raise GatewayError(f"Malformed order payload: unknown status {raw.get('status')!r}")
    items_raw = raw.get("items") or []
    if not isinstance(items_raw, list):
        raise GatewayError("Malformed order payload: items")
    order_number = raw.get("order_number")
    return Order(
        order_id=order_id,
        status=status,
        created_at=_parse_timestamp(raw.get("created_at")),
        items=tuple(parse_order_line(item) for item in items_raw),
        total=_decimal(raw.get("total")),
        user_id=_optional_id(raw.get("user_id")),
        order_number=order_number if isinstance(order_number, int) and not isinstance(order_number, bool) else None,
        user_name=_non_empty_str(raw.get("user_name")),
        user_email=_non_empty_str(raw.get("user_email")),
    )


def parse_orders(body: Any) -> list[Order]:
    if not isinstance(body, list):
        raise GatewayError("Invalid response while loading orders")
    return [parse_order(raw) for raw in body]


def parse_confirmed_status(body: Any, requested: OrderStatus) -> OrderStatus:
    """Status echoed by the gateway after a PUT; falls back to the requested one."""
    if isinstance(body, dict):
        status = OrderStatus.parse(body.get("status"))
        if status is not None:
            return status
    return requested


def build_order_request(lines: Iterable[DraftLineItem], catalog: Iterable[MenuItem]) -> dict[str, Any]:
    """Resolve every draft line to a backend product id, or reject the whole draft."""
    lines = list(lines)
    if not lines:
        raise ValidationError("Nothing to submit: the order is empty.")

    by_id = {item.item_id: item for item in catalog}
    items: list[dict[str, int]] = []
    unresolved: list[str] = []
    for line in lines:
        menu_item = by_id.get(line.menu_item_id)
        if menu_item is None or menu_item.product_id is None:
            unresolved.append(menu_item.name if menu_item is not None else line.menu_item_id)
            continue
        items.append({"product_item_id": menu_item.product_id, "quantity": line.quantity})

    if unresolved:
        raise ValidationError(f"Cannot submit: no backend product for {', '.join(unresolved)}.")
    return {"items": items}


# -- realtime --------------------------------------------------------------


def parse_order_created(data: Any) -> OrderCreatedEvent | None:
    if not isinstance(data, dict):
        return None
    order_id = _optional_id(data.get("id"))
    if order_id is None:
        return None
    return OrderCreatedEvent(
        order_id=order_id,
        user_id=_optional_id(data.get("userId")),
        total=_decimal(data.get("total")),
        status=OrderStatus.parse(data.get("status")),
    )


def parse_status_changed(data: Any) -> StatusChangedEvent | None:
    """Return the event, or None when the id is missing or the status is unknown."""
    if not isinstance(data, dict):
        return None
    order_id = _optional_id(data.get("id"))
    status = OrderStatus.parse(data.get("status"))
    if order_id is None or status is None:
        return None
    return StatusChangedEvent(order_id=order_id, status=status)


def parse_ready(data: Any) -> ReadyEvent:
    if not isinstance(data, dict):
        return ReadyEvent(user_id=None, role=None)
    return ReadyEvent(user_id=_optional_id(data.get("userId")), role=_non_empty_str(data.get("role")))
