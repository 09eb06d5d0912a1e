"""Domain models for cafe-pos."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum


class OptionKind(str, Enum):
    SUGAR = "sugar"
    TEMPERATURE = "temperature"
    SIZE = "size"
    CUSTOM = "custom"
    CHECKBOX = "checkbox"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    PAID = "paid"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: object) -> OrderStatus | None:
        """Return the matching status, or None for anything outside the taxonomy."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


CHECKBOX_VALUES = ("true", "false")


@dataclass(frozen=True)
class OptionSpec:
    """A configurable option on a menu item (size, sugar level, extra shot...)."""

    option_id: str
    name: str
    kind: OptionKind
    values: tuple[str, ...] = ()
    default: str | bool | None = None

    def __post_init__(self) -> None:
        if not self.values and self.kind is not OptionKind.CHECKBOX:
            raise ValueError(f"option {self.option_id!r} needs at least one value")

    def permitted_values(self) -> tuple[str, ...]:
        if self.kind is OptionKind.CHECKBOX and not self.values:
            return CHECKBOX_VALUES
        return self.values

    def initial_value(self) -> str:
        """Value preselected by the order form."""
        if self.kind is OptionKind.CHECKBOX:
            return "true" if self.default is True else "false"
        if isinstance(self.default, str) and self.default:
            return self.default
        return self.values[0]


@dataclass(frozen=True)
class MenuItem:
    """A catalog entry the operator can add to a draft."""

    item_id: str
    name: str
    price: Decimal
    secondary_name: str | None = None
    description: str = ""
    image_url: str | None = None
    options: tuple[OptionSpec, ...] = ()
    product_id: int | None = None
    available: bool = True

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"menu item {self.item_id!r} has a negative price")

    def option(self, option_id: str) -> OptionSpec | None:
        for spec in self.options:
            if spec.option_id == option_id:
                return spec
        return None

    def default_selection(self) -> dict[str, str]:
        return {spec.option_id: spec.initial_value() for spec in self.options}


@dataclass
class DraftLineItem:
    """A configured menu item waiting in the draft cart."""

    line_id: str
    menu_item_id: str
    selected_options: dict[str, str] = field(default_factory=dict)
    quantity: int = 1

    def is_equivalent(self, menu_item_id: str, selected_options: dict[str, str]) -> bool:
        return self.menu_item_id == menu_item_id and self.selected_options == selected_options


@dataclass(frozen=True)
class OrderLineItem:
    """Immutable snapshot of one persisted order line."""

    line_id: str
    quantity: int
    product_id: int | None = None
    name: str | None = None
    unit_price: Decimal | None = None


@dataclass(frozen=True)
class Order:
    """A persisted order as returned by the gateway."""

    order_id: str
    status: OrderStatus
    created_at: datetime
    items: tuple[OrderLineItem, ...] = ()
    total: Decimal | None = None
    user_id: str | None = None
    order_number: int | None = None
    user_name: str | None = None
    user_email: str | None = None

    @property
    def short_id(self) -> str:
        return self.order_id[:8]

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def with_status(self, status: OrderStatus) -> Order:
        return replace(self, status=status)


@dataclass(frozen=True)
class UserProfile:
    """Cached profile of the logged-in user."""

    user_id: str
    name: str = ""
    email: str = ""
    role: str = "customer"


@dataclass(frozen=True)
class Session:
    """Bearer credential plus the cached profile, as persisted between runs."""

    token: str | None = None
    user: UserProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def role(self) -> str | None:
        if self.user is None:
            return None
        return self.user.role
