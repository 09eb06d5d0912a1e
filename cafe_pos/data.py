"""Static menu data."""

from __future__ import annotations

from decimal import Decimal

from cafe_pos.constant import DEFAULT_MENU_BY_ID, OPTION_SPECS_BY_ID, STATUS_LABELS
from cafe_pos.models import MenuItem, OptionKind, OptionSpec

OPTION_SPECS: dict[str, OptionSpec] = {
    option_id: OptionSpec(
        option_id=option_id,
        name=str(raw["name"]),
        kind=OptionKind(raw["kind"]),
        values=tuple(raw["values"]),  # type: ignore[arg-type]
        default=raw.get("default"),  # type: ignore[arg-type]
    )
    for option_id, raw in OPTION_SPECS_BY_ID.items()
}


def _default_menu_item(item_id: str, raw: dict[str, object]) -> MenuItem:
    secondary = raw.get("secondary_name")
    return MenuItem(
        item_id=item_id,
        name=str(raw["name"]),
        price=Decimal(str(raw["price"])),
        secondary_name=str(secondary) if secondary is not None else None,
        description=str(raw.get("description") or ""),
        options=tuple(OPTION_SPECS[option_id] for option_id in raw["options"]),  # type: ignore[union-attr]
    )


# Fallback catalog; none of these carry a backend product id, so a draft built
# from them can be shown and priced but not submitted.
DEFAULT_CATALOG: tuple[MenuItem, ...] = tuple(
    _default_menu_item(item_id, raw) for item_id, raw in DEFAULT_MENU_BY_ID.items()
)


def status_label(status: str) -> str:
    """Get display label for a status value."""
    return STATUS_LABELS.get(status, status.title())


def search_catalog(items: tuple[MenuItem, ...] | list[MenuItem], query: str) -> list[MenuItem]:
    """Case-insensitive substring match on name and secondary name."""
    if not query:
        return list(items)
    q = query.lower()
    return [
        item for item in items if q in item.name.lower() or (item.secondary_name and q in item.secondary_name.lower())
    ]
