"""Editable static menu and status configuration."""

from __future__ import annotations

# Shared option definitions, referenced by id from DEFAULT_MENU_BY_ID.
OPTION_SPECS_BY_ID: dict[str, dict[str, object]] = {
    "size": {"name": "Size", "kind": "size", "values": ["Small", "Medium", "Large"], "default": "Medium"},
    "temperature": {"name": "Temperature", "kind": "temperature", "values": ["Hot", "Iced"], "default": "Hot"},
    "sugar": {"name": "Sugar", "kind": "sugar", "values": ["0%", "25%", "50%", "75%", "100%"], "default": "50%"},
    "milk": {"name": "Milk", "kind": "custom", "values": ["Whole", "Oat", "Almond", "Soy"], "default": "Whole"},
    "extra_shot": {"name": "Extra shot", "kind": "checkbox", "values": [], "default": False},
    "whipped_cream": {"name": "Whipped cream", "kind": "checkbox", "values": [], "default": False},
}

# Built-in catalog installed whenever the product fetch is empty or fails.
DEFAULT_MENU_BY_ID: dict[str, dict[str, object]] = {
    "espresso": {
        "name": "Espresso",
        "secondary_name": "Coffee",
        "description": "A single shot of our house blend.",
        "price": "2.50",
        "options": ["extra_shot"],
    },
    "americano": {
        "name": "Americano",
        "secondary_name": "Coffee",
        "description": "Espresso topped up with hot water.",
        "price": "3.00",
        "options": ["size", "temperature", "extra_shot"],
    },
    "latte": {
        "name": "Latte",
        "secondary_name": "Coffee",
        "description": "Espresso with steamed milk.",
        "price": "4.00",
        "options": ["size", "temperature", "sugar", "milk", "extra_shot"],
    },
    "cappuccino": {
        "name": "Cappuccino",
        "secondary_name": "Coffee",
        "description": "Equal parts espresso, steamed milk and foam.",
        "price": "4.00",
        "options": ["size", "sugar", "milk", "extra_shot"],
    },
    "mocha": {
        "name": "Mocha",
        "secondary_name": "Coffee",
        "description": "Espresso, chocolate and steamed milk.",
        "price": "4.50",
        "options": ["size", "temperature", "sugar", "milk", "whipped_cream"],
    },
    "matcha_latte": {
        "name": "Matcha Latte",
        "secondary_name": "Tea",
        "description": "Stone-ground matcha with milk.",
        "price": "4.50",
        "options": ["size", "temperature", "sugar", "milk"],
    },
    "chai_latte": {
        "name": "Chai Latte",
        "secondary_name": "Tea",
        "description": "Spiced black tea with steamed milk.",
        "price": "4.25",
        "options": ["size", "temperature", "sugar", "milk"],
    },
    "hot_chocolate": {
        "name": "Hot Chocolate",
        "secondary_name": None,
        "description": "Rich cocoa with steamed milk.",
        "price": "3.75",
        "options": ["size", "sugar", "milk", "whipped_cream"],
    },
}

STATUS_LABELS: dict[str, str] = {
    "pending": "Pending",
    "preparing": "Preparing",
    "ready": "Ready",
    "paid": "Paid",
    "cancelled": "Cancelled",
    "completed": "Completed",
}

ACTION_LABELS: dict[str, str] = {
    "start_preparing": "Start preparing",
    "mark_ready": "Mark ready",
    "complete": "Complete order",
}

STAFF_ROLES: frozenset[str] = frozenset({"barista", "admin"})
ADMIN_ROLES: frozenset[str] = frozenset({"admin"})
