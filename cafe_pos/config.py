"""Runtime configuration defaults for the gateway, realtime channel and session store."""

from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def websocket_url_for(api_url: str | None) -> str | None:
    """Derive the realtime channel URL from the REST base URL."""
    if not api_url:
        return None
    base = api_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}{WS_PATH}"


# No default: without it every network action is a configuration error.
API_URL = os.environ.get("CAFE_POS_API_URL", "").strip() or None
WS_PATH = "/socket"
WS_URL = os.environ.get("CAFE_POS_WS_URL", "").strip() or websocket_url_for(API_URL)

DB_PATH = os.environ.get("CAFE_POS_DB_PATH", "").strip() or "data/cafe_pos.db"
LOG_PATH = os.environ.get("CAFE_POS_LOG_PATH", "").strip() or "/tmp/cafe-pos-debug.log"

REQUEST_TIMEOUT_SECONDS = _env_float("CAFE_POS_REQUEST_TIMEOUT", 10.0)
CONNECT_TIMEOUT_SECONDS = _env_float("CAFE_POS_CONNECT_TIMEOUT", 10.0)
# Periodic re-fetch used while the realtime channel is down.
REFRESH_INTERVAL_SECONDS = _env_float("CAFE_POS_REFRESH_INTERVAL", 15.0)
# Fetch attempts per refresh when snapshots keep arriving stale.
MAX_REFRESH_ATTEMPTS = 3

EMIT_STATUS_OVER_CHANNEL = _env_flag("CAFE_POS_EMIT_STATUS_OVER_CHANNEL", True)

MAX_LINE_QUANTITY = 99
TRANSIENT_NOTIFICATION_SECONDS = 4.0
# Textual needs a finite timeout; a day is "until dismissed" for a station.
STICKY_NOTIFICATION_SECONDS = 86400.0
