"""SQLite persistence for the bearer credential and cached user profile."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import structlog

from cafe_pos.config import DB_PATH
from cafe_pos.models import Session, UserProfile
from cafe_pos.payloads import user_to_dict

logger = structlog.get_logger(__name__)

_TOKEN_KEY = "token"
_USER_KEY = "user"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect(db_path: str | None = None) -> sqlite3.Connection:
    db_file = Path(db_path or DB_PATH)
    db_file.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(db_file)


def bootstrap_schema(db_path: str | None = None) -> None:
    """Create persistence schema if it does not already exist."""
    with _connect(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS session_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )


def _user_from_json(raw: str | None) -> UserProfile | None:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("cached_user_unreadable")
        return None
    if not isinstance(data, dict) or not data.get("id"):
        return None
    return UserProfile(
        user_id=str(data["id"]),
        name=str(data.get("name") or ""),
        email=str(data.get("email") or ""),
        role=str(data.get("role") or "customer"),
    )


def load_session(db_path: str | None = None) -> Session:
    """Read the persisted credential and profile; an empty store is a logged-out session."""
    bootstrap_schema(db_path)
    with _connect(db_path) as conn:
        rows = dict(conn.execute("SELECT key, value FROM session_state").fetchall())
    token = rows.get(_TOKEN_KEY) or None
    return Session(token=token, user=_user_from_json(rows.get(_USER_KEY)))


def save_session(token: str, user: UserProfile | None, db_path: str | None = None) -> Session:
    if not token:
        raise ValueError("Cannot save a session without a token")

    bootstrap_schema(db_path)
    now = _utc_now_iso()
    with _connect(db_path) as conn:
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO session_state (key, value, updated_at) VALUES (?, ?, ?)",
                (_TOKEN_KEY, token, now),
            )
            if user is None:
                conn.execute("DELETE FROM session_state WHERE key = ?", (_USER_KEY,))
            else:
                conn.execute(
                    "INSERT OR REPLACE INTO session_state (key, value, updated_at) VALUES (?, ?, ?)",
                    (_USER_KEY, json.dumps(user_to_dict(user)), now),
                )
    return Session(token=token, user=user)


def clear_session(db_path: str | None = None) -> None:
    bootstrap_schema(db_path)
    with _connect(db_path) as conn:
        with conn:
            conn.execute("DELETE FROM session_state")


SessionListener = Callable[[Session], None]


class SessionManager:
    """Current session plus the credential-change signal.

    Listeners fire on every login and logout with the new session, whether or
    not the token value actually changed.
    """

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = db_path
        self._session = load_session(db_path)
        self._listeners: list[SessionListener] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> str | None:
        return self._session.token

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _fire(self) -> None:
        for listener in list(self._listeners):
            listener(self._session)

    def login(self, token: str, user: UserProfile | None) -> Session:
        self._session = save_session(token, user, self.db_path)
        logger.info("session_saved", user_id=user.user_id if user else None)
        self._fire()
        return self._session

    def logout(self) -> None:
        clear_session(self.db_path)
        self._session = Session()
        logger.info("session_cleared")
        self._fire()
