"""User-facing notifications raised by actions and realtime events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from cafe_pos.config import TRANSIENT_NOTIFICATION_SECONDS
from cafe_pos.models import OrderStatus

Severity = Literal["information", "warning", "error"]


@dataclass(frozen=True)
class Notification:
    """A message for the operator; ``timeout=None`` stays until dismissed."""

    message: str
    severity: Severity = "information"
    timeout: float | None = TRANSIENT_NOTIFICATION_SECONDS
    title: str = ""

    @property
    def sticky(self) -> bool:
        return self.timeout is None


Notifier = Callable[[Notification], None]


def info(message: str) -> Notification:
    return Notification(message=message, severity="information")


def warning(message: str) -> Notification:
    return Notification(message=message, severity="warning")


def error(message: str) -> Notification:
    return Notification(message=message, severity="error")


def status_notification(status: OrderStatus, order_id: str) -> Notification:
    """Ready-for-pickup stays on screen; intermediate statuses fade."""
    short_id = order_id[:8]
    if status is OrderStatus.PREPARING:
        return Notification(f"Order #{short_id} is now being prepared")
    if status is OrderStatus.READY:
        return Notification(f"Order #{short_id} is ready for pickup!", timeout=None, title="Ready")
    if status is OrderStatus.COMPLETED:
        return Notification(f"Order #{short_id} has been completed")
    return Notification(f"Order #{short_id} status updated to {status.value}")


class CollectingNotifier:
    """Notifier that keeps every notification in order."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def messages(self) -> list[str]:
        return [notification.message for notification in self.notifications]

    def clear(self) -> None:
        self.notifications.clear()
