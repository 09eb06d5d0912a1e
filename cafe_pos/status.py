"""Order status transitions and who may trigger them.

The machine is stateless: callers pass the current status, the requested
target (or action) and the acting role, and get back a verdict. It never
raises for an illegal request; rejected checks carry a human-readable reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cafe_pos.constant import STAFF_ROLES
from cafe_pos.models import OrderStatus


class StatusAction(str, Enum):
    START_PREPARING = "start_preparing"
    MARK_READY = "mark_ready"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Transition:
    action: StatusAction
    source: OrderStatus
    target: OrderStatus
    roles: frozenset[str]


@dataclass(frozen=True)
class TransitionCheck:
    allowed: bool
    reason: str = ""
    action: StatusAction | None = None
    target: OrderStatus | None = None


# paid and cancelled are part of the taxonomy but no action produces them.
TRANSITIONS: tuple[Transition, ...] = (
    Transition(StatusAction.START_PREPARING, OrderStatus.PENDING, OrderStatus.PREPARING, STAFF_ROLES),
    Transition(StatusAction.MARK_READY, OrderStatus.PREPARING, OrderStatus.READY, STAFF_ROLES),
    Transition(StatusAction.COMPLETE, OrderStatus.READY, OrderStatus.COMPLETED, STAFF_ROLES),
)

_BY_ACTION = {transition.action: transition for transition in TRANSITIONS}
_BY_SOURCE = {transition.source: transition for transition in TRANSITIONS}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.PAID, OrderStatus.CANCELLED})


def next_action(current: OrderStatus) -> StatusAction | None:
    """Return the single action available from a status, if any."""
    transition = _BY_SOURCE.get(current)
    if transition is None:
        return None
    return transition.action


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def _check_role(transition: Transition, role: str | None) -> TransitionCheck:
    if role not in transition.roles:
        return TransitionCheck(
            allowed=False,
            reason=f"{transition.action.value} requires one of: {', '.join(sorted(transition.roles))}",
            action=transition.action,
            target=transition.target,
        )
    return TransitionCheck(allowed=True, action=transition.action, target=transition.target)


def check_transition(current: OrderStatus, target: OrderStatus | str, role: str | None) -> TransitionCheck:
    """Validate a move from current to target for the given role."""
    parsed_target = OrderStatus.parse(target)
    if parsed_target is None:
        return TransitionCheck(allowed=False, reason=f"unknown status {target!r}")

    transition = _BY_SOURCE.get(current)
    if transition is None:
        return TransitionCheck(allowed=False, reason=f"no transition out of {current.value}")
    if transition.target is not parsed_target:
        return TransitionCheck(
            allowed=False,
            reason=f"cannot move from {current.value} to {parsed_target.value}",
        )
    return _check_role(transition, role)


def check_action(action: StatusAction | str, current: OrderStatus, role: str | None) -> TransitionCheck:
    """Validate that an action applies to the current status and role."""
    try:
        parsed_action = StatusAction(action)
    except ValueError:
        return TransitionCheck(allowed=False, reason=f"unknown action {action!r}")

    transition = _BY_ACTION[parsed_action]
    if transition.source is not current:
        return TransitionCheck(
            allowed=False,
            reason=f"{parsed_action.value} applies to {transition.source.value} orders, not {current.value}",
            action=parsed_action,
        )
    return _check_role(transition, role)
