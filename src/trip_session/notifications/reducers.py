"""
trip_session.notifications.reducers

Pure transitions over the notification log.

Responsibilities:
- Keep the log newest-first and bounded (oldest evicted on overflow).
- Maintain the unread counter alongside the log.

Every function returns a new `NotificationState`; inputs are never mutated,
so a fixed sequence of actions always yields the same log and counter.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from trip_session.notifications.models import Notification

DEFAULT_CAPACITY = 50


class NotificationAction(enum.StrEnum):
    add = "ADD_NOTIFICATION"
    mark_read = "MARK_NOTIFICATION_READ"
    mark_all_read = "MARK_ALL_READ"
    clear = "CLEAR_NOTIFICATIONS"
    update_live_data = "UPDATE_REAL_TIME_DATA"


@dataclass(frozen=True, slots=True)
class NotificationState:
    notifications: tuple[Notification, ...] = ()
    unread_count: int = 0
    # Latest payload per live-data key (e.g. "tripUpdate"); never mutated in place.
    live_data: dict[str, Any] = field(default_factory=dict)


def add_notification(
    state: NotificationState,
    notification: Notification,
    *,
    capacity: int = DEFAULT_CAPACITY,
) -> NotificationState:
    return replace(
        state,
        notifications=(notification, *state.notifications)[:capacity],
        unread_count=state.unread_count + 1,
    )


def mark_read(state: NotificationState, notification_id: str) -> NotificationState:
    return replace(
        state,
        notifications=tuple(
            n.mark_read() if n.id == notification_id else n for n in state.notifications
        ),
        unread_count=max(0, state.unread_count - 1),
    )


def mark_all_read(state: NotificationState) -> NotificationState:
    return replace(
        state,
        notifications=tuple(n.mark_read() for n in state.notifications),
        unread_count=0,
    )


def clear(state: NotificationState) -> NotificationState:
    return replace(state, notifications=(), unread_count=0)


def update_live_data(state: NotificationState, key: str, data: Any) -> NotificationState:
    return replace(state, live_data={**state.live_data, key: data})


def reduce_notifications(
    state: NotificationState,
    action: NotificationAction,
    payload: Any = None,
    *,
    capacity: int = DEFAULT_CAPACITY,
) -> NotificationState:
    """
    Action-driven entry point. Payloads:
    - ADD: `Notification`
    - MARK_READ: notification id
    - UPDATE_LIVE_DATA: `(key, data)`
    """

    handlers: dict[NotificationAction, Callable[[], NotificationState]] = {
        NotificationAction.add: lambda: add_notification(state, payload, capacity=capacity),
        NotificationAction.mark_read: lambda: mark_read(state, payload),
        NotificationAction.mark_all_read: lambda: mark_all_read(state),
        NotificationAction.clear: lambda: clear(state),
        NotificationAction.update_live_data: lambda: update_live_data(state, *payload),
    }
    handler = handlers.get(action)
    return handler() if handler is not None else state
