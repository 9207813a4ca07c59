"""
trip_session.notifications.store

Stateful holder of the notification log.

Responsibilities:
- Apply reducers synchronously and publish each new state to subscribers.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from trip_session.notifications.models import Notification
from trip_session.notifications.reducers import (
    DEFAULT_CAPACITY,
    NotificationAction,
    NotificationState,
    reduce_notifications,
)

NotificationListener = Callable[[NotificationState, NotificationAction], None]


class NotificationStore:
    def __init__(self, *, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._state = NotificationState()
        self._listeners: list[NotificationListener] = []

    @property
    def state(self) -> NotificationState:
        return self._state

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return self._state.notifications

    @property
    def unread_count(self) -> int:
        return self._state.unread_count

    @property
    def live_data(self) -> dict[str, Any]:
        return self._state.live_data

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def append(self, notification: Notification) -> Notification:
        self._dispatch(NotificationAction.add, notification)
        return notification

    def mark_read(self, notification_id: str) -> None:
        self._dispatch(NotificationAction.mark_read, notification_id)

    def mark_all_read(self) -> None:
        self._dispatch(NotificationAction.mark_all_read)

    def clear(self) -> None:
        self._dispatch(NotificationAction.clear)

    def update_live_data(self, key: str, data: Any) -> None:
        self._dispatch(NotificationAction.update_live_data, (key, data))

    def _dispatch(self, action: NotificationAction, payload: Any = None) -> None:
        self._state = reduce_notifications(
            self._state, action, payload, capacity=self._capacity
        )
        for listener in list(self._listeners):
            listener(self._state, action)
