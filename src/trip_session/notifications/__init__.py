"""
trip_session.notifications

Bounded, ordered notification log.

Responsibilities:
- The `Notification` value type.
- Pure reducers over the log (append/mark read/clear/live data).
- A small stateful store that applies them and notifies subscribers.
"""

from trip_session.notifications.models import Notification
from trip_session.notifications.reducers import (
    DEFAULT_CAPACITY,
    NotificationAction,
    NotificationState,
    reduce_notifications,
)
from trip_session.notifications.store import NotificationStore

__all__ = [
    "DEFAULT_CAPACITY",
    "Notification",
    "NotificationAction",
    "NotificationState",
    "NotificationStore",
    "reduce_notifications",
]
