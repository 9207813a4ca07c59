"""
trip_session.realtime.events

Inbound event routing table.

Responsibilities:
- Map protocol event names to notification kinds, titles and messages.
- Declare which events also raise an immediate alert or update live data.
- Turn one inbound event into the notification/alerts/live update it produces.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from trip_session.alerts import Alert, AlertLevel
from trip_session.notifications.models import Notification

Render = Callable[[dict[str, Any]], str]


@dataclass(frozen=True, slots=True)
class EventRoute:
    kind: str
    title: str
    render: Render
    priority: str | None = None
    alert: AlertLevel | None = None
    alert_message: str | None = None
    admin_only: bool = False
    live_key: str | None = None
    # Kind/title/message/priority come from the payload itself.
    passthrough: bool = False


@dataclass(frozen=True, slots=True)
class RoutedEvent:
    notification: Notification
    alerts: tuple[Alert, ...] = ()
    live_update: tuple[str, Any] | None = None


def _date(value: Any) -> str:
    if not isinstance(value, str):
        return str(value)
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value


def _payment(d: dict[str, Any]) -> str:
    return f"Payment of {str(d.get('currency', '')).upper()} {d.get('amount', '')} was successful."


EVENT_ROUTES: Mapping[str, EventRoute] = {
    "trip-updated": EventRoute(
        kind="trip",
        title="Trip Updated",
        render=lambda d: f'Your trip "{d.get("tripName", "")}" has been updated.',
        live_key="tripUpdate",
    ),
    "payment-success": EventRoute(
        kind="payment",
        title="Payment Successful",
        render=_payment,
        alert="success",
        alert_message="Payment completed successfully!",
    ),
    "payment-failed": EventRoute(
        kind="payment",
        title="Payment Failed",
        render=lambda d: f"Payment failed: {d.get('error', 'unknown error')}",
        alert="error",
        alert_message="Payment failed. Please try again.",
    ),
    "booking-confirmed": EventRoute(
        kind="booking",
        title="Booking Confirmed",
        render=lambda d: f"Your booking ({d.get('bookingReference', '')}) has been confirmed.",
        alert="success",
        alert_message="Booking confirmed!",
    ),
    "booking-cancelled": EventRoute(
        kind="booking",
        title="Booking Cancelled",
        render=lambda d: f"Your booking ({d.get('bookingReference', '')}) has been cancelled.",
    ),
    "subscription-renewed": EventRoute(
        kind="subscription",
        title="Subscription Renewed",
        render=lambda d: (
            "Your subscription has been renewed. "
            f"Next billing: {_date(d.get('periodEnd', ''))}"
        ),
    ),
    "subscription-cancelled": EventRoute(
        kind="subscription",
        title="Subscription Cancelled",
        render=lambda d: (
            "Your subscription has been cancelled and will end on "
            f"{_date(d.get('endDate', ''))}"
        ),
    ),
    "admin-alert": EventRoute(
        kind="admin",
        title="Admin Alert",
        render=lambda d: str(d.get("message", "")),
        admin_only=True,
    ),
    "system-alert": EventRoute(
        kind="system",
        title="System Alert",
        render=lambda d: str(d.get("message", "")),
        priority="high",
        admin_only=True,
    ),
    "notification": EventRoute(
        kind="general",
        title="Notification",
        render=lambda d: str(d.get("message", "")),
        passthrough=True,
    ),
}


def route_event(
    name: str,
    data: Any,
    *,
    is_admin: bool,
    routes: Mapping[str, EventRoute] = EVENT_ROUTES,
) -> RoutedEvent | None:
    """
    Returns None for names absent from the table and for admin-only events
    received by a non-admin principal.
    """

    route = routes.get(name)
    if route is None or (route.admin_only and not is_admin):
        return None

    payload: dict[str, Any] = data if isinstance(data, dict) else {"value": data}
    kind, title, priority = route.kind, route.title, route.priority
    if route.passthrough:
        kind = str(payload.get("type") or payload.get("kind") or kind)
        title = str(payload.get("title") or title)
        priority = payload.get("priority") or priority

    notification = Notification.create(
        kind=kind,
        title=title,
        message=route.render(payload),
        priority=priority,
        data=payload,
    )

    alerts: list[Alert] = []
    if route.alert is not None:
        alerts.append(Alert(route.alert, route.alert_message or notification.message))
    if notification.high_priority:
        alerts.append(Alert("error", notification.message))

    live_update = (route.live_key, payload) if route.live_key else None
    return RoutedEvent(notification=notification, alerts=tuple(alerts), live_update=live_update)


# --- Module Notes -----------------------------------------------------------
# Adding an event means adding a row to EVENT_ROUTES; the channel manager has no
# per-event branching.
