"""
trip_session.alerts

User-facing ephemeral notices.

Responsibilities:
- Define the `Alert` value and the `AlertSink` protocol embedding UIs implement.
- Provide a structlog-backed default sink and a recording sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from trip_session.observability.logging import get_logger

AlertLevel = Literal["info", "success", "warning", "error"]

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Alert:
    level: AlertLevel
    message: str


class AlertSink(Protocol):
    def show(self, alert: Alert) -> None: ...


class LoggingAlertSink:
    """Default sink for headless use: alerts become log lines."""

    def show(self, alert: Alert) -> None:
        log.info("alert", level=alert.level, message=alert.message)


class RecordingAlertSink:
    """Keeps every alert in order; UIs drain it, tests assert on it."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def show(self, alert: Alert) -> None:
        self.alerts.append(alert)

    def messages(self, level: AlertLevel | None = None) -> list[str]:
        return [a.message for a in self.alerts if level is None or a.level == level]


# --- Module Notes -----------------------------------------------------------
# Sinks must not raise or block: they are called synchronously from session,
# dispatcher and channel code paths.
