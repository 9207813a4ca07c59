"""
trip_session.notifications.models

Notification value type.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    timestamp: datetime
    kind: str
    title: str
    message: str
    read: bool = False
    priority: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        *,
        kind: str,
        title: str,
        message: str,
        priority: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        return cls(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(tz=UTC),
            kind=kind,
            title=title,
            message=message,
            priority=priority,
            data=dict(data or {}),
        )

    @property
    def high_priority(self) -> bool:
        return self.priority == "high"

    def mark_read(self) -> Notification:
        return self if self.read else replace(self, read=True)
