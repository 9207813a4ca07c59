"""
trip_session.observability.logging

structlog configuration for the session layer.

Responsibilities:
- Render events as JSON (default) or as console lines for interactive use.
- Keep credentials and passwords out of every log line.
- Provide a small wrapper for obtaining bound loggers.
- Log failures of fire-and-forget tasks.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog

# Event keys whose values are never written out.
SECRET_KEYS = frozenset(
    {"token", "access_token", "accesstoken", "authorization", "password", "new_password"}
)


def configure_logging(*, service_name: str, level: str, json_logs: bool = True) -> None:
    """
    Logs go to stderr; stdout belongs to the CLI feed.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer: structlog.typing.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            _redact_secrets,
            structlog.processors.dict_tracebacks if json_logs else structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _redact_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in event_dict:
        if key.lower() in SECRET_KEYS:
            event_dict[key] = "[redacted]"
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_task_failure(
    logger: structlog.stdlib.BoundLogger, event: str
) -> Callable[[asyncio.Task[Any]], None]:
    """
    Done-callback for background tasks nobody awaits: a failure is logged
    instead of surfacing later as "Task exception was never retrieved".
    """

    def _done(task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(event, error=str(exc), exc_info=exc)

    return _done


# --- Module Notes -----------------------------------------------------------
# Per-call fields (request_id, method, path) come from `observability.context`.
