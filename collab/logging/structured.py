"""structlog setup for the collaboration service.

Log lines are JSON in production and coloured console output in development.
Request-scoped identifiers (request id, acting user, workspace) live in
structlog's contextvars so every line emitted while handling a request
carries them.
"""

import logging
import sys
from typing import Optional
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "workspace-collab"


def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _renderers(json_format: bool) -> list[Processor]:
    if not json_format:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.UnicodeDecoder(), structlog.processors.JSONRenderer()]


def configure_structlog(json_format: bool = True, log_level: str = "INFO") -> None:
    """Route structlog through stdlib logging on stdout.

    Args:
        json_format: Emit one JSON object per line instead of console text.
        log_level: Minimum level name, e.g. ``"DEBUG"`` or ``"WARNING"``.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(log_level.upper()),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        *_renderers(json_format),
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger; pass ``__name__``.

    Events are snake_case verbs with identifiers as keyword fields::

        logger.info("task_blocked", task_id=str(task.id), blockers=2)
    """
    return structlog.get_logger(name)


def bind_context(
    request_id: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    workspace_id: Optional[UUID] = None,
) -> None:
    """Attach identifiers to every later log line in this context.

    Arguments left as None are not bound.
    """
    bound: dict[str, str] = {}
    if request_id:
        bound["request_id"] = request_id
    if actor_id:
        bound["actor_id"] = str(actor_id)
    if workspace_id:
        bound["workspace_id"] = str(workspace_id)
    if bound:
        structlog.contextvars.bind_contextvars(**bound)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
