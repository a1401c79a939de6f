"""
Structured logging.

Modules log through ``get_logger(__name__)`` using snake_case event names
and key/value context. ``configure_logging()`` renders a readable console
in development and one JSON object per line elsewhere. Every event carries
the store name and the base currency that logged amounts are expressed in.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from kasebyar.config.settings import get_settings

NOISY_LOGGERS = ("aiosqlite", "httpx", "uvicorn.access")

# Bound per request, but often absent
OPTIONAL_CONTEXT = ("cashier", "request_id", "operation")


def _store_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    settings = get_settings()
    event_dict.setdefault("store", settings.store.store_name)
    event_dict.setdefault("base_currency", settings.currency.base_currency)
    return event_dict


def _drop_unset_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in OPTIONAL_CONTEXT:
        if key in event_dict and event_dict[key] is None:
            del event_dict[key]
    return event_dict


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Overrides ``LOG_LEVEL``.
        json_output: Overrides ``LOG_JSON`` / the environment default.
    """
    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.json_logs

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _drop_unset_context,
        _store_context,
    ]
    if json_output:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def operation_context(operation: str, **context: Any) -> Iterator[None]:
    """Bind ``operation`` (and any non-empty ids) to every event logged inside the block."""
    bound = {key: value for key, value in context.items() if value is not None}
    with structlog.contextvars.bound_contextvars(operation=operation, **bound):
        yield
