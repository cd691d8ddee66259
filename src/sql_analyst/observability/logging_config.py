"""
Structured Logging Configuration
================================

structlog setup for the analyst. Log lines carry the bound ``run_id`` and
``request_id``; SQL text in events is shortened before rendering.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog
from structlog.types import EventDict, Processor

# Event keys whose values are SQL text
SQL_KEYS = ("sql", "attempted_sql", "fixed_sql", "failing_sql")
MAX_SQL_CHARS = 400

QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sentence_transformers")


def shorten_sql(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Collapse whitespace in SQL values and cut them to ``MAX_SQL_CHARS``."""
    for key in SQL_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str):
            flat = " ".join(value.split())
            if len(flat) > MAX_SQL_CHARS:
                flat = f"{flat[:MAX_SQL_CHARS]}... ({len(flat)} chars)"
            event_dict[key] = flat
    return event_dict


def setup_logging(level: str | None = None, json_format: bool | None = None) -> None:
    """
    Route stdlib and structlog output through one stdout handler.

    ``level`` defaults to ``SQL_ANALYST_LOG_LEVEL``. JSON rendering is used
    when ``json_format`` is true, or by default when ``SQL_ANALYST_LOG_FORMAT``
    is ``json`` or the environment is ``production``.
    """
    from sql_analyst.config import get_settings

    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.log_format.lower() == "json" or settings.environment == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        shorten_sql,
    ]
    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> Any:
    """Structured logger for ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind ``kwargs`` to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
