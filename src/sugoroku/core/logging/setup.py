from __future__ import annotations

import logging
import sys
from typing import Any

import orjson
import structlog

from sugoroku.utils.numbers import wide_ints_as_str


def _json_serializer(obj: Any, default: Any) -> str:
    """
    orjson-backed serializer for the JSON renderer.

    OPT_NON_STR_KEYS lets dict keys like die indexes through unchanged.
    """
    return orjson.dumps(obj, default=default, option=orjson.OPT_NON_STR_KEYS).decode("utf-8")


def _exact_wide_ints(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    return wide_ints_as_str(event_dict)


def configure_logging(*, level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog for the whole process. Call once at startup.

    json_output=False swaps the JSON renderer for structlog's console
    renderer, which is easier to read while playing locally.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        # session_id, component, ...
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.dict_tracebacks,
            _exact_wide_ints,
            structlog.processors.JSONRenderer(serializer=_json_serializer),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    # stdlib loggers (uvicorn, fastapi) share the same stream
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def bind_context(**values: Any) -> None:
    """
    Bind key/values onto every later log line in this context.

    Example:
        bind_context(session_id="20261019T120000Z_ab12cd34", component="scheduler")
    """
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
