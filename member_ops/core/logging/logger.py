"""
Structured logging for member_ops.

Every log line is a structlog event rendered either as one JSON object per
line (``LOG_FORMAT=json``, for the log shipper) or as coloured console text
(``LOG_FORMAT=console``, for local work).

Fields added to each event:
    request_id  correlation id of the request being served, if any
    timestamp   UTC, ISO-8601 with a trailing ``Z``
    level       upper-case level name
    stage       free-form flow tag passed by the caller (``log_stage``)

Member e-mail addresses and phone numbers are masked in the event text and
in the ``key``/``pattern`` fields before rendering, because cache keys such
as ``user:email:{address}`` are logged verbatim by the cache layer.
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from member_ops.core.config.settings import get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_EMAIL_RE = re.compile(r"\b[\w.+-]+@[\w.-]+\.\w+\b")
_PHONE_RE = re.compile(r"\b\d{3}[-. ]?\d{3}[-. ]?\d{4}\b")

# Event fields that may carry member identifiers
_MASKED_FIELDS = ("event", "key", "pattern")


def _mask(text: str) -> str:
    return _PHONE_RE.sub("[PHONE]", _EMAIL_RE.sub("[EMAIL]", text))


# =============================================================================
# Processors
# =============================================================================


def add_request_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    now = datetime.now(timezone.utc)
    event_dict["timestamp"] = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return event_dict


def redact_pii(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask e-mail addresses and phone numbers in the identifying fields."""
    for name in _MASKED_FIELDS:
        value = event_dict.get(name)
        if isinstance(value, str):
            event_dict[name] = _mask(value)
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    level = event_dict.get("level")
    if isinstance(level, str):
        event_dict["level"] = level.upper()
    return event_dict


def _processor_chain(renderer: Processor) -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        add_timestamp,
        structlog.stdlib.add_log_level,
        add_log_level_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_pii,
        renderer,
    ]


# =============================================================================
# Setup
# =============================================================================


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; defaults to LOG_LEVEL
        log_format: "json" or "console"; defaults to LOG_FORMAT
    """
    if log_level is None or log_format is None:
        logging_settings = get_settings().logging
        log_level = log_level or logging_settings.LOG_LEVEL
        log_format = log_format or logging_settings.LOG_FORMAT

    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)

    renderer: Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=_processor_chain(renderer),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Module logger. Call with keyword fields:

        logger = get_logger(__name__)
        logger.warning("Cache get failed", stage="CACHE.GET", key=key)
    """
    return structlog.get_logger(name)


# =============================================================================
# Request Correlation
# =============================================================================


def set_request_id(request_id: str) -> None:
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def clear_request_id() -> None:
    request_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **fields
) -> None:
    """
    Emit ``message`` at ``level`` tagged with ``stage``.

        log_stage(logger, "BS.2", "Switched to local cache", level="warning", error=str(e))
    """
    emit = getattr(logger, level.lower())
    emit(message, stage=stage, **fields)
