"""Logging setup shared by the API, the CLI and Alembic.

structlog is configured on top of the standard library: structlog loggers
and plain ``logging`` loggers (uvicorn, SQLAlchemy, Alembic) all end up in one
root handler with the same processors. When OTEL is enabled a second root
handler ships records to the OTLP logs endpoint.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, ClassVar

import structlog
from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.util.types import Attributes

# Third-party loggers held at WARNING whatever the configured level
NOISY_LOGGERS = (
    "aiosqlite",
    "asyncio",
    "sqlalchemy.engine.Engine",
    "opentelemetry.exporter.otlp.proto.http",
    "uvicorn.access",  # AccessLoggingMiddleware logs requests instead
)


def _add_otel_context(
    logger: logging.Logger, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Attach the current trace and span ids so logs can be joined to traces."""
    span = trace.get_current_span()
    if not span or not span.is_recording():
        return event_dict
    ctx = span.get_span_context()
    event_dict["trace_id"] = format(ctx.trace_id, "032x")
    event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    """Processors applied to structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_otel_context,
    ]


def _renderer(level: str) -> structlog.types.Processor:
    # DEBUG output is fed to log tooling, everything else is read by people
    if level == "DEBUG":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


class AttrFilteredLoggingHandler:
    """OTEL LoggingHandler that drops record attributes OTLP cannot encode.

    structlog's stdlib bridge leaves a ``_logger`` object on every record.
    The real handler class is created on instantiation so the OTEL logs SDK is
    only imported once log export is switched on.
    """

    DROP_ATTRIBUTES: ClassVar[list[str]] = ["_logger"]

    def __new__(cls, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401  # Returns a runtime subclass
        """Instantiate a LoggingHandler subclass with filtered attributes."""
        from opentelemetry.sdk._logs import LoggingHandler  # noqa: PLC0415

        handler_class = type(
            "AttrFilteredLoggingHandler",
            (LoggingHandler,),
            {
                "DROP_ATTRIBUTES": cls.DROP_ATTRIBUTES,
                "_get_attributes": staticmethod(cls._get_attributes),
            },
        )
        return handler_class(*args, **kwargs)

    @staticmethod
    def _get_attributes(record: logging.LogRecord) -> "Attributes":
        from opentelemetry.sdk._logs import LoggingHandler  # noqa: PLC0415

        attributes = LoggingHandler._get_attributes(record)
        if attributes is None:
            return None
        return {  # type: ignore[return-value]
            key: value
            for key, value in attributes.items()
            if key not in AttrFilteredLoggingHandler.DROP_ATTRIBUTES
        }


def _attach_otel_handler(root_logger: logging.Logger) -> None:
    """Add the OTLP log handler to the root logger when OTEL provides one."""
    # Imported here: config and telemetry both log through this module
    from subway.core.config import settings  # noqa: PLC0415

    if not settings.OTEL_ENABLED:
        return

    from subway.core.telemetry import get_logger_provider  # noqa: PLC0415

    logger_provider = get_logger_provider()
    if logger_provider is None:
        return

    otel_handler = AttrFilteredLoggingHandler(
        level=getattr(logging, settings.OTEL_LOG_LEVEL),
        logger_provider=logger_provider,
    )
    root_logger.addHandler(otel_handler)  # type: ignore[arg-type]  # Runtime subclass of LoggingHandler
    structlog.get_logger(__name__).info(
        "otel_logging_handler_attached",
        level=settings.OTEL_LOG_LEVEL,
        endpoint=settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT,
    )


def configure_logging(*, log_level: str = "INFO") -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Safe to call repeatedly: existing root handlers are replaced.

    Args:
        log_level: Level name, case-insensitive (DEBUG, INFO, WARNING, ...)
    """
    level = log_level.upper()
    shared_processors = _shared_processors()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(level)],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(stdout_handler)
    root_logger.setLevel(getattr(logging, level))

    _attach_otel_handler(root_logger)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
