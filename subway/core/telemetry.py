"""OpenTelemetry tracing and log export for the subway service.

Providers are built lazily, on first use inside the serving process, so that
forked uvicorn workers never share exporter threads with their parent. When
OTEL is disabled every accessor returns None and ``service_span`` falls back
to the API's no-op tracer.
"""

import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from opentelemetry import trace
from opentelemetry._logs import set_logger_provider as otel_set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import SpanKind, Status, StatusCode

from subway import __version__
from subway.core.config import require_config, settings

if TYPE_CHECKING:
    from opentelemetry.trace.span import Span

logger = structlog.get_logger(__name__)

_tracer_provider: TracerProvider | None = None
_logger_provider: LoggerProvider | None = None
# One lock for both providers; creation happens at most twice per process
_provider_lock = threading.Lock()

# OpenTelemetry attribute values can be primitives or lists of primitives
AttributeValue = str | int | float | bool | list[str] | list[int] | list[float] | list[bool]


def parse_otlp_headers(headers_str: str) -> dict[str, str]:
    """
    Parse ``OTEL_EXPORTER_OTLP_HEADERS`` (comma-separated ``key=value`` pairs).

    Only the first ``=`` splits a pair, so base64 values keep their padding.
    Entries without ``=`` are logged and skipped.

    Examples:
        >>> parse_otlp_headers("Authorization=Bearer token123,X-Scope=subway")
        {'Authorization': 'Bearer token123', 'X-Scope': 'subway'}
    """
    headers: dict[str, str] = {}
    for raw_pair in (headers_str or "").split(","):
        pair = raw_pair.strip()
        if not pair:
            continue
        key, separator, value = pair.partition("=")
        if not separator:
            logger.warning("otel_malformed_header", pair=pair)
            continue
        headers[key.strip()] = value.strip()
    return headers


def _service_resource() -> Resource:
    """Resource shared by traces and logs so they correlate."""
    return Resource(
        attributes={
            "service.name": settings.OTEL_SERVICE_NAME,
            "service.version": __version__,
            "deployment.environment": settings.OTEL_ENVIRONMENT,
        }
    )


def _exporter_headers() -> dict[str, str]:
    return parse_otlp_headers(settings.OTEL_EXPORTER_OTLP_HEADERS or "")


# ==================== Traces ====================


def _create_tracer_provider() -> TracerProvider:
    """
    Build the TracerProvider, exporting over OTLP/HTTP when an endpoint is set.

    Raises:
        ValueError: If the traces endpoint is missing outside DEBUG mode
    """
    if not settings.DEBUG:
        require_config("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT")

    provider = TracerProvider(resource=_service_resource())
    endpoint = settings.OTEL_EXPORTER_OTLP_TRACES_ENDPOINT

    if not endpoint:
        logger.warning("otel_no_traces_endpoint_configured", message="spans stay in-process")
        return provider

    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=_exporter_headers())))
    logger.info("otel_tracer_provider_created", endpoint=endpoint, service_name=settings.OTEL_SERVICE_NAME)
    return provider


def get_tracer_provider() -> TracerProvider | None:
    """
    Return the process-wide TracerProvider, creating it on first call.

    Returns:
        TracerProvider if OTEL is enabled, None otherwise
    """
    global _tracer_provider  # noqa: PLW0603
    if not settings.OTEL_ENABLED:
        return None
    if _tracer_provider is None:
        with _provider_lock:
            if _tracer_provider is None:
                _tracer_provider = _create_tracer_provider()
    return _tracer_provider


def shutdown_tracer_provider() -> None:
    """Flush pending spans. Safe to call when no provider was created."""
    if _tracer_provider is None:
        return
    _tracer_provider.shutdown()
    logger.info("otel_tracer_provider_shutdown")


# ==================== Logs ====================


def _create_logger_provider() -> LoggerProvider:
    """Build the LoggerProvider; without an endpoint, logs only reach stdout."""
    provider = LoggerProvider(resource=_service_resource())
    endpoint = settings.OTEL_EXPORTER_OTLP_LOGS_ENDPOINT

    if not endpoint:
        logger.warning("otel_no_logs_endpoint_configured", message="logs will not be exported to OTLP")
        return provider

    provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, headers=_exporter_headers()))
    )
    logger.info("otel_logger_provider_created", endpoint=endpoint, log_level=settings.OTEL_LOG_LEVEL)
    return provider


def get_logger_provider() -> LoggerProvider | None:
    """
    Return the process-wide LoggerProvider, creating it on first call.

    Returns:
        LoggerProvider if OTEL is enabled, None otherwise
    """
    global _logger_provider  # noqa: PLW0603
    if not settings.OTEL_ENABLED:
        return None
    if _logger_provider is None:
        with _provider_lock:
            if _logger_provider is None:
                _logger_provider = _create_logger_provider()
    return _logger_provider


def set_logger_provider() -> None:
    """Install the LoggerProvider as the OTEL global (call after fork)."""
    if provider := get_logger_provider():
        otel_set_logger_provider(provider)


def shutdown_logger_provider() -> None:
    """Flush pending log records. Safe to call when no provider was created."""
    if _logger_provider is None:
        return
    _logger_provider.shutdown()  # type: ignore[no-untyped-call]
    logger.info("otel_logger_provider_shutdown")


# ==================== Spans ====================


@contextmanager
def service_span(
    name: str,
    service: str,
    kind: SpanKind = SpanKind.INTERNAL,
    **attributes: AttributeValue,
) -> Generator["Span"]:
    """
    Wrap a service operation in a span with an explicit status.

    The span is marked OK when the block completes. If it raises, the SDK
    records the exception, marks the span ERROR and the exception propagates.
    The tracer is resolved per call so the provider installed at startup is
    the one used.

    Args:
        name: Span name (e.g., "section.add")
        service: Value for the peer.service attribute
        kind: Span kind
        **attributes: Extra span attributes

    Yields:
        The active span, for attributes only known inside the block

    Example:
        with service_span("section.add", "section-service", line_id=str(line_id)) as span:
            edit = insert_section(chain, up, down, distance)
            span.set_attribute("section.edit_kind", edit.kind.value)
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name, kind=kind, attributes={"peer.service": service, **attributes}) as span:
        yield span
        span.set_status(Status(StatusCode.OK))
