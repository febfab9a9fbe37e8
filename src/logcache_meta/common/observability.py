"""Logging and tracing setup for the metadata command.

Stdout carries the rendered report and nothing else. Log events go to
stderr as JSON lines, and spans are exported only when an OTLP endpoint is
configured.
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, Optional, TextIO

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
try:  # pragma: no cover - optional dependency
    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
except ModuleNotFoundError:  # pragma: no cover - fallback when extra not installed
    HTTPXClientInstrumentor = None  # type: ignore[assignment]
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from structlog.contextvars import bind_contextvars


def _log_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        numeric = logging.getLevelName(level.strip().upper())
        if isinstance(numeric, int):
            return numeric
    return logging.WARNING


def configure_logging(service_name: str, level: str | int | None = None, stream: Optional[TextIO] = None) -> None:
    """Route structlog events to ``stream`` (stderr by default) as JSON lines.

    Safe to call again once settings are known; the later call only changes
    the level filter and the target stream.
    """

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.dict_tracebacks,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_log_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )
    bind_contextvars(service=service_name)


def parse_otlp_headers(headers: str | None) -> Dict[str, str]:
    if not headers:
        return {}
    result: Dict[str, str] = {}
    for item in headers.split(","):
        if not item.strip():
            continue
        key, _, value = item.partition("=")
        if key and value:
            result[key.strip()] = value.strip()
    return result


def configure_tracing(
    service_name: str,
    endpoint: Optional[str] = None,
    headers: Optional[str] = None,
    sampler_ratio: float = 1.0,
) -> Optional[TracerProvider]:
    """Export spans for this invocation to ``endpoint`` over OTLP/HTTP.

    Without an endpoint the global no-op provider stays in place and
    ``None`` is returned. The returned provider must be handed to
    :func:`flush_tracing` before the process exits.
    """

    if not endpoint:
        return None

    current = trace.get_tracer_provider()
    if isinstance(current, TracerProvider):
        return current

    sampler = ParentBased(TraceIdRatioBased(max(0.0, min(1.0, sampler_ratio))))
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}), sampler=sampler)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=parse_otlp_headers(headers)))
    )
    trace.set_tracer_provider(provider)

    if HTTPXClientInstrumentor is not None:
        instrumentor = HTTPXClientInstrumentor()
        if not instrumentor.is_instrumented_by_opentelemetry:
            instrumentor.instrument(tracer_provider=provider)
    return provider


def flush_tracing(provider: Optional[TracerProvider]) -> None:
    """Export queued spans and stop the exporter."""

    if provider is None:
        return
    provider.shutdown()
