"""OpenTelemetry tracing support for the NamespaceStore Operator."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Tracer

from .utils.errors import ReconcileError

logger = logging.getLogger(__name__)

SERVICE_NAME = "namespacestore-operator"

_tracer: Tracer | None = None
_provider: TracerProvider | None = None


def _service_version() -> str:
    try:
        return version(SERVICE_NAME)
    except PackageNotFoundError:
        return "unknown"


def initialize_tracing(service_name: str = SERVICE_NAME) -> None:
    """Initialize OpenTelemetry tracing.

    Environment Variables:
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (default: http://localhost:4317)
        OTEL_SERVICE_NAME: Service name (default: namespacestore-operator)
        OTEL_SERVICE_VERSION: Service version (default: installed package version)
        OTEL_TRACES_ENABLED: Enable/disable tracing (default: true)
    """
    global _tracer, _provider

    if os.getenv("OTEL_TRACES_ENABLED", "true").lower() == "false":
        logger.info("Tracing disabled by OTEL_TRACES_ENABLED")
        return

    try:
        service_name = os.getenv("OTEL_SERVICE_NAME", service_name)
        resource = Resource.create({
            "service.name": service_name,
            "service.version": os.getenv("OTEL_SERVICE_VERSION") or _service_version(),
        })
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")

        provider = TracerProvider(resource=resource)
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)

        _provider = provider
        _tracer = trace.get_tracer(service_name)
    except Exception as e:
        # Tracing initialization failures should not break the operator
        logger.warning(f"Failed to initialize tracing: {e}")


def shutdown_tracing() -> None:
    """Flush pending spans and stop tracing."""
    global _tracer, _provider
    if _provider is not None:
        _provider.shutdown()
    _provider = None
    _tracer = None


def get_tracer() -> Tracer | None:
    return _tracer


@contextmanager
def trace_span(
    name: str,
    kind: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span | None]:
    """Run the body inside a span, or without one when tracing is off.

    Classified reconcile errors add their kind and reason to the span before
    it is marked as failed.
    """
    tracer = get_tracer()
    if tracer is None:
        yield None
        return

    attrs = dict(attributes or {})
    if kind:
        attrs["resource.kind"] = kind

    with tracer.start_as_current_span(
        name, attributes=attrs, record_exception=False, set_status_on_exception=False
    ) as span:
        try:
            yield span
        except Exception as e:
            if span.is_recording():
                if isinstance(e, ReconcileError):
                    span.set_attribute("reconcile.error_kind", e.kind.value)
                    span.set_attribute("reconcile.error_reason", e.reason)
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Add an attribute to the current span."""
    span = trace.get_current_span()
    if span and span.is_recording():
        span.set_attribute(key, value)
