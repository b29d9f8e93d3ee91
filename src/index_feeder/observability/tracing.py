"""OpenTelemetry tracing for transport and data source calls."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from index_feeder.observability.context import update_span_id


if TYPE_CHECKING:
    from collections.abc import Generator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "index-feeder",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Initialize OpenTelemetry tracing."""
    attributes = {"service.name": service_name}
    if resource_attributes:
        attributes.update(resource_attributes)
    resource = Resource.create(attributes)
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = trace.get_tracer(__name__)
    logger.info("Tracing initialized for service: %s", service_name)
    return provider


def get_tracer() -> Tracer:
    """Get the configured tracer, falling back to the global provider."""
    if _tracer_holder["tracer"] is None:
        _tracer_holder["tracer"] = trace.get_tracer(__name__)
    return _tracer_holder["tracer"]  # type: ignore[return-value]


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a traced span with context propagation."""
    tracer = get_tracer()
    with tracer.start_as_current_span(name, kind=kind, record_exception=False, set_status_on_exception=False) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        ctx = span.get_span_context()
        if ctx.is_valid:
            update_span_id(format(ctx.span_id, "016x"))

        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
