"""Observability module for OpenTelemetry-aligned tracing and structured logging."""

from index_feeder.observability.context import collection_context, get_trace_context, trace_context
from index_feeder.observability.logging import JsonFormatter, configure_logging, configure_logging_from_settings
from index_feeder.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "JsonFormatter",
    "collection_context",
    "configure_logging",
    "configure_logging_from_settings",
    "create_span",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "trace_context",
]
