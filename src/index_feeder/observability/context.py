"""Log context shared by every record emitted while serving one call.

``JsonFormatter`` copies this context into each JSON line: a ``trace_id``
and ``span_id`` that tie the lines of one update post or collection call
together, and the ``collection`` the call targets.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def get_trace_context() -> dict:
    """Return the active context, starting a new trace when none is set."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {**(ctx or {}), "trace_id": uuid4().hex, "span_id": uuid4().hex[:16]}
        trace_context.set(ctx)
    return ctx


def update_span_id(span_id: str) -> None:
    """Point the context at a new span, keeping its trace and collection."""
    trace_context.set({**get_trace_context(), "span_id": span_id})


@contextmanager
def collection_context(collection: str) -> Iterator[dict]:
    """Tag records logged inside the block with ``collection``.

    The enclosing context is restored on exit, including after an error.
    """
    token = trace_context.set({**get_trace_context(), "collection": collection})
    try:
        yield trace_context.get()
    finally:
        trace_context.reset(token)
