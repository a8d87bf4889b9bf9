"""
Tracing for repomigrate.

Components accept an injected Tracer and default to ``create_tracer``,
which yields real OpenTelemetry spans only when the ``tracing`` extra is
installed. Span attribute names live in ``repomigrate.observability.attributes``.
"""

from repomigrate.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from repomigrate.observability.tracing import OTEL_AVAILABLE

__all__ = [
    "OTEL_AVAILABLE",
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "Tracer",
    "create_tracer",
]
