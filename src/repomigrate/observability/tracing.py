"""
OpenTelemetry detection.

OpenTelemetry ships in the optional ``tracing`` extra. This module is the
only place that probes for it; everything else reads ``OTEL_AVAILABLE``.
"""

try:
    import opentelemetry.trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False


__all__ = ["OTEL_AVAILABLE"]
