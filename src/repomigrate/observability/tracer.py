"""
Tracers injected into the engine's components.

Every traced component takes an optional ``tracer`` and falls back to
``create_tracer(__name__, enable_tracing)``. Call sites open spans with
``with self._tracer.span(name, attributes) as span`` and only touch
``span`` when it is not None, so the same code runs with tracing off.

Example:
    >>> class Fetcher:
    ...     def __init__(self, tracer: Tracer | None = None, enable_tracing: bool = True):
    ...         self._tracer = tracer or create_tracer(__name__, enable_tracing)
    ...
    ...     async def fetch(self, url: str) -> None:
    ...         with self._tracer.span("repomigrate.fetch", {ATTR_REPO_URL: url}) as span:
    ...             if span:
    ...                 span.set_attribute(ATTR_CACHE_HIT, False)
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from repomigrate.observability.tracing import OTEL_AVAILABLE

if TYPE_CHECKING:
    from opentelemetry.trace import Span

Attributes = dict[str, Any]


@runtime_checkable
class Tracer(Protocol):
    """Opens spans around engine operations."""

    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Open a span for the duration of the ``with`` block.

        Yields the live span, or None when nothing is recorded.
        """
        ...

    @property
    def enabled(self) -> bool:
        """Whether spans are actually recorded."""
        ...


class NullTracer:
    """Tracer used when tracing is off. Every span is None."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by the global OpenTelemetry tracer provider.

    Only constructed by ``create_tracer`` once OpenTelemetry is known to
    be importable.

    Args:
        tracer_name: Instrumentation scope, usually the module's ``__name__``
    """

    def __init__(self, tracer_name: str) -> None:
        from opentelemetry import trace

        self._name = tracer_name
        self._tracer = trace.get_tracer(tracer_name)

    @property
    def name(self) -> str:
        return self._name

    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        # Exceptions escaping the block are recorded on the span by OpenTelemetry
        return self._tracer.start_as_current_span(name, attributes=attributes or {})

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer for tests: records the name and attributes of every span.

    Spans are yielded as None, like NullTracer, but ``enabled`` is True so
    components still compute their span attributes.

    Example:
        >>> tracer = MockTracer()
        >>> cache = RepositoryCache(factory, tracer=tracer)
        >>> await cache.get_or_create(url)
        >>> tracer.span_names
        ['repomigrate.cache.get_or_create', 'repomigrate.lock.acquire', ...]
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, Attributes | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> Generator[None, None, None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def attributes_of(self, name: str) -> list[Attributes | None]:
        """Attributes of every span named ``name``, in opening order."""
        return [attributes for span_name, attributes in self.spans if span_name == name]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Build the tracer a component should use.

    Returns an OpenTelemetryTracer when tracing is requested and the
    ``tracing`` extra is installed, a NullTracer otherwise.
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "MockTracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "Tracer",
    "create_tracer",
]
