"""
Tracers handed to migration components.

Every component takes an optional ``tracer`` argument and opens spans
through it, so the stage code never imports OpenTelemetry itself:

- OpenTelemetryTracer forwards to the globally configured provider
- NullTracer drops everything (``enable_tracing=False``)
- MockTracer keeps an ordered record that tests assert on

Example:
    >>> from helmshift.observability import Tracer, create_tracer
    >>>
    >>> class OperatorQuiescer:
    ...     def __init__(self, cluster, *, tracer: Tracer | None = None):
    ...         self._tracer = tracer or create_tracer(__name__)
    ...         self._cluster = cluster
    ...
    ...     async def quiesce(self, namespace: str, name: str) -> None:
    ...         with self._tracer.span("helmshift.operator.quiesce", {"name": name}):
    ...             await self._cluster.scale_deployment(namespace, name, 0)
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.trace import Span

SpanAttributes = dict[str, Any]


@runtime_checkable
class Tracer(Protocol):
    """What a component needs from a tracer: spans and an enabled flag."""

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Open a span around a block.

        Args:
            name: Dotted span name, e.g. "helmshift.cutover.install_release"
            attributes: Initial span attributes

        Returns:
            Context manager yielding the live span, or None when the
            implementation does not create real spans
        """
        ...

    @property
    def enabled(self) -> bool:
        """Whether attribute values are worth computing."""
        ...


class NullTracer:
    """Tracer used when tracing is switched off; spans cost nothing."""

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[None]:
        return contextlib.nullcontext()

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by ``opentelemetry.trace``.

    The host process owns provider and exporter setup. Until it configures
    one, OpenTelemetry returns non-recording spans and this tracer is
    effectively free.

    Args:
        tracer_name: Instrumentation scope, normally the module ``__name__``
    """

    def __init__(self, tracer_name: str) -> None:
        self._otel = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> AbstractContextManager[Span]:
        return self._otel.start_as_current_span(name, attributes=attributes or {})

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer that remembers every span it opened, in order.

    A span is recorded when it is entered, so spans whose body raised are
    still listed.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("helmshift.cutover.resolve_chart", {"step": "resolve_chart"}):
        ...     pass
        >>> tracer.spans
        [('helmshift.cutover.resolve_chart', {'step': 'resolve_chart'})]

    Attributes:
        spans: (name, attributes) for each span opened
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, SpanAttributes | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: SpanAttributes | None = None,
    ) -> Iterator[None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        """Span names in the order they were opened."""
        return [entry[0] for entry in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Default tracer for a component that was not given one.

    Args:
        name: Instrumentation scope, normally the module ``__name__``
        enable_tracing: False selects NullTracer

    Example:
        >>> self._tracer = tracer or create_tracer(__name__, enable_tracing)
    """
    return OpenTelemetryTracer(name) if enable_tracing else NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
