"""
Decorator form of component tracing.

``@traced`` wraps a whole method in a span using the tracer the instance
already holds, for methods whose body needs no extra attributes:

    >>> class HelmCLI:
    ...     def __init__(self, tracer=None, enable_tracing=True):
    ...         self._tracer = tracer or create_tracer(__name__, enable_tracing)
    ...         self._enable_tracing = self._tracer.enabled
    ...
    ...     @traced("helmshift.helm.uninstall")
    ...     async def uninstall(self, name: str, namespace: str) -> None:
    ...         ...
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar

from opentelemetry import trace

from helmshift.observability.tracer import Tracer

P = ParamSpec("P")
R = TypeVar("R")


def get_tracer(name: str) -> trace.Tracer:
    """Raw OpenTelemetry tracer for ``name`` from the global provider."""
    return trace.get_tracer(name)


def _tracer_of(instance: Any) -> Tracer | None:
    """The instance's tracer, or None when it has none or tracing is off."""
    if not getattr(instance, "_enable_tracing", False):
        return None
    return getattr(instance, "_tracer", None)


def traced(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Run the decorated method inside a span called ``name``.

    Works on both coroutine and plain methods. The instance supplies the
    tracer through ``_tracer`` and switches it on with ``_enable_tracing``;
    if either is missing the method runs untraced.

    Args:
        name: Span name
        attributes: Fixed attributes set on every span
    """
    static = dict(attributes or {})

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def run_async(self: Any, *args: Any, **kwargs: Any) -> Any:
                tracer = _tracer_of(self)
                if tracer is None:
                    return await func(self, *args, **kwargs)  # type: ignore[misc]
                with tracer.span(name, dict(static)):
                    return await func(self, *args, **kwargs)  # type: ignore[misc]

            return run_async  # type: ignore[return-value]

        @functools.wraps(func)
        def run(self: Any, *args: Any, **kwargs: Any) -> Any:
            tracer = _tracer_of(self)
            if tracer is None:
                return func(self, *args, **kwargs)  # type: ignore[arg-type]
            with tracer.span(name, dict(static)):
                return func(self, *args, **kwargs)  # type: ignore[arg-type]

        return run  # type: ignore[return-value]

    return decorator


__all__ = [
    "get_tracer",
    "traced",
]
