"""
Unit tests for the tracer protocol and implementations.

Tests for:
- Tracer Protocol (runtime_checkable)
- NullTracer, OpenTelemetryTracer and MockTracer
- create_tracer() factory function
"""

from __future__ import annotations

import contextlib
from typing import Any

import pytest

from helmshift.observability import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)


class TestTracerProtocol:
    """Tests for Tracer protocol."""

    @pytest.mark.parametrize(
        "tracer",
        [NullTracer(), OpenTelemetryTracer(__name__), MockTracer()],
        ids=["null", "otel", "mock"],
    )
    def test_implementations_match_protocol(self, tracer):
        """Every shipped tracer passes an isinstance check."""
        assert isinstance(tracer, Tracer)

    def test_custom_implementation_matches_protocol(self):
        """Any object with span() and enabled matches."""

        class CustomTracer:
            def span(self, name: str, attributes: dict[str, Any] | None = None):
                return contextlib.nullcontext()

            @property
            def enabled(self) -> bool:
                return False

        assert isinstance(CustomTracer(), Tracer)

    def test_object_without_span_does_not_match(self):
        """Objects missing span() are not tracers."""

        class NotATracer:
            enabled = True

        assert not isinstance(NotATracer(), Tracer)


class TestNullTracer:
    """Tests for NullTracer."""

    def test_span_yields_none(self):
        """span() is a no-op context yielding None."""
        with NullTracer().span("helmshift.cutover.install_release", {"a": 1}) as span:
            assert span is None

    def test_disabled(self):
        """NullTracer reports tracing as disabled."""
        assert NullTracer().enabled is False

    def test_exceptions_propagate(self):
        """Errors raised inside the span are not swallowed."""
        with pytest.raises(ValueError), NullTracer().span("op"):
            raise ValueError("boom")


class TestOpenTelemetryTracer:
    """Tests for OpenTelemetryTracer."""

    def test_enabled(self):
        """OpenTelemetryTracer reports tracing as enabled."""
        assert OpenTelemetryTracer(__name__).enabled is True

    def test_span_without_provider(self):
        """With no provider configured spans are created but not recorded."""
        tracer = OpenTelemetryTracer(__name__)

        with tracer.span("helmshift.migration.stage", {"helmshift.namespace": "ns"}) as span:
            assert span is not None

    def test_span_accepts_no_attributes(self):
        """Attributes are optional."""
        with OpenTelemetryTracer(__name__).span("op") as span:
            assert span is not None


class TestMockTracer:
    """Tests for MockTracer."""

    def test_records_spans_in_order(self):
        """Spans are recorded with their attributes."""
        tracer = MockTracer()

        with tracer.span("outer", {"k": "v"}):
            with tracer.span("inner"):
                pass

        assert tracer.spans == [("outer", {"k": "v"}), ("inner", None)]
        assert tracer.span_names == ["outer", "inner"]

    def test_records_span_that_raised(self):
        """A span is recorded even when its body raises."""
        tracer = MockTracer()

        with pytest.raises(RuntimeError), tracer.span("failing"):
            raise RuntimeError("boom")

        assert tracer.span_names == ["failing"]

    def test_clear(self):
        """clear() drops recorded spans."""
        tracer = MockTracer()
        with tracer.span("op"):
            pass

        tracer.clear()

        assert tracer.spans == []

    def test_enabled(self):
        """MockTracer enables attribute computation."""
        assert MockTracer().enabled is True


class TestCreateTracer:
    """Tests for create_tracer factory."""

    def test_enabled_returns_otel_tracer(self):
        assert isinstance(create_tracer(__name__, enable_tracing=True), OpenTelemetryTracer)

    def test_disabled_returns_null_tracer(self):
        assert isinstance(create_tracer(__name__, enable_tracing=False), NullTracer)

    def test_default_is_enabled(self):
        assert create_tracer(__name__).enabled is True
