"""
Observability utilities for helmshift.

Provides the composition-based tracer, the method decorator and the
standard attribute names used on spans across all components.
"""

from helmshift.observability.attributes import (
    ATTR_CHART_LOCATION,
    ATTR_CUTOVER_STEP,
    ATTR_DRY_RUN,
    ATTR_ERROR_TYPE,
    ATTR_INSTANCE_KIND,
    ATTR_INSTANCE_NAME,
    ATTR_LABEL_SELECTOR,
    ATTR_MIGRATION_STAGE,
    ATTR_NAMESPACE,
    ATTR_OBJECT_KIND,
    ATTR_OBJECT_NAME,
    ATTR_RELEASE_NAME,
    ATTR_RETRY_COUNT,
    ATTR_TARGET_VERSION,
)
from helmshift.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from helmshift.observability.tracing import get_tracer, traced

__all__ = [
    # Tracing utilities
    "get_tracer",
    "traced",
    # Tracer (composition-based API)
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_INSTANCE_NAME",
    "ATTR_INSTANCE_KIND",
    "ATTR_NAMESPACE",
    "ATTR_MIGRATION_STAGE",
    "ATTR_TARGET_VERSION",
    "ATTR_RELEASE_NAME",
    "ATTR_CHART_LOCATION",
    "ATTR_DRY_RUN",
    "ATTR_CUTOVER_STEP",
    "ATTR_OBJECT_KIND",
    "ATTR_OBJECT_NAME",
    "ATTR_LABEL_SELECTOR",
    "ATTR_RETRY_COUNT",
    "ATTR_ERROR_TYPE",
]
