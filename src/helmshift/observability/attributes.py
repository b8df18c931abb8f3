"""
Standard span attributes for helmshift.

Example:
    >>> from helmshift.observability.attributes import (
    ...     ATTR_INSTANCE_NAME,
    ...     ATTR_NAMESPACE,
    ... )
    >>>
    >>> with tracer.span(
    ...     "helmshift.migration.stage",
    ...     {ATTR_INSTANCE_NAME: "alert", ATTR_NAMESPACE: "alert-ns"},
    ... ):
    ...     pass
"""

# =============================================================================
# Instance Attributes
# =============================================================================

ATTR_INSTANCE_NAME = "helmshift.instance.name"
"""Name of the operator-managed instance (string)."""

ATTR_INSTANCE_KIND = "helmshift.instance.kind"
"""Custom resource kind of the instance (e.g., 'Alert')."""

ATTR_NAMESPACE = "helmshift.namespace"
"""Namespace the instance runs in (string)."""

# =============================================================================
# Migration Attributes
# =============================================================================

ATTR_MIGRATION_STAGE = "helmshift.migration.stage"
"""Name of the migration stage being executed (string)."""

ATTR_TARGET_VERSION = "helmshift.migration.target_version"
"""Version the instance is being migrated to (string)."""

ATTR_RELEASE_NAME = "helmshift.release.name"
"""Name of the package-managed release (string)."""

ATTR_CHART_LOCATION = "helmshift.release.chart"
"""Chart source reference used for install (string)."""

ATTR_DRY_RUN = "helmshift.release.dry_run"
"""Whether a release operation is non-committing (boolean)."""

ATTR_CUTOVER_STEP = "helmshift.cutover.step"
"""Cutover step being executed (string)."""

# =============================================================================
# Cluster Object Attributes
# =============================================================================

ATTR_OBJECT_KIND = "helmshift.object.kind"
"""Kind of the cluster object acted on (string)."""

ATTR_OBJECT_NAME = "helmshift.object.name"
"""Name of the cluster object acted on (string)."""

ATTR_LABEL_SELECTOR = "helmshift.label_selector"
"""Label selector used for a list or delete call (string)."""

# =============================================================================
# Error and Retry Attributes
# =============================================================================

ATTR_RETRY_COUNT = "helmshift.retry.count"
"""Number of poll attempts made (integer)."""

ATTR_ERROR_TYPE = "helmshift.error.type"
"""Type of error encountered (exception class name)."""

__all__ = [
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
