"""
Explicit dependencies of a migration run.

A MigrationContext is built once and handed to every stage. It holds no
per-run state, so one context can serve concurrent migrations of
different instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from helmshift.cluster import ClusterClient
from helmshift.migration.config import MigrationSettings
from helmshift.migration.profiles import ALERT_PROFILE, ProductProfile
from helmshift.observability import NullTracer, Tracer
from helmshift.releases import ReleaseClient


@dataclass(frozen=True)
class MigrationContext:
    """
    Collaborators and configuration shared by every stage.

    Attributes:
        cluster: Cluster control-plane client.
        releases: Release system client.
        settings: Migration settings.
        profile: Product profile of the instances being migrated.
        tracer: Tracer handed to every component.

    Example:
        >>> context = MigrationContext(
        ...     cluster=InMemoryCluster(),
        ...     releases=InMemoryReleaseClient(),
        ...     settings=MigrationSettings(operator_namespace="synopsys-operator"),
        ... )
    """

    cluster: ClusterClient
    releases: ReleaseClient
    settings: MigrationSettings = field(default_factory=MigrationSettings)
    profile: ProductProfile = ALERT_PROFILE
    tracer: Tracer = field(default_factory=NullTracer)


__all__ = ["MigrationContext"]
