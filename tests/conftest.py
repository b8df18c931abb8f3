"""
Shared pytest fixtures for the helmshift library tests.

This module provides:
- Collaborator fixtures (cluster, releases, tracer)
- Settings with zero-interval retry policies so polls never sleep
- A ready MigrationContext and MigrationCoordinator
- A cluster seeded with a complete operator-managed Alert
"""

from __future__ import annotations

import pytest

from helmshift.cluster import InMemoryCluster
from helmshift.migration import (
    ALERT_PROFILE,
    MigrationContext,
    MigrationCoordinator,
    MigrationSettings,
    RetryPolicy,
)
from helmshift.observability import MockTracer
from helmshift.releases import InMemoryReleaseClient
from tests.fixtures import OPERATOR_NAMESPACE, seed_alert_cluster

# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def cluster() -> InMemoryCluster:
    """Empty in-memory cluster."""
    return InMemoryCluster()


@pytest.fixture
def seeded_cluster(cluster: InMemoryCluster) -> InMemoryCluster:
    """Cluster holding one persistent Alert 'x' with claim 'x-pvc'."""
    return seed_alert_cluster(cluster)


@pytest.fixture
def releases() -> InMemoryReleaseClient:
    """Empty in-memory release client."""
    return InMemoryReleaseClient()


@pytest.fixture
def tracer() -> MockTracer:
    """Tracer recording every span."""
    return MockTracer()


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy that never sleeps."""
    return RetryPolicy(max_attempts=3, interval_seconds=0, timeout_seconds=5)


@pytest.fixture
def settings(fast_policy: RetryPolicy) -> MigrationSettings:
    """Settings pointing at the seeded operator, with fast polls."""
    return MigrationSettings(
        operator_namespace=OPERATOR_NAMESPACE,
        chart_repository="https://charts.example.com",
        readiness_policy=fast_policy,
        quiesce_policy=fast_policy,
    )


@pytest.fixture
def context(
    seeded_cluster: InMemoryCluster,
    releases: InMemoryReleaseClient,
    settings: MigrationSettings,
    tracer: MockTracer,
) -> MigrationContext:
    return MigrationContext(
        cluster=seeded_cluster,
        releases=releases,
        settings=settings,
        profile=ALERT_PROFILE,
        tracer=tracer,
    )


@pytest.fixture
def coordinator(context: MigrationContext) -> MigrationCoordinator:
    return MigrationCoordinator(context)
