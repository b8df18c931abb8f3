"""
helmshift - migrate operator-managed cluster instances to helm releases.

This library provides:
- A staged migration pipeline with version gating, dry-run validation and
  a clearly bounded point of no return
- Typed, schema-validated release values
- Cluster clients (in-memory and the official kubernetes client)
- Release clients (in-memory and the helm binary)
- Composition-based OpenTelemetry tracing
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("helmshift")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from helmshift.cluster import (
    ClusterClient,
    CustomResourceType,
    InMemoryCluster,
    KubernetesCluster,
)
from helmshift.exceptions import (
    AmbiguousObjectError,
    ClusterError,
    HelmShiftError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    ReleaseError,
    ReleaseNotFoundError,
)
from helmshift.migration import (
    ALERT_PROFILE,
    MigrationContext,
    MigrationCoordinator,
    MigrationError,
    MigrationRequest,
    MigrationResult,
    MigrationSettings,
    RetryPolicy,
)
from helmshift.releases import HelmCLI, InMemoryReleaseClient, ReleaseClient

__all__ = [
    "__version__",
    # Clients
    "ClusterClient",
    "CustomResourceType",
    "InMemoryCluster",
    "KubernetesCluster",
    "ReleaseClient",
    "InMemoryReleaseClient",
    "HelmCLI",
    # Migration
    "ALERT_PROFILE",
    "MigrationContext",
    "MigrationCoordinator",
    "MigrationRequest",
    "MigrationResult",
    "MigrationSettings",
    "RetryPolicy",
    # Exceptions
    "HelmShiftError",
    "ClusterError",
    "ObjectNotFoundError",
    "ObjectAlreadyExistsError",
    "AmbiguousObjectError",
    "ReleaseError",
    "ReleaseNotFoundError",
    "MigrationError",
]
