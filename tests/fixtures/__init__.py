"""
Shared test fixtures for the helmshift library.

Manifest builders shaped like what the API server returns, and a helper
that seeds an InMemoryCluster with a complete operator-managed Alert.

Usage:
    from tests.fixtures import (
        alert_manifest,
        operator_deployment,
        persistent_volume_claim,
        seed_alert_cluster,
    )
"""

from tests.fixtures.manifests import (
    CERTIFICATE,
    CERTIFICATE_KEY,
    INSTANCE_NAME,
    INSTANCE_NAMESPACE,
    JAVA_KEYSTORE,
    OPERATOR_NAME,
    OPERATOR_NAMESPACE,
    alert_manifest,
    custom_resource_definition,
    instance_objects,
    namespace_manifest,
    operator_deployment,
    persistent_volume_claim,
    seed_alert_cluster,
)

__all__ = [
    "CERTIFICATE",
    "CERTIFICATE_KEY",
    "INSTANCE_NAME",
    "INSTANCE_NAMESPACE",
    "JAVA_KEYSTORE",
    "OPERATOR_NAME",
    "OPERATOR_NAMESPACE",
    "alert_manifest",
    "custom_resource_definition",
    "instance_objects",
    "namespace_manifest",
    "operator_deployment",
    "persistent_volume_claim",
    "seed_alert_cluster",
]
