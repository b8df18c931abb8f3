"""
Cluster control-plane clients.

Implementations:
    - InMemoryCluster: dictionaries, call recording, failure injection
    - KubernetesCluster: the official ``kubernetes`` client
"""

from helmshift.cluster.in_memory import InMemoryCluster
from helmshift.cluster.interface import (
    ClusterClient,
    CustomResourceType,
    Manifest,
    ObjectRef,
    format_label_selector,
    object_labels,
    object_name,
    object_namespace,
    parse_label_selector,
)
from helmshift.cluster.kubernetes import KubernetesCluster

__all__ = [
    "ClusterClient",
    "CustomResourceType",
    "Manifest",
    "ObjectRef",
    "InMemoryCluster",
    "KubernetesCluster",
    "format_label_selector",
    "parse_label_selector",
    "object_labels",
    "object_name",
    "object_namespace",
]
