"""
Cluster client interface and core data structures.

The cluster client is the orchestrator's only view of the control plane.
Objects cross this boundary as plain manifests (``dict`` in the shape the
API server returns: ``metadata``, ``spec``, ``status``, ``data``), so the
migration stages never depend on a particular client library.

This module provides:
- CustomResourceType: Group/version/plural coordinates of a custom resource
- ObjectRef: Identity of an object removed by a bulk delete
- ClusterClient: Abstract base class for cluster client implementations
- format_label_selector / parse_label_selector: selector helpers
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

Manifest = dict[str, Any]


@dataclass(frozen=True)
class CustomResourceType:
    """
    Coordinates of a custom resource kind.

    Attributes:
        group: API group (e.g., "synopsys.com")
        version: API version within the group (e.g., "v1")
        plural: Plural resource name used in URLs (e.g., "alerts")
        kind: Kind name as it appears in manifests (e.g., "Alert")
    """

    group: str
    version: str
    plural: str
    kind: str

    @property
    def crd_name(self) -> str:
        """Name of the CustomResourceDefinition object for this kind."""
        return f"{self.plural}.{self.group}"


@dataclass(frozen=True)
class ObjectRef:
    """Identity of a namespaced object."""

    kind: str
    name: str
    namespace: str | None = None

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"


def format_label_selector(labels: Mapping[str, str]) -> str:
    """
    Render an equality-based label selector.

    Example:
        >>> format_label_selector({"app": "alert", "name": "prod"})
        'app=alert,name=prod'
    """
    return ",".join(f"{key}={value}" for key, value in labels.items())


def parse_label_selector(selector: str | None) -> dict[str, str]:
    """
    Parse an equality-based label selector into a mapping.

    Whitespace around terms is ignored, so ``"app=alert, name=prod"``
    parses the same as ``"app=alert,name=prod"``.

    Raises:
        ValueError: If a term is not of the form ``key=value``.
    """
    if not selector:
        return {}
    parsed: dict[str, str] = {}
    for term in selector.split(","):
        term = term.strip()
        if not term:
            continue
        key, sep, value = term.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Unsupported label selector term: {term!r}")
        parsed[key.strip()] = value.strip()
    return parsed


def object_labels(obj: Mapping[str, Any]) -> dict[str, str]:
    """Return the labels of a manifest (empty dict when unset)."""
    return dict((obj.get("metadata") or {}).get("labels") or {})


def object_name(obj: Mapping[str, Any]) -> str:
    """Return ``metadata.name`` of a manifest."""
    return str((obj.get("metadata") or {}).get("name", ""))


def object_namespace(obj: Mapping[str, Any]) -> str:
    """Return ``metadata.namespace`` of a manifest (empty for cluster-scoped)."""
    return str((obj.get("metadata") or {}).get("namespace") or "")


class ClusterClient(ABC):
    """
    Abstract base class for cluster control-plane clients.

    Implementations translate these calls into API requests and raise the
    errors from ``helmshift.exceptions``:

    - ObjectNotFoundError when a named object does not exist
    - ObjectAlreadyExistsError when a create collides with an existing name
    - ClusterError for any other failure

    Every method returns deep copies; mutating a returned manifest never
    changes cluster state until it is passed back to an update call.
    """

    # -- custom resources -----------------------------------------------------

    @abstractmethod
    async def get_custom_resource(
        self, resource: CustomResourceType, namespace: str | None, name: str
    ) -> Manifest:
        """
        Get one custom resource. ``namespace=None`` searches all namespaces.

        Raises:
            ObjectNotFoundError: If no namespace holds the name.
            AmbiguousObjectError: If more than one namespace holds the name.
        """
        pass

    @abstractmethod
    async def list_custom_resources(
        self, resource: CustomResourceType, namespace: str | None = None
    ) -> list[Manifest]:
        """List custom resources, optionally restricted to one namespace."""
        pass

    @abstractmethod
    async def delete_custom_resource(
        self, resource: CustomResourceType, namespace: str, name: str
    ) -> None:
        """Delete one custom resource."""
        pass

    @abstractmethod
    async def list_custom_resource_definitions(self) -> list[Manifest]:
        """List all CustomResourceDefinitions."""
        pass

    @abstractmethod
    async def delete_custom_resource_definition(self, name: str) -> None:
        """Delete a CustomResourceDefinition by name."""
        pass

    # -- deployments ----------------------------------------------------------

    @abstractmethod
    async def get_deployment(self, namespace: str, name: str) -> Manifest:
        """Get a deployment."""
        pass

    @abstractmethod
    async def list_deployments(
        self, namespace: str | None = None, label_selector: str | None = None
    ) -> list[Manifest]:
        """List deployments; ``namespace=None`` lists across all namespaces."""
        pass

    @abstractmethod
    async def scale_deployment(self, namespace: str, name: str, replicas: int) -> Manifest:
        """Patch the replica count of a deployment and return the deployment."""
        pass

    @abstractmethod
    async def delete_deployment(self, namespace: str, name: str) -> None:
        """Delete a deployment."""
        pass

    # -- persistent volume claims --------------------------------------------

    @abstractmethod
    async def list_persistent_volume_claims(
        self, namespace: str, label_selector: str | None = None
    ) -> list[Manifest]:
        """List persistent volume claims in a namespace."""
        pass

    @abstractmethod
    async def update_persistent_volume_claim(self, namespace: str, claim: Manifest) -> Manifest:
        """Replace a persistent volume claim's mutable fields (labels)."""
        pass

    # -- secrets --------------------------------------------------------------

    @abstractmethod
    async def get_secret(self, namespace: str, name: str) -> Manifest:
        """Get a secret."""
        pass

    @abstractmethod
    async def create_secret(self, namespace: str, secret: Manifest) -> Manifest:
        """Create a secret."""
        pass

    @abstractmethod
    async def update_secret(self, namespace: str, secret: Manifest) -> Manifest:
        """Replace an existing secret."""
        pass

    # -- services -------------------------------------------------------------

    @abstractmethod
    async def get_service(self, namespace: str, name: str) -> Manifest:
        """Get a service."""
        pass

    @abstractmethod
    async def update_service(self, namespace: str, service: Manifest) -> Manifest:
        """Replace an existing service."""
        pass

    # -- bulk and namespace operations ---------------------------------------

    @abstractmethod
    async def delete_labeled_objects(
        self,
        namespace: str,
        label_selector: str,
        *,
        exclude_kinds: Iterable[str] = (),
    ) -> list[ObjectRef]:
        """
        Delete every namespaced object matching a selector.

        Args:
            namespace: Namespace to delete from.
            label_selector: Equality-based selector.
            exclude_kinds: Kinds to leave in place (e.g., "PersistentVolumeClaim").

        Returns:
            References of the objects that were deleted.
        """
        pass

    @abstractmethod
    async def get_namespace(self, name: str) -> Manifest:
        """Get a namespace."""
        pass

    @abstractmethod
    async def remove_namespace_labels(self, name: str, keys: Iterable[str]) -> Manifest:
        """Remove the given label keys from a namespace (missing keys are ignored)."""
        pass


__all__ = [
    "Manifest",
    "CustomResourceType",
    "ObjectRef",
    "ClusterClient",
    "format_label_selector",
    "parse_label_selector",
    "object_labels",
    "object_name",
    "object_namespace",
]
