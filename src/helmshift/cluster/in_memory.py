"""
In-memory cluster client implementation.

Useful for testing and development. Objects live in dictionaries keyed by
kind and (namespace, name); nothing reaches a real control plane.
"""

import asyncio
import copy
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from helmshift.cluster.interface import (
    ClusterClient,
    CustomResourceType,
    Manifest,
    ObjectRef,
    object_labels,
    parse_label_selector,
)
from helmshift.exceptions import (
    AmbiguousObjectError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
)

_Key = tuple[str | None, str]

_MUTATING_CALLS = frozenset(
    {
        "delete_custom_resource",
        "delete_custom_resource_definition",
        "scale_deployment",
        "delete_deployment",
        "update_persistent_volume_claim",
        "create_secret",
        "update_secret",
        "update_service",
        "delete_labeled_objects",
        "remove_namespace_labels",
    }
)


class InMemoryCluster(ClusterClient):
    """
    In-memory implementation of the cluster client.

    Every call is appended to ``calls`` as ``(method, args)`` so tests can
    assert on exactly which API requests a stage made. Failures can be
    injected per method with ``fail_next``.

    Scaling a deployment updates its ``status.readyReplicas`` immediately
    unless ``scale_updates_status`` is False, which models a controller
    that never finishes terminating.

    Example:
        >>> cluster = InMemoryCluster()
        >>> cluster.add_object({
        ...     "kind": "PersistentVolumeClaim",
        ...     "metadata": {"name": "x-pvc", "namespace": "ns",
        ...                  "labels": {"app": "alert", "name": "x"}},
        ... })
        >>> claims = await cluster.list_persistent_volume_claims("ns", "app=alert,name=x")

    Attributes:
        calls: Ordered record of (method name, positional args) tuples
        scale_updates_status: Whether scaling updates ready replicas
    """

    def __init__(self, *, scale_updates_status: bool = True) -> None:
        self._objects: dict[str, dict[_Key, Manifest]] = defaultdict(dict)
        self._failures: dict[str, list[Exception]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.scale_updates_status = scale_updates_status

    # -- test helpers ---------------------------------------------------------

    def add_object(self, manifest: Manifest) -> Manifest:
        """Seed an object; ``kind`` and ``metadata.name`` are required."""
        kind = manifest["kind"]
        metadata = manifest.setdefault("metadata", {})
        key = (metadata.get("namespace"), metadata["name"])
        self._objects[kind][key] = copy.deepcopy(manifest)
        return manifest

    def add_custom_resource(self, resource: CustomResourceType, manifest: Manifest) -> Manifest:
        """Seed a custom resource of the given type."""
        manifest = {
            "apiVersion": f"{resource.group}/{resource.version}",
            "kind": resource.kind,
            **manifest,
        }
        return self.add_object(manifest)

    def get_object(self, kind: str, name: str, namespace: str | None = None) -> Manifest | None:
        """Read an object without recording a call."""
        obj = self._objects[kind].get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def objects_of_kind(self, kind: str) -> list[Manifest]:
        """Return copies of every stored object of a kind."""
        return [copy.deepcopy(obj) for obj in self._objects[kind].values()]

    def fail_next(self, method: str, error: Exception) -> None:
        """Make the next call to ``method`` raise ``error``."""
        self._failures[method].append(error)

    @property
    def call_names(self) -> list[str]:
        """Names of every method called, in order."""
        return [name for name, _ in self.calls]

    @property
    def mutating_calls(self) -> list[tuple[str, tuple[Any, ...]]]:
        """Calls that changed (or attempted to change) cluster state."""
        return [call for call in self.calls if call[0] in _MUTATING_CALLS]

    def snapshot(self) -> dict[str, dict[_Key, Manifest]]:
        """Deep copy of all stored objects, for before/after comparisons."""
        return {kind: copy.deepcopy(objs) for kind, objs in self._objects.items() if objs}

    # -- internals ------------------------------------------------------------

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    def _get(self, kind: str, namespace: str | None, name: str) -> Manifest:
        obj = self._objects[kind].get((namespace, name))
        if obj is None:
            raise ObjectNotFoundError(kind, name, namespace)
        return obj

    def _select(
        self, kind: str, namespace: str | None, label_selector: str | None
    ) -> list[Manifest]:
        wanted = parse_label_selector(label_selector)
        matches = []
        for (obj_namespace, _), obj in self._objects[kind].items():
            if namespace is not None and obj_namespace != namespace:
                continue
            labels = object_labels(obj)
            if all(labels.get(key) == value for key, value in wanted.items()):
                matches.append(copy.deepcopy(obj))
        return matches

    def _replace(self, kind: str, namespace: str | None, obj: Manifest) -> Manifest:
        name = obj["metadata"]["name"]
        self._get(kind, namespace, name)
        stored = copy.deepcopy(obj)
        stored.setdefault("kind", kind)
        stored["metadata"]["namespace"] = namespace
        self._objects[kind][(namespace, name)] = stored
        return copy.deepcopy(stored)

    # -- custom resources -----------------------------------------------------

    async def get_custom_resource(
        self, resource: CustomResourceType, namespace: str | None, name: str
    ) -> Manifest:
        async with self._lock:
            self._record("get_custom_resource", resource.kind, namespace, name)
            if namespace is None:
                matches = [
                    (obj_namespace, obj)
                    for (obj_namespace, obj_name), obj in self._objects[resource.kind].items()
                    if obj_name == name
                ]
                if not matches:
                    raise ObjectNotFoundError(resource.kind, name)
                if len(matches) > 1:
                    raise AmbiguousObjectError(
                        resource.kind, name, sorted(ns or "" for ns, _ in matches)
                    )
                return copy.deepcopy(matches[0][1])
            return copy.deepcopy(self._get(resource.kind, namespace, name))

    async def list_custom_resources(
        self, resource: CustomResourceType, namespace: str | None = None
    ) -> list[Manifest]:
        async with self._lock:
            self._record("list_custom_resources", resource.kind, namespace)
            return self._select(resource.kind, namespace, None)

    async def delete_custom_resource(
        self, resource: CustomResourceType, namespace: str, name: str
    ) -> None:
        async with self._lock:
            self._record("delete_custom_resource", resource.kind, namespace, name)
            self._get(resource.kind, namespace, name)
            del self._objects[resource.kind][(namespace, name)]

    async def list_custom_resource_definitions(self) -> list[Manifest]:
        async with self._lock:
            self._record("list_custom_resource_definitions")
            return self._select("CustomResourceDefinition", None, None)

    async def delete_custom_resource_definition(self, name: str) -> None:
        async with self._lock:
            self._record("delete_custom_resource_definition", name)
            self._get("CustomResourceDefinition", None, name)
            del self._objects["CustomResourceDefinition"][(None, name)]

    # -- deployments ----------------------------------------------------------

    async def get_deployment(self, namespace: str, name: str) -> Manifest:
        async with self._lock:
            self._record("get_deployment", namespace, name)
            return copy.deepcopy(self._get("Deployment", namespace, name))

    async def list_deployments(
        self, namespace: str | None = None, label_selector: str | None = None
    ) -> list[Manifest]:
        async with self._lock:
            self._record("list_deployments", namespace, label_selector)
            return self._select("Deployment", namespace, label_selector)

    async def scale_deployment(self, namespace: str, name: str, replicas: int) -> Manifest:
        async with self._lock:
            self._record("scale_deployment", namespace, name, replicas)
            deployment = self._get("Deployment", namespace, name)
            deployment.setdefault("spec", {})["replicas"] = replicas
            if self.scale_updates_status:
                status = deployment.setdefault("status", {})
                status["replicas"] = replicas
                status["readyReplicas"] = replicas
            return copy.deepcopy(deployment)

    async def delete_deployment(self, namespace: str, name: str) -> None:
        async with self._lock:
            self._record("delete_deployment", namespace, name)
            self._get("Deployment", namespace, name)
            del self._objects["Deployment"][(namespace, name)]

    # -- persistent volume claims --------------------------------------------

    async def list_persistent_volume_claims(
        self, namespace: str, label_selector: str | None = None
    ) -> list[Manifest]:
        async with self._lock:
            self._record("list_persistent_volume_claims", namespace, label_selector)
            return self._select("PersistentVolumeClaim", namespace, label_selector)

    async def update_persistent_volume_claim(self, namespace: str, claim: Manifest) -> Manifest:
        async with self._lock:
            name = claim["metadata"]["name"]
            self._record("update_persistent_volume_claim", namespace, name)
            # Claim specs are immutable once bound; only metadata is replaced.
            stored = self._get("PersistentVolumeClaim", namespace, name)
            stored["metadata"]["labels"] = dict(object_labels(claim))
            return copy.deepcopy(stored)

    # -- secrets --------------------------------------------------------------

    async def get_secret(self, namespace: str, name: str) -> Manifest:
        async with self._lock:
            self._record("get_secret", namespace, name)
            return copy.deepcopy(self._get("Secret", namespace, name))

    async def create_secret(self, namespace: str, secret: Manifest) -> Manifest:
        async with self._lock:
            name = secret["metadata"]["name"]
            self._record("create_secret", namespace, name)
            if (namespace, name) in self._objects["Secret"]:
                raise ObjectAlreadyExistsError("Secret", name, namespace)
            stored = copy.deepcopy(secret)
            stored.setdefault("kind", "Secret")
            stored["metadata"]["namespace"] = namespace
            self._objects["Secret"][(namespace, name)] = stored
            return copy.deepcopy(stored)

    async def update_secret(self, namespace: str, secret: Manifest) -> Manifest:
        async with self._lock:
            self._record("update_secret", namespace, secret["metadata"]["name"])
            return self._replace("Secret", namespace, secret)

    # -- services -------------------------------------------------------------

    async def get_service(self, namespace: str, name: str) -> Manifest:
        async with self._lock:
            self._record("get_service", namespace, name)
            return copy.deepcopy(self._get("Service", namespace, name))

    async def update_service(self, namespace: str, service: Manifest) -> Manifest:
        async with self._lock:
            self._record("update_service", namespace, service["metadata"]["name"])
            return self._replace("Service", namespace, service)

    # -- bulk and namespace operations ---------------------------------------

    async def delete_labeled_objects(
        self,
        namespace: str,
        label_selector: str,
        *,
        exclude_kinds: Iterable[str] = (),
    ) -> list[ObjectRef]:
        excluded = set(exclude_kinds)
        async with self._lock:
            self._record("delete_labeled_objects", namespace, label_selector)
            deleted: list[ObjectRef] = []
            for kind in sorted(self._objects):
                if kind in excluded:
                    continue
                for obj in self._select(kind, namespace, label_selector):
                    name = obj["metadata"]["name"]
                    del self._objects[kind][(namespace, name)]
                    deleted.append(ObjectRef(kind=kind, name=name, namespace=namespace))
            return deleted

    async def get_namespace(self, name: str) -> Manifest:
        async with self._lock:
            self._record("get_namespace", name)
            return copy.deepcopy(self._get("Namespace", None, name))

    async def remove_namespace_labels(self, name: str, keys: Iterable[str]) -> Manifest:
        keys = list(keys)
        async with self._lock:
            self._record("remove_namespace_labels", name, tuple(keys))
            namespace = self._get("Namespace", None, name)
            labels = namespace.setdefault("metadata", {}).get("labels") or {}
            for key in keys:
                labels.pop(key, None)
            namespace["metadata"]["labels"] = labels
            return copy.deepcopy(namespace)


__all__ = ["InMemoryCluster"]
