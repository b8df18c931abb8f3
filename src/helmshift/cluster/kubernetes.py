"""
Kubernetes cluster client backed by the official ``kubernetes`` package.

The official client is synchronous; every request is pushed onto a worker
thread with ``asyncio.to_thread`` so a migration never blocks the event
loop of its caller. Responses are converted to plain manifests with the
client's own ``sanitize_for_serialization``.

Example:
    >>> cluster = KubernetesCluster.from_config(kubeconfig_path="~/.kube/config")
    >>> deployment = await cluster.get_deployment("operator-ns", "synopsys-operator")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from helmshift.cluster.interface import (
    ClusterClient,
    CustomResourceType,
    Manifest,
    ObjectRef,
    object_name,
    object_namespace,
)
from helmshift.exceptions import (
    AmbiguousObjectError,
    ClusterError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
)

logger = logging.getLogger(__name__)


class KubernetesCluster(ClusterClient):
    """
    ClusterClient over the Kubernetes REST API.

    Args:
        api_client: Configured ``kubernetes.client.ApiClient``.
    """

    def __init__(self, api_client: client.ApiClient) -> None:
        self._api_client = api_client
        self._core = client.CoreV1Api(api_client)
        self._apps = client.AppsV1Api(api_client)
        self._batch = client.BatchV1Api(api_client)
        self._custom = client.CustomObjectsApi(api_client)
        self._extensions = client.ApiextensionsV1Api(api_client)

    @classmethod
    def from_config(cls, kubeconfig_path: str | None = None) -> KubernetesCluster:
        """
        Build a client from in-cluster credentials, falling back to kubeconfig.

        Args:
            kubeconfig_path: Explicit kubeconfig file; default lookup when None.
        """
        try:
            config.load_incluster_config()
        except config.ConfigException:
            config.load_kube_config(config_file=kubeconfig_path)
        return cls(client.ApiClient())

    # -- internals ------------------------------------------------------------

    def _to_manifest(self, obj: Any) -> Manifest:
        if isinstance(obj, dict):
            return obj
        return self._api_client.sanitize_for_serialization(obj)  # type: ignore[no-any-return]

    async def _call(
        self,
        func: Callable[..., Any],
        *args: Any,
        kind: str,
        name: str = "",
        namespace: str | None = None,
        **kwargs: Any,
    ) -> Any:
        logger.debug("%s %s/%s via %s", kind, namespace or "-", name or "*", func.__name__)
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise ObjectNotFoundError(kind, name, namespace) from e
            if e.status == 409:
                raise ObjectAlreadyExistsError(kind, name, namespace) from e
            raise ClusterError(
                f"{func.__name__} failed for {kind} '{name}': {e.reason}",
                status=e.status,
            ) from e

    def _deletable_kinds(self) -> list[tuple[str, Callable[..., Any], Callable[..., Any]]]:
        # Controllers first so they do not recreate pods deleted later.
        return [
            (
                "ReplicationController",
                self._core.list_namespaced_replication_controller,
                self._core.delete_namespaced_replication_controller,
            ),
            (
                "Deployment",
                self._apps.list_namespaced_deployment,
                self._apps.delete_namespaced_deployment,
            ),
            (
                "StatefulSet",
                self._apps.list_namespaced_stateful_set,
                self._apps.delete_namespaced_stateful_set,
            ),
            (
                "ReplicaSet",
                self._apps.list_namespaced_replica_set,
                self._apps.delete_namespaced_replica_set,
            ),
            ("Job", self._batch.list_namespaced_job, self._batch.delete_namespaced_job),
            ("Service", self._core.list_namespaced_service, self._core.delete_namespaced_service),
            (
                "ConfigMap",
                self._core.list_namespaced_config_map,
                self._core.delete_namespaced_config_map,
            ),
            ("Secret", self._core.list_namespaced_secret, self._core.delete_namespaced_secret),
            (
                "ServiceAccount",
                self._core.list_namespaced_service_account,
                self._core.delete_namespaced_service_account,
            ),
            ("Pod", self._core.list_namespaced_pod, self._core.delete_namespaced_pod),
            (
                "PersistentVolumeClaim",
                self._core.list_namespaced_persistent_volume_claim,
                self._core.delete_namespaced_persistent_volume_claim,
            ),
        ]

    # -- custom resources -----------------------------------------------------

    async def get_custom_resource(
        self, resource: CustomResourceType, namespace: str | None, name: str
    ) -> Manifest:
        if namespace is None:
            matches = [
                item
                for item in await self.list_custom_resources(resource)
                if object_name(item) == name
            ]
            if not matches:
                raise ObjectNotFoundError(resource.kind, name)
            if len(matches) > 1:
                raise AmbiguousObjectError(
                    resource.kind, name, sorted(object_namespace(item) for item in matches)
                )
            return matches[0]
        result = await self._call(
            self._custom.get_namespaced_custom_object,
            resource.group,
            resource.version,
            namespace,
            resource.plural,
            name,
            kind=resource.kind,
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    async def list_custom_resources(
        self, resource: CustomResourceType, namespace: str | None = None
    ) -> list[Manifest]:
        if namespace is None:
            result = await self._call(
                self._custom.list_cluster_custom_object,
                resource.group,
                resource.version,
                resource.plural,
                kind=resource.kind,
            )
        else:
            result = await self._call(
                self._custom.list_namespaced_custom_object,
                resource.group,
                resource.version,
                namespace,
                resource.plural,
                kind=resource.kind,
                namespace=namespace,
            )
        return list(result.get("items", []))

    async def delete_custom_resource(
        self, resource: CustomResourceType, namespace: str, name: str
    ) -> None:
        await self._call(
            self._custom.delete_namespaced_custom_object,
            resource.group,
            resource.version,
            namespace,
            resource.plural,
            name,
            kind=resource.kind,
            name=name,
            namespace=namespace,
        )

    async def list_custom_resource_definitions(self) -> list[Manifest]:
        result = await self._call(
            self._extensions.list_custom_resource_definition,
            kind="CustomResourceDefinition",
        )
        return [self._to_manifest(item) for item in result.items]

    async def delete_custom_resource_definition(self, name: str) -> None:
        await self._call(
            self._extensions.delete_custom_resource_definition,
            name,
            kind="CustomResourceDefinition",
            name=name,
        )

    # -- deployments ----------------------------------------------------------

    async def get_deployment(self, namespace: str, name: str) -> Manifest:
        result = await self._call(
            self._apps.read_namespaced_deployment,
            name,
            namespace,
            kind="Deployment",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    async def list_deployments(
        self, namespace: str | None = None, label_selector: str | None = None
    ) -> list[Manifest]:
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        if namespace is None:
            result = await self._call(
                self._apps.list_deployment_for_all_namespaces, kind="Deployment", **kwargs
            )
        else:
            result = await self._call(
                self._apps.list_namespaced_deployment,
                namespace,
                kind="Deployment",
                namespace=namespace,
                **kwargs,
            )
        return [self._to_manifest(item) for item in result.items]

    async def scale_deployment(self, namespace: str, name: str, replicas: int) -> Manifest:
        await self._call(
            self._apps.patch_namespaced_deployment_scale,
            name,
            namespace,
            {"spec": {"replicas": replicas}},
            kind="Deployment",
            name=name,
            namespace=namespace,
        )
        return await self.get_deployment(namespace, name)

    async def delete_deployment(self, namespace: str, name: str) -> None:
        await self._call(
            self._apps.delete_namespaced_deployment,
            name,
            namespace,
            kind="Deployment",
            name=name,
            namespace=namespace,
        )

    # -- persistent volume claims --------------------------------------------

    async def list_persistent_volume_claims(
        self, namespace: str, label_selector: str | None = None
    ) -> list[Manifest]:
        result = await self._call(
            self._core.list_namespaced_persistent_volume_claim,
            namespace,
            label_selector=label_selector or "",
            kind="PersistentVolumeClaim",
            namespace=namespace,
        )
        return [self._to_manifest(item) for item in result.items]

    async def update_persistent_volume_claim(self, namespace: str, claim: Manifest) -> Manifest:
        name = object_name(claim)
        # Only labels are patched; the bound volume is never touched.
        body = {"metadata": {"labels": (claim.get("metadata") or {}).get("labels") or {}}}
        result = await self._call(
            self._core.patch_namespaced_persistent_volume_claim,
            name,
            namespace,
            body,
            kind="PersistentVolumeClaim",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    # -- secrets --------------------------------------------------------------

    async def get_secret(self, namespace: str, name: str) -> Manifest:
        result = await self._call(
            self._core.read_namespaced_secret,
            name,
            namespace,
            kind="Secret",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    async def create_secret(self, namespace: str, secret: Manifest) -> Manifest:
        name = object_name(secret)
        result = await self._call(
            self._core.create_namespaced_secret,
            namespace,
            secret,
            kind="Secret",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    async def update_secret(self, namespace: str, secret: Manifest) -> Manifest:
        name = object_name(secret)
        result = await self._call(
            self._core.replace_namespaced_secret,
            name,
            namespace,
            secret,
            kind="Secret",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    # -- services -------------------------------------------------------------

    async def get_service(self, namespace: str, name: str) -> Manifest:
        result = await self._call(
            self._core.read_namespaced_service,
            name,
            namespace,
            kind="Service",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    async def update_service(self, namespace: str, service: Manifest) -> Manifest:
        name = object_name(service)
        result = await self._call(
            self._core.replace_namespaced_service,
            name,
            namespace,
            service,
            kind="Service",
            name=name,
            namespace=namespace,
        )
        return self._to_manifest(result)

    # -- bulk and namespace operations ---------------------------------------

    async def delete_labeled_objects(
        self,
        namespace: str,
        label_selector: str,
        *,
        exclude_kinds: Iterable[str] = (),
    ) -> list[ObjectRef]:
        excluded = set(exclude_kinds)
        deleted: list[ObjectRef] = []
        for kind, list_func, delete_func in self._deletable_kinds():
            if kind in excluded:
                continue
            result = await self._call(
                list_func,
                namespace,
                label_selector=label_selector,
                kind=kind,
                namespace=namespace,
            )
            for item in result.items:
                name = item.metadata.name
                try:
                    await self._call(
                        delete_func,
                        name,
                        namespace,
                        propagation_policy="Background",
                        kind=kind,
                        name=name,
                        namespace=namespace,
                    )
                except ObjectNotFoundError:
                    # Garbage collection got there first.
                    continue
                deleted.append(ObjectRef(kind=kind, name=name, namespace=namespace))
        logger.debug(
            "Deleted %d objects matching %s in namespace %s",
            len(deleted),
            label_selector,
            namespace,
        )
        return deleted

    async def get_namespace(self, name: str) -> Manifest:
        result = await self._call(self._core.read_namespace, name, kind="Namespace", name=name)
        return self._to_manifest(result)

    async def remove_namespace_labels(self, name: str, keys: Iterable[str]) -> Manifest:
        # A null value in a merge patch removes the key.
        body = {"metadata": {"labels": {key: None for key in keys}}}
        result = await self._call(
            self._core.patch_namespace, name, body, kind="Namespace", name=name
        )
        return self._to_manifest(result)


__all__ = ["KubernetesCluster"]
