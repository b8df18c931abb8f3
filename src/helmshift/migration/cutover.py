"""
Cutover from operator-managed objects to the release.

Steps, strictly in order:

1. delete_managed_objects: delete every object labelled for the instance
   except persistent volume claims
2. resolve_chart: pick the chart location
3. write_secrets: create or update the certificate and keystore secrets
4. relabel_exposed_service: point an existing exposed service at the release
5. install_release: install (or upgrade a partial) release for real

Once step 1 has run the old instance is gone: any failure from here on is
past the point of no return. Steps 2 to 5 are idempotent and can be re-run
with the same inputs.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from helmshift.cluster import ClusterClient, ObjectRef, format_label_selector
from helmshift.exceptions import HelmShiftError, ObjectAlreadyExistsError, ObjectNotFoundError
from helmshift.migration.artifacts import SecretMaterial, build_secret
from helmshift.migration.config import MigrationSettings
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import CutoverFailedError
from helmshift.migration.profiles import ProductProfile, SecretSpec
from helmshift.migration.values import ValuesTree
from helmshift.observability import (
    ATTR_CHART_LOCATION,
    ATTR_CUTOVER_STEP,
    ATTR_NAMESPACE,
    ATTR_RELEASE_NAME,
    Tracer,
    create_tracer,
)
from helmshift.releases import Release, ReleaseClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

PROTECTED_KINDS = ("PersistentVolumeClaim",)

STEP_DELETE = "delete_managed_objects"
STEP_CHART = "resolve_chart"
STEP_SECRETS = "write_secrets"
STEP_SERVICE = "relabel_exposed_service"
STEP_INSTALL = "install_release"


def resolve_chart_location(
    profile: ProductProfile,
    settings: MigrationSettings,
    version: str,
    override: str | None = None,
) -> str:
    """The explicit override when given, else the versioned chart in the repository."""
    if override:
        return override
    return profile.chart_location(settings.chart_repository, version)


async def write_secret(
    cluster: ClusterClient,
    namespace: str,
    spec: SecretSpec,
    payload: tuple[bytes, ...],
    labels: dict[str, str],
) -> bool:
    """
    Create a secret, or replace the data of one left by an earlier attempt.

    Returns:
        True if the secret was created, False if it was updated.
    """
    desired = build_secret(spec, payload, namespace=namespace, labels=labels)
    try:
        existing = await cluster.get_secret(namespace, spec.name)
    except ObjectNotFoundError:
        try:
            await cluster.create_secret(namespace, desired)
            return True
        except ObjectAlreadyExistsError:
            existing = await cluster.get_secret(namespace, spec.name)

    existing["data"] = desired["data"]
    existing.pop("stringData", None)
    await cluster.update_secret(namespace, existing)
    return False


@dataclass
class CutoverReport:
    """What the cutover did."""

    release_name: str
    chart: str | None = None
    deleted: list[ObjectRef] = field(default_factory=list)
    secrets_created: list[str] = field(default_factory=list)
    secrets_updated: list[str] = field(default_factory=list)
    service_relabelled: bool = False
    release: Release | None = None
    completed_steps: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "release_name": self.release_name,
            "chart": self.chart,
            "deleted": [str(ref) for ref in self.deleted],
            "secrets_created": list(self.secrets_created),
            "secrets_updated": list(self.secrets_updated),
            "service_relabelled": self.service_relabelled,
            "release_revision": self.release.revision if self.release else None,
            "completed_steps": list(self.completed_steps),
        }


class CutoverExecutor:
    """
    Replaces the operator's objects with the release.

    Args:
        cluster: Cluster client.
        releases: Release client.
        profile: Product profile.
        settings: Migration settings (chart repository).
        tracer: Optional custom Tracer instance.
        enable_tracing: Whether to enable OpenTelemetry tracing.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        releases: ReleaseClient,
        profile: ProductProfile,
        settings: MigrationSettings,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._cluster = cluster
        self._releases = releases
        self._profile = profile
        self._settings = settings

    async def _step(
        self,
        step: str,
        report: CutoverReport,
        descriptor: InstanceDescriptor,
        action: Callable[[], Awaitable[T]],
    ) -> T:
        attrs = {
            ATTR_CUTOVER_STEP: step,
            ATTR_RELEASE_NAME: report.release_name,
            ATTR_NAMESPACE: descriptor.namespace,
        }
        with self._tracer.span(f"helmshift.cutover.{step}", attrs):
            try:
                result = await action()
            except HelmShiftError as e:
                raise CutoverFailedError(
                    step,
                    str(e),
                    instance_name=descriptor.name,
                    namespace=descriptor.namespace,
                    release_name=report.release_name,
                ) from e
        report.completed_steps.append(step)
        logger.debug("Cutover step %s complete for %s", step, report.release_name)
        return result

    async def execute(
        self,
        descriptor: InstanceDescriptor,
        values: ValuesTree,
        *,
        version: str,
        material: SecretMaterial,
        chart_override: str | None = None,
    ) -> CutoverReport:
        """
        Run all cutover steps.

        Raises:
            CutoverFailedError: Naming the failed step and the release.
        """
        namespace = descriptor.namespace
        release_name = self._profile.release_name(descriptor.name)
        report = CutoverReport(release_name=release_name)

        async def delete_managed_objects() -> list[ObjectRef]:
            selector = format_label_selector(self._profile.instance_labels(descriptor.name))
            return await self._cluster.delete_labeled_objects(
                namespace, selector, exclude_kinds=PROTECTED_KINDS
            )

        report.deleted = await self._step(STEP_DELETE, report, descriptor, delete_managed_objects)
        logger.info(
            "Deleted %d operator-managed objects of %s/%s",
            len(report.deleted),
            namespace,
            descriptor.name,
        )

        async def resolve_chart() -> str:
            return resolve_chart_location(self._profile, self._settings, version, chart_override)

        report.chart = await self._step(STEP_CHART, report, descriptor, resolve_chart)

        async def write_secrets() -> None:
            labels = {"app": self._profile.app_label, "name": release_name}
            for spec, payload in material.secrets(self._profile):
                if await write_secret(self._cluster, namespace, spec, payload, labels):
                    report.secrets_created.append(spec.name)
                else:
                    report.secrets_updated.append(spec.name)

        await self._step(STEP_SECRETS, report, descriptor, write_secrets)

        async def relabel_exposed_service() -> bool:
            service_name = self._profile.exposed_service_name(release_name)
            try:
                service = await self._cluster.get_service(namespace, service_name)
            except ObjectNotFoundError:
                return False
            metadata = service.setdefault("metadata", {})
            metadata["labels"] = {**(metadata.get("labels") or {}), "name": release_name}
            spec = service.setdefault("spec", {})
            spec["selector"] = {**(spec.get("selector") or {}), "name": release_name}
            await self._cluster.update_service(namespace, service)
            return True

        report.service_relabelled = await self._step(
            STEP_SERVICE, report, descriptor, relabel_exposed_service
        )

        async def install_release() -> Release:
            with self._tracer.span(
                "helmshift.cutover.submit", {ATTR_CHART_LOCATION: report.chart or ""}
            ):
                return await self._releases.apply(
                    release_name, namespace, report.chart or "", values.to_dict()
                )

        report.release = await self._step(STEP_INSTALL, report, descriptor, install_release)
        logger.info(
            "Installed release %s/%s from %s (revision %d)",
            namespace,
            release_name,
            report.chart,
            report.release.revision,
        )
        return report


__all__ = [
    "CutoverExecutor",
    "CutoverReport",
    "PROTECTED_KINDS",
    "resolve_chart_location",
    "write_secret",
]
