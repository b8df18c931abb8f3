"""
Retirement of the operator-managed instance.

Runs after the release is installed. Only a failure to delete the custom
resource fails the migration, with RetirementFailedError; any other problem
is recorded as a RetirementWarning, logged, and returned to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from helmshift.cluster import ClusterClient, object_name
from helmshift.exceptions import ClusterError, ObjectNotFoundError
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import RetirementFailedError, RetirementWarning
from helmshift.migration.profiles import ProductProfile
from helmshift.migration.quiescence import OperatorLocation
from helmshift.observability import (
    ATTR_INSTANCE_NAME,
    ATTR_NAMESPACE,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


@dataclass
class RetirementReport:
    """What retirement removed, and what it could not."""

    custom_resource_deleted: bool = False
    namespace_label_removed: bool = False
    remaining_instances: int | None = None
    deleted_definitions: list[str] = field(default_factory=list)
    operator_removed: bool = False
    warnings: list[RetirementWarning] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "custom_resource_deleted": self.custom_resource_deleted,
            "namespace_label_removed": self.namespace_label_removed,
            "remaining_instances": self.remaining_instances,
            "deleted_definitions": list(self.deleted_definitions),
            "operator_removed": self.operator_removed,
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


class InstanceRetirer:
    """
    Deletes the custom resource and, when it was the last instance, the operator.

    Args:
        cluster: Cluster client.
        profile: Product profile.
        tracer: Optional custom Tracer instance.
        enable_tracing: Whether to enable OpenTelemetry tracing.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        profile: ProductProfile,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._cluster = cluster
        self._profile = profile

    def _warn(
        self,
        report: RetirementReport,
        descriptor: InstanceDescriptor,
        message: str,
        cause: Exception,
    ) -> None:
        warning = RetirementWarning(
            message,
            instance_name=descriptor.name,
            namespace=descriptor.namespace,
            release_name=self._profile.release_name(descriptor.name),
        )
        warning.__cause__ = cause
        report.warnings.append(warning)
        logger.warning("%s", warning)

    async def retire(
        self,
        descriptor: InstanceDescriptor,
        operator: OperatorLocation,
    ) -> RetirementReport:
        """
        Retire the instance.

        Raises:
            RetirementFailedError: If the custom resource could not be deleted.
        """
        report = RetirementReport()
        with self._tracer.span(
            "helmshift.retirement.retire",
            {ATTR_INSTANCE_NAME: descriptor.name, ATTR_NAMESPACE: descriptor.namespace},
        ):
            await self._delete_custom_resource(descriptor, report)
            await self._remove_namespace_label(descriptor, report)

            remaining = await self._count_remaining(descriptor, report)
            report.remaining_instances = remaining
            if remaining == 0:
                await self._decommission_operator(descriptor, operator, report)
            elif remaining is not None:
                logger.info(
                    "Keeping operator %s/%s: %d managed instance(s) remain",
                    operator.namespace,
                    operator.deployment,
                    remaining,
                )
        return report

    async def _delete_custom_resource(
        self, descriptor: InstanceDescriptor, report: RetirementReport
    ) -> None:
        try:
            await self._cluster.delete_custom_resource(
                self._profile.resource, descriptor.custom_resource_namespace, descriptor.name
            )
        except ObjectNotFoundError:
            report.custom_resource_deleted = True
        except ClusterError as e:
            raise RetirementFailedError(
                f"Unable to delete {self._profile.kind} custom resource {descriptor.name}",
                instance_name=descriptor.name,
                namespace=descriptor.namespace,
                release_name=self._profile.release_name(descriptor.name),
            ) from e
        else:
            report.custom_resource_deleted = True
            logger.info("Deleted %s custom resource %s", self._profile.kind, descriptor.name)

    async def _remove_namespace_label(
        self, descriptor: InstanceDescriptor, report: RetirementReport
    ) -> None:
        label = self._profile.namespace_label(descriptor.name)
        try:
            await self._cluster.remove_namespace_labels(descriptor.namespace, [label])
        except ClusterError as e:
            self._warn(
                report,
                descriptor,
                f"Unable to remove label {label} from namespace {descriptor.namespace}",
                e,
            )
        else:
            report.namespace_label_removed = True

    async def _count_remaining(
        self, descriptor: InstanceDescriptor, report: RetirementReport
    ) -> int | None:
        """Instances of every managed kind still present; None if unknown."""
        total = 0
        for resource in self._profile.managed_resources:
            try:
                items = await self._cluster.list_custom_resources(resource)
            except ObjectNotFoundError:
                # kind not installed in this cluster
                continue
            except ClusterError as e:
                self._warn(
                    report,
                    descriptor,
                    f"Unable to list {resource.kind} instances; keeping the operator",
                    e,
                )
                return None
            total += len(items)
        return total

    async def _decommission_operator(
        self,
        descriptor: InstanceDescriptor,
        operator: OperatorLocation,
        report: RetirementReport,
    ) -> None:
        managed = {resource.crd_name for resource in self._profile.managed_resources}
        try:
            definitions = await self._cluster.list_custom_resource_definitions()
        except ClusterError as e:
            self._warn(report, descriptor, "Unable to list custom resource definitions", e)
            definitions = []

        for definition in definitions:
            name = object_name(definition)
            if name not in managed:
                continue
            try:
                await self._cluster.delete_custom_resource_definition(name)
            except ClusterError as e:
                self._warn(
                    report, descriptor, f"Unable to delete custom resource definition {name}", e
                )
            else:
                report.deleted_definitions.append(name)

        try:
            await self._cluster.delete_deployment(operator.namespace, operator.deployment)
        except ClusterError as e:
            self._warn(
                report,
                descriptor,
                f"Unable to delete operator deployment {operator.namespace}/{operator.deployment}",
                e,
            )
        else:
            report.operator_removed = True
            logger.info(
                "No managed instances remain; removed operator %s/%s",
                operator.namespace,
                operator.deployment,
            )


__all__ = [
    "InstanceRetirer",
    "RetirementReport",
]
