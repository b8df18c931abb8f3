"""
Operator quiescence.

The operator must be stopped before the cutover deletes its objects,
otherwise it would recreate them. The deployment is scaled to zero and
then polled until no replica is ready. It is never scaled back up, not
even when a later stage fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from helmshift.cluster import ClusterClient, Manifest
from helmshift.exceptions import ClusterError
from helmshift.migration.config import MigrationSettings
from helmshift.migration.exceptions import OperatorQuiesceFailedError, ReadinessTimeoutError
from helmshift.migration.readiness import Observation, poll_until
from helmshift.observability import (
    ATTR_LABEL_SELECTOR,
    ATTR_NAMESPACE,
    ATTR_OBJECT_KIND,
    ATTR_OBJECT_NAME,
    ATTR_RETRY_COUNT,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatorLocation:
    """Where the operator deployment lives."""

    namespace: str
    deployment: str


def ready_replicas(deployment: Manifest) -> int:
    """``status.readyReplicas`` of a deployment, 0 when unset."""
    return int((deployment.get("status") or {}).get("readyReplicas") or 0)


class OperatorQuiescer:
    """
    Scales the operator deployment to zero and confirms it stopped.

    Args:
        cluster: Cluster client.
        settings: Migration settings (operator location, quiesce policy).
        tracer: Optional custom Tracer instance.
        enable_tracing: Whether to enable OpenTelemetry tracing.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        settings: MigrationSettings,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._cluster = cluster
        self._settings = settings

    async def locate(self) -> OperatorLocation:
        """
        Find the operator deployment.

        Uses the configured namespace when set; otherwise looks for
        deployments carrying the operator labels across all namespaces.

        Raises:
            OperatorQuiesceFailedError: If discovery fails or is ambiguous.
        """
        deployment = self._settings.operator_deployment
        if self._settings.operator_namespace:
            return OperatorLocation(self._settings.operator_namespace, deployment)

        selector = self._settings.operator_label_selector
        with self._tracer.span(
            "helmshift.operator.discover", {ATTR_LABEL_SELECTOR: selector}
        ):
            try:
                found = await self._cluster.list_deployments(None, selector)
            except ClusterError as e:
                raise OperatorQuiesceFailedError(
                    f"Unable to search for the operator deployment: {e}",
                    deployment_name=deployment,
                ) from e

        namespaces = sorted(
            {(item.get("metadata") or {}).get("namespace") or "" for item in found}
        )
        if len(namespaces) != 1 or not namespaces[0]:
            raise OperatorQuiesceFailedError(
                f"Expected the operator in exactly 1 namespace for '{selector}' "
                f"but found {len(namespaces)}: {', '.join(namespaces) or 'none'}",
                deployment_name=deployment,
                suggested_action="Set the operator namespace explicitly and re-run",
            )
        logger.info("Discovered operator in namespace %s", namespaces[0])
        return OperatorLocation(namespaces[0], deployment)

    async def quiesce(self, location: OperatorLocation | None = None) -> OperatorLocation:
        """
        Scale the operator to zero replicas and wait until none is ready.

        Returns:
            The location of the quiesced operator.

        Raises:
            OperatorQuiesceFailedError: On any read or patch failure or when
                the confirmation poll runs out.
        """
        location = location or await self.locate()
        attrs = {
            ATTR_NAMESPACE: location.namespace,
            ATTR_OBJECT_KIND: "Deployment",
            ATTR_OBJECT_NAME: location.deployment,
        }

        with self._tracer.span("helmshift.operator.quiesce", attrs) as span:
            try:
                await self._cluster.get_deployment(location.namespace, location.deployment)
                await self._cluster.scale_deployment(location.namespace, location.deployment, 0)
                logger.info(
                    "Scaled operator %s/%s to 0 replicas",
                    location.namespace,
                    location.deployment,
                )

                async def check() -> Observation:
                    current = await self._cluster.get_deployment(
                        location.namespace, location.deployment
                    )
                    ready = ready_replicas(current)
                    return Observation(ready=ready == 0, detail=f"readyReplicas={ready}")

                attempts = await poll_until(
                    check,
                    self._settings.quiesce_policy,
                    what=f"operator {location.namespace}/{location.deployment} to stop",
                )
                if span is not None:
                    span.set_attribute(ATTR_RETRY_COUNT, attempts)
            except (ClusterError, ReadinessTimeoutError) as e:
                raise OperatorQuiesceFailedError(
                    f"Unable to stop operator {location.namespace}/{location.deployment}: {e}",
                    operator_namespace=location.namespace,
                    deployment_name=location.deployment,
                ) from e

        return location


__all__ = [
    "OperatorLocation",
    "OperatorQuiescer",
    "ready_replicas",
]
