"""
Dry-run validation of the new release.

The chart is rendered and checked against the API server with the final
values, but nothing is persisted. A rejection aborts the migration before
any destructive step; nothing that earlier stages did is undone.
"""

from __future__ import annotations

import logging

from helmshift.exceptions import ReleaseError
from helmshift.migration.exceptions import ValidationFailedError
from helmshift.migration.values import ValuesTree
from helmshift.observability import (
    ATTR_CHART_LOCATION,
    ATTR_DRY_RUN,
    ATTR_NAMESPACE,
    ATTR_RELEASE_NAME,
    Tracer,
    create_tracer,
)
from helmshift.releases import Release, ReleaseClient

logger = logging.getLogger(__name__)


class DryRunValidator:
    """
    Submits the release in dry-run mode.

    Args:
        releases: Release client.
        tracer: Optional custom Tracer instance.
        enable_tracing: Whether to enable OpenTelemetry tracing.
    """

    def __init__(
        self,
        releases: ReleaseClient,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._releases = releases

    async def validate(
        self,
        release_name: str,
        namespace: str,
        chart: str,
        values: ValuesTree,
    ) -> Release:
        """
        Render the release without committing it.

        Raises:
            ValidationFailedError: If the release system rejects the release.
        """
        with self._tracer.span(
            "helmshift.validator.dry_run",
            {
                ATTR_RELEASE_NAME: release_name,
                ATTR_NAMESPACE: namespace,
                ATTR_CHART_LOCATION: chart,
                ATTR_DRY_RUN: True,
            },
        ):
            try:
                release = await self._releases.apply(
                    release_name, namespace, chart, values.to_dict(), dry_run=True
                )
            except ReleaseError as e:
                raise ValidationFailedError(
                    f"Dry run of release '{release_name}' was rejected: {e}",
                    namespace=namespace,
                    release_name=release_name,
                ) from e

        logger.info("Dry run of release %s/%s succeeded", namespace, release_name)
        return release


__all__ = ["DryRunValidator"]
