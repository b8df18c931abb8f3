"""
MigrationCoordinator - entry point for moving instances onto releases.

The coordinator owns the MigrationContext and chooses what to run:

- migrate(): operator-managed instance -> release (the full pipeline)
- update(): if the instance is already a release it is upgraded in place,
  otherwise a target version is required and migrate() runs

Only one migration of a given instance may run at a time. The coordinator
does not lock against this; callers must serialize runs per instance.

Usage:
    >>> from helmshift.migration import MigrationCoordinator, MigrationRequest
    >>>
    >>> coordinator = MigrationCoordinator.connect(MigrationSettings.from_env())
    >>> result = await coordinator.migrate(
    ...     MigrationRequest("prod", target_version="5.2.0", namespace="alert"),
    ... )
    >>> if not result.succeeded:
    ...     print(result.failed_stage, result.safe_to_retry)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from helmshift.cluster import KubernetesCluster
from helmshift.migration.config import MigrationSettings
from helmshift.migration.context import MigrationContext
from helmshift.migration.models import (
    MigrationMode,
    MigrationRequest,
    MigrationResult,
    MigrationState,
)
from helmshift.migration.pipeline import MigrationPipeline, Stage
from helmshift.migration.profiles import ALERT_PROFILE, ProductProfile
from helmshift.migration.stages import MIGRATION_STAGES, UPDATE_STAGES
from helmshift.observability import create_tracer
from helmshift.releases import HelmCLI

logger = logging.getLogger(__name__)


class MigrationCoordinator:
    """
    Runs migrations and in-place updates against one cluster.

    Args:
        context: Collaborators and configuration for every run.
        migration_stages: Stages of the migrate pipeline.
        update_stages: Stages of the update pipeline.
    """

    def __init__(
        self,
        context: MigrationContext,
        *,
        migration_stages: Sequence[Stage] = MIGRATION_STAGES,
        update_stages: Sequence[Stage] = UPDATE_STAGES,
    ) -> None:
        self._context = context
        self._migration = MigrationPipeline(migration_stages)
        self._update = MigrationPipeline(update_stages)

    @classmethod
    def connect(
        cls,
        settings: MigrationSettings,
        *,
        profile: ProductProfile = ALERT_PROFILE,
        enable_tracing: bool = True,
    ) -> MigrationCoordinator:
        """
        Build a coordinator for a real cluster.

        Uses in-cluster configuration when available, else the kubeconfig
        from ``settings``; releases are managed with the helm binary.
        """
        tracer = create_tracer("helmshift.migration", enable_tracing)
        context = MigrationContext(
            cluster=KubernetesCluster.from_config(settings.kubeconfig_path),
            releases=HelmCLI(
                binary=settings.helm_binary,
                kubeconfig_path=settings.kubeconfig_path,
                timeout_seconds=settings.helm_timeout_seconds,
                tracer=tracer,
            ),
            settings=settings,
            profile=profile,
            tracer=tracer,
        )
        return cls(context)

    @property
    def context(self) -> MigrationContext:
        return self._context

    async def migrate(self, request: MigrationRequest) -> MigrationResult:
        """
        Migrate an operator-managed instance to a release.

        Never raises for stage failures; inspect ``result.error``,
        ``result.safe_to_retry`` and ``result.past_point_of_no_return``.
        """
        state = MigrationState(request=request, mode=MigrationMode.MIGRATE)
        return await self._migration.run(self._context, state)

    async def update(self, request: MigrationRequest) -> MigrationResult:
        """
        Update an instance, migrating it first when it is still operator-managed.

        The instance counts as package-managed when a release named
        ``<instance><suffix>`` exists in ``request.namespace``.
        """
        profile = self._context.profile
        if request.namespace is not None:
            release_name = profile.release_name(request.instance_name)
            if await self._context.releases.exists(release_name, request.namespace):
                logger.info(
                    "Release %s/%s exists; updating in place",
                    request.namespace,
                    release_name,
                )
                state = MigrationState(request=request, mode=MigrationMode.UPDATE)
                return await self._update.run(self._context, state)

        logger.info(
            "No release for %s %s; migrating from the operator",
            profile.kind,
            request.instance_name,
        )
        return await self.migrate(request)


__all__ = ["MigrationCoordinator"]
