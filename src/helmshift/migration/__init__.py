"""
Migration of operator-managed instances to package-managed releases.

Stages, run strictly in order by MigrationPipeline:

1. version_gate - reject targets older than the minimum supported version
2. load_instance - read the custom resource, wait for it to be Running
3. translate - instance spec -> typed release values
4. carry_artifacts - relabel the storage claim for the release
5. quiesce_operator - scale the operator to zero and confirm it stopped
6. dry_run - render and validate the release without committing
7. cutover - delete old objects (not claims), write secrets, install
8. retire - delete the custom resource; remove the operator when unused

Usage:
    >>> from helmshift.cluster import InMemoryCluster
    >>> from helmshift.releases import InMemoryReleaseClient
    >>> from helmshift.migration import (
    ...     MigrationContext, MigrationCoordinator, MigrationRequest, MigrationSettings,
    ... )
    >>>
    >>> context = MigrationContext(
    ...     cluster=InMemoryCluster(),
    ...     releases=InMemoryReleaseClient(),
    ...     settings=MigrationSettings(operator_namespace="synopsys-operator"),
    ... )
    >>> result = await MigrationCoordinator(context).migrate(
    ...     MigrationRequest("prod", target_version="5.2.0"),
    ... )
"""

from helmshift.migration.artifacts import ArtifactCarrier, SecretMaterial, build_secret
from helmshift.migration.config import MigrationSettings, RetryPolicy
from helmshift.migration.context import MigrationContext
from helmshift.migration.coordinator import MigrationCoordinator
from helmshift.migration.cutover import (
    CutoverExecutor,
    CutoverReport,
    resolve_chart_location,
    write_secret,
)
from helmshift.migration.descriptor import InstanceDescriptor, RegistryConfiguration
from helmshift.migration.exceptions import (
    AmbiguousArtifactError,
    AmbiguousInstanceError,
    ArtifactRelabelError,
    CutoverFailedError,
    ErrorClassification,
    ErrorRecoverability,
    ErrorSeverity,
    InstanceNotFoundError,
    MigrationError,
    OperatorQuiesceFailedError,
    ReadinessTimeoutError,
    ReleaseUpdateFailedError,
    RetirementFailedError,
    RetirementWarning,
    StatefulArtifactError,
    TranslationError,
    UnexpectedStageError,
    UnsupportedVersionError,
    ValidationFailedError,
    classify_exception,
)
from helmshift.migration.models import (
    MigrationMode,
    MigrationRequest,
    MigrationResult,
    MigrationState,
    StageOutcome,
    StageStatus,
)
from helmshift.migration.pipeline import MigrationPipeline, Stage
from helmshift.migration.profiles import (
    ALERT_PROFILE,
    ALERT_RESOURCE,
    OPERATOR_MANAGED_RESOURCES,
    ProductProfile,
    SecretSpec,
)
from helmshift.migration.quiescence import OperatorLocation, OperatorQuiescer
from helmshift.migration.readiness import Observation, poll_until, wait_for_instance_running
from helmshift.migration.retirement import InstanceRetirer, RetirementReport
from helmshift.migration.stages import MIGRATION_STAGES, UPDATE_STAGES
from helmshift.migration.translator import SpecTranslator, parse_environs
from helmshift.migration.validator import DryRunValidator
from helmshift.migration.values import SchemaViolation, ValuesTree
from helmshift.migration.versions import Version, check_version

__all__ = [
    # Coordinator and pipeline
    "MigrationCoordinator",
    "MigrationContext",
    "MigrationPipeline",
    "Stage",
    "MIGRATION_STAGES",
    "UPDATE_STAGES",
    # Configuration
    "MigrationSettings",
    "RetryPolicy",
    "ProductProfile",
    "SecretSpec",
    "ALERT_PROFILE",
    "ALERT_RESOURCE",
    "OPERATOR_MANAGED_RESOURCES",
    # Models
    "MigrationMode",
    "MigrationRequest",
    "MigrationResult",
    "MigrationState",
    "StageOutcome",
    "StageStatus",
    "InstanceDescriptor",
    "RegistryConfiguration",
    "ValuesTree",
    "SchemaViolation",
    "Version",
    # Components
    "check_version",
    "SpecTranslator",
    "parse_environs",
    "ArtifactCarrier",
    "SecretMaterial",
    "build_secret",
    "OperatorQuiescer",
    "OperatorLocation",
    "Observation",
    "poll_until",
    "wait_for_instance_running",
    "DryRunValidator",
    "CutoverExecutor",
    "CutoverReport",
    "resolve_chart_location",
    "write_secret",
    "InstanceRetirer",
    "RetirementReport",
    # Exceptions
    "ErrorSeverity",
    "ErrorRecoverability",
    "ErrorClassification",
    "MigrationError",
    "UnsupportedVersionError",
    "InstanceNotFoundError",
    "AmbiguousInstanceError",
    "TranslationError",
    "StatefulArtifactError",
    "AmbiguousArtifactError",
    "ArtifactRelabelError",
    "OperatorQuiesceFailedError",
    "ReadinessTimeoutError",
    "ValidationFailedError",
    "CutoverFailedError",
    "ReleaseUpdateFailedError",
    "UnexpectedStageError",
    "RetirementFailedError",
    "RetirementWarning",
    "classify_exception",
]
