"""
Migration-specific exceptions for the helmshift migration orchestrator.

Every stage of a migration raises one of these, carrying the instance
name, namespace and stage so the message can be shown verbatim on an
operator console. The originating cause is always chained (``__cause__``).

Exception Hierarchy:
    MigrationError (base)
    +-- UnsupportedVersionError
    +-- InstanceNotFoundError
    +-- AmbiguousInstanceError
    +-- TranslationError
    +-- StatefulArtifactError
    |   +-- AmbiguousArtifactError
    |   +-- ArtifactRelabelError
    +-- OperatorQuiesceFailedError
    +-- ReadinessTimeoutError
    +-- ValidationFailedError
    +-- CutoverFailedError
    +-- ReleaseUpdateFailedError
    +-- UnexpectedStageError
    +-- RetirementFailedError
    +-- RetirementWarning

Error Classification:
    - ErrorSeverity: CRITICAL, ERROR, WARNING, INFO levels
    - ErrorRecoverability: RECOVERABLE, TRANSIENT, FATAL categories
    - ErrorClassification: error code, category and operator guidance

Errors raised before cutover leave the cluster in a state from which the
migration can simply be run again. CutoverFailedError (and any unexpected
failure inside the cutover stage) is past the point of no return: the old
managed objects are gone and the release may be partially present. So is
RetirementFailedError: the release is installed but the old custom resource
is still in place, and the operator would recreate what it manages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """
    Severity level of migration errors.

    Attributes:
        CRITICAL: The cluster is in a partial state that needs a human.
        ERROR: The migration failed and must be re-run after a fix.
        WARNING: A transient condition; a re-run may succeed unchanged.
        INFO: Informational condition, not a failure.
    """

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def should_alert(self) -> bool:
        """True for CRITICAL and ERROR levels."""
        return self in (ErrorSeverity.CRITICAL, ErrorSeverity.ERROR)

    @property
    def log_level(self) -> int:
        """Corresponding Python logging level."""
        level_map = {
            ErrorSeverity.CRITICAL: logging.CRITICAL,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.INFO: logging.INFO,
        }
        return level_map[self]


class ErrorRecoverability(Enum):
    """
    Recoverability classification for migration errors.

    Attributes:
        RECOVERABLE: Fix the input or the cluster, then re-run the migration.
        TRANSIENT: Re-running unchanged may succeed.
        FATAL: Requires manual inspection before anything else is attempted.
    """

    RECOVERABLE = "recoverable"
    TRANSIENT = "transient"
    FATAL = "fatal"

    @property
    def should_abort(self) -> bool:
        """True only for FATAL errors."""
        return self == ErrorRecoverability.FATAL


@dataclass(frozen=True)
class ErrorClassification:
    """
    Metadata describing how an error should be handled and presented.

    Attributes:
        severity: The severity level of the error.
        recoverability: How the error can be recovered from.
        error_code: Unique error code for programmatic handling.
        category: Error category for grouping related errors.
        suggested_action: Human-readable guidance for operators.
    """

    severity: ErrorSeverity
    recoverability: ErrorRecoverability
    error_code: str
    category: str
    suggested_action: str

    def to_dict(self) -> dict[str, Any]:
        """Convert classification to dictionary for serialization."""
        return {
            "severity": self.severity.value,
            "recoverability": self.recoverability.value,
            "error_code": self.error_code,
            "category": self.category,
            "suggested_action": self.suggested_action,
        }


class MigrationError(Exception):
    """
    Base exception for all migration-related errors.

    Attributes:
        message: Human-readable error description.
        instance_name: Name of the instance being migrated, if known.
        namespace: Namespace of the instance, if known.
        stage: Name of the stage that raised the error, if known.
        release_name: Release the migration was producing, if known.
        suggested_action: Overrides the classification's guidance when set.
        point_of_no_return: True when old managed objects may already be gone.
    """

    _default_classification: ErrorClassification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.FATAL,
        error_code="MIGRATION_ERROR",
        category="general",
        suggested_action="Review migration logs before retrying",
    )

    point_of_no_return: bool = False

    def __init__(
        self,
        message: str,
        *,
        instance_name: str | None = None,
        namespace: str | None = None,
        stage: str | None = None,
        release_name: str | None = None,
        suggested_action: str | None = None,
    ) -> None:
        self.message = message
        self.instance_name = instance_name
        self.namespace = namespace
        self.stage = stage
        self.release_name = release_name
        self._suggested_action = suggested_action
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.instance_name:
            parts.append(f"instance={self.instance_name}")
        if self.namespace:
            parts.append(f"namespace={self.namespace}")
        if self.stage:
            parts.append(f"stage={self.stage}")
        if self.__cause__ is not None:
            parts.append(f"cause={self.__cause__}")
        return " ".join(parts)

    @property
    def classification(self) -> ErrorClassification:
        """Classification for this exception type."""
        return self._default_classification

    @property
    def severity(self) -> ErrorSeverity:
        return self.classification.severity

    @property
    def recoverability(self) -> ErrorRecoverability:
        return self.classification.recoverability

    @property
    def error_code(self) -> str:
        return self.classification.error_code

    @property
    def suggested_action(self) -> str:
        return self._suggested_action or self.classification.suggested_action

    @property
    def safe_to_retry(self) -> bool:
        """True when a plain re-run of the whole migration is safe."""
        return not self.point_of_no_return

    def bind(
        self,
        *,
        instance_name: str | None = None,
        namespace: str | None = None,
        stage: str | None = None,
        release_name: str | None = None,
    ) -> MigrationError:
        """Fill in context the raising component did not know; never overwrites."""
        self.instance_name = self.instance_name or instance_name
        self.namespace = self.namespace or namespace
        self.stage = self.stage or stage
        self.release_name = self.release_name or release_name
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for console or API output."""
        return {
            "message": self.message,
            "instance_name": self.instance_name,
            "namespace": self.namespace,
            "stage": self.stage,
            "release_name": self.release_name,
            "cause": str(self.__cause__) if self.__cause__ is not None else None,
            "error_code": self.error_code,
            "point_of_no_return": self.point_of_no_return,
            "suggested_action": self.suggested_action,
            "classification": self.classification.to_dict(),
        }


class UnsupportedVersionError(MigrationError):
    """
    Raised when the target version cannot run package-managed.

    Attributes:
        requested: The version string that was requested.
        minimum: The minimum supported version, as a string.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="UNSUPPORTED_VERSION",
        category="version",
        suggested_action="Choose a target version at or above the minimum supported version",
    )

    def __init__(self, requested: str, minimum: str, *, reason: str | None = None) -> None:
        self.requested = requested
        self.minimum = minimum
        detail = reason or f"is older than the minimum supported version {minimum}"
        super().__init__(f"Version '{requested}' {detail}", stage="version_gate")


class InstanceNotFoundError(MigrationError):
    """Raised when neither a custom resource nor a release exists for the instance."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="INSTANCE_NOT_FOUND",
        category="configuration",
        suggested_action="Check the instance name and namespace",
    )

    def __init__(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
        *,
        stage: str = "load_instance",
    ) -> None:
        where = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(
            f"{kind} instance '{name}' not found{where}",
            instance_name=name,
            namespace=namespace,
            stage=stage,
        )


class AmbiguousInstanceError(MigrationError):
    """
    Raised when no namespace was given and the instance name is used in several.

    Attributes:
        namespaces: Namespaces holding an instance with that name.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="AMBIGUOUS_INSTANCE",
        category="configuration",
        suggested_action="Pass the namespace of the instance to migrate",
    )

    def __init__(self, kind: str, name: str, namespaces: list[str]) -> None:
        self.namespaces = namespaces
        super().__init__(
            f"{kind} instance '{name}' exists in several namespaces: {', '.join(namespaces)}",
            instance_name=name,
            stage="load_instance",
        )


class TranslationError(MigrationError):
    """
    Raised when an instance spec cannot be turned into release values.

    Attributes:
        field: The descriptor field (or key path) that was rejected.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="TRANSLATION_ERROR",
        category="configuration",
        suggested_action="Fix the instance spec or the supplied overrides and re-run",
    )

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any) -> None:
        self.field = field
        kwargs.setdefault("stage", "translate")
        super().__init__(message, **kwargs)


class StatefulArtifactError(MigrationError):
    """Base exception for failures while carrying storage or secret material."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="STATEFUL_ARTIFACT_ERROR",
        category="storage",
        suggested_action="Inspect the instance's persistent volume claims",
    )

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("stage", "carry_artifacts")
        super().__init__(message, **kwargs)


class AmbiguousArtifactError(StatefulArtifactError):
    """
    Raised when the storage claim lookup does not find exactly one claim.

    Attributes:
        label_selector: The selector that was used.
        matches: Names of the claims that matched (possibly empty).
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="AMBIGUOUS_ARTIFACT",
        category="storage",
        suggested_action=(
            "Make sure exactly one persistent volume claim carries the instance labels, "
            "then re-run"
        ),
    )

    def __init__(self, label_selector: str, matches: list[str], **kwargs: Any) -> None:
        self.label_selector = label_selector
        self.matches = matches
        super().__init__(
            f"Expected exactly 1 persistent volume claim for '{label_selector}' "
            f"but found {len(matches)}: {', '.join(matches) or 'none'}",
            **kwargs,
        )


class ArtifactRelabelError(StatefulArtifactError):
    """
    Raised when a claim was found but its labels could not be updated.

    Attributes:
        claim_name: The claim that could not be relabelled.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.TRANSIENT,
        error_code="ARTIFACT_RELABEL_FAILED",
        category="storage",
        suggested_action="Re-run the migration; the claim and its data are unchanged",
    )

    def __init__(self, claim_name: str, **kwargs: Any) -> None:
        self.claim_name = claim_name
        super().__init__(f"Failed to relabel persistent volume claim '{claim_name}'", **kwargs)


class OperatorQuiesceFailedError(MigrationError):
    """
    Raised when the operator could not be confirmed stopped.

    Attributes:
        operator_namespace: Namespace of the operator deployment, if known.
        deployment_name: Name of the operator deployment.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.FATAL,
        error_code="OPERATOR_QUIESCE_FAILED",
        category="operator",
        suggested_action=(
            "Check the operator deployment; no destructive step has run, "
            "re-run once it can be scaled to zero"
        ),
    )

    def __init__(
        self,
        message: str,
        *,
        operator_namespace: str | None = None,
        deployment_name: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.operator_namespace = operator_namespace
        self.deployment_name = deployment_name
        kwargs.setdefault("stage", "quiesce_operator")
        super().__init__(message, **kwargs)


class ReadinessTimeoutError(MigrationError):
    """
    Raised when a bounded poll gives up.

    Attributes:
        attempts: Number of polls made.
        elapsed_seconds: Wall time spent polling.
        last_observed: Last observed state, for the console.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.WARNING,
        recoverability=ErrorRecoverability.TRANSIENT,
        error_code="READINESS_TIMEOUT",
        category="readiness",
        suggested_action="Wait for the instance to settle and re-run",
    )

    def __init__(
        self,
        what: str,
        *,
        attempts: int,
        elapsed_seconds: float,
        last_observed: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.attempts = attempts
        self.elapsed_seconds = elapsed_seconds
        self.last_observed = last_observed
        observed = f" (last observed: {last_observed})" if last_observed else ""
        super().__init__(
            f"Timed out waiting for {what} after {attempts} attempts "
            f"and {elapsed_seconds:.1f}s{observed}",
            **kwargs,
        )


class ValidationFailedError(MigrationError):
    """Raised when the dry-run install of the new release is rejected."""

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="VALIDATION_FAILED",
        category="validation",
        suggested_action=(
            "Nothing was deleted; fix the configuration reported by the release system "
            "and re-run"
        ),
    )

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("stage", "dry_run")
        super().__init__(message, **kwargs)


class CutoverFailedError(MigrationError):
    """
    Raised when a cutover step fails.

    Attributes:
        step: The cutover step that failed.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.CRITICAL,
        recoverability=ErrorRecoverability.FATAL,
        error_code="CUTOVER_FAILED",
        category="cutover",
        suggested_action=(
            "Old managed objects may already be deleted; inspect the partially created "
            "release and re-run the cutover"
        ),
    )

    point_of_no_return = True

    def __init__(self, step: str, message: str, **kwargs: Any) -> None:
        self.step = step
        kwargs.setdefault("stage", "cutover")
        super().__init__(f"Cutover step '{step}' failed: {message}", **kwargs)


class ReleaseUpdateFailedError(MigrationError):
    """
    Raised when upgrading an already package-managed instance fails.

    The release system keeps the previous revision, so nothing is lost.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="RELEASE_UPDATE_FAILED",
        category="release",
        suggested_action="The previous release revision is still active; fix the values and re-run",
    )

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("stage", "upgrade_release")
        super().__init__(message, **kwargs)


class UnexpectedStageError(MigrationError):
    """
    Wraps an exception a stage did not anticipate.

    Inherits the point-of-no-return status of the stage it escaped from.
    """

    def __init__(self, stage: str, *, point_of_no_return: bool = False, **kwargs: Any) -> None:
        self.point_of_no_return = point_of_no_return
        super().__init__(f"Unexpected error in stage '{stage}'", stage=stage, **kwargs)

    @property
    def classification(self) -> ErrorClassification:
        if self.point_of_no_return:
            return CutoverFailedError._default_classification
        return self._default_classification


class RetirementFailedError(MigrationError):
    """
    Raised when the old custom resource cannot be deleted after cutover.

    The release is installed at this point, but the operator still sees
    the instance and would recreate its managed objects once it runs again.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.CRITICAL,
        recoverability=ErrorRecoverability.FATAL,
        error_code="RETIREMENT_FAILED",
        category="retirement",
        suggested_action=(
            "The release is installed; delete the old custom resource by hand before "
            "scaling the operator back up"
        ),
    )

    point_of_no_return = True

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("stage", "retire")
        super().__init__(message, **kwargs)


class RetirementWarning(MigrationError):
    """
    Non-fatal problem while retiring the old instance.

    Never raised out of a migration: collected on the result and logged.
    """

    _default_classification = ErrorClassification(
        severity=ErrorSeverity.INFO,
        recoverability=ErrorRecoverability.RECOVERABLE,
        error_code="RETIREMENT_WARNING",
        category="retirement",
        suggested_action="The migration succeeded; clean up the reported object by hand",
    )

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("stage", "retire")
        super().__init__(message, **kwargs)


def classify_exception(exc: BaseException) -> ErrorClassification:
    """
    Classify any exception.

    MigrationError subclasses return their own classification; anything
    else gets a generic fatal classification.
    """
    if isinstance(exc, MigrationError):
        return exc.classification

    return ErrorClassification(
        severity=ErrorSeverity.ERROR,
        recoverability=ErrorRecoverability.FATAL,
        error_code="UNKNOWN_ERROR",
        category="unknown",
        suggested_action="An unexpected error occurred. Review logs before retrying.",
    )


__all__ = [
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
