"""
Data models for migration runs.

- MigrationMode: migrate (operator to release) or update (release in place)
- MigrationRequest: what the caller asked for
- MigrationState: working state threaded through the stages of one run
- StageStatus / StageOutcome: per-stage record
- MigrationResult: structured outcome returned to the caller
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from helmshift.migration.artifacts import SecretMaterial
    from helmshift.migration.cutover import CutoverReport
    from helmshift.migration.descriptor import InstanceDescriptor
    from helmshift.migration.exceptions import MigrationError, RetirementWarning
    from helmshift.migration.quiescence import OperatorLocation
    from helmshift.migration.retirement import RetirementReport
    from helmshift.migration.values import ValuesTree
    from helmshift.migration.versions import Version
    from helmshift.releases import Release


class MigrationMode(Enum):
    """How an instance is brought to the requested state."""

    MIGRATE = "migrate"
    UPDATE = "update"


class StageStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationRequest:
    """
    A request to migrate (or update) one instance.

    Attributes:
        instance_name: Name of the instance.
        target_version: Version to run after the migration. Required to
            migrate; optional when updating a release in place.
        namespace: Namespace to look in. The custom resource is searched
            across all namespaces when None; updates require it.
        overrides: Dotted values key paths applied on top of the translation.
        chart_location: Explicit chart location, bypassing the repository.
        certificate: PEM certificate bytes, preferred over the instance's own.
        certificate_key: PEM key bytes, preferred over the instance's own.
        java_keystore: Keystore bytes, preferred over the instance's own.

    Example:
        >>> request = MigrationRequest("prod", target_version="5.2.0")
    """

    instance_name: str
    target_version: str | None = None
    namespace: str | None = None
    overrides: dict[str, Any] = field(default_factory=dict)
    chart_location: str | None = None
    certificate: bytes | None = field(default=None, repr=False)
    certificate_key: bytes | None = field(default=None, repr=False)
    java_keystore: bytes | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.instance_name:
            raise ValueError("instance_name must not be empty")


@dataclass
class MigrationState:
    """
    Working state of one run.

    Each stage reads what earlier stages stored and adds its own results.
    """

    request: MigrationRequest
    mode: MigrationMode = MigrationMode.MIGRATE
    version: Version | None = None
    descriptor: InstanceDescriptor | None = None
    namespace: str | None = None
    existing_release: Release | None = None
    material: SecretMaterial | None = None
    values: ValuesTree | None = None
    chart: str | None = None
    claim_name: str | None = None
    operator: OperatorLocation | None = None
    dry_run: Release | None = None
    cutover: CutoverReport | None = None
    release: Release | None = None
    retirement: RetirementReport | None = None
    warnings: list[RetirementWarning] = field(default_factory=list)

    @property
    def instance_name(self) -> str:
        return self.request.instance_name

    def require(self, name: str) -> Any:
        """Return an attribute an earlier stage must have set."""
        value = getattr(self, name)
        if value is None:
            raise RuntimeError(f"Migration state is missing '{name}'; stage order is broken")
        return value


@dataclass(frozen=True)
class StageOutcome:
    """Record of one executed stage."""

    name: str
    status: StageStatus
    duration_seconds: float
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
        }


@dataclass
class MigrationResult:
    """
    Outcome of a migration run.

    Attributes:
        instance_name: Instance that was migrated.
        mode: Whether the run migrated or updated in place.
        namespace: Namespace of the instance, once known.
        release_name: Release created or updated by the run.
        outcomes: One entry per executed stage.
        error: The error that stopped the run, if any.
        warnings: Non-fatal retirement problems.
        past_point_of_no_return: True when the failure came after the old
            managed objects may have been deleted.
        started_at: When the run began.
        finished_at: When the run ended.
    """

    instance_name: str
    mode: MigrationMode
    namespace: str | None = None
    release_name: str | None = None
    outcomes: list[StageOutcome] = field(default_factory=list)
    error: MigrationError | None = None
    warnings: list[RetirementWarning] = field(default_factory=list)
    past_point_of_no_return: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def safe_to_retry(self) -> bool:
        """True when the run failed and a plain re-run is safe."""
        return self.error is not None and not self.past_point_of_no_return

    @property
    def completed_stages(self) -> list[str]:
        return [o.name for o in self.outcomes if o.status == StageStatus.COMPLETED]

    @property
    def failed_stage(self) -> str | None:
        for outcome in self.outcomes:
            if outcome.status == StageStatus.FAILED:
                return outcome.name
        return None

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for console or JSON output."""
        return {
            "instance_name": self.instance_name,
            "mode": self.mode.value,
            "namespace": self.namespace,
            "release_name": self.release_name,
            "succeeded": self.succeeded,
            "completed_stages": self.completed_stages,
            "failed_stage": self.failed_stage,
            "error": self.error.to_dict() if self.error is not None else None,
            "warnings": [warning.to_dict() for warning in self.warnings],
            "safe_to_retry": self.safe_to_retry,
            "past_point_of_no_return": self.past_point_of_no_return,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "stages": [outcome.to_dict() for outcome in self.outcomes],
        }


__all__ = [
    "MigrationMode",
    "MigrationRequest",
    "MigrationResult",
    "MigrationState",
    "StageOutcome",
    "StageStatus",
]
