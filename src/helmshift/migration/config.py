"""
Configuration objects for the migration orchestrator.

Both classes are immutable so a single settings object can be shared by
concurrent migrations of different instances.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

ENV_PREFIX = "HELMSHIFT_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounds for a readiness poll.

    A poll stops at whichever limit is hit first: ``max_attempts`` checks
    or ``timeout_seconds`` of wall time.

    Attributes:
        max_attempts: Maximum number of checks (default 60).
        interval_seconds: Sleep between checks (default 2.0).
        timeout_seconds: Overall deadline for the poll (default 120.0).

    Example:
        >>> policy = RetryPolicy(max_attempts=10, interval_seconds=0.5)
        >>> policy.max_attempts
        10
    """

    max_attempts: int = 60
    interval_seconds: float = 2.0
    timeout_seconds: float = 120.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

        if self.interval_seconds < 0:
            raise ValueError(f"interval_seconds must be >= 0, got {self.interval_seconds}")

        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "interval_seconds": self.interval_seconds,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RetryPolicy:
        return cls(
            max_attempts=int(data.get("max_attempts", 60)),
            interval_seconds=float(data.get("interval_seconds", 2.0)),
            timeout_seconds=float(data.get("timeout_seconds", 120.0)),
        )


@dataclass(frozen=True)
class MigrationSettings:
    """
    Settings shared by every migration run.

    Attributes:
        operator_namespace: Namespace of the operator deployment. When None
            it is discovered by label across all namespaces.
        operator_deployment: Name of the operator deployment.
        operator_label_selector: Selector used for operator discovery.
        chart_repository: Base URL of the chart repository.
        kubeconfig_path: Kubeconfig for out-of-cluster runs.
        wait_for_running: Wait for the instance to report Running before
            migrating (skipped for instances whose desired state is Stopped).
        readiness_policy: Bounds for the instance readiness wait.
        quiesce_policy: Bounds for confirming the operator has stopped.
        helm_timeout_seconds: Timeout handed to the release system.
        helm_binary: Name or path of the helm executable.

    Example:
        >>> settings = MigrationSettings(operator_namespace="synopsys-operator")
        >>> settings.operator_deployment
        'synopsys-operator'
    """

    operator_namespace: str | None = None
    operator_deployment: str = "synopsys-operator"
    operator_label_selector: str = "app=synopsys-operator,component=operator"
    chart_repository: str = "https://sig-repo.synopsys.com/sig-cloudnative"
    kubeconfig_path: str | None = None
    wait_for_running: bool = True
    readiness_policy: RetryPolicy = field(default_factory=RetryPolicy)
    quiesce_policy: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(max_attempts=30, interval_seconds=2.0, timeout_seconds=60.0)
    )
    helm_timeout_seconds: int = 300
    helm_binary: str = "helm"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.operator_deployment:
            raise ValueError("operator_deployment must not be empty")

        if not self.chart_repository:
            raise ValueError("chart_repository must not be empty")

        if self.helm_timeout_seconds < 1:
            raise ValueError(
                f"helm_timeout_seconds must be >= 1, got {self.helm_timeout_seconds}"
            )

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to dictionary for logging or JSON storage.

        Returns:
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "operator_namespace": self.operator_namespace,
            "operator_deployment": self.operator_deployment,
            "operator_label_selector": self.operator_label_selector,
            "chart_repository": self.chart_repository,
            "kubeconfig_path": self.kubeconfig_path,
            "wait_for_running": self.wait_for_running,
            "readiness_policy": self.readiness_policy.to_dict(),
            "quiesce_policy": self.quiesce_policy.to_dict(),
            "helm_timeout_seconds": self.helm_timeout_seconds,
            "helm_binary": self.helm_binary,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MigrationSettings:
        """
        Create from dictionary.

        Missing keys fall back to the defaults.
        """
        defaults = cls()
        readiness = data.get("readiness_policy")
        quiesce = data.get("quiesce_policy")
        return cls(
            operator_namespace=data.get("operator_namespace", defaults.operator_namespace),
            operator_deployment=data.get("operator_deployment", defaults.operator_deployment),
            operator_label_selector=data.get(
                "operator_label_selector", defaults.operator_label_selector
            ),
            chart_repository=data.get("chart_repository", defaults.chart_repository),
            kubeconfig_path=data.get("kubeconfig_path", defaults.kubeconfig_path),
            wait_for_running=bool(data.get("wait_for_running", defaults.wait_for_running)),
            readiness_policy=(
                RetryPolicy.from_dict(readiness) if readiness else defaults.readiness_policy
            ),
            quiesce_policy=RetryPolicy.from_dict(quiesce) if quiesce else defaults.quiesce_policy,
            helm_timeout_seconds=int(
                data.get("helm_timeout_seconds", defaults.helm_timeout_seconds)
            ),
            helm_binary=data.get("helm_binary", defaults.helm_binary),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> MigrationSettings:
        """
        Build settings from ``HELMSHIFT_*`` environment variables.

        Recognised variables: ``HELMSHIFT_OPERATOR_NAMESPACE``,
        ``HELMSHIFT_OPERATOR_DEPLOYMENT``, ``HELMSHIFT_OPERATOR_LABEL_SELECTOR``,
        ``HELMSHIFT_CHART_REPOSITORY``, ``HELMSHIFT_KUBECONFIG``,
        ``HELMSHIFT_WAIT_FOR_RUNNING``, ``HELMSHIFT_READINESS_MAX_ATTEMPTS``,
        ``HELMSHIFT_READINESS_INTERVAL``, ``HELMSHIFT_READINESS_TIMEOUT``,
        ``HELMSHIFT_QUIESCE_MAX_ATTEMPTS``, ``HELMSHIFT_QUIESCE_INTERVAL``,
        ``HELMSHIFT_QUIESCE_TIMEOUT``, ``HELMSHIFT_HELM_TIMEOUT`` and
        ``HELMSHIFT_HELM_BINARY``.

        Raises:
            ValueError: If a variable holds a value of the wrong type.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        data: dict[str, Any] = {}
        for key, name in (
            ("operator_namespace", "OPERATOR_NAMESPACE"),
            ("operator_deployment", "OPERATOR_DEPLOYMENT"),
            ("operator_label_selector", "OPERATOR_LABEL_SELECTOR"),
            ("chart_repository", "CHART_REPOSITORY"),
            ("kubeconfig_path", "KUBECONFIG"),
            ("helm_binary", "HELM_BINARY"),
        ):
            value = get(name)
            if value:
                data[key] = value

        wait = get("WAIT_FOR_RUNNING")
        if wait is not None:
            data["wait_for_running"] = _parse_bool(ENV_PREFIX + "WAIT_FOR_RUNNING", wait)

        helm_timeout = get("HELM_TIMEOUT")
        if helm_timeout:
            data["helm_timeout_seconds"] = int(helm_timeout)

        defaults = cls()
        for key, prefix, base in (
            ("readiness_policy", "READINESS", defaults.readiness_policy),
            ("quiesce_policy", "QUIESCE", defaults.quiesce_policy),
        ):
            attempts = get(f"{prefix}_MAX_ATTEMPTS")
            interval = get(f"{prefix}_INTERVAL")
            timeout = get(f"{prefix}_TIMEOUT")
            if attempts or interval or timeout:
                data[key] = {
                    "max_attempts": int(attempts) if attempts else base.max_attempts,
                    "interval_seconds": float(interval) if interval else base.interval_seconds,
                    "timeout_seconds": float(timeout) if timeout else base.timeout_seconds,
                }

        return cls.from_dict(data)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


__all__ = [
    "RetryPolicy",
    "MigrationSettings",
]
