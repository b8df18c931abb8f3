"""
Release client interface and core data structures.

A release is the package-managed form of an instance: a chart reference,
a values mapping, and the objects the chart renders from them.

This module provides:
- ReleaseStatus: Lifecycle status reported by the release system
- Release: Snapshot of an installed (or dry-run rendered) release
- ReleaseClient: Abstract base class for release system clients
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from helmshift.exceptions import ReleaseNotFoundError


class ReleaseStatus(Enum):
    """Status of a release as reported by the release system."""

    DEPLOYED = "deployed"
    FAILED = "failed"
    PENDING_INSTALL = "pending-install"
    PENDING_UPGRADE = "pending-upgrade"
    UNINSTALLING = "uninstalling"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> "ReleaseStatus":
        """Map a raw status string to a member, UNKNOWN when unrecognised."""
        for member in cls:
            if member.value == value:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class Release:
    """
    Snapshot of a release.

    Attributes:
        name: Release name
        namespace: Namespace the release is installed into
        chart: Chart source reference the release was installed from
        values: User-supplied values (not the chart defaults)
        revision: Release revision, 0 for dry runs
        status: Reported status
        dry_run: True when this snapshot came from a non-committing render
    """

    name: str
    namespace: str
    chart: str
    values: dict[str, Any] = field(default_factory=dict)
    revision: int = 1
    status: ReleaseStatus = ReleaseStatus.DEPLOYED
    dry_run: bool = False


class ReleaseClient(ABC):
    """
    Abstract base class for release system clients.

    Implementations raise ReleaseNotFoundError for a missing release and
    ReleaseError for any rejected or failed operation.
    """

    @abstractmethod
    async def get(self, name: str, namespace: str) -> Release:
        """Return the current state of a release."""
        pass

    @abstractmethod
    async def install(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        """
        Install a new release.

        With ``dry_run=True`` the chart is fully rendered and validated
        against the API server but nothing is persisted.
        """
        pass

    @abstractmethod
    async def upgrade(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        """Upgrade an existing release with new chart and/or values."""
        pass

    @abstractmethod
    async def uninstall(self, name: str, namespace: str) -> None:
        """Remove a release and the objects it owns."""
        pass

    async def exists(self, name: str, namespace: str) -> bool:
        """Check whether a release is present."""
        try:
            await self.get(name, namespace)
        except ReleaseNotFoundError:
            return False
        return True

    async def apply(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        """
        Install the release, or upgrade it when a previous attempt left it behind.

        Re-running an apply with the same inputs converges on the same
        release, which keeps retried cutovers idempotent.
        """
        if await self.exists(name, namespace):
            return await self.upgrade(name, namespace, chart, values, dry_run=dry_run)
        return await self.install(name, namespace, chart, values, dry_run=dry_run)


__all__ = [
    "Release",
    "ReleaseClient",
    "ReleaseStatus",
]
