"""
In-memory release client implementation.

Useful for testing and development. Releases are kept in a dictionary and
dry runs are recorded but never stored.
"""

import asyncio
import copy
from collections import defaultdict
from collections.abc import Callable, Mapping
from typing import Any

from helmshift.exceptions import ReleaseError, ReleaseNotFoundError
from helmshift.releases.interface import Release, ReleaseClient, ReleaseStatus

RenderCheck = Callable[[str, str, Mapping[str, Any]], None]


class InMemoryReleaseClient(ReleaseClient):
    """
    In-memory implementation of the release client.

    A ``render_check`` callable stands in for template rendering and schema
    validation: it receives (name, chart, values) on every install or
    upgrade, dry run included, and raises to reject the values.

    Attributes:
        calls: Ordered record of (operation, release name, dry_run) tuples
        renders: Every (name, chart, values) submitted, dry runs included
    """

    def __init__(self, *, render_check: RenderCheck | None = None) -> None:
        self._releases: dict[tuple[str, str], Release] = {}
        self._failures: dict[str, list[Exception]] = defaultdict(list)
        self._render_check = render_check
        self._lock = asyncio.Lock()
        self.calls: list[tuple[str, str, bool]] = []
        self.renders: list[tuple[str, str, dict[str, Any]]] = []

    def add_release(self, release: Release) -> None:
        """Seed an existing release."""
        self._releases[(release.namespace, release.name)] = release

    def get_release(self, name: str, namespace: str) -> Release | None:
        """Read a release without recording a call."""
        return self._releases.get((namespace, name))

    def fail_next(self, operation: str, error: Exception) -> None:
        """Make the next ``operation`` ("install", "upgrade", ...) raise ``error``."""
        self._failures[operation].append(error)

    def _record(self, operation: str, name: str, dry_run: bool = False) -> None:
        self.calls.append((operation, name, dry_run))
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _render(self, name: str, chart: str, values: Mapping[str, Any]) -> dict[str, Any]:
        rendered = copy.deepcopy(dict(values))
        self.renders.append((name, chart, rendered))
        if self._render_check is not None:
            try:
                self._render_check(name, chart, rendered)
            except ReleaseError:
                raise
            except Exception as e:
                raise ReleaseError(name, f"rendering failed: {e}") from e
        return rendered

    async def get(self, name: str, namespace: str) -> Release:
        async with self._lock:
            self._record("get", name)
            release = self._releases.get((namespace, name))
            if release is None:
                raise ReleaseNotFoundError(name, namespace)
            return release

    async def install(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        async with self._lock:
            self._record("install", name, dry_run)
            if (namespace, name) in self._releases:
                raise ReleaseError(name, "cannot re-use a name that is still in use")
            rendered = self._render(name, chart, values)
            release = Release(
                name=name,
                namespace=namespace,
                chart=chart,
                values=rendered,
                revision=0 if dry_run else 1,
                dry_run=dry_run,
            )
            if not dry_run:
                self._releases[(namespace, name)] = release
            return release

    async def upgrade(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        async with self._lock:
            self._record("upgrade", name, dry_run)
            current = self._releases.get((namespace, name))
            if current is None:
                raise ReleaseNotFoundError(name, namespace)
            rendered = self._render(name, chart, values)
            release = Release(
                name=name,
                namespace=namespace,
                chart=chart,
                values=rendered,
                revision=current.revision + (0 if dry_run else 1),
                status=ReleaseStatus.DEPLOYED,
                dry_run=dry_run,
            )
            if not dry_run:
                self._releases[(namespace, name)] = release
            return release

    async def uninstall(self, name: str, namespace: str) -> None:
        async with self._lock:
            self._record("uninstall", name)
            if self._releases.pop((namespace, name), None) is None:
                raise ReleaseNotFoundError(name, namespace)


__all__ = ["InMemoryReleaseClient"]
