"""
Release client that drives the ``helm`` (v3) command-line binary.

Values are never passed with ``--set``: they are written to a temporary
YAML file and handed over with ``--values`` so nested maps, lists and
booleans keep their types.

Example:
    >>> helm = HelmCLI(kubeconfig_path="~/.kube/config", timeout_seconds=300)
    >>> release = await helm.install(
    ...     "prod-alert", "alert-ns", "https://example.com/charts/alert-6.0.0.tgz",
    ...     {"alert": {"imageTag": "6.0.0"}},
    ...     dry_run=True,
    ... )
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Mapping, Sequence
from typing import Any

import yaml

from helmshift.exceptions import ReleaseError, ReleaseNotFoundError
from helmshift.observability import (
    ATTR_DRY_RUN,
    ATTR_NAMESPACE,
    ATTR_RELEASE_NAME,
    Tracer,
    create_tracer,
    traced,
)
from helmshift.releases.interface import Release, ReleaseClient, ReleaseStatus

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("release: not found",)


class HelmCLI(ReleaseClient):
    """
    ReleaseClient backed by the helm binary.

    Args:
        binary: Path or name of the helm executable.
        kubeconfig_path: Passed as ``--kubeconfig`` when set.
        timeout_seconds: Passed as ``--timeout`` to install and upgrade.
        tracer: Optional custom Tracer instance.
        enable_tracing: Whether to enable OpenTelemetry tracing.
    """

    def __init__(
        self,
        *,
        binary: str = "helm",
        kubeconfig_path: str | None = None,
        timeout_seconds: int = 300,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._binary = binary
        self._kubeconfig_path = kubeconfig_path
        self._timeout_seconds = timeout_seconds

    async def _run(self, args: Sequence[str], *, release_name: str) -> str:
        """Run helm and return stdout; non-zero exit raises ReleaseError."""
        cmd = [self._binary, *args]
        if self._kubeconfig_path:
            cmd += ["--kubeconfig", self._kubeconfig_path]
        logger.info("helm> %s", " ".join(cmd))

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if stderr:
            logger.debug("helm stderr: %s", stderr[:800])
        if process.returncode != 0:
            message = stderr.strip() or f"helm exited with code {process.returncode}"
            raise ReleaseError(release_name, message[:500])
        return stdout

    @staticmethod
    def _is_not_found(error: ReleaseError) -> bool:
        text = str(error).lower()
        return any(marker in text for marker in _NOT_FOUND_MARKERS)

    def _parse_release(
        self,
        output: str,
        *,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        dry_run: bool,
    ) -> Release:
        try:
            data = json.loads(output) if output.strip() else {}
        except json.JSONDecodeError:
            data = {}
        return Release(
            name=name,
            namespace=namespace,
            chart=chart,
            values=dict(values),
            revision=int(data.get("version", 0 if dry_run else 1)),
            status=ReleaseStatus.parse((data.get("info") or {}).get("status")),
            dry_run=dry_run,
        )

    async def _submit(
        self,
        verb: str,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        dry_run: bool,
    ) -> Release:
        with self._tracer.span(
            f"helmshift.helm.{verb}",
            {ATTR_RELEASE_NAME: name, ATTR_NAMESPACE: namespace, ATTR_DRY_RUN: dry_run},
        ):
            fd, values_path = tempfile.mkstemp(prefix=f"{name}-", suffix=".yaml")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    yaml.safe_dump(dict(values), handle, default_flow_style=False)
                args = [
                    verb,
                    name,
                    chart,
                    "--namespace",
                    namespace,
                    "--values",
                    values_path,
                    "--timeout",
                    f"{self._timeout_seconds}s",
                    "--output",
                    "json",
                ]
                if dry_run:
                    args.append("--dry-run")
                output = await self._run(args, release_name=name)
            finally:
                os.unlink(values_path)
        return self._parse_release(
            output,
            name=name,
            namespace=namespace,
            chart=chart,
            values=values,
            dry_run=dry_run,
        )

    async def get(self, name: str, namespace: str) -> Release:
        try:
            status_out = await self._run(
                ["status", name, "--namespace", namespace, "--output", "json"],
                release_name=name,
            )
            values_out = await self._run(
                ["get", "values", name, "--namespace", namespace, "--output", "json"],
                release_name=name,
            )
        except ReleaseError as e:
            if self._is_not_found(e):
                raise ReleaseNotFoundError(name, namespace) from e
            raise

        status = json.loads(status_out) if status_out.strip() else {}
        metadata = (status.get("chart") or {}).get("metadata") or {}
        chart = "-".join(part for part in (metadata.get("name"), metadata.get("version")) if part)
        values = json.loads(values_out) if values_out.strip() else None
        return Release(
            name=name,
            namespace=namespace,
            chart=chart,
            values=values or {},
            revision=int(status.get("version", 1)),
            status=ReleaseStatus.parse((status.get("info") or {}).get("status")),
        )

    async def install(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        return await self._submit("install", name, namespace, chart, values, dry_run)

    async def upgrade(
        self,
        name: str,
        namespace: str,
        chart: str,
        values: Mapping[str, Any],
        *,
        dry_run: bool = False,
    ) -> Release:
        return await self._submit("upgrade", name, namespace, chart, values, dry_run)

    @traced("helmshift.helm.uninstall")
    async def uninstall(self, name: str, namespace: str) -> None:
        try:
            await self._run(["uninstall", name, "--namespace", namespace], release_name=name)
        except ReleaseError as e:
            if self._is_not_found(e):
                raise ReleaseNotFoundError(name, namespace) from e
            raise


__all__ = ["HelmCLI"]
