"""
Unit tests for MigrationCoordinator.

Tests cover:
- Dispatch between in-place update and migration
- The update pipeline against an existing release
"""

import base64
from unittest.mock import MagicMock, patch

import pytest

from helmshift.exceptions import ClusterError, ReleaseError
from helmshift.migration import (
    MigrationCoordinator,
    MigrationMode,
    MigrationRequest,
    MigrationSettings,
    ReleaseUpdateFailedError,
)
from helmshift.releases import Release
from tests.fixtures import CERTIFICATE, CERTIFICATE_KEY, INSTANCE_NAMESPACE

OLD_CHART = "https://charts.example.com/charts/alert-helmchart-5.0.0.tgz"


@pytest.fixture
def existing_release(releases) -> Release:
    release = Release(
        name="x-alert",
        namespace=INSTANCE_NAMESPACE,
        chart=OLD_CHART,
        values={
            "alert": {"imageTag": "5.0.0"},
            "environs": {"PUBLIC_HUB_WEBSERVER_HOST": "alert.example.com"},
            "handEdited": {"key": "kept"},
        },
    )
    releases.add_release(release)
    return release


# =============================================================================
# Dispatch
# =============================================================================


class TestUpdateDispatch:
    """Tests for choosing between update and migrate."""

    @pytest.mark.asyncio
    async def test_existing_release_is_updated_in_place(
        self, coordinator, existing_release, seeded_cluster
    ):
        seeded_cluster.calls.clear()

        result = await coordinator.update(
            MigrationRequest("x", target_version="5.2.0", namespace=INSTANCE_NAMESPACE)
        )

        assert result.succeeded, result.error
        assert result.mode == MigrationMode.UPDATE
        assert result.completed_stages == [
            "version_gate",
            "load_release",
            "translate",
            "write_secrets",
            "upgrade_release",
        ]
        # the operator-managed objects are not touched
        assert seeded_cluster.mutating_calls == []

    @pytest.mark.asyncio
    async def test_without_release_migrates(self, coordinator, releases):
        result = await coordinator.update(
            MigrationRequest("x", target_version="5.2.0", namespace=INSTANCE_NAMESPACE)
        )

        assert result.succeeded, result.error
        assert result.mode == MigrationMode.MIGRATE
        assert "cutover" in result.completed_stages
        assert releases.get_release("x-alert", INSTANCE_NAMESPACE) is not None

    @pytest.mark.asyncio
    async def test_without_namespace_migrates(self, coordinator, existing_release):
        result = await coordinator.update(MigrationRequest("x", target_version="5.2.0"))

        assert result.mode == MigrationMode.MIGRATE

    @pytest.mark.asyncio
    async def test_migration_requires_target_version(self, coordinator, seeded_cluster):
        result = await coordinator.update(MigrationRequest("x", namespace=INSTANCE_NAMESPACE))

        assert result.failed_stage == "version_gate"
        assert seeded_cluster.mutating_calls == []


# =============================================================================
# Update pipeline
# =============================================================================


class TestUpdatePipeline:
    """Tests for upgrading an existing release."""

    @pytest.mark.asyncio
    async def test_version_and_chart_change(self, coordinator, releases, existing_release):
        await coordinator.update(
            MigrationRequest("x", target_version="5.2.0", namespace=INSTANCE_NAMESPACE)
        )

        release = releases.get_release("x-alert", INSTANCE_NAMESPACE)
        assert release.revision == 2
        assert release.chart == "https://charts.example.com/charts/alert-helmchart-5.2.0.tgz"
        assert release.values["alert"]["imageTag"] == "5.2.0"
        assert release.values["handEdited"] == {"key": "kept"}
        assert release.values["environs"] == {"ALERT_HOSTNAME": "alert.example.com"}

    @pytest.mark.asyncio
    async def test_without_version_keeps_chart(self, coordinator, releases, existing_release):
        result = await coordinator.update(
            MigrationRequest(
                "x", namespace=INSTANCE_NAMESPACE, overrides={"environs.EXTRA": "1"}
            )
        )

        assert result.succeeded, result.error
        release = releases.get_release("x-alert", INSTANCE_NAMESPACE)
        assert release.chart == OLD_CHART
        assert release.values["alert"]["imageTag"] == "5.0.0"
        assert release.values["environs"]["EXTRA"] == "1"
        # no target version, no rewrite
        assert "PUBLIC_HUB_WEBSERVER_HOST" in release.values["environs"]

    @pytest.mark.asyncio
    async def test_old_target_version_is_rejected(self, coordinator, releases, existing_release):
        result = await coordinator.update(
            MigrationRequest("x", target_version="4.0.0", namespace=INSTANCE_NAMESPACE)
        )

        assert result.failed_stage == "version_gate"
        assert releases.get_release("x-alert", INSTANCE_NAMESPACE).revision == 1

    @pytest.mark.asyncio
    async def test_certificate_is_written(
        self, coordinator, seeded_cluster, releases, existing_release
    ):
        await coordinator.update(
            MigrationRequest(
                "x",
                namespace=INSTANCE_NAMESPACE,
                certificate=CERTIFICATE.encode(),
                certificate_key=CERTIFICATE_KEY.encode(),
            )
        )

        secret = seeded_cluster.get_object(
            "Secret", "alert-custom-certificate", INSTANCE_NAMESPACE
        )
        assert base64.b64decode(secret["data"]["WEBSERVER_CUSTOM_CERT_FILE"]) == (
            CERTIFICATE.encode()
        )
        assert secret["metadata"]["labels"] == {"app": "alert", "name": "x-alert"}
        values = releases.get_release("x-alert", INSTANCE_NAMESPACE).values
        assert values["webserverCustomCertificatesSecretName"] == "alert-custom-certificate"

    @pytest.mark.asyncio
    async def test_secret_failure(self, coordinator, seeded_cluster, releases, existing_release):
        seeded_cluster.fail_next("get_secret", ClusterError("forbidden", status=403))

        result = await coordinator.update(
            MigrationRequest("x", namespace=INSTANCE_NAMESPACE, java_keystore=b"ks")
        )

        assert isinstance(result.error, ReleaseUpdateFailedError)
        assert result.failed_stage == "write_secrets"
        assert releases.get_release("x-alert", INSTANCE_NAMESPACE).revision == 1

    @pytest.mark.asyncio
    async def test_upgrade_failure(self, coordinator, releases, existing_release):
        releases.fail_next("upgrade", ReleaseError("x-alert", "another operation is in progress"))

        result = await coordinator.update(
            MigrationRequest("x", target_version="5.2.0", namespace=INSTANCE_NAMESPACE)
        )

        assert isinstance(result.error, ReleaseUpdateFailedError)
        assert result.failed_stage == "upgrade_release"
        assert result.safe_to_retry is True

    @pytest.mark.asyncio
    async def test_unknown_override(self, coordinator, releases, existing_release):
        result = await coordinator.update(
            MigrationRequest("x", namespace=INSTANCE_NAMESPACE, overrides={"bogus": 1})
        )

        assert result.failed_stage == "translate"
        assert result.error.field == "bogus"


# =============================================================================
# Construction
# =============================================================================


class TestConnect:
    """Tests for MigrationCoordinator.connect."""

    def test_builds_real_clients(self):
        settings = MigrationSettings(kubeconfig_path="/tmp/kubeconfig", helm_binary="/usr/bin/helm")
        cluster = MagicMock()

        with patch(
            "helmshift.migration.coordinator.KubernetesCluster.from_config", return_value=cluster
        ) as from_config:
            coordinator = MigrationCoordinator.connect(settings, enable_tracing=False)

        from_config.assert_called_once_with("/tmp/kubeconfig")
        assert coordinator.context.cluster is cluster
        assert coordinator.context.settings is settings
        assert not coordinator.context.tracer.enabled
