"""
Unit tests for SpecTranslator.

Tests cover:
- Field-by-field translation rules
- Omission of absent optional fields
- Legacy environment rewrite
- Caller overrides
- Determinism of the produced values
"""

import pytest

from helmshift.migration.artifacts import SecretMaterial
from helmshift.migration.descriptor import InstanceDescriptor, RegistryConfiguration
from helmshift.migration.exceptions import TranslationError
from helmshift.migration.profiles import ALERT_PROFILE
from helmshift.migration.translator import SpecTranslator, parse_environs
from helmshift.migration.values import ValuesTree


@pytest.fixture
def translator() -> SpecTranslator:
    return SpecTranslator(ALERT_PROFILE)


def make_descriptor(**fields) -> InstanceDescriptor:
    fields.setdefault("name", "x")
    fields.setdefault("namespace", "alert-ns")
    return InstanceDescriptor(**fields)


# =============================================================================
# Field rules
# =============================================================================


class TestFieldRules:
    """Tests for individual translation rules."""

    def test_minimal_descriptor(self, translator):
        values = translator.translate(make_descriptor(version="4.2.0"))

        assert values.to_dict() == {
            "alert": {"imageTag": "4.2.0"},
            "enablePersistentStorage": False,
        }

    def test_target_version_replaces_declared_version(self, translator):
        values = translator.translate(make_descriptor(version="4.2.0"), target_version="5.2.0")

        assert values.get("alert.imageTag") == "5.2.0"

    @pytest.mark.parametrize(
        ("mode", "service_type"),
        [("NODEPORT", "NodePort"), ("LoadBalancer", "LoadBalancer")],
    )
    def test_exposed_service_type(self, translator, mode, service_type):
        values = translator.translate(make_descriptor(expose_service=mode))

        assert values.get("exposedServiceType") == service_type
        assert values.get("exposeui") is False

    def test_exposure_none_writes_only_exposeui(self, translator):
        values = translator.translate(make_descriptor(expose_service="NONE"))

        assert not values.has("exposedServiceType")
        assert values.get("exposeui") is False

    def test_unknown_exposure_mode(self, translator):
        with pytest.raises(TranslationError) as exc_info:
            translator.translate(make_descriptor(expose_service="INGRESS"))

        assert exc_info.value.field == "exposeService"
        assert exc_info.value.stage == "translate"

    def test_standalone_and_port(self, translator):
        values = translator.translate(make_descriptor(standalone=False, port=8443))

        assert values.get("enableStandalone") is False
        assert values.get("alert.port") == 8443

    def test_encryption_secret_data(self, translator):
        values = translator.translate(
            make_descriptor(encryption_password="pw", encryption_global_salt="salt")
        )

        assert values.get("setEncryptionSecretData") is True
        assert values.get("alertEncryptionPassword") == "pw"
        assert values.get("alertEncryptionGlobalSalt") == "salt"

    def test_persistent_storage_fields(self, translator):
        values = translator.translate(
            make_descriptor(
                persistent_storage=True,
                pvc_name="custom-pvc",
                pvc_storage_class="fast",
                pvc_size="10Gi",
            )
        )

        assert values.get("enablePersistentStorage") is True
        assert values.get("persistentVolumeClaimName") == "custom-pvc"
        assert values.get("storageClassName") == "fast"
        assert values.get("pvcSize") == "10Gi"

    def test_storage_fields_ignored_without_persistence(self, translator):
        values = translator.translate(make_descriptor(pvc_size="10Gi"))

        assert not values.has("pvcSize")

    def test_memory_sets_limits_and_requests(self, translator):
        values = translator.translate(make_descriptor(alert_memory="2560M", cfssl_memory="640M"))

        assert values.get("alert.resources") == {
            "limits": {"memory": "2560M"},
            "requests": {"memory": "2560M"},
        }
        assert values.get("cfssl.resources.requests.memory") == "640M"

    @pytest.mark.parametrize(("state", "status"), [("stopped", "Stopped"), ("Running", "Running")])
    def test_desired_state(self, translator, state, status):
        values = translator.translate(make_descriptor(desired_state=state))

        assert values.get("status") == status

    def test_registry_configuration(self, translator):
        registry = RegistryConfiguration(registry="registry.local", pull_secrets=["pull"])

        values = translator.translate(make_descriptor(registry_configuration=registry))

        assert values.get("registry") == "registry.local"
        assert values.get("imagePullSecrets") == ["pull"]

    def test_secret_names_follow_material(self, translator):
        material = SecretMaterial(certificate=b"cert", certificate_key=b"key", java_keystore=b"ks")

        values = translator.translate(make_descriptor(), material=material)

        assert values.get("webserverCustomCertificatesSecretName") == "alert-custom-certificate"
        assert values.get("javaKeystoreSecretName") == "alert-java-keystore"

    def test_embedded_material_is_used_by_default(self, translator):
        values = translator.translate(make_descriptor(java_keystore="ks"))

        assert values.get("javaKeystoreSecretName") == "alert-java-keystore"
        assert not values.has("webserverCustomCertificatesSecretName")


# =============================================================================
# Environment entries
# =============================================================================


class TestEnvirons:
    """Tests for environment entry parsing and legacy rewrite."""

    def test_split_on_first_colon(self):
        assert parse_environs(["URL:http://host:8080", "EMPTY:"]) == {
            "URL": "http://host:8080",
            "EMPTY": "",
        }

    @pytest.mark.parametrize("entry", ["NO_COLON", ":value", "  :value"])
    def test_malformed_entries(self, entry):
        with pytest.raises(TranslationError) as exc_info:
            parse_environs([entry])

        assert exc_info.value.field == "environs"

    def test_legacy_keys_rewritten_for_recent_target(self, translator):
        descriptor = make_descriptor(
            environs=[
                "PUBLIC_HUB_WEBSERVER_HOST:alert.example.com",
                "PUBLIC_HUB_WEBSERVER_PORT:443",
            ]
        )

        values = translator.translate(descriptor, target_version="5.0.0")

        assert values.get("environs") == {
            "ALERT_HOSTNAME": "alert.example.com",
            "ALERT_SERVER_PORT": "443",
        }

    def test_canonical_key_is_never_overwritten(self, translator):
        descriptor = make_descriptor(
            environs=[
                "PUBLIC_HUB_WEBSERVER_HOST:legacy.example.com",
                "ALERT_HOSTNAME:new.example.com",
            ]
        )

        values = translator.translate(descriptor, target_version="6.0.0")

        assert values.get("environs") == {"ALERT_HOSTNAME": "new.example.com"}

    def test_no_rewrite_for_old_target(self, translator):
        descriptor = make_descriptor(environs=["PUBLIC_HUB_WEBSERVER_HOST:alert.example.com"])

        values = translator.translate(descriptor, target_version="4.9.9")

        assert values.get("environs") == {"PUBLIC_HUB_WEBSERVER_HOST": "alert.example.com"}

    def test_no_rewrite_without_target(self, translator):
        descriptor = make_descriptor(environs=["PUBLIC_HUB_WEBSERVER_HOST:alert.example.com"])

        values = translator.translate(descriptor)

        assert values.has("environs.PUBLIC_HUB_WEBSERVER_HOST")

    def test_rewrite_reports_change(self, translator):
        values = ValuesTree(ALERT_PROFILE)
        assert translator.rewrite_legacy_environs(values, "5.0.0") is False

        values.set("environs.PUBLIC_HUB_WEBSERVER_PORT", "8443")
        assert translator.rewrite_legacy_environs(values, "5.0.0") is True


# =============================================================================
# Overrides and determinism
# =============================================================================


class TestOverrides:
    """Tests for caller overrides."""

    def test_override_wins_over_translation(self, translator):
        values = translator.translate(
            make_descriptor(version="4.2.0"),
            overrides={"alert.imageTag": "5.0.0-SNAPSHOT", "environs.EXTRA": "1"},
        )

        assert values.get("alert.imageTag") == "5.0.0-SNAPSHOT"
        assert values.get("environs.EXTRA") == "1"

    def test_unknown_override_is_rejected(self, translator):
        with pytest.raises(TranslationError) as exc_info:
            translator.translate(make_descriptor(), overrides={"alert.imagetag": "5.0.0"})

        error = exc_info.value
        assert error.field == "alert.imagetag"
        assert "supported values key" in error.suggested_action

    def test_legacy_override_is_rewritten(self, translator):
        values = translator.translate(
            make_descriptor(),
            target_version="5.1.0",
            overrides={"environs.PUBLIC_HUB_WEBSERVER_HOST": "override.example.com"},
        )

        assert values.get("environs") == {"ALERT_HOSTNAME": "override.example.com"}


class TestDeterminism:
    """Translating the same input always yields the same bytes."""

    def test_repeated_translation(self, translator):
        descriptor = make_descriptor(
            version="4.2.0",
            persistent_storage=True,
            expose_service="NODEPORT",
            environs=["B:2", "A:1", "PUBLIC_HUB_WEBSERVER_HOST:h"],
            alert_memory="2560M",
            encryption_password="pw",
        )

        first = translator.translate(descriptor, target_version="5.0.0")
        second = translator.translate(descriptor, target_version="5.0.0")

        assert first.canonical_bytes() == second.canonical_bytes()
