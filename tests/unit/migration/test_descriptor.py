"""
Unit tests for InstanceDescriptor.
"""

import pytest
from pydantic import ValidationError

from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import TranslationError
from tests.fixtures import alert_manifest


class TestFromCustomResource:
    """Tests for parsing a custom resource manifest."""

    def test_basic_fields(self):
        descriptor = InstanceDescriptor.from_custom_resource(
            alert_manifest(
                exposeService="NODEPORT",
                standAlone=True,
                pvcName="x-pvc",
                environs=["A:1"],
                registryConfiguration={"registry": "r.local", "pullSecrets": ["s"]},
            )
        )

        assert descriptor.name == "x"
        assert descriptor.namespace == "alert-ns"
        assert descriptor.version == "4.2.0"
        assert descriptor.persistent_storage is True
        assert descriptor.status_state == "Running"
        assert descriptor.expose_service == "NODEPORT"
        assert descriptor.standalone is True
        assert descriptor.pvc_name == "x-pvc"
        assert descriptor.environs == ["A:1"]
        assert descriptor.registry_configuration.pull_secrets == ["s"]

    def test_spec_namespace_falls_back_to_metadata(self):
        manifest = alert_manifest()
        del manifest["spec"]["namespace"]

        descriptor = InstanceDescriptor.from_custom_resource(manifest)

        assert descriptor.namespace == "alert-ns"

    def test_resource_namespace_may_differ(self):
        manifest = alert_manifest()
        manifest["metadata"]["namespace"] = "default"

        descriptor = InstanceDescriptor.from_custom_resource(manifest)

        assert descriptor.namespace == "alert-ns"
        assert descriptor.custom_resource_namespace == "default"

    def test_unknown_spec_keys_are_ignored(self):
        descriptor = InstanceDescriptor.from_custom_resource(alert_manifest(somethingNew="value"))

        assert descriptor.name == "x"

    def test_missing_status(self):
        descriptor = InstanceDescriptor.from_custom_resource(alert_manifest(state=None))

        assert descriptor.status_state is None

    def test_invalid_port_raises_translation_error(self):
        with pytest.raises(TranslationError) as exc_info:
            InstanceDescriptor.from_custom_resource(alert_manifest(port=70000))

        error = exc_info.value
        assert error.field == "port"
        assert error.stage == "load_instance"
        assert error.instance_name == "x"

    def test_descriptor_is_frozen(self):
        descriptor = InstanceDescriptor.from_custom_resource(alert_manifest())

        with pytest.raises(ValidationError):
            descriptor.version = "5.0.0"


class TestStateHelpers:
    """Tests for is_stopped."""

    @pytest.mark.parametrize(
        ("state", "expected"),
        [("STOPPED", True), ("Stopped", True), ("Running", False), (None, False)],
    )
    def test_is_stopped(self, state, expected):
        descriptor = InstanceDescriptor(name="x", namespace="ns", desired_state=state)

        assert descriptor.is_stopped is expected
