"""
Translation of an operator-managed instance spec into release values.

Absent or zero-valued optional fields are omitted from the result, except
``enablePersistentStorage`` which is always written. The output depends
only on the inputs: translating the same descriptor twice produces trees
with identical canonical bytes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from helmshift.migration.artifacts import SecretMaterial
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import TranslationError
from helmshift.migration.profiles import ProductProfile
from helmshift.migration.values import SchemaViolation, ValuesTree
from helmshift.migration.versions import Version, is_at_least

logger = logging.getLogger(__name__)

# exposure mode -> exposedServiceType (None: only exposeui is written)
EXPOSURE_SERVICE_TYPES: dict[str, str | None] = {
    "NODEPORT": "NodePort",
    "LOADBALANCER": "LoadBalancer",
    "NONE": None,
}


def parse_environs(entries: list[str]) -> dict[str, str]:
    """
    Split ``KEY:VALUE`` entries on the first colon.

    Raises:
        TranslationError: If an entry has no colon or an empty key.
    """
    environs: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition(":")
        if not sep or not key.strip():
            raise TranslationError(
                f"Environment entry {entry!r} is not of the form KEY:VALUE",
                field="environs",
            )
        environs[key.strip()] = value
    return environs


class SpecTranslator:
    """
    Builds a ValuesTree from an InstanceDescriptor.

    Args:
        profile: Product profile supplying the key schema and secret names.
    """

    def __init__(self, profile: ProductProfile) -> None:
        self._profile = profile

    def translate(
        self,
        descriptor: InstanceDescriptor,
        *,
        target_version: str | None = None,
        material: SecretMaterial | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> ValuesTree:
        """
        Translate a descriptor into release values.

        Args:
            descriptor: The instance to translate.
            target_version: Replaces the declared version in ``alert.imageTag``
                and enables the legacy environment rewrite when recent enough.
            material: Resolved secret material; defaults to the descriptor's own.
            overrides: Dotted key paths applied on top of the translation.

        Raises:
            TranslationError: On a missing companion field, a malformed
                environment entry, an unknown exposure mode or an override
                outside the values schema.
        """
        if material is None:
            material = SecretMaterial.resolve(descriptor)

        values = ValuesTree(self._profile)
        try:
            self._translate_fields(descriptor, values, target_version, material)
        except SchemaViolation as e:
            raise TranslationError(str(e), field=e.path) from e

        if overrides:
            self.apply_overrides(values, overrides)

        if target_version is not None:
            self.rewrite_legacy_environs(values, target_version)

        logger.debug(
            "Translated %s %s into %d values keys",
            self._profile.kind,
            descriptor.name,
            len(list(values.paths())),
        )
        return values

    def _translate_fields(
        self,
        descriptor: InstanceDescriptor,
        values: ValuesTree,
        target_version: str | None,
        material: SecretMaterial,
    ) -> None:
        version = target_version or descriptor.version
        if version:
            values.set("alert.imageTag", version)

        if descriptor.expose_service:
            mode = descriptor.expose_service.upper()
            if mode not in EXPOSURE_SERVICE_TYPES:
                raise TranslationError(
                    f"Unknown exposure mode {descriptor.expose_service!r}; "
                    f"expected one of {', '.join(EXPOSURE_SERVICE_TYPES)}",
                    field="exposeService",
                )
            service_type = EXPOSURE_SERVICE_TYPES[mode]
            if service_type is not None:
                values.set("exposedServiceType", service_type)
            values.set("exposeui", False)

        if descriptor.standalone is not None:
            values.set("enableStandalone", descriptor.standalone)

        if descriptor.port is not None:
            values.set("alert.port", descriptor.port)

        if descriptor.encryption_password:
            values.set("setEncryptionSecretData", True)
            values.set("alertEncryptionPassword", descriptor.encryption_password)

        if descriptor.encryption_global_salt:
            values.set("setEncryptionSecretData", True)
            values.set("alertEncryptionGlobalSalt", descriptor.encryption_global_salt)

        values.set("enablePersistentStorage", descriptor.persistent_storage)
        if descriptor.persistent_storage:
            if descriptor.pvc_name:
                values.set("persistentVolumeClaimName", descriptor.pvc_name)
            if descriptor.pvc_storage_class:
                values.set("storageClassName", descriptor.pvc_storage_class)
            if descriptor.pvc_size:
                values.set("pvcSize", descriptor.pvc_size)

        for container, memory in (
            ("alert", descriptor.alert_memory),
            ("cfssl", descriptor.cfssl_memory),
        ):
            if memory:
                values.set(f"{container}.resources.limits.memory", memory)
                values.set(f"{container}.resources.requests.memory", memory)

        if descriptor.environs:
            for key, value in parse_environs(descriptor.environs).items():
                values.set(f"environs.{key}", value)

        if descriptor.desired_state:
            values.set("status", "Stopped" if descriptor.is_stopped else "Running")

        registry = descriptor.registry_configuration
        if registry is not None:
            if registry.registry:
                values.set("registry", registry.registry)
            if registry.pull_secrets:
                values.set("imagePullSecrets", list(registry.pull_secrets))

        for spec, _ in material.secrets(self._profile):
            values.set(spec.values_key, spec.name)

    def apply_overrides(self, values: ValuesTree, overrides: Mapping[str, Any]) -> None:
        """
        Apply caller overrides, in sorted key order.

        Raises:
            TranslationError: If a key path is outside the values schema.
        """
        for path in sorted(overrides):
            try:
                values.set(path, overrides[path])
            except SchemaViolation as e:
                raise TranslationError(
                    f"Override {e}",
                    field=e.path,
                    suggested_action="Remove the override or use a supported values key",
                ) from e

    def rewrite_legacy_environs(self, values: ValuesTree, target_version: str) -> bool:
        """
        Move legacy environment keys to their canonical names.

        Only for targets at or above the profile's rewrite threshold. A
        canonical key that is already set is never overwritten; legacy keys
        are always removed.

        Returns:
            True if any legacy key was present.
        """
        threshold: Version = self._profile.legacy_rewrite_version
        if not is_at_least(target_version, threshold):
            return False

        changed = False
        for legacy, canonical in self._profile.legacy_environs:
            legacy_path = f"environs.{legacy}"
            if not values.has(legacy_path):
                continue
            canonical_path = f"environs.{canonical}"
            if not values.has(canonical_path):
                values.set(canonical_path, values.get(legacy_path))
            else:
                logger.info(
                    "Keeping %s; dropping legacy %s for version %s",
                    canonical,
                    legacy,
                    target_version,
                )
            values.delete(legacy_path)
            changed = True
        return changed


__all__ = [
    "EXPOSURE_SERVICE_TYPES",
    "SpecTranslator",
    "parse_environs",
]
