"""
Read-only view of an operator-managed instance.

The descriptor is parsed from the custom resource manifest once, at the
start of a migration, and never written back.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from helmshift.cluster import Manifest
from helmshift.migration.exceptions import TranslationError


class RegistryConfiguration(BaseModel):
    """Private registry and image pull secrets for an instance."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    registry: str | None = Field(default=None, description="Image registry host")
    pull_secrets: list[str] = Field(
        default_factory=list,
        alias="pullSecrets",
        description="Names of image pull secrets",
    )


class InstanceDescriptor(BaseModel):
    """
    Operator-managed instance as declared in its custom resource.

    Field aliases match the custom resource's camelCase spec keys, so a
    spec mapping validates directly.

    Example:
        >>> descriptor = InstanceDescriptor.from_custom_resource({
        ...     "metadata": {"name": "x", "namespace": "ns"},
        ...     "spec": {"namespace": "ns", "version": "4.2.0", "persistentStorage": True},
        ... })
        >>> descriptor.persistent_storage
        True
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    # Identity
    name: str = Field(..., min_length=1, description="Instance (custom resource) name")
    namespace: str = Field(
        ...,
        min_length=1,
        description="Namespace the instance's workloads run in",
    )
    resource_namespace: str | None = Field(
        default=None,
        description="Namespace the custom resource itself is stored in",
    )

    # Version and run state
    version: str | None = Field(default=None, description="Declared product version")
    desired_state: str | None = Field(
        default=None,
        alias="desiredState",
        description="Requested run state (Running/Stopped)",
    )
    status_state: str | None = Field(
        default=None,
        description="Run state last reported by the operator",
    )

    # Storage
    persistent_storage: bool = Field(default=False, alias="persistentStorage")
    pvc_name: str | None = Field(default=None, alias="pvcName")
    pvc_storage_class: str | None = Field(default=None, alias="pvcStorageClass")
    pvc_size: str | None = Field(default=None, alias="pvcSize")

    # Networking
    expose_service: str | None = Field(default=None, alias="exposeService")
    standalone: bool | None = Field(default=None, alias="standAlone")
    port: int | None = Field(default=None, ge=1, le=65535)

    # Sizing and environment
    alert_memory: str | None = Field(default=None, alias="alertMemory")
    cfssl_memory: str | None = Field(default=None, alias="cfsslMemory")
    environs: list[str] = Field(
        default_factory=list,
        description="Environment overrides as KEY:VALUE strings",
    )
    registry_configuration: RegistryConfiguration | None = Field(
        default=None, alias="registryConfiguration"
    )

    # Secret material
    encryption_password: str | None = Field(default=None, alias="encryptionPassword")
    encryption_global_salt: str | None = Field(default=None, alias="encryptionGlobalSalt")
    certificate: str | None = Field(default=None, description="PEM TLS certificate")
    certificate_key: str | None = Field(
        default=None, alias="certificateKey", description="PEM TLS private key"
    )
    java_keystore: str | None = Field(
        default=None, alias="javaKeyStore", description="Java keystore contents"
    )

    @property
    def is_stopped(self) -> bool:
        """True when the desired state is STOPPED (case-insensitive)."""
        return (self.desired_state or "").upper() == "STOPPED"

    @property
    def custom_resource_namespace(self) -> str:
        """Namespace to address the custom resource in."""
        return self.resource_namespace or self.namespace

    @classmethod
    def from_custom_resource(cls, manifest: Manifest) -> InstanceDescriptor:
        """
        Build a descriptor from a custom resource manifest.

        ``spec.namespace`` falls back to the resource's own namespace.

        Raises:
            TranslationError: If the spec does not validate.
        """
        metadata = manifest.get("metadata") or {}
        spec: dict[str, Any] = dict(manifest.get("spec") or {})
        status = manifest.get("status") or {}

        data: dict[str, Any] = {
            **spec,
            "name": metadata.get("name"),
            "namespace": spec.get("namespace") or metadata.get("namespace"),
            "resource_namespace": metadata.get("namespace"),
            "status_state": status.get("state"),
        }
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ()))
            raise TranslationError(
                f"Invalid {manifest.get('kind', 'instance')} spec: {first.get('msg')}",
                field=field or None,
                instance_name=metadata.get("name"),
                namespace=metadata.get("namespace"),
                stage="load_instance",
            ) from e


__all__ = [
    "InstanceDescriptor",
    "RegistryConfiguration",
]
