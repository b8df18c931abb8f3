"""
Per-product migration profiles.

A profile holds everything product-specific the stages need: where the
custom resources live, how objects are labelled, how the release and its
chart are named, which secrets carry TLS and keystore material, and the
schema of accepted values key paths.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from helmshift.cluster import CustomResourceType
from helmshift.migration.versions import Version

SYNOPSYS_GROUP = "synopsys.com"

ALERT_RESOURCE = CustomResourceType(
    group=SYNOPSYS_GROUP, version="v1", plural="alerts", kind="Alert"
)
BLACKDUCK_RESOURCE = CustomResourceType(
    group=SYNOPSYS_GROUP, version="v1", plural="blackducks", kind="Blackduck"
)
OPSSIGHT_RESOURCE = CustomResourceType(
    group=SYNOPSYS_GROUP, version="v1", plural="opssights", kind="OpsSight"
)

# Every kind the operator manages; the operator is torn down only when
# none of them has an instance left.
OPERATOR_MANAGED_RESOURCES: tuple[CustomResourceType, ...] = (
    ALERT_RESOURCE,
    BLACKDUCK_RESOURCE,
    OPSSIGHT_RESOURCE,
)


@dataclass(frozen=True)
class SecretSpec:
    """
    Name and data keys of a secret the release expects to find.

    Attributes:
        name: Secret name, also written to ``values_key``.
        values_key: Values key that points the chart at the secret.
        data_keys: Data keys in the order the material is supplied.
    """

    name: str
    values_key: str
    data_keys: tuple[str, ...]


@dataclass(frozen=True)
class ProductProfile:
    """
    Product-specific constants for a migration.

    Attributes:
        kind: Product kind name (e.g., "Alert").
        resource: Custom resource coordinates of the operator-managed form.
        app_label: Value of the ``app`` label on every managed object.
        release_suffix: Appended to the instance name to form the release name.
        chart_prefix: Chart archive prefix in the chart repository.
        minimum_version: Oldest version that runs package-managed.
        legacy_rewrite_version: Target version from which legacy environment
            keys are rewritten.
        legacy_environs: (legacy key, canonical key) pairs.
        certificate_secret: Secret holding the TLS certificate and key.
        keystore_secret: Secret holding the java keystore.
        values_schema: Accepted dotted key paths; a trailing ``.*`` accepts
            any single child key.
        managed_resources: Every kind the operator manages.
        exposed_service_suffix: Suffix of the externally exposed service.
    """

    kind: str
    resource: CustomResourceType
    app_label: str
    release_suffix: str
    chart_prefix: str
    minimum_version: Version
    legacy_rewrite_version: Version
    legacy_environs: tuple[tuple[str, str], ...] = ()
    certificate_secret: SecretSpec | None = None
    keystore_secret: SecretSpec | None = None
    values_schema: frozenset[str] = field(default_factory=frozenset)
    managed_resources: tuple[CustomResourceType, ...] = OPERATOR_MANAGED_RESOURCES
    exposed_service_suffix: str = "-exposed"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.release_suffix:
            raise ValueError("release_suffix must not be empty")
        if self.resource not in self.managed_resources:
            raise ValueError(f"{self.resource.kind} must be one of the managed resources")

    def release_name(self, instance_name: str) -> str:
        """Name of the release that replaces ``instance_name``."""
        return f"{instance_name}{self.release_suffix}"

    def instance_labels(self, instance_name: str) -> dict[str, str]:
        """Labels carried by every object the operator created for an instance."""
        return {"app": self.app_label, "name": instance_name}

    def namespace_label(self, instance_name: str) -> str:
        """Label the operator put on the instance namespace."""
        return f"{SYNOPSYS_GROUP}/{self.app_label}.{instance_name}"

    def chart_location(self, repository: str, version: str) -> str:
        """Chart archive URL for a version in a repository."""
        return f"{repository.rstrip('/')}/charts/{self.chart_prefix}-{version}.tgz"

    def exposed_service_name(self, release_name: str) -> str:
        return f"{release_name}{self.exposed_service_suffix}"

    def accepts(self, path: str) -> bool:
        """Check a dotted key path against the values schema."""
        if path in self.values_schema:
            return True
        parent, _, leaf = path.rpartition(".")
        return bool(parent and leaf) and f"{parent}.*" in self.values_schema

    def is_container(self, path: str) -> bool:
        """True when ``path`` is a proper prefix of some schema entry."""
        prefix = f"{path}."
        return any(entry.startswith(prefix) for entry in self.values_schema)


ALERT_PROFILE = ProductProfile(
    kind="Alert",
    resource=ALERT_RESOURCE,
    app_label="alert",
    release_suffix="-alert",
    chart_prefix="alert-helmchart",
    minimum_version=Version(5, 0, 0),
    legacy_rewrite_version=Version(5, 0, 0),
    legacy_environs=(
        ("PUBLIC_HUB_WEBSERVER_HOST", "ALERT_HOSTNAME"),
        ("PUBLIC_HUB_WEBSERVER_PORT", "ALERT_SERVER_PORT"),
    ),
    certificate_secret=SecretSpec(
        name="alert-custom-certificate",
        values_key="webserverCustomCertificatesSecretName",
        data_keys=("WEBSERVER_CUSTOM_CERT_FILE", "WEBSERVER_CUSTOM_KEY_FILE"),
    ),
    keystore_secret=SecretSpec(
        name="alert-java-keystore",
        values_key="javaKeystoreSecretName",
        data_keys=("cacerts",),
    ),
    values_schema=frozenset(
        {
            "alert.imageTag",
            "alert.port",
            "alert.resources.limits.memory",
            "alert.resources.requests.memory",
            "cfssl.imageTag",
            "cfssl.resources.limits.memory",
            "cfssl.resources.requests.memory",
            "exposedServiceType",
            "exposeui",
            "enableStandalone",
            "setEncryptionSecretData",
            "alertEncryptionPassword",
            "alertEncryptionGlobalSalt",
            "enablePersistentStorage",
            "persistentVolumeClaimName",
            "storageClassName",
            "pvcSize",
            "environs.*",
            "status",
            "registry",
            "imagePullSecrets",
            "webserverCustomCertificatesSecretName",
            "javaKeystoreSecretName",
        }
    ),
)


__all__ = [
    "ALERT_PROFILE",
    "ALERT_RESOURCE",
    "BLACKDUCK_RESOURCE",
    "OPSSIGHT_RESOURCE",
    "OPERATOR_MANAGED_RESOURCES",
    "ProductProfile",
    "SecretSpec",
]
