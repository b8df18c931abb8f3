"""
Stateful artifacts that must survive the change of ownership.

Persistent volume claims are relabelled in place, never recreated, so the
bound volume and its data stay where they are. TLS and keystore material
is carried into secrets the release can mount.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from helmshift.cluster import ClusterClient, Manifest, format_label_selector, object_name
from helmshift.exceptions import ClusterError
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import (
    AmbiguousArtifactError,
    ArtifactRelabelError,
    TranslationError,
)
from helmshift.migration.profiles import ProductProfile, SecretSpec
from helmshift.migration.values import ValuesTree
from helmshift.observability import (
    ATTR_INSTANCE_NAME,
    ATTR_LABEL_SELECTOR,
    ATTR_NAMESPACE,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)


def _as_bytes(value: str | bytes | None) -> bytes | None:
    if value is None or value == "" or value == b"":
        return None
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


@dataclass(frozen=True)
class SecretMaterial:
    """
    TLS certificate, key and java keystore to carry into secrets.

    Attributes:
        certificate: PEM certificate bytes.
        certificate_key: PEM private key bytes.
        java_keystore: Keystore bytes.
    """

    certificate: bytes | None = None
    certificate_key: bytes | None = None
    java_keystore: bytes | None = None

    def __post_init__(self) -> None:
        if (self.certificate is None) != (self.certificate_key is None):
            missing = "certificate key" if self.certificate_key is None else "certificate"
            raise TranslationError(
                f"A custom certificate requires both certificate and key; {missing} is missing",
                field="certificateKey" if self.certificate_key is None else "certificate",
            )

    @property
    def has_certificate(self) -> bool:
        return self.certificate is not None

    @property
    def has_keystore(self) -> bool:
        return self.java_keystore is not None

    @classmethod
    def resolve(
        cls,
        descriptor: InstanceDescriptor,
        *,
        certificate: bytes | None = None,
        certificate_key: bytes | None = None,
        java_keystore: bytes | None = None,
    ) -> SecretMaterial:
        """
        Combine caller-supplied bytes with the descriptor's embedded material.

        Caller-supplied bytes take precedence item by item.

        Raises:
            TranslationError: If a certificate comes without its key or vice versa.
        """
        return cls(
            certificate=_as_bytes(certificate) or _as_bytes(descriptor.certificate),
            certificate_key=_as_bytes(certificate_key) or _as_bytes(descriptor.certificate_key),
            java_keystore=_as_bytes(java_keystore) or _as_bytes(descriptor.java_keystore),
        )

    def secrets(self, profile: ProductProfile) -> list[tuple[SecretSpec, tuple[bytes, ...]]]:
        """Secrets to create, paired with the payload for each data key."""
        result: list[tuple[SecretSpec, tuple[bytes, ...]]] = []
        if profile.certificate_secret is not None and self.certificate and self.certificate_key:
            result.append((profile.certificate_secret, (self.certificate, self.certificate_key)))
        if profile.keystore_secret is not None and self.java_keystore:
            result.append((profile.keystore_secret, (self.java_keystore,)))
        return result


def build_secret(
    spec: SecretSpec,
    payload: tuple[bytes, ...],
    *,
    namespace: str,
    labels: dict[str, str],
) -> Manifest:
    """Render an Opaque secret manifest with base64-encoded data."""
    if len(payload) != len(spec.data_keys):
        raise ValueError(
            f"Secret {spec.name} expects {len(spec.data_keys)} items, got {len(payload)}"
        )
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {"name": spec.name, "namespace": namespace, "labels": dict(labels)},
        "data": {
            key: base64.b64encode(value).decode("ascii")
            for key, value in zip(spec.data_keys, payload, strict=True)
        },
    }


class ArtifactCarrier:
    """
    Finds the instance's storage claim and hands it to the release.

    The claim's ``name`` label is changed to the release name, and the
    claim's existing object name is written to ``persistentVolumeClaimName``
    so the chart binds to it instead of creating a new one.

    Args:
        cluster: Cluster client.
        profile: Product profile.
        tracer: Optional custom Tracer instance.
        enable_tracing: Whether to enable OpenTelemetry tracing.
    """

    def __init__(
        self,
        cluster: ClusterClient,
        profile: ProductProfile,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._cluster = cluster
        self._profile = profile

    async def carry(self, descriptor: InstanceDescriptor, values: ValuesTree) -> str | None:
        """
        Relabel the instance's claim and record it in ``values``.

        Does nothing (and calls nothing) for instances without persistence.
        The claim is looked up under both the instance and the release
        labels, so a claim already relabelled by an earlier attempt is
        reused without another update.

        Returns:
            Name of the carried claim, or None.

        Raises:
            AmbiguousArtifactError: If zero or several claims match.
            ArtifactRelabelError: If the relabelled claim could not be saved.
        """
        if not descriptor.persistent_storage:
            logger.debug("Instance %s has no persistent storage; no claim to carry", descriptor.name)
            return None

        release_name = self._profile.release_name(descriptor.name)
        instance_selector = format_label_selector(self._profile.instance_labels(descriptor.name))
        release_selector = format_label_selector(self._profile.instance_labels(release_name))
        selector = f"{instance_selector} or {release_selector}"

        with self._tracer.span(
            "helmshift.artifacts.carry",
            {
                ATTR_INSTANCE_NAME: descriptor.name,
                ATTR_NAMESPACE: descriptor.namespace,
                ATTR_LABEL_SELECTOR: selector,
            },
        ):
            # A previous attempt may already have relabelled the claim.
            claims: dict[str, Manifest] = {}
            for candidate_selector in (instance_selector, release_selector):
                for claim in await self._cluster.list_persistent_volume_claims(
                    descriptor.namespace, candidate_selector
                ):
                    claims.setdefault(object_name(claim), claim)
            if len(claims) != 1:
                raise AmbiguousArtifactError(
                    selector,
                    sorted(claims),
                    instance_name=descriptor.name,
                    namespace=descriptor.namespace,
                )

            claim_name, claim = next(iter(claims.items()))
            metadata = claim.setdefault("metadata", {})
            labels = dict(metadata.get("labels") or {})

            if labels.get("name") == release_name:
                logger.info(
                    "Persistent volume claim %s/%s already labelled name=%s",
                    descriptor.namespace,
                    claim_name,
                    release_name,
                )
            else:
                labels["name"] = release_name
                metadata["labels"] = labels
                try:
                    await self._cluster.update_persistent_volume_claim(descriptor.namespace, claim)
                except ClusterError as e:
                    raise ArtifactRelabelError(
                        claim_name,
                        instance_name=descriptor.name,
                        namespace=descriptor.namespace,
                        release_name=release_name,
                    ) from e
                logger.info(
                    "Relabelled persistent volume claim %s/%s to name=%s",
                    descriptor.namespace,
                    claim_name,
                    release_name,
                )

            values.set("persistentVolumeClaimName", claim_name)

        return claim_name


__all__ = [
    "ArtifactCarrier",
    "SecretMaterial",
    "build_secret",
]
