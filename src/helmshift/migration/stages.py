"""
Stage functions for the migrate and update pipelines.

MIGRATION_STAGES takes an operator-managed instance to a release:

    version_gate -> load_instance -> translate -> carry_artifacts
    -> quiesce_operator -> dry_run -> cutover -> retire

UPDATE_STAGES changes an instance that is already a release:

    version_gate -> load_release -> translate -> write_secrets -> upgrade_release
"""

from __future__ import annotations

import logging

from helmshift.exceptions import (
    AmbiguousObjectError,
    ClusterError,
    ObjectNotFoundError,
    ReleaseError,
    ReleaseNotFoundError,
)
from helmshift.migration.artifacts import ArtifactCarrier, SecretMaterial
from helmshift.migration.context import MigrationContext
from helmshift.migration.cutover import CutoverExecutor, resolve_chart_location, write_secret
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import (
    AmbiguousInstanceError,
    InstanceNotFoundError,
    ReleaseUpdateFailedError,
    TranslationError,
    UnsupportedVersionError,
)
from helmshift.migration.models import MigrationState
from helmshift.migration.pipeline import Stage
from helmshift.migration.quiescence import OperatorQuiescer
from helmshift.migration.readiness import wait_for_instance_running
from helmshift.migration.retirement import InstanceRetirer
from helmshift.migration.translator import SpecTranslator
from helmshift.migration.validator import DryRunValidator
from helmshift.migration.values import SchemaViolation, ValuesTree
from helmshift.migration.versions import check_version

logger = logging.getLogger(__name__)


# =============================================================================
# Shared
# =============================================================================


async def version_gate(context: MigrationContext, state: MigrationState) -> None:
    """Reject unsupported target versions before any cluster call."""
    requested = state.request.target_version
    if requested is None:
        raise UnsupportedVersionError(
            "(none)",
            str(context.profile.minimum_version),
            reason="was given; a target version is required to migrate an "
            "operator-managed instance",
        )
    state.version = check_version(requested, context.profile)


async def optional_version_gate(context: MigrationContext, state: MigrationState) -> None:
    """Gate the target version only when one was requested."""
    if state.request.target_version is not None:
        state.version = check_version(state.request.target_version, context.profile)


def _target_version(state: MigrationState) -> str:
    """The requested version as given, once the gate has accepted it."""
    state.require("version")
    return str(state.request.target_version)


def _caller_material(state: MigrationState) -> SecretMaterial:
    request = state.request
    return SecretMaterial(
        certificate=request.certificate or None,
        certificate_key=request.certificate_key or None,
        java_keystore=request.java_keystore or None,
    )


# =============================================================================
# Migrate
# =============================================================================


async def load_instance(context: MigrationContext, state: MigrationState) -> None:
    """Read the custom resource and wait for it to settle."""
    request = state.request
    profile = context.profile
    try:
        manifest = await context.cluster.get_custom_resource(
            profile.resource, request.namespace, request.instance_name
        )
    except ObjectNotFoundError as e:
        raise InstanceNotFoundError(profile.kind, request.instance_name, request.namespace) from e
    except AmbiguousObjectError as e:
        raise AmbiguousInstanceError(profile.kind, request.instance_name, e.namespaces) from e

    descriptor = InstanceDescriptor.from_custom_resource(manifest)
    state.namespace = descriptor.namespace

    if context.settings.wait_for_running and not descriptor.is_stopped:
        descriptor = await wait_for_instance_running(
            context.cluster, profile, descriptor, context.settings.readiness_policy
        )
    state.descriptor = descriptor
    logger.info(
        "Loaded %s %s in namespace %s (declared version %s, persistent storage %s)",
        profile.kind,
        descriptor.name,
        descriptor.namespace,
        descriptor.version,
        descriptor.persistent_storage,
    )


async def translate(context: MigrationContext, state: MigrationState) -> None:
    descriptor: InstanceDescriptor = state.require("descriptor")
    request = state.request
    state.material = SecretMaterial.resolve(
        descriptor,
        certificate=request.certificate,
        certificate_key=request.certificate_key,
        java_keystore=request.java_keystore,
    )
    state.values = SpecTranslator(context.profile).translate(
        descriptor,
        target_version=request.target_version,
        material=state.material,
        overrides=request.overrides,
    )


async def carry_artifacts(context: MigrationContext, state: MigrationState) -> None:
    carrier = ArtifactCarrier(context.cluster, context.profile, tracer=context.tracer)
    state.claim_name = await carrier.carry(state.require("descriptor"), state.require("values"))


async def quiesce_operator(context: MigrationContext, state: MigrationState) -> None:
    quiescer = OperatorQuiescer(context.cluster, context.settings, tracer=context.tracer)
    state.operator = await quiescer.quiesce()


async def dry_run(context: MigrationContext, state: MigrationState) -> None:
    descriptor: InstanceDescriptor = state.require("descriptor")
    state.chart = resolve_chart_location(
        context.profile,
        context.settings,
        _target_version(state),
        state.request.chart_location,
    )
    validator = DryRunValidator(context.releases, tracer=context.tracer)
    state.dry_run = await validator.validate(
        context.profile.release_name(descriptor.name),
        descriptor.namespace,
        state.chart,
        state.require("values"),
    )


async def cutover(context: MigrationContext, state: MigrationState) -> None:
    executor = CutoverExecutor(
        context.cluster,
        context.releases,
        context.profile,
        context.settings,
        tracer=context.tracer,
    )
    state.cutover = await executor.execute(
        state.require("descriptor"),
        state.require("values"),
        version=_target_version(state),
        material=state.require("material"),
        chart_override=state.request.chart_location,
    )
    state.release = state.cutover.release


async def retire(context: MigrationContext, state: MigrationState) -> None:
    retirer = InstanceRetirer(context.cluster, context.profile, tracer=context.tracer)
    state.retirement = await retirer.retire(state.require("descriptor"), state.require("operator"))
    state.warnings.extend(state.retirement.warnings)


MIGRATION_STAGES: tuple[Stage, ...] = (
    Stage("version_gate", version_gate),
    Stage("load_instance", load_instance),
    Stage("translate", translate),
    Stage("carry_artifacts", carry_artifacts),
    Stage("quiesce_operator", quiesce_operator),
    Stage("dry_run", dry_run),
    Stage("cutover", cutover, destructive=True),
    Stage("retire", retire),
)


# =============================================================================
# Update
# =============================================================================


async def load_release(context: MigrationContext, state: MigrationState) -> None:
    request = state.request
    namespace = request.namespace
    if namespace is None:
        raise InstanceNotFoundError(
            context.profile.kind, request.instance_name, stage="load_release"
        )
    release_name = context.profile.release_name(request.instance_name)
    try:
        state.existing_release = await context.releases.get(release_name, namespace)
    except ReleaseNotFoundError as e:
        raise InstanceNotFoundError(
            context.profile.kind, request.instance_name, namespace, stage="load_release"
        ) from e
    state.namespace = namespace


async def translate_release(context: MigrationContext, state: MigrationState) -> None:
    """Start from the release's current values and apply the request on top."""
    existing = state.require("existing_release")
    request = state.request
    translator = SpecTranslator(context.profile)

    values = ValuesTree(context.profile, existing.values, strict=False)
    material = _caller_material(state)
    try:
        if request.target_version is not None:
            values.set("alert.imageTag", request.target_version)
        for spec, _ in material.secrets(context.profile):
            values.set(spec.values_key, spec.name)
    except SchemaViolation as e:
        raise TranslationError(str(e), field=e.path) from e

    if request.overrides:
        translator.apply_overrides(values, request.overrides)
    if request.target_version is not None:
        translator.rewrite_legacy_environs(values, request.target_version)

    state.material = material
    state.values = values


async def write_secrets(context: MigrationContext, state: MigrationState) -> None:
    namespace: str = state.require("namespace")
    material: SecretMaterial = state.require("material")
    release_name = context.profile.release_name(state.instance_name)
    labels = {"app": context.profile.app_label, "name": release_name}
    for spec, payload in material.secrets(context.profile):
        try:
            created = await write_secret(context.cluster, namespace, spec, payload, labels)
        except ClusterError as e:
            raise ReleaseUpdateFailedError(
                f"Unable to write secret {spec.name}: {e}",
                stage="write_secrets",
                release_name=release_name,
            ) from e
        logger.info("%s secret %s/%s", "Created" if created else "Updated", namespace, spec.name)


async def upgrade_release(context: MigrationContext, state: MigrationState) -> None:
    existing = state.require("existing_release")
    request = state.request
    values: ValuesTree = state.require("values")

    # A reported chart is a name, not a source; re-resolve from the image tag.
    version = request.target_version or values.get("alert.imageTag")
    if request.chart_location:
        chart = request.chart_location
    elif isinstance(version, str) and version:
        chart = resolve_chart_location(context.profile, context.settings, version)
    else:
        chart = existing.chart
    state.chart = chart

    try:
        state.release = await context.releases.upgrade(
            existing.name, existing.namespace, chart, values.to_dict()
        )
    except ReleaseError as e:
        raise ReleaseUpdateFailedError(
            f"Upgrade of release '{existing.name}' failed: {e}",
            release_name=existing.name,
        ) from e
    logger.info(
        "Upgraded release %s/%s to revision %d",
        existing.namespace,
        existing.name,
        state.release.revision,
    )


UPDATE_STAGES: tuple[Stage, ...] = (
    Stage("version_gate", optional_version_gate),
    Stage("load_release", load_release),
    Stage("translate", translate_release),
    Stage("write_secrets", write_secrets),
    Stage("upgrade_release", upgrade_release),
)


__all__ = [
    "MIGRATION_STAGES",
    "UPDATE_STAGES",
]
