"""
Ordered execution of migration stages.

A migration is a tuple of named Stage objects. MigrationPipeline awaits
them strictly in order and stops at the first failure; it never retries
and never rolls back. Any exception escaping a stage is reported as a
MigrationError bound to the instance and stage.

Example:
    >>> pipeline = MigrationPipeline(MIGRATION_STAGES)
    >>> result = await pipeline.run(context, MigrationState(request))
    >>> result.failed_stage, result.safe_to_retry
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from helmshift.migration.context import MigrationContext
from helmshift.migration.exceptions import MigrationError, UnexpectedStageError
from helmshift.migration.models import (
    MigrationResult,
    MigrationState,
    StageOutcome,
    StageStatus,
)
from helmshift.observability import (
    ATTR_ERROR_TYPE,
    ATTR_INSTANCE_KIND,
    ATTR_INSTANCE_NAME,
    ATTR_MIGRATION_STAGE,
    ATTR_NAMESPACE,
    ATTR_TARGET_VERSION,
)

logger = logging.getLogger(__name__)

StageFunc = Callable[[MigrationContext, MigrationState], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    """
    One named step of a migration.

    Attributes:
        name: Stage name used in logs, spans, errors and results.
        run: Coroutine function taking the context and the run state.
        destructive: True when starting this stage crosses the point of no
            return (old managed objects start being deleted).
    """

    name: str
    run: StageFunc
    destructive: bool = False


class MigrationPipeline:
    """
    Runs stages in order and collects a MigrationResult.

    Args:
        stages: The stages, in execution order. Names must be unique.
    """

    def __init__(self, stages: Sequence[Stage]) -> None:
        names = [stage.name for stage in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"Stage names must be unique, got {names}")
        self._stages = tuple(stages)

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self._stages]

    async def run(self, context: MigrationContext, state: MigrationState) -> MigrationResult:
        """
        Execute every stage, stopping at the first failure.

        Never raises for stage failures: the error is on the result.
        """
        profile = context.profile
        result = MigrationResult(
            instance_name=state.instance_name,
            mode=state.mode,
            namespace=state.request.namespace,
            release_name=profile.release_name(state.instance_name),
        )
        crossed = False

        logger.info(
            "Starting %s of %s %s (%s)",
            state.mode.value,
            profile.kind,
            state.instance_name,
            ", ".join(self.stage_names),
        )

        for stage in self._stages:
            crossed = crossed or stage.destructive
            attrs = {
                ATTR_MIGRATION_STAGE: stage.name,
                ATTR_INSTANCE_KIND: profile.kind,
                ATTR_INSTANCE_NAME: state.instance_name,
                ATTR_NAMESPACE: state.namespace or state.request.namespace or "",
                ATTR_TARGET_VERSION: state.request.target_version or "",
            }
            started = time.perf_counter()
            logger.info("Stage %s started for %s", stage.name, state.instance_name)

            with context.tracer.span(f"helmshift.migration.{stage.name}", attrs) as span:
                error: MigrationError | None = None
                try:
                    await stage.run(context, state)
                except MigrationError as e:
                    error = e
                except Exception as e:
                    error = UnexpectedStageError(stage.name, point_of_no_return=crossed)
                    error.__cause__ = e

                elapsed = time.perf_counter() - started
                if error is None:
                    result.outcomes.append(
                        StageOutcome(stage.name, StageStatus.COMPLETED, elapsed)
                    )
                    logger.info(
                        "Stage %s completed for %s in %.2fs",
                        stage.name,
                        state.instance_name,
                        elapsed,
                    )
                    continue

                error.bind(
                    instance_name=state.instance_name,
                    namespace=state.namespace or state.request.namespace,
                    stage=stage.name,
                    release_name=result.release_name,
                )
                if span is not None:
                    span.set_attribute(ATTR_ERROR_TYPE, type(error).__name__)
                result.outcomes.append(
                    StageOutcome(stage.name, StageStatus.FAILED, elapsed, error=str(error))
                )
                result.error = error
                result.past_point_of_no_return = crossed or error.point_of_no_return
                break

        result.namespace = state.namespace or result.namespace
        result.warnings = list(state.warnings)
        result.finished_at = datetime.now(UTC)
        self._report(result)
        return result

    def _report(self, result: MigrationResult) -> None:
        error = result.error
        if error is None:
            logger.info(
                "%s of %s finished: release %s, %d warning(s)",
                result.mode.value.capitalize(),
                result.instance_name,
                result.release_name,
                len(result.warnings),
            )
            return

        logger.log(
            error.severity.log_level,
            "%s of %s failed at stage %s: %s",
            result.mode.value.capitalize(),
            result.instance_name,
            result.failed_stage,
            error,
            exc_info=error,
        )
        if result.past_point_of_no_return:
            logger.critical(
                "Past the point of no return: the old %s objects may be deleted and release "
                "%s may be partially created. %s",
                result.instance_name,
                result.release_name,
                error.suggested_action,
            )
        else:
            logger.info("No destructive step ran; it is safe to re-run the %s", result.mode.value)


__all__ = [
    "MigrationPipeline",
    "Stage",
    "StageFunc",
]
