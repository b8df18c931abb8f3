"""
Bounded polling.

Every wait in a migration goes through ``poll_until`` with an explicit
RetryPolicy; there are no unbounded loops.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from helmshift.cluster import ClusterClient
from helmshift.migration.config import RetryPolicy
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import ReadinessTimeoutError
from helmshift.migration.profiles import ProductProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Observation:
    """Result of one readiness check."""

    ready: bool
    detail: str | None = None


async def poll_until(
    check: Callable[[], Awaitable[Observation]],
    policy: RetryPolicy,
    *,
    what: str,
) -> int:
    """
    Call ``check`` until it reports ready or the policy is exhausted.

    Exceptions raised by ``check`` propagate unchanged.

    Returns:
        The number of checks made.

    Raises:
        ReadinessTimeoutError: If the attempts or the deadline run out.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    deadline = started + policy.timeout_seconds
    last: Observation | None = None

    for attempt in range(1, policy.max_attempts + 1):
        last = await check()
        if last.ready:
            logger.debug("%s ready after %d attempt(s)", what, attempt)
            return attempt

        logger.debug(
            "Waiting for %s (attempt %d/%d): %s",
            what,
            attempt,
            policy.max_attempts,
            last.detail,
        )
        if attempt == policy.max_attempts or loop.time() + policy.interval_seconds > deadline:
            break
        await asyncio.sleep(policy.interval_seconds)

    raise ReadinessTimeoutError(
        what,
        attempts=attempt,
        elapsed_seconds=loop.time() - started,
        last_observed=last.detail if last else None,
    )


async def wait_for_instance_running(
    cluster: ClusterClient,
    profile: ProductProfile,
    descriptor: InstanceDescriptor,
    policy: RetryPolicy,
) -> InstanceDescriptor:
    """
    Wait until the operator reports the instance as Running.

    Returns:
        A descriptor re-read from the final observed custom resource.
    """
    if (descriptor.status_state or "").lower() == "running":
        return descriptor

    latest = descriptor

    async def check() -> Observation:
        nonlocal latest
        manifest = await cluster.get_custom_resource(
            profile.resource, descriptor.custom_resource_namespace, descriptor.name
        )
        latest = InstanceDescriptor.from_custom_resource(manifest)
        state = latest.status_state or "unknown"
        return Observation(ready=state.lower() == "running", detail=f"state={state}")

    await poll_until(check, policy, what=f"{profile.kind} {descriptor.name} to be Running")
    return latest


__all__ = [
    "Observation",
    "poll_until",
    "wait_for_instance_running",
]
