"""
Unit tests for bounded polling.
"""

import pytest

from helmshift.migration.config import RetryPolicy
from helmshift.migration.descriptor import InstanceDescriptor
from helmshift.migration.exceptions import ErrorRecoverability, ReadinessTimeoutError
from helmshift.migration.profiles import ALERT_PROFILE, ALERT_RESOURCE
from helmshift.migration.readiness import Observation, poll_until, wait_for_instance_running
from tests.fixtures import alert_manifest


def scripted(*observations: Observation):
    remaining = list(observations)
    calls = []

    async def check() -> Observation:
        calls.append(1)
        return remaining.pop(0)

    check.calls = calls
    return check


class TestPollUntil:
    """Tests for poll_until."""

    @pytest.mark.asyncio
    async def test_returns_attempt_count(self, fast_policy):
        check = scripted(Observation(False, "a"), Observation(True))

        attempts = await poll_until(check, fast_policy, what="thing")

        assert attempts == 2

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self, fast_policy):
        check = scripted(*[Observation(False, f"try {i}") for i in range(10)])

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            await poll_until(check, fast_policy, what="thing")

        error = exc_info.value
        assert len(check.calls) == fast_policy.max_attempts
        assert error.attempts == fast_policy.max_attempts
        assert error.last_observed == "try 2"
        assert error.recoverability == ErrorRecoverability.TRANSIENT

    @pytest.mark.asyncio
    async def test_deadline_stops_before_sleeping_past_it(self):
        policy = RetryPolicy(max_attempts=100, interval_seconds=30.0, timeout_seconds=1.0)
        check = scripted(Observation(False), Observation(True))

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            await poll_until(check, policy, what="thing")

        assert exc_info.value.attempts == 1

    @pytest.mark.asyncio
    async def test_check_errors_propagate(self, fast_policy):
        async def check() -> Observation:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await poll_until(check, fast_policy, what="thing")


class TestWaitForInstanceRunning:
    """Tests for wait_for_instance_running."""

    @pytest.mark.asyncio
    async def test_already_running_makes_no_calls(self, cluster, fast_policy):
        descriptor = InstanceDescriptor.from_custom_resource(alert_manifest())

        result = await wait_for_instance_running(cluster, ALERT_PROFILE, descriptor, fast_policy)

        assert result is descriptor
        assert cluster.calls == []

    @pytest.mark.asyncio
    async def test_polls_until_running(self, cluster, fast_policy):
        cluster.add_custom_resource(ALERT_RESOURCE, alert_manifest(state="Running"))
        descriptor = InstanceDescriptor.from_custom_resource(alert_manifest(state="Pending"))

        result = await wait_for_instance_running(cluster, ALERT_PROFILE, descriptor, fast_policy)

        assert result.status_state == "Running"
        assert cluster.call_names == ["get_custom_resource"]

    @pytest.mark.asyncio
    async def test_times_out(self, cluster, fast_policy):
        cluster.add_custom_resource(ALERT_RESOURCE, alert_manifest(state="Pending"))
        descriptor = InstanceDescriptor.from_custom_resource(alert_manifest(state="Pending"))

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            await wait_for_instance_running(cluster, ALERT_PROFILE, descriptor, fast_policy)

        assert exc_info.value.last_observed == "state=Pending"
