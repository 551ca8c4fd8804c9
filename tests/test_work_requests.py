"""Tests for work request polling."""

import threading
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from oci.exceptions import ServiceError
from pydantic import ValidationError

from oci_ccm_client.errors import (
    InvalidArgumentError,
    WorkRequestCancelledError,
    WorkRequestFailedError,
    WorkRequestTimeoutError,
)
from oci_ccm_client.models import BackoffPolicy
from oci_ccm_client.work_requests import WorkRequestAwaiter, wait_jittered_exponential

WORK_REQUEST_ID = "ocid1.loadbalancerworkrequest.oc1..xxxxx"


class FakeResponse:
    def __init__(self, data):
        self.data = data


def work_request(state, message=None, load_balancer_id=None, error_details=None):
    return FakeResponse(
        SimpleNamespace(
            id=WORK_REQUEST_ID,
            lifecycle_state=state,
            message=message,
            load_balancer_id=load_balancer_id,
            error_details=error_details or [],
            type="CreateLoadBalancer",
        )
    )


class TestWorkRequestAwaiter:
    """Test WorkRequestAwaiter."""

    @pytest.fixture
    def sleeps(self):
        return []

    @pytest.fixture
    def get_work_request(self):
        return Mock()

    @pytest.fixture
    def awaiter(self, get_work_request, sleeps):
        return WorkRequestAwaiter(
            get_work_request, backoff=BackoffPolicy(jitter=0), sleep=sleeps.append
        )

    def test_polls_until_succeeded(self, awaiter, get_work_request, sleeps):
        """Test polling until the work request succeeds."""
        get_work_request.side_effect = [
            work_request("IN_PROGRESS"),
            work_request("IN_PROGRESS"),
            work_request("SUCCEEDED", load_balancer_id="ocid1.loadbalancer.oc1..lb"),
        ]

        result = awaiter.wait(WORK_REQUEST_ID)

        assert result.succeeded
        assert result.load_balancer_id == "ocid1.loadbalancer.oc1..lb"
        assert get_work_request.call_count == 3
        get_work_request.assert_called_with(WORK_REQUEST_ID)
        assert sleeps == [2.0, 2.5]

    def test_accepted_is_treated_as_pending(self, awaiter, get_work_request):
        """Test ACCEPTED is treated as pending."""
        get_work_request.side_effect = [work_request("ACCEPTED"), work_request("SUCCEEDED")]

        assert awaiter.wait(WORK_REQUEST_ID).succeeded
        assert get_work_request.call_count == 2

    def test_times_out_after_attempt_budget(self, awaiter, get_work_request, sleeps):
        """Test timeout once the attempt budget is spent."""
        get_work_request.return_value = work_request("IN_PROGRESS")

        with pytest.raises(WorkRequestTimeoutError) as exc_info:
            awaiter.wait(WORK_REQUEST_ID)

        assert get_work_request.call_count == 15
        assert len(sleeps) == 14
        assert exc_info.value.attempts == 15
        assert exc_info.value.last_state == "IN_PROGRESS"
        assert exc_info.value.work_request_id == WORK_REQUEST_ID

    def test_backoff_grows_geometrically(self, awaiter, get_work_request, sleeps):
        """Test waits grow geometrically."""
        get_work_request.return_value = work_request("IN_PROGRESS")

        with pytest.raises(WorkRequestTimeoutError):
            awaiter.wait(WORK_REQUEST_ID)

        for previous, current in zip(sleeps, sleeps[1:]):
            assert current == pytest.approx(previous * 1.25)
        assert sum(sleeps) == pytest.approx(BackoffPolicy(jitter=0).max_total_wait())

    def test_failed_state_stops_immediately(self, awaiter, get_work_request, sleeps):
        """Test FAILED stops polling immediately."""
        get_work_request.side_effect = [
            work_request("FAILED", message="Shape is not available"),
            work_request("SUCCEEDED"),
        ]

        with pytest.raises(WorkRequestFailedError, match="Shape is not available") as exc_info:
            awaiter.wait(WORK_REQUEST_ID)

        assert exc_info.value.reason == "Shape is not available"
        assert get_work_request.call_count == 1
        assert sleeps == []

    def test_failed_message_falls_back_to_error_details(self, awaiter, get_work_request):
        """Test failure message from error details."""
        get_work_request.return_value = work_request(
            "FAILED", error_details=[SimpleNamespace(error_code="BAD_INPUT", message="bad subnet")]
        )

        with pytest.raises(WorkRequestFailedError, match="bad subnet"):
            awaiter.wait(WORK_REQUEST_ID)

    def test_transport_error_is_not_retried(self, awaiter, get_work_request):
        """Test transport errors are not retried."""
        get_work_request.side_effect = ServiceError(
            status=503, code="ServiceUnavailable", headers={}, message="try later"
        )

        with pytest.raises(ServiceError):
            awaiter.wait(WORK_REQUEST_ID)

        assert get_work_request.call_count == 1

    def test_transport_error_after_pending_poll(self, awaiter, get_work_request):
        """Test transport error after a pending poll."""
        get_work_request.side_effect = [
            work_request("IN_PROGRESS"),
            ServiceError(status=404, code="NotAuthorizedOrNotFound", headers={}, message="gone"),
        ]

        with pytest.raises(ServiceError):
            awaiter.wait(WORK_REQUEST_ID)

        assert get_work_request.call_count == 2

    def test_deadline_reports_timeout(self, awaiter, get_work_request):
        """Test deadline reports a timeout."""
        get_work_request.return_value = work_request("IN_PROGRESS")

        with pytest.raises(WorkRequestTimeoutError):
            awaiter.wait(WORK_REQUEST_ID, timeout=0)

        assert get_work_request.call_count == 1

    def test_wait_longer_than_deadline_is_not_started(self, get_work_request, sleeps):
        """Test a wait longer than the deadline is not started."""
        awaiter = WorkRequestAwaiter(
            get_work_request,
            backoff=BackoffPolicy(initial_interval=1.0, jitter=0),
            sleep=sleeps.append,
        )
        get_work_request.return_value = work_request("IN_PROGRESS")

        with pytest.raises(WorkRequestTimeoutError) as exc_info:
            awaiter.wait(WORK_REQUEST_ID, timeout=0.1)

        assert sleeps == []
        assert get_work_request.call_count == 1
        assert exc_info.value.attempts == 1

    def test_waits_within_deadline_are_taken(self, awaiter, get_work_request, sleeps):
        """Test waits within the deadline are taken."""
        get_work_request.side_effect = [
            work_request("IN_PROGRESS"),
            work_request("IN_PROGRESS"),
            work_request("SUCCEEDED"),
        ]

        assert awaiter.wait(WORK_REQUEST_ID, timeout=60).succeeded
        assert sleeps == [2.0, 2.5]

    def test_cancel_event_uses_injected_sleep(self, awaiter, get_work_request, sleeps):
        """Test cancel event keeps the injected sleep."""
        cancel = threading.Event()
        get_work_request.side_effect = [
            work_request("IN_PROGRESS"),
            work_request("IN_PROGRESS"),
            work_request("SUCCEEDED"),
        ]

        assert awaiter.wait(WORK_REQUEST_ID, cancel_event=cancel).succeeded
        assert sleeps == [2.0, 2.5]

    def test_cancel_during_injected_sleep(self, get_work_request):
        """Test cancelling during the injected sleep."""
        cancel = threading.Event()
        get_work_request.return_value = work_request("IN_PROGRESS")
        awaiter = WorkRequestAwaiter(
            get_work_request, backoff=BackoffPolicy(jitter=0), sleep=lambda seconds: cancel.set()
        )

        with pytest.raises(WorkRequestCancelledError):
            awaiter.wait(WORK_REQUEST_ID, cancel_event=cancel)

        assert get_work_request.call_count == 1

    def test_cancel_before_first_poll(self, awaiter, get_work_request):
        """Test cancelling before the first poll."""
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(WorkRequestCancelledError):
            awaiter.wait(WORK_REQUEST_ID, cancel_event=cancel)

        get_work_request.assert_not_called()

    def test_cancel_while_waiting(self, awaiter, get_work_request):
        """Test cancelling while waiting."""
        cancel = threading.Event()

        def poll(work_request_id):
            cancel.set()
            return work_request("IN_PROGRESS")

        get_work_request.side_effect = poll

        with pytest.raises(WorkRequestCancelledError):
            awaiter.wait(WORK_REQUEST_ID, cancel_event=cancel)

        assert get_work_request.call_count == 1

    def test_blank_id_is_rejected(self, awaiter, get_work_request):
        """Test blank work request id is rejected."""
        with pytest.raises(InvalidArgumentError):
            awaiter.wait("")

        get_work_request.assert_not_called()

    def test_default_backoff(self, get_work_request):
        """Test default backoff policy."""
        awaiter = WorkRequestAwaiter(get_work_request)

        assert awaiter.backoff == BackoffPolicy()
        assert awaiter.backoff.initial_interval == 2.0
        assert awaiter.backoff.factor == 1.25
        assert awaiter.backoff.jitter == 0.1
        assert awaiter.backoff.max_attempts == 15


class TestBackoff:
    """Test the backoff schedule."""

    def test_jitter_stays_within_bounds(self):
        """Test jitter stays within bounds."""
        wait = wait_jittered_exponential(2.0, 1.25, 0.1)
        retry_state = SimpleNamespace(attempt_number=3)

        for _ in range(50):
            assert 2.0 * 1.5625 * 0.9 <= wait(retry_state) <= 2.0 * 1.5625 * 1.1

    def test_no_jitter_is_deterministic(self):
        """Test waits without jitter."""
        wait = wait_jittered_exponential(2.0, 1.25)

        assert wait(SimpleNamespace(attempt_number=1)) == 2.0
        assert wait(SimpleNamespace(attempt_number=2)) == 2.5

    def test_max_total_wait(self):
        """Test maximum total wait."""
        policy = BackoffPolicy(initial_interval=2.0, factor=1.25, jitter=0, max_attempts=3)

        assert policy.max_total_wait() == pytest.approx(4.5)

    def test_invalid_policy_is_rejected(self):
        """Test invalid backoff policies are rejected."""
        with pytest.raises(ValidationError):
            BackoffPolicy(initial_interval=0)

        with pytest.raises(ValidationError):
            BackoffPolicy(max_attempts=0)
