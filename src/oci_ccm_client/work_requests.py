"""Polling of asynchronous OCI work requests."""

import logging
import random
import threading
import time
from typing import Any, Callable, Optional

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_before_delay,
)
from tenacity.wait import wait_base

from .errors import (
    InvalidArgumentError,
    WorkRequestCancelledError,
    WorkRequestFailedError,
    WorkRequestTimeoutError,
)
from .models import BackoffPolicy, WorkRequest

logger = logging.getLogger(__name__)


class wait_jittered_exponential(wait_base):
    """Exponential wait with a symmetric multiplicative jitter."""

    def __init__(self, initial: float, factor: float, jitter: float = 0.0):
        self.initial = initial
        self.factor = factor
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self.initial * self.factor ** (retry_state.attempt_number - 1)
        if self.jitter:
            delay *= random.uniform(1 - self.jitter, 1 + self.jitter)
        return delay


def _is_pending(work_request: WorkRequest) -> bool:
    return not work_request.succeeded


class WorkRequestAwaiter:
    """
    Block until a work request reaches a terminal state.

    Args:
        get_work_request: SDK getter, e.g. ``load_balancer_client.get_work_request``
        backoff: Polling schedule; defaults to :class:`BackoffPolicy` defaults
        sleep: Function used to wait between polls; defaults to a real sleep that
            a cancel event can interrupt
    """

    def __init__(
        self,
        get_work_request: Callable[[str], Any],
        backoff: Optional[BackoffPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.get_work_request = get_work_request
        self.backoff = backoff or BackoffPolicy()
        self._sleep = sleep

    def wait(
        self,
        work_request_id: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> WorkRequest:
        """
        Poll ``work_request_id`` until it succeeds.

        Args:
            work_request_id: OCID of the work request
            timeout: Optional deadline in seconds, on top of the attempt budget. A
                wait that would end past the deadline is not started.
            cancel_event: Optional event that aborts the wait once set

        Returns:
            WorkRequest: The succeeded work request

        Raises:
            WorkRequestFailedError: The work request reached FAILED
            WorkRequestTimeoutError: Attempts or deadline exhausted while pending
            WorkRequestCancelledError: ``cancel_event`` was set
        """
        if not work_request_id:
            raise InvalidArgumentError("blank work request id passed to WorkRequestAwaiter.wait()")

        logger.debug("Polling WorkRequest %r...", work_request_id)

        stop = stop_after_attempt(self.backoff.max_attempts)
        if timeout is not None:
            stop = stop | stop_before_delay(timeout)

        retrying = Retrying(
            stop=stop,
            wait=wait_jittered_exponential(
                self.backoff.initial_interval, self.backoff.factor, self.backoff.jitter
            ),
            retry=retry_if_result(_is_pending),
            sleep=self._make_sleep(work_request_id, cancel_event),
        )

        try:
            work_request = retrying(self._poll, work_request_id, cancel_event)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_state = last_attempt.result().lifecycle_state
            logger.error(
                "WorkRequest %r still %s after %d polls",
                work_request_id,
                last_state,
                last_attempt.attempt_number,
            )
            raise WorkRequestTimeoutError(
                work_request_id, last_attempt.attempt_number, last_state
            ) from None

        logger.debug("WorkRequest %r succeeded", work_request_id)
        return work_request

    def _poll(self, work_request_id: str, cancel_event: Optional[threading.Event]) -> WorkRequest:
        _check_cancelled(work_request_id, cancel_event)

        try:
            response = self.get_work_request(work_request_id)
        except Exception as e:
            logger.error(f"Failed to get WorkRequest {work_request_id!r}: {e}")
            raise

        work_request = WorkRequest.from_oci(response.data)
        logger.debug("WorkRequest %r state: %r", work_request_id, work_request.lifecycle_state)

        if work_request.failed:
            raise WorkRequestFailedError(work_request_id, work_request.message or "no message given")
        return work_request

    def _make_sleep(
        self, work_request_id: str, cancel_event: Optional[threading.Event]
    ) -> Callable[[float], None]:
        if cancel_event is None:
            return self._sleep or time.sleep

        def sleep(seconds: float) -> None:
            if self._sleep is None:
                cancel_event.wait(seconds)
            else:
                self._sleep(seconds)
            _check_cancelled(work_request_id, cancel_event)

        return sleep


def _check_cancelled(work_request_id: str, cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Stopped waiting for WorkRequest %r: cancelled", work_request_id)
        raise WorkRequestCancelledError(
            f"wait for WorkRequest {work_request_id!r} was cancelled", work_request_id
        )
