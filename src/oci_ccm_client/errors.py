"""Exceptions raised by the OCI cloud controller client."""

from typing import Optional

from oci.exceptions import ServiceError


class CloudClientError(RuntimeError):
    """Base class for errors raised by this library."""


class InvalidArgumentError(CloudClientError, ValueError):
    """Raised when a caller passes a blank or otherwise unusable argument."""


class NotFoundError(CloudClientError):
    """
    Raised when a lookup yields no candidate.

    Callers commonly treat this as an expected, retryable condition (e.g. a node
    whose instance has not been provisioned yet), hence the ``not_found`` flag.
    """

    not_found = True


class AmbiguousResultError(CloudClientError):
    """Raised when a lookup that must be unique yields more than one candidate."""

    def __init__(self, message: str, candidates: int):
        super().__init__(message)
        self.candidates = candidates


class MalformedDataError(CloudClientError):
    """Raised when the backend returns data that violates its own contract."""


class PaginationError(MalformedDataError):
    """Raised when a list endpoint hands back a page cursor it already returned."""


class WorkRequestError(CloudClientError):
    """Base class for work request outcomes other than success."""

    def __init__(self, message: str, work_request_id: str):
        super().__init__(message)
        self.work_request_id = work_request_id


class WorkRequestFailedError(WorkRequestError):
    """Raised when a work request reaches the FAILED state."""

    def __init__(self, work_request_id: str, reason: str):
        super().__init__(f"WorkRequest {work_request_id!r} failed: {reason}", work_request_id)
        self.reason = reason


class WorkRequestTimeoutError(WorkRequestError):
    """Raised when a work request is still pending once the polling budget is spent."""

    def __init__(self, work_request_id: str, attempts: int, last_state: Optional[str] = None):
        super().__init__(
            f"WorkRequest {work_request_id!r} did not complete after {attempts} polls "
            f"(last state: {last_state or 'unknown'})",
            work_request_id,
        )
        self.attempts = attempts
        self.last_state = last_state


class WorkRequestCancelledError(WorkRequestError):
    """Raised when the caller cancels a wait that is still in progress."""


class ConfigurationError(CloudClientError):
    """Raised when client configuration cannot be loaded or is invalid."""


class AuthenticationError(ConfigurationError):
    """Raised when request signing credentials cannot be built."""


def is_not_found(error: BaseException) -> bool:
    """Check whether an error means the requested resource does not exist."""
    if getattr(error, "not_found", False):
        return True
    return isinstance(error, ServiceError) and error.status == 404
