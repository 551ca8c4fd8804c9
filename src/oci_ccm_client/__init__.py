"""OCI client layer for Kubernetes cloud controllers."""

from .client import CloudClient, new_client
from .errors import (
    AmbiguousResultError,
    AuthenticationError,
    CloudClientError,
    ConfigurationError,
    InvalidArgumentError,
    MalformedDataError,
    NotFoundError,
    PaginationError,
    WorkRequestCancelledError,
    WorkRequestFailedError,
    WorkRequestTimeoutError,
    is_not_found,
)
from .models import BackoffPolicy, CloudConfig, NodeAddress, NodeAddressType
from .pagination import Pager, paginate
from .work_requests import WorkRequestAwaiter

__version__ = "0.1.0"

__all__ = [
    "CloudClient",
    "new_client",
    "CloudConfig",
    "BackoffPolicy",
    "NodeAddress",
    "NodeAddressType",
    "Pager",
    "paginate",
    "WorkRequestAwaiter",
    "CloudClientError",
    "InvalidArgumentError",
    "NotFoundError",
    "AmbiguousResultError",
    "MalformedDataError",
    "PaginationError",
    "WorkRequestFailedError",
    "WorkRequestTimeoutError",
    "WorkRequestCancelledError",
    "ConfigurationError",
    "AuthenticationError",
    "is_not_found",
]
