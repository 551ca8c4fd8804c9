"""Load balancer provisioning operations."""

import copy
import logging
import threading
from typing import Any, List, Optional

import oci
from oci.load_balancer.models import (
    CreateBackendDetails,
    CreateBackendSetDetails,
    CreateListenerDetails,
    CreateLoadBalancerDetails,
)

from ..errors import MalformedDataError, NotFoundError
from ..models import BackendSet, LoadBalancer, WorkRequest
from ..pagination import paginate
from ..work_requests import WorkRequestAwaiter

logger = logging.getLogger(__name__)

# Selection policy used when a backend set is created without one.
DEFAULT_LOAD_BALANCER_POLICY = "ROUND_ROBIN"

WORK_REQUEST_HEADER = "opc-work-request-id"


def work_request_id_from(response: Any, operation: str) -> str:
    """Read the work request id an asynchronous call returned."""
    work_request_id = (getattr(response, "headers", None) or {}).get(WORK_REQUEST_HEADER)
    if not work_request_id:
        raise MalformedDataError(f"{operation} returned no {WORK_REQUEST_HEADER} header")
    return work_request_id


class LoadBalancerService:
    """
    Create load balancer resources and wait for them to materialise.

    Extra keyword arguments of every method are request options (e.g.
    ``opc_retry_token``) forwarded to the SDK call unchanged.
    """

    def __init__(
        self,
        load_balancer_client: oci.load_balancer.LoadBalancerClient,
        compartment_id: str,
        awaiter: Optional[WorkRequestAwaiter] = None,
    ):
        self.load_balancer_client = load_balancer_client
        self.compartment_id = compartment_id
        self.awaiter = awaiter or WorkRequestAwaiter(load_balancer_client.get_work_request)

    def await_work_request(
        self,
        work_request_id: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> WorkRequest:
        return self.awaiter.wait(work_request_id, timeout=timeout, cancel_event=cancel_event)

    def get_load_balancer(self, load_balancer_id: str, **kwargs: Any) -> LoadBalancer:
        response = self.load_balancer_client.get_load_balancer(load_balancer_id, **kwargs)
        return LoadBalancer.from_oci(response.data)

    def get_load_balancer_by_name(self, name: str) -> LoadBalancer:
        """Return the first load balancer of the compartment with the given display name."""
        matches = paginate(
            self.load_balancer_client.list_load_balancers,
            self.compartment_id,
            predicate=lambda lb: lb.display_name == name,
        )
        if not matches:
            raise NotFoundError(f"could not find load balancer with name {name!r}")
        return LoadBalancer.from_oci(matches[0])

    def create_and_await_load_balancer(
        self,
        name: str,
        shape: str,
        subnet_ids: List[str],
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        **kwargs: Any,
    ) -> LoadBalancer:
        """Create a load balancer and block until it is available."""
        logger.info("Creating load balancer %r (shape %s)", name, shape)
        details = CreateLoadBalancerDetails(
            compartment_id=self.compartment_id,
            display_name=name,
            shape_name=shape,
            subnet_ids=list(subnet_ids),
        )

        try:
            response = self.load_balancer_client.create_load_balancer(details, **kwargs)
        except Exception as e:
            logger.error(f"Failed to create load balancer {name!r}: {e}")
            raise

        work_request = self.await_work_request(
            work_request_id_from(response, "create_load_balancer"),
            timeout=timeout,
            cancel_event=cancel_event,
        )
        if not work_request.load_balancer_id:
            raise MalformedDataError(
                f"WorkRequest {work_request.id!r} succeeded without a load balancer id"
            )

        logger.info("Load balancer %r created: %s", name, work_request.load_balancer_id)
        return self.get_load_balancer(work_request.load_balancer_id)

    def create_and_await_backend_set(
        self,
        load_balancer: LoadBalancer,
        details: CreateBackendSetDetails,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        **kwargs: Any,
    ) -> BackendSet:
        """
        Create a backend set on a load balancer and return it once created.

        A backend set without a policy is created with
        :data:`DEFAULT_LOAD_BALANCER_POLICY`; ``details`` itself is left unchanged.
        """
        if not details.policy:
            details = copy.copy(details)
            details.policy = DEFAULT_LOAD_BALANCER_POLICY

        logger.info(
            "Creating BackendSet %r for load balancer %r", details.name, load_balancer.display_name
        )
        try:
            response = self.load_balancer_client.create_backend_set(
                details, load_balancer.id, **kwargs
            )
        except Exception as e:
            logger.error(f"Failed to create BackendSet {details.name!r}: {e}")
            raise

        self.await_work_request(
            work_request_id_from(response, "create_backend_set"),
            timeout=timeout,
            cancel_event=cancel_event,
        )

        backend_set = self.load_balancer_client.get_backend_set(load_balancer.id, details.name).data
        return BackendSet.from_oci(backend_set)

    def create_and_await_listener(
        self,
        load_balancer: LoadBalancer,
        details: CreateListenerDetails,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        **kwargs: Any,
    ) -> None:
        """Create a listener on a load balancer and wait for the work request."""
        logger.info(
            "Creating Listener %r for load balancer %r", details.name, load_balancer.display_name
        )
        try:
            response = self.load_balancer_client.create_listener(
                details, load_balancer.id, **kwargs
            )
        except Exception as e:
            logger.error(f"Failed to create Listener {details.name!r}: {e}")
            raise

        self.await_work_request(
            work_request_id_from(response, "create_listener"),
            timeout=timeout,
            cancel_event=cancel_event,
        )

    def create_backend(
        self,
        load_balancer_id: str,
        backend_set_name: str,
        ip_address: str,
        port: int,
        **kwargs: Any,
    ) -> str:
        """Add a backend to a backend set, returning the work request id."""
        logger.info("Creating backend %s:%d in BackendSet %r", ip_address, port, backend_set_name)
        details = CreateBackendDetails(ip_address=ip_address, port=port)
        response = self.load_balancer_client.create_backend(
            details, load_balancer_id, backend_set_name, **kwargs
        )
        return work_request_id_from(response, "create_backend")

    def delete_backend_set(self, load_balancer_id: str, backend_set_name: str, **kwargs: Any) -> str:
        logger.info("Deleting BackendSet %r of load balancer %s", backend_set_name, load_balancer_id)
        response = self.load_balancer_client.delete_backend_set(
            load_balancer_id, backend_set_name, **kwargs
        )
        return work_request_id_from(response, "delete_backend_set")

    def delete_backend(
        self, load_balancer_id: str, backend_set_name: str, backend_name: str, **kwargs: Any
    ) -> str:
        logger.info("Deleting backend %r from BackendSet %r", backend_name, backend_set_name)
        response = self.load_balancer_client.delete_backend(
            load_balancer_id, backend_set_name, backend_name, **kwargs
        )
        return work_request_id_from(response, "delete_backend")

    def delete_listener(self, load_balancer_id: str, listener_name: str, **kwargs: Any) -> str:
        logger.info("Deleting Listener %r of load balancer %s", listener_name, load_balancer_id)
        response = self.load_balancer_client.delete_listener(
            load_balancer_id, listener_name, **kwargs
        )
        return work_request_id_from(response, "delete_listener")

    def delete_load_balancer(self, load_balancer_id: str, **kwargs: Any) -> str:
        logger.info("Deleting load balancer %s", load_balancer_id)
        response = self.load_balancer_client.delete_load_balancer(load_balancer_id, **kwargs)
        return work_request_id_from(response, "delete_load_balancer")
