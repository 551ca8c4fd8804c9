"""Main client module of the OCI cloud controller client."""

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional

import oci
from oci.core.models import UpdateSecurityListDetails
from oci.load_balancer.models import CreateBackendSetDetails, CreateListenerDetails

from .auth import OCIAuthenticator
from .errors import ConfigurationError, InvalidArgumentError
from .models import (
    BackendSet,
    BackoffPolicy,
    CloudConfig,
    Instance,
    LoadBalancer,
    NodeAddress,
    SecurityList,
    Subnet,
    Vnic,
    WorkRequest,
)
from .services import (
    DefaultSecurityListSelector,
    InstanceResolver,
    LoadBalancerService,
    NodeAddressExtractor,
    SubnetResolver,
)
from .work_requests import WorkRequestAwaiter

logger = logging.getLogger(__name__)


class CloudClient:
    """
    OCI client bound to a single compartment.

    Owns the SDK service clients and exposes the node lookup, network and load
    balancer operations a cloud controller needs. The compartment cannot be
    changed on an existing client; use :meth:`with_compartment` to get a client
    for another one, so concurrent callers never see the scope move under them.
    """

    def __init__(
        self,
        compute_client: oci.core.ComputeClient,
        network_client: oci.core.VirtualNetworkClient,
        load_balancer_client: oci.load_balancer.LoadBalancerClient,
        compartment_id: str,
        identity_client: Optional[oci.identity.IdentityClient] = None,
        backoff: Optional[BackoffPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
        close_sdk_clients: bool = True,
    ):
        """
        Initialize the client from already built SDK clients.

        Args:
            compute_client: SDK compute client
            network_client: SDK virtual network client
            load_balancer_client: SDK load balancer client
            compartment_id: OCID of the compartment every call is scoped to
            identity_client: SDK identity client, only needed by :meth:`validate`
            backoff: Work request polling schedule
            sleep: Function used to wait between work request polls
            close_sdk_clients: Whether leaving the context manager closes the SDK
                clients' connection pools
        """
        if not compartment_id:
            raise InvalidArgumentError("blank compartment id passed to CloudClient")

        self.compute_client = compute_client
        self.network_client = network_client
        self.load_balancer_client = load_balancer_client
        self.identity_client = identity_client
        self.backoff = backoff or BackoffPolicy()
        self._compartment_id = compartment_id
        self._sleep = sleep
        self._close_sdk_clients = close_sdk_clients

        self.awaiter = WorkRequestAwaiter(
            load_balancer_client.get_work_request, backoff=self.backoff, sleep=sleep
        )
        self.instance_resolver = InstanceResolver(compute_client, network_client, compartment_id)
        self.address_extractor = NodeAddressExtractor(compute_client, network_client, compartment_id)
        self.subnet_resolver = SubnetResolver(compute_client, network_client, compartment_id)
        self.security_list_selector = DefaultSecurityListSelector(network_client)
        self.load_balancers = LoadBalancerService(load_balancer_client, compartment_id, self.awaiter)

    @property
    def compartment_id(self) -> str:
        return self._compartment_id

    def with_compartment(self, compartment_id: str) -> "CloudClient":
        """
        Return a client sharing these SDK clients but scoped to another compartment.

        The returned client does not own the shared SDK clients: leaving its
        context manager leaves their connection pools open.
        """
        return CloudClient(
            self.compute_client,
            self.network_client,
            self.load_balancer_client,
            compartment_id,
            identity_client=self.identity_client,
            backoff=self.backoff,
            sleep=self._sleep,
            close_sdk_clients=False,
        )

    def validate(self) -> None:
        """Fail fast if the API cannot be reached with the current credentials."""
        if self.identity_client is None:
            raise ConfigurationError("validate() needs an identity client")
        try:
            self.identity_client.list_availability_domains(self._compartment_id)
        except Exception as e:
            logger.error(f"Connection check failed for compartment {self._compartment_id}: {e}")
            raise

    # Instances

    def get_instance(self, instance_id: str) -> Instance:
        if not instance_id:
            raise InvalidArgumentError("blank instance id passed to get_instance()")
        return Instance.from_oci(self.compute_client.get_instance(instance_id).data)

    def get_instance_by_node_name(self, node_name: str) -> Instance:
        """Resolve a node name to its running instance (see :class:`InstanceResolver`)."""
        return self.instance_resolver.resolve(node_name)

    def get_node_addresses_for_instance(self, instance_id: str) -> List[NodeAddress]:
        return self.address_extractor.get_node_addresses(instance_id)

    def get_attached_vnics_for_instance(self, instance_id: str) -> List[Vnic]:
        return self.address_extractor.get_attached_vnics(instance_id)

    # Network

    def get_subnet(self, subnet_id: str) -> Subnet:
        return Subnet.from_oci(self.network_client.get_subnet(subnet_id).data)

    def get_subnets(self, subnet_ids: Iterable[str]) -> List[Subnet]:
        return [self.get_subnet(subnet_id) for subnet_id in subnet_ids]

    def get_subnets_for_internal_ips(self, ips: Iterable[str]) -> List[Subnet]:
        return self.subnet_resolver.resolve(ips)

    def get_default_security_list(self, subnet: Subnet) -> SecurityList:
        return self.security_list_selector.select(subnet)

    def update_security_list(
        self, security_list_id: str, details: UpdateSecurityListDetails, **kwargs: Any
    ) -> SecurityList:
        logger.info("Updating SecurityList %s", security_list_id)
        response = self.network_client.update_security_list(security_list_id, details, **kwargs)
        return SecurityList.from_oci(response.data)

    # Load balancers

    def await_work_request(
        self,
        work_request_id: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> WorkRequest:
        return self.awaiter.wait(work_request_id, timeout=timeout, cancel_event=cancel_event)

    def get_load_balancer_by_name(self, name: str) -> LoadBalancer:
        return self.load_balancers.get_load_balancer_by_name(name)

    def create_and_await_load_balancer(
        self, name: str, shape: str, subnet_ids: List[str], **kwargs: Any
    ) -> LoadBalancer:
        return self.load_balancers.create_and_await_load_balancer(name, shape, subnet_ids, **kwargs)

    def create_and_await_backend_set(
        self, load_balancer: LoadBalancer, details: CreateBackendSetDetails, **kwargs: Any
    ) -> BackendSet:
        return self.load_balancers.create_and_await_backend_set(load_balancer, details, **kwargs)

    def create_and_await_listener(
        self, load_balancer: LoadBalancer, details: CreateListenerDetails, **kwargs: Any
    ) -> None:
        self.load_balancers.create_and_await_listener(load_balancer, details, **kwargs)

    def create_backend(
        self, load_balancer_id: str, backend_set_name: str, ip_address: str, port: int, **kwargs: Any
    ) -> str:
        return self.load_balancers.create_backend(
            load_balancer_id, backend_set_name, ip_address, port, **kwargs
        )

    def delete_backend_set(self, load_balancer_id: str, backend_set_name: str, **kwargs: Any) -> str:
        return self.load_balancers.delete_backend_set(load_balancer_id, backend_set_name, **kwargs)

    def delete_backend(
        self, load_balancer_id: str, backend_set_name: str, backend_name: str, **kwargs: Any
    ) -> str:
        return self.load_balancers.delete_backend(
            load_balancer_id, backend_set_name, backend_name, **kwargs
        )

    def delete_listener(self, load_balancer_id: str, listener_name: str, **kwargs: Any) -> str:
        return self.load_balancers.delete_listener(load_balancer_id, listener_name, **kwargs)

    def delete_load_balancer(self, load_balancer_id: str, **kwargs: Any) -> str:
        return self.load_balancers.delete_load_balancer(load_balancer_id, **kwargs)

    def __enter__(self) -> "CloudClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close the SDK connection pools."""
        if not self._close_sdk_clients:
            return
        for sdk_client in (
            self.compute_client,
            self.network_client,
            self.load_balancer_client,
            self.identity_client,
        ):
            base_client = getattr(sdk_client, "base_client", None)
            session = getattr(base_client, "session", None)
            if session is not None:
                session.close()


def new_client(
    config: CloudConfig,
    retry_strategy: Optional[oci.retry.RetryStrategyBuilder] = None,
) -> CloudClient:
    """
    Authenticate and build a :class:`CloudClient` from configuration.

    Args:
        config: Validated client configuration
        retry_strategy: Optional retry strategy for SDK calls

    Returns:
        CloudClient: Client scoped to ``config.compartment_id``
    """
    oci_config, signer = OCIAuthenticator(config.auth).authenticate()
    client_kwargs = {
        "signer": signer,
        "retry_strategy": retry_strategy or oci.retry.DEFAULT_RETRY_STRATEGY,
    }

    logger.info(
        "Initializing OCI clients for region %s, compartment %s",
        oci_config.get("region"),
        config.compartment_id,
    )
    return CloudClient(
        compute_client=oci.core.ComputeClient(oci_config, **client_kwargs),
        network_client=oci.core.VirtualNetworkClient(oci_config, **client_kwargs),
        load_balancer_client=oci.load_balancer.LoadBalancerClient(oci_config, **client_kwargs),
        compartment_id=config.compartment_id,
        identity_client=oci.identity.IdentityClient(oci_config, **client_kwargs),
        backoff=config.backoff,
    )
