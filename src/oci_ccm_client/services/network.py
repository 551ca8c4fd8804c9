"""Subnet and security list operations for OCI virtual networks."""

import logging
from typing import Dict, Iterable, List

import oci

from ..errors import MalformedDataError
from ..models import SecurityList, Subnet, Vnic, VnicAttachment
from ..pagination import paginate

logger = logging.getLogger(__name__)


class SubnetResolver:
    """Map internal IP addresses to the subnets they live in."""

    def __init__(
        self,
        compute_client: oci.core.ComputeClient,
        network_client: oci.core.VirtualNetworkClient,
        compartment_id: str,
    ):
        self.compute_client = compute_client
        self.network_client = network_client
        self.compartment_id = compartment_id

    def resolve(self, ips: Iterable[str]) -> List[Subnet]:
        """
        Return the distinct subnets owning any of the given private IPs.

        All vnic attachments of the compartment are scanned. Each subnet is
        fetched once, the first time one of its vnics matches; the result keeps
        that first-seen order.
        """
        ip_set = set(ips)
        if not ip_set:
            return []

        attachments = paginate(
            self.compute_client.list_vnic_attachments,
            self.compartment_id,
            predicate=lambda a: VnicAttachment.from_oci(a).is_attached,
        )

        subnets: Dict[str, Subnet] = {}
        for attachment in map(VnicAttachment.from_oci, attachments):
            vnic = Vnic.from_oci(self.network_client.get_vnic(attachment.vnic_id).data)
            if not vnic.private_ip or vnic.private_ip not in ip_set:
                continue
            if vnic.subnet_id in subnets:
                continue

            subnets[vnic.subnet_id] = Subnet.from_oci(
                self.network_client.get_subnet(vnic.subnet_id).data
            )

        logger.debug("Subnets for %d internal IPs: %s", len(ip_set), list(subnets))
        return list(subnets.values())


class DefaultSecurityListSelector:
    """
    Pick the default security list of a subnet.

    OCI creates a security list together with every subnet and does not allow it
    to be deleted, so the oldest list attached to a subnet is its default.
    """

    def __init__(self, network_client: oci.core.VirtualNetworkClient):
        self.network_client = network_client

    def select(self, subnet: Subnet) -> SecurityList:
        security_lists = [
            SecurityList.from_oci(self.network_client.get_security_list(list_id).data)
            for list_id in subnet.security_list_ids
        ]

        if not security_lists:
            raise MalformedDataError(f"no SecurityLists found for Subnet {subnet.id!r}")

        return min(security_lists, key=lambda security_list: security_list.time_created)
