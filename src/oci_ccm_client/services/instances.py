"""Compute instance lookup and node address operations."""

import ipaddress
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

import oci

from ..errors import AmbiguousResultError, InvalidArgumentError, MalformedDataError, NotFoundError
from ..models import Instance, NodeAddress, NodeAddressType, Vnic, VnicAttachment
from ..pagination import paginate

logger = logging.getLogger(__name__)


class StageOutcome(str, Enum):
    """Result of a single resolution stage."""
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    AMBIGUOUS = "AMBIGUOUS"


@dataclass
class StageResult:
    """Tagged outcome of a stage together with the candidates it saw."""
    outcome: StageOutcome
    instances: List[Instance] = field(default_factory=list)

    @classmethod
    def from_candidates(cls, instances: List[Instance]) -> "StageResult":
        if not instances:
            return cls(StageOutcome.NOT_FOUND)
        if len(instances) > 1:
            return cls(StageOutcome.AMBIGUOUS, instances)
        return cls(StageOutcome.FOUND, instances)


class DisplayNameStage:
    """Match running instances whose display name equals the node name."""

    name = "display name"

    def __init__(self, compute_client: oci.core.ComputeClient, compartment_id: str):
        self.compute_client = compute_client
        self.compartment_id = compartment_id

    def search(self, node_name: str) -> StageResult:
        running = paginate(
            self.compute_client.list_instances,
            self.compartment_id,
            display_name=node_name,
            predicate=lambda instance: Instance.from_oci(instance).is_running,
        )
        return StageResult.from_candidates([Instance.from_oci(i) for i in running])


class VnicScanStage:
    """
    Match running instances through the vnics attached to them.

    Every attachment in the compartment is inspected, so this costs one vnic
    fetch per attachment. A vnic matches when its public IP equals the node
    name, or when its hostname label is a prefix of the node name (node names
    are often FQDNs while labels are short host names).

    NOTE: prefix matching lets the label "node-1" match the node "node-10".
    """

    name = "vnic ip/hostname"

    def __init__(
        self,
        compute_client: oci.core.ComputeClient,
        network_client: oci.core.VirtualNetworkClient,
        compartment_id: str,
    ):
        self.compute_client = compute_client
        self.network_client = network_client
        self.compartment_id = compartment_id

    @staticmethod
    def matches(vnic: Vnic, node_name: str) -> bool:
        if vnic.public_ip and vnic.public_ip == node_name:
            return True
        return bool(vnic.hostname_label) and node_name.startswith(vnic.hostname_label)

    def search(self, node_name: str) -> StageResult:
        attachments = paginate(
            self.compute_client.list_vnic_attachments,
            self.compartment_id,
            predicate=lambda a: VnicAttachment.from_oci(a).is_attached,
        )

        running: Dict[str, Instance] = {}
        for attachment in map(VnicAttachment.from_oci, attachments):
            vnic = Vnic.from_oci(self.network_client.get_vnic(attachment.vnic_id).data)
            if not self.matches(vnic, node_name) or attachment.instance_id in running:
                continue

            instance = Instance.from_oci(
                self.compute_client.get_instance(attachment.instance_id).data
            )
            if instance.is_running:
                running[instance.id] = instance

        return StageResult.from_candidates(list(running.values()))


class InstanceResolver:
    """
    Resolve a Kubernetes node name to the OCI instance backing it.

    Stages are tried in order. The first stage to find exactly one instance
    wins; a stage that finds several stops the search with an
    :class:`AmbiguousResultError`. Only a stage that finds nothing hands over to
    the next one.
    """

    def __init__(
        self,
        compute_client: oci.core.ComputeClient,
        network_client: oci.core.VirtualNetworkClient,
        compartment_id: str,
        stages: Optional[Sequence] = None,
    ):
        self.compartment_id = compartment_id
        self.stages = list(stages) if stages is not None else [
            DisplayNameStage(compute_client, compartment_id),
            VnicScanStage(compute_client, network_client, compartment_id),
        ]

    def resolve(self, node_name: str) -> Instance:
        """
        Find the single running instance for ``node_name``.

        Raises:
            InvalidArgumentError: If ``node_name`` is blank
            NotFoundError: If no stage finds a running instance
            AmbiguousResultError: If a stage finds more than one
        """
        logger.debug("resolve(%r) called", node_name)
        if not node_name:
            raise InvalidArgumentError("blank node name passed to InstanceResolver.resolve()")

        for stage in self.stages:
            result = stage.search(node_name)
            if result.outcome == StageOutcome.FOUND:
                instance = result.instances[0]
                logger.debug("resolve(%r): got instance %s by %s", node_name, instance.id, stage.name)
                return instance
            if result.outcome == StageOutcome.AMBIGUOUS:
                count = len(result.instances)
                raise AmbiguousResultError(
                    f"expected one instance with {stage.name} {node_name!r} but got {count}",
                    candidates=count,
                )
            logger.debug("resolve(%r): no instance by %s", node_name, stage.name)

        raise NotFoundError(f"could not find instance for node name {node_name!r}")


def extract_node_addresses(vnic: Vnic) -> List[NodeAddress]:
    """Build the internal and external node addresses of a vnic."""
    addresses = []
    for raw, address_type, kind in (
        (vnic.private_ip, NodeAddressType.INTERNAL_IP, "private"),
        (vnic.public_ip, NodeAddressType.EXTERNAL_IP, "public"),
    ):
        if not raw:
            continue
        try:
            ip = ipaddress.ip_address(raw)
        except ValueError as exc:
            raise MalformedDataError(
                f"vnic {vnic.id} has invalid {kind} address: {raw!r}"
            ) from exc
        addresses.append(NodeAddress(type=address_type, address=str(ip)))

    return addresses


class NodeAddressExtractor:
    """Derive node addresses from the vnics attached to an instance."""

    def __init__(
        self,
        compute_client: oci.core.ComputeClient,
        network_client: oci.core.VirtualNetworkClient,
        compartment_id: str,
    ):
        self.compute_client = compute_client
        self.network_client = network_client
        self.compartment_id = compartment_id

    def get_attached_vnics(self, instance_id: str) -> List[Vnic]:
        """Return the AVAILABLE vnics of live attachments of an instance."""
        logger.debug("get_attached_vnics(%r) called", instance_id)
        if not instance_id:
            raise InvalidArgumentError("blank instance id passed to get_attached_vnics()")

        attachments = paginate(
            self.compute_client.list_vnic_attachments,
            self.compartment_id,
            instance_id=instance_id,
            predicate=lambda a: VnicAttachment.from_oci(a).is_attached,
        )

        vnics = []
        for attachment in map(VnicAttachment.from_oci, attachments):
            vnic = Vnic.from_oci(self.network_client.get_vnic(attachment.vnic_id).data)
            if vnic.is_available:
                vnics.append(vnic)
        return vnics

    def get_node_addresses(self, instance_id: str) -> List[NodeAddress]:
        """Return the node addresses of an instance in vnic order."""
        logger.debug("get_node_addresses(%r) called", instance_id)
        if not instance_id:
            raise InvalidArgumentError("blank instance id passed to get_node_addresses()")

        addresses: List[NodeAddress] = []
        for vnic in self.get_attached_vnics(instance_id):
            addresses.extend(extract_node_addresses(vnic))

        logger.debug("NodeAddresses for %s: %s", instance_id, addresses)
        return addresses
