"""Data models for the OCI cloud controller client."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InstanceState(str, Enum):
    """Lifecycle states of a compute instance."""
    MOVING = "MOVING"
    PROVISIONING = "PROVISIONING"
    RUNNING = "RUNNING"
    STARTING = "STARTING"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    CREATING_IMAGE = "CREATING_IMAGE"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"


class AttachmentState(str, Enum):
    """Lifecycle states of a vnic attachment."""
    ATTACHING = "ATTACHING"
    ATTACHED = "ATTACHED"
    DETACHING = "DETACHING"
    DETACHED = "DETACHED"


class VnicState(str, Enum):
    """Lifecycle states of a vnic."""
    PROVISIONING = "PROVISIONING"
    AVAILABLE = "AVAILABLE"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"


class WorkRequestState(str, Enum):
    """Lifecycle states of a load balancer work request."""
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class NodeAddressType(str, Enum):
    """Address types reported for a Kubernetes node."""
    INTERNAL_IP = "InternalIP"
    EXTERNAL_IP = "ExternalIP"


@dataclass
class Instance:
    """Snapshot of an OCI compute instance."""
    id: str
    lifecycle_state: str
    display_name: Optional[str] = None
    compartment_id: Optional[str] = None
    availability_domain: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.lifecycle_state == InstanceState.RUNNING

    @classmethod
    def from_oci(cls, instance: Any) -> "Instance":
        return cls(
            id=instance.id,
            lifecycle_state=instance.lifecycle_state,
            display_name=getattr(instance, "display_name", None),
            compartment_id=getattr(instance, "compartment_id", None),
            availability_domain=getattr(instance, "availability_domain", None),
        )


@dataclass
class VnicAttachment:
    """Relation between an instance and one of its vnics."""
    id: str
    instance_id: str
    vnic_id: Optional[str]
    lifecycle_state: str

    @property
    def is_attached(self) -> bool:
        return self.lifecycle_state == AttachmentState.ATTACHED

    @classmethod
    def from_oci(cls, attachment: Any) -> "VnicAttachment":
        return cls(
            id=attachment.id,
            instance_id=attachment.instance_id,
            vnic_id=getattr(attachment, "vnic_id", None),
            lifecycle_state=attachment.lifecycle_state,
        )


@dataclass
class Vnic:
    """Snapshot of a virtual network interface."""
    id: str
    lifecycle_state: str
    subnet_id: Optional[str] = None
    hostname_label: Optional[str] = None
    private_ip: Optional[str] = None
    public_ip: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.lifecycle_state == VnicState.AVAILABLE

    @classmethod
    def from_oci(cls, vnic: Any) -> "Vnic":
        return cls(
            id=vnic.id,
            lifecycle_state=vnic.lifecycle_state,
            subnet_id=getattr(vnic, "subnet_id", None),
            hostname_label=getattr(vnic, "hostname_label", None),
            private_ip=getattr(vnic, "private_ip", None),
            public_ip=getattr(vnic, "public_ip", None),
        )


@dataclass
class Subnet:
    """Snapshot of a subnet and the security lists attached to it."""
    id: str
    security_list_ids: List[str] = field(default_factory=list)
    display_name: Optional[str] = None
    cidr_block: Optional[str] = None
    vcn_id: Optional[str] = None

    @classmethod
    def from_oci(cls, subnet: Any) -> "Subnet":
        return cls(
            id=subnet.id,
            security_list_ids=list(getattr(subnet, "security_list_ids", None) or []),
            display_name=getattr(subnet, "display_name", None),
            cidr_block=getattr(subnet, "cidr_block", None),
            vcn_id=getattr(subnet, "vcn_id", None),
        )


@dataclass
class SecurityList:
    """Snapshot of a security list."""
    id: str
    time_created: datetime
    display_name: Optional[str] = None
    vcn_id: Optional[str] = None

    @classmethod
    def from_oci(cls, security_list: Any) -> "SecurityList":
        return cls(
            id=security_list.id,
            time_created=security_list.time_created,
            display_name=getattr(security_list, "display_name", None),
            vcn_id=getattr(security_list, "vcn_id", None),
        )


@dataclass
class WorkRequest:
    """Observed state of an asynchronous load balancer operation."""
    id: str
    lifecycle_state: str
    load_balancer_id: Optional[str] = None
    type: Optional[str] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.lifecycle_state == WorkRequestState.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.lifecycle_state == WorkRequestState.FAILED

    @classmethod
    def from_oci(cls, work_request: Any) -> "WorkRequest":
        message = getattr(work_request, "message", None)
        error_details = getattr(work_request, "error_details", None) or []
        if not message and error_details:
            message = getattr(error_details[0], "message", None)

        return cls(
            id=work_request.id,
            lifecycle_state=work_request.lifecycle_state,
            load_balancer_id=getattr(work_request, "load_balancer_id", None),
            type=getattr(work_request, "type", None),
            message=message,
        )


@dataclass(frozen=True)
class NodeAddress:
    """A typed address of a node, as reported to Kubernetes."""
    type: NodeAddressType
    address: str


@dataclass
class Backend:
    """A single backend server of a backend set."""
    name: str
    ip_address: str
    port: int

    @classmethod
    def from_oci(cls, backend: Any) -> "Backend":
        return cls(name=backend.name, ip_address=backend.ip_address, port=backend.port)


@dataclass
class BackendSet:
    """Snapshot of a load balancer backend set."""
    name: str
    policy: Optional[str] = None
    backends: List[Backend] = field(default_factory=list)

    @classmethod
    def from_oci(cls, backend_set: Any) -> "BackendSet":
        return cls(
            name=backend_set.name,
            policy=getattr(backend_set, "policy", None),
            backends=[Backend.from_oci(b) for b in getattr(backend_set, "backends", None) or []],
        )


@dataclass
class LoadBalancer:
    """Snapshot of a load balancer."""
    id: str
    display_name: str
    lifecycle_state: Optional[str] = None
    shape_name: Optional[str] = None
    ip_addresses: List[str] = field(default_factory=list)
    subnet_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_oci(cls, load_balancer: Any) -> "LoadBalancer":
        return cls(
            id=load_balancer.id,
            display_name=load_balancer.display_name,
            lifecycle_state=getattr(load_balancer, "lifecycle_state", None),
            shape_name=getattr(load_balancer, "shape_name", None),
            ip_addresses=[
                ip.ip_address for ip in getattr(load_balancer, "ip_addresses", None) or []
            ],
            subnet_ids=list(getattr(load_balancer, "subnet_ids", None) or []),
        )


class BackoffPolicy(BaseModel):
    """
    Polling schedule for work requests.

    The n-th wait is ``initial_interval * factor ** (n - 1)`` seconds, scaled by a
    random factor in ``[1 - jitter, 1 + jitter]``. With the defaults the worst
    case is a little over three minutes of sleeping spread over 15 polls.
    """
    model_config = ConfigDict(frozen=True)

    initial_interval: float = Field(default=2.0, gt=0)
    factor: float = Field(default=1.25, ge=1.0)
    jitter: float = Field(default=0.1, ge=0, lt=1)
    max_attempts: int = Field(default=15, ge=1)

    def max_total_wait(self) -> float:
        """Upper bound, in seconds, of the time spent sleeping between polls."""
        sleeps = self.max_attempts - 1
        return sum(
            self.initial_interval * self.factor ** step * (1 + self.jitter)
            for step in range(sleeps)
        )


class AuthConfig(BaseModel):
    """Credentials used to sign OCI API requests."""
    model_config = ConfigDict(validate_assignment=True)

    region: Optional[str] = None
    tenancy: Optional[str] = None
    user: Optional[str] = None
    fingerprint: Optional[str] = None
    key_file: Optional[str] = None
    pass_phrase: Optional[str] = None
    profile_name: str = "DEFAULT"
    config_file: Optional[str] = None
    use_instance_principals: bool = False

    def is_api_key_auth(self) -> bool:
        """Check if explicit API key fields were supplied."""
        return all([self.tenancy, self.user, self.fingerprint, self.key_file])


class CloudConfig(BaseModel):
    """Top-level configuration of the cloud client."""
    model_config = ConfigDict(validate_assignment=True)

    compartment_id: str
    auth: AuthConfig = Field(default_factory=AuthConfig)
    backoff: BackoffPolicy = Field(default_factory=BackoffPolicy)
