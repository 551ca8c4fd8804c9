"""OCI services package."""

from .instances import InstanceResolver, NodeAddressExtractor
from .load_balancer import LoadBalancerService
from .network import DefaultSecurityListSelector, SubnetResolver

__all__ = [
    "InstanceResolver",
    "NodeAddressExtractor",
    "LoadBalancerService",
    "SubnetResolver",
    "DefaultSecurityListSelector",
]
