"""Microsoft.Network client for virtual network address usage."""

from typing import Iterator, List, Optional

from ..context import RequestContext
from .base import SubnetUsageProvider
from .client import ArmClient
from .models import VirtualNetworkUsage

NETWORK_API_VERSION = "2023-09-01"

VNET_USAGES_PATH = (
    "/subscriptions/%s/resourceGroups/%s/providers/Microsoft.Network/virtualNetworks/%s/usages"
)


class VirtualNetworksClient(SubnetUsageProvider):
    """Virtual network usage listing.

    The vnet may live in a different subscription from the filesystem, in
    which case ``subscription_id`` overrides the ARM client's.
    """

    def __init__(self, arm_client: ArmClient, subscription_id: Optional[str] = None):
        self.arm_client = arm_client
        self.subscription_id = subscription_id or arm_client.subscription_id

    def list_usage_pages(
        self, ctx: RequestContext, vnet_resource_group: str, vnet_name: str
    ) -> Iterator[List[VirtualNetworkUsage]]:
        path = VNET_USAGES_PATH % (self.subscription_id, vnet_resource_group, vnet_name)
        for page in self.arm_client.list_pages(
            ctx, path, params={"api-version": NETWORK_API_VERSION}
        ):
            yield [VirtualNetworkUsage.model_validate(item) for item in page]
