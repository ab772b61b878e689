"""Subnet admission control for new filesystems."""

from dataclasses import dataclass

from oslo_log import log as logging

from .azure.errors import convert_response_error
from .context import RequestContext
from .exceptions import ClientNotConfigured, SubnetNotFound
from .parameters import SubnetProperties

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubnetAdmissionResult:
    """Address requirement of a filesystem against what its subnet has free."""

    required: int
    available: int

    @property
    def sufficient(self) -> bool:
        return self.available >= self.required


class SubnetAdmissionController:
    """Decides whether a subnet has room for a new filesystem.

    Only consulted before creating a filesystem that does not exist yet.
    """

    def __init__(self, sizing=None, usages=None):
        self.sizing = sizing
        self.usages = usages

    def required_addresses(self, ctx: RequestContext, sku_name: str, capacity_tib: float) -> int:
        if self.sizing is None:
            raise ClientNotConfigured(client="storage management")
        try:
            return self.sizing.required_address_count(ctx, sku_name, capacity_tib)
        except Exception as e:
            raise convert_response_error(e)

    def available_addresses(self, ctx: RequestContext, subnet_info: SubnetProperties) -> int:
        """Free addresses in the subnet, from the vnet usage listing.

        Raises:
            SubnetNotFound: No usage entry matches the subnet ID
        """
        if self.usages is None:
            raise ClientNotConfigured(client="vnet")

        try:
            for page in self.usages.list_usage_pages(
                ctx, subnet_info.vnet_resource_group, subnet_info.vnet_name
            ):
                for usage in page:
                    if usage.id == subnet_info.subnet_id:
                        LOG.debug("Found subnet %s: %s", usage.id, usage)
                        return int(usage.limit) - int(usage.current_value)
        except Exception as e:
            raise convert_response_error(e)

        LOG.warning(
            "Subnet %s not found in vnet %s, resource group %s",
            subnet_info.subnet_id,
            subnet_info.vnet_name,
            subnet_info.vnet_resource_group,
        )
        raise SubnetNotFound(
            subnet_id=subnet_info.subnet_id,
            vnet_name=subnet_info.vnet_name,
            resource_group=subnet_info.vnet_resource_group,
        )

    def evaluate(
        self,
        ctx: RequestContext,
        subnet_info: SubnetProperties,
        sku_name: str,
        capacity_tib: float,
    ) -> SubnetAdmissionResult:
        required = self.required_addresses(ctx, sku_name, capacity_tib)
        LOG.info("Required IPs: %d", required)
        available = self.available_addresses(ctx, subnet_info)
        LOG.info("Available IPs: %d", available)
        return SubnetAdmissionResult(required=required, available=available)

    def check_subnet_capacity(
        self,
        ctx: RequestContext,
        subnet_info: SubnetProperties,
        sku_name: str,
        capacity_tib: float,
    ) -> bool:
        """Return True when the subnet can fit the filesystem.

        Raises:
            InvalidArgument: The sizing query rejected the SKU
            FailedPrecondition: The subnet is not in its vnet's usage listing
            ClientNotConfigured: Sizing or usage client missing
        """
        result = self.evaluate(ctx, subnet_info, sku_name, capacity_tib)
        if not result.sufficient:
            LOG.warning(
                "There is not enough room in the %s subnetID to fit a %s SKU cluster: "
                "%d needed, %d available",
                subnet_info.subnet_id,
                sku_name,
                result.required,
                result.available,
            )
            return False
        LOG.debug(
            "There is enough room in the %s subnetID to fit a %s SKU cluster: "
            "%d needed, %d available",
            subnet_info.subnet_id,
            sku_name,
            result.required,
            result.available,
        )
        return True
