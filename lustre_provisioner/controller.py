"""Controller service: CreateVolume and DeleteVolume.

Static volumes point at an existing filesystem through ``mgs-ip-address``
and only need a volume ID. Dynamic volumes get a new AMLFS cluster from the
DynamicProvisioner; the cluster's name and resource group are recorded in the
volume ID so DeleteVolume can tear it down again.
"""

import dataclasses
from enum import Enum
from typing import Dict, List, Optional

from oslo_log import log as logging

from . import volume_id as volume_id_codec
from .azure.client import ArmClient
from .azure.network import VirtualNetworksClient
from .azure.storagecache import (
    AmlFilesystemsClient,
    SkusClient,
    StorageCacheManagementClient,
)
from .cloud_config import CloudConfig, load_cloud_config
from .context import RequestContext
from .exceptions import (
    FailedPrecondition,
    Internal,
    InvalidArgument,
    InvalidVolumeId,
    LustreProvisionerException,
    NotFound,
    wrap_error,
)
from .locks import VolumeLocks
from .parameters import (
    ProvisioningRequest,
    SubnetProperties,
    get_valid_aml_filesystem_name,
    parse_provisioning_request,
)
from .provisioner import DynamicProvisioner
from .sku import DEFAULT_SKU_VALUES, TIB, SkuCapacityTable, round_up_to_increment

LOG = logging.getLogger(__name__)

DEFAULT_LUSTRE_FS_NAME = "lustrefs"

SUBNET_TEMPLATE = (
    "/subscriptions/%s/resourceGroups/%s/providers/Microsoft.Network/virtualNetworks/%s/subnets/%s"
)


class AccessType(str, Enum):
    MOUNT = "mount"
    BLOCK = "block"


class AccessMode(str, Enum):
    UNKNOWN = "UNKNOWN"
    SINGLE_NODE_WRITER = "SINGLE_NODE_WRITER"
    SINGLE_NODE_READER_ONLY = "SINGLE_NODE_READER_ONLY"
    SINGLE_NODE_SINGLE_WRITER = "SINGLE_NODE_SINGLE_WRITER"
    SINGLE_NODE_MULTI_WRITER = "SINGLE_NODE_MULTI_WRITER"
    MULTI_NODE_READER_ONLY = "MULTI_NODE_READER_ONLY"
    MULTI_NODE_SINGLE_WRITER = "MULTI_NODE_SINGLE_WRITER"
    MULTI_NODE_MULTI_WRITER = "MULTI_NODE_MULTI_WRITER"


SUPPORTED_ACCESS_MODES = frozenset(mode for mode in AccessMode if mode != AccessMode.UNKNOWN)


@dataclasses.dataclass(frozen=True)
class VolumeCapability:
    access_mode: AccessMode = AccessMode.MULTI_NODE_MULTI_WRITER
    access_type: AccessType = AccessType.MOUNT


@dataclasses.dataclass(frozen=True)
class CreateVolumeResult:
    volume_id: str
    capacity_bytes: int
    volume_context: Dict[str, str]


def validate_capabilities(capabilities: List[VolumeCapability]) -> None:
    """Raise InvalidArgument for block volumes or unsupported access modes."""
    for capability in capabilities:
        if capability.access_type != AccessType.MOUNT:
            raise InvalidArgument(details="Doesn't support block volume.")
        if capability.access_mode not in SUPPORTED_ACCESS_MODES:
            raise InvalidArgument(
                details="Volume doesn't support %s" % AccessMode(capability.access_mode).value
            )


def set_key_value(params: Dict[str, str], key: str, value: str) -> None:
    """Set ``key`` in ``params``, reusing an existing key of any case."""
    for existing in params:
        if existing.lower() == key.lower():
            params[existing] = value
            return
    params[key] = value


class LustreControllerService:
    """Volume lifecycle entry points.

    Every operation holds a per-volume lock for its whole duration, so at
    most one create or delete runs per volume at a time.
    """

    VERSION = "0.1.0"

    def __init__(
        self,
        configuration,
        provisioner: Optional[DynamicProvisioner] = None,
        volume_locks: Optional[VolumeLocks] = None,
        cloud_config: Optional[CloudConfig] = None,
    ):
        """Initialize controller service.

        Args:
            configuration: Object exposing the ``azurelustre_*`` options
            provisioner: Pre-built provisioner; do_setup builds one otherwise
            volume_locks: Lock registry, shared by all operations of this service
            cloud_config: Pre-loaded cloud config; do_setup reads the file otherwise
        """
        self.configuration = configuration
        self.provisioner = provisioner
        self.volume_locks = volume_locks if volume_locks is not None else VolumeLocks()
        self.cloud_config = cloud_config

    def do_setup(self) -> None:
        """Load the cloud config and build the provisioner's ARM clients.

        Raises:
            FailedPrecondition: No usable cloud config and mock mode disabled
        """
        LOG.info("Initializing Lustre provisioner controller version %s", self.VERSION)

        if self.cloud_config is None:
            self.cloud_config = load_cloud_config(
                self.configuration.azurelustre_cloud_config_path
            )

        if self.provisioner is not None:
            return

        poll_frequency = self.configuration.azurelustre_poll_frequency

        if self.cloud_config is None:
            if not self.configuration.azurelustre_enable_mock_dynamic_provisioning:
                raise FailedPrecondition(details="no cloud config provided")
            LOG.info("No cloud config provided, running with mock dynamic provisioning")
            self.provisioner = DynamicProvisioner(poll_frequency=poll_frequency)
            return

        try:
            arm_client = ArmClient(
                subscription_id=self.cloud_config.subscription_id,
                endpoint=self.configuration.azurelustre_arm_endpoint,
                api_token=self.configuration.azurelustre_api_token,
                timeout=self.configuration.azurelustre_api_timeout,
                retry_count=self.configuration.azurelustre_api_retry_count,
                verify_ssl=self.configuration.azurelustre_verify_ssl,
                ca_bundle=self.configuration.azurelustre_api_ca_bundle,
            )
        except ValueError as e:
            raise FailedPrecondition(details="invalid cloud config: %s" % e)

        self.provisioner = DynamicProvisioner(
            filesystems=AmlFilesystemsClient(arm_client),
            sizing=StorageCacheManagementClient(arm_client),
            usages=VirtualNetworksClient(
                arm_client,
                subscription_id=self.cloud_config.network_resource_subscription_id or None,
            ),
            poll_frequency=poll_frequency,
            sku_table=SkuCapacityTable(
                catalog=SkusClient(arm_client),
                cache_ttl=self.configuration.azurelustre_sku_cache_ttl,
            ),
        )
        LOG.info(
            "Lustre provisioner using subscription %s, resource group %s, location %s",
            self.cloud_config.subscription_id,
            self.cloud_config.resource_group,
            self.cloud_config.location,
        )

    def _require_provisioner(self) -> DynamicProvisioner:
        if self.provisioner is None:
            raise Internal(details="controller service is not set up")
        return self.provisioner

    def get_cloud_config(self) -> CloudConfig:
        """Loaded cloud config, or an empty one in mock mode."""
        return self.cloud_config if self.cloud_config is not None else CloudConfig()

    def get_subnet_resource_id(
        self, vnet_resource_group: str, vnet_name: str, subnet_name: str
    ) -> str:
        """Full subnet resource ID, with missing parts taken from the cloud config."""
        cloud = self.get_cloud_config()
        subscription_id = cloud.network_resource_subscription_id or cloud.subscription_id
        if not vnet_resource_group:
            vnet_resource_group = cloud.vnet_resource_group or cloud.resource_group
        if not vnet_name:
            vnet_name = cloud.vnet_name
        if not subnet_name:
            subnet_name = cloud.subnet_name
        return SUBNET_TEMPLATE % (subscription_id, vnet_resource_group, vnet_name, subnet_name)

    def populate_subnet_properties(self, subnet_info: SubnetProperties) -> SubnetProperties:
        cloud = self.get_cloud_config()
        vnet_resource_group = (
            subnet_info.vnet_resource_group or cloud.vnet_resource_group or cloud.resource_group
        )
        vnet_name = subnet_info.vnet_name or cloud.vnet_name
        subnet_name = subnet_info.subnet_name or cloud.subnet_name
        return SubnetProperties(
            vnet_resource_group=vnet_resource_group,
            vnet_name=vnet_name,
            subnet_name=subnet_name,
            subnet_id=self.get_subnet_resource_id(vnet_resource_group, vnet_name, subnet_name),
        )

    def _complete_dynamic_request(
        self, name: str, request: ProvisioningRequest, capacity_bytes: int
    ) -> ProvisioningRequest:
        cloud = self.get_cloud_config()
        return dataclasses.replace(
            request,
            location=request.location or cloud.location,
            resource_group_name=request.resource_group_name or cloud.resource_group,
            subnet_info=self.populate_subnet_properties(request.subnet_info),
            storage_capacity_tib=capacity_bytes / TIB,
            aml_filesystem_name=get_valid_aml_filesystem_name(request.aml_filesystem_name, name),
        )

    def create_volume(
        self,
        ctx: RequestContext,
        name: str,
        required_bytes: int,
        limit_bytes: int,
        parameters: Optional[Dict[str, str]],
        volume_capabilities: Optional[List[VolumeCapability]] = None,
    ) -> CreateVolumeResult:
        """Provision a volume.

        Args:
            ctx: Request context
            name: Volume name chosen by the orchestrator
            required_bytes: Requested capacity (0 for the default size)
            limit_bytes: Capacity limit (0 for none)
            parameters: Storage class parameters
            volume_capabilities: Requested capabilities; None skips the check

        Returns:
            CreateVolumeResult

        Raises:
            InvalidArgument: Bad request or parameters
            Aborted: Another operation on the same volume is in flight
            LustreProvisionerException: Provisioning failure, same code as
                the underlying error
        """
        if not name:
            raise InvalidArgument(details="CreateVolume Name must be provided")

        if volume_capabilities is not None:
            if not volume_capabilities:
                raise InvalidArgument(details="CreateVolume Volume capabilities must be provided")
            validate_capabilities(volume_capabilities)

        with self.volume_locks.hold(name):
            if parameters is None:
                raise InvalidArgument(details="CreateVolume Parameters must be provided")

            request = parse_provisioning_request(parameters)

            if request.is_dynamic:
                provisioner = self._require_provisioner()
                location = request.location or self.get_cloud_config().location
                sku_values = provisioner.get_sku_values_for_location(ctx, location)
            else:
                sku_values = DEFAULT_SKU_VALUES

            capacity_bytes = round_up_to_increment(required_bytes, request.sku_name, sku_values)
            LOG.debug("Rounded capacity for volume %s: %d bytes", name, capacity_bytes)

            if limit_bytes and capacity_bytes > limit_bytes:
                raise InvalidArgument(
                    details="CreateVolume required capacity %d is greater than capacity limit %d"
                    % (capacity_bytes, limit_bytes)
                )

            volume_context = dict(parameters)

            if request.is_dynamic:
                request = self._complete_dynamic_request(name, request, capacity_bytes)
                aml_filesystem_name = request.aml_filesystem_name
                LOG.info("Beginning to create AMLFS cluster %s", aml_filesystem_name)
                try:
                    mgs_ip_address = provisioner.create_aml_filesystem(ctx, request)
                except LustreProvisionerException as e:
                    LOG.warning("Error when creating AMLFS %s: %s", aml_filesystem_name, e)
                    raise wrap_error(
                        e, "CreateVolume error when creating AMLFS %s" % aml_filesystem_name
                    )

                set_key_value(
                    volume_context,
                    volume_id_codec.VOLUME_CONTEXT_AML_FILESYSTEM_NAME,
                    aml_filesystem_name,
                )
                set_key_value(
                    volume_context,
                    volume_id_codec.VOLUME_CONTEXT_RESOURCE_GROUP_NAME,
                    request.resource_group_name,
                )
                set_key_value(
                    volume_context, volume_id_codec.VOLUME_CONTEXT_MGS_IP_ADDRESS, mgs_ip_address
                )
                set_key_value(
                    volume_context, volume_id_codec.VOLUME_CONTEXT_FS_NAME, DEFAULT_LUSTRE_FS_NAME
                )

            volume_id = volume_id_codec.create_volume_id_from_params(name, volume_context)
            LOG.info("Created volume ID %s", volume_id)

            return CreateVolumeResult(
                volume_id=volume_id,
                capacity_bytes=capacity_bytes,
                volume_context=volume_context,
            )

    def delete_volume(self, ctx: RequestContext, volume_id: str) -> None:
        """Delete a volume, tearing down its AMLFS cluster if it was created here.

        Raises:
            InvalidArgument: volume_id is empty
            Aborted: Another operation on the same volume is in flight
            LustreProvisionerException: Deletion failure, same code as the
                underlying error
        """
        if not volume_id:
            raise InvalidArgument(details="Volume ID missing in request")

        volume = None
        try:
            volume = volume_id_codec.decode_volume_id(volume_id)
        except InvalidVolumeId as e:
            LOG.warning(
                "Volume ID %s could not be parsed, nothing will be deleted and any "
                "backing filesystem is left in place: %s",
                volume_id,
                e,
            )

        with self.volume_locks.hold(volume_id):
            LOG.info("Deleting volume %s", volume_id)

            if volume is not None and volume.is_dynamic:
                provisioner = self._require_provisioner()
                try:
                    provisioner.delete_aml_filesystem(
                        ctx, volume.resource_group_name, volume.aml_filesystem_name
                    )
                except NotFound:
                    LOG.info(
                        "AMLFS %s in resource group %s is already deleted",
                        volume.aml_filesystem_name,
                        volume.resource_group_name,
                    )
                except LustreProvisionerException as e:
                    LOG.warning(
                        "Error when deleting AMLFS %s in resource group %s: %s",
                        volume.aml_filesystem_name,
                        volume.resource_group_name,
                        e,
                    )
                    raise wrap_error(
                        e,
                        "DeleteVolume error when deleting AMLFS %s in resource group %s"
                        % (volume.aml_filesystem_name, volume.resource_group_name),
                    )

            LOG.info("Volume %s is deleted successfully", volume_id)

    def validate_volume_capabilities(
        self, volume_id: str, capabilities: List[VolumeCapability]
    ) -> Optional[List[VolumeCapability]]:
        """Return the capabilities if all are supported, else None.

        Raises:
            InvalidArgument: volume_id or capabilities missing
        """
        if not volume_id:
            raise InvalidArgument(details="Volume ID missing in request")
        if not capabilities:
            raise InvalidArgument(details="Volume capabilities missing in request")
        try:
            validate_capabilities(capabilities)
        except InvalidArgument as e:
            LOG.debug("Volume %s capabilities not confirmed: %s", volume_id, e)
            return None
        return list(capabilities)
